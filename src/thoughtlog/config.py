from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5"
    whisper_model: str = "whisper-1"
    classify_max_tokens: int = 2000

    database_url: str = "sqlite:///./thoughtlog.db"
    audio_dir: str = "./audio-recordings"

    # Provider calls (RetryPolicy)
    request_timeout_ms: int = 60000
    retry_max_retries: int = 3
    retry_initial_delay_ms: int = 1000
    retry_max_delay_ms: int = 10000
    retry_backoff_multiplier: float = 2.0

    # Pending queue
    pending_max_retries: int = 3
    pending_retry_delay_ms: int = 5000
    pending_exponential_backoff: bool = True
    pending_sweep_pause_ms: int = 1000
    pending_sweep_interval_minutes: int = 15

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
