"""Credential lookup. The pipeline reads provider keys here and never persists them."""
from typing import Optional, Protocol

from thoughtlog.config import Settings

ANTHROPIC_API_KEY = "anthropic_api_key"
OPENAI_API_KEY = "openai_api_key"


class SecretStore(Protocol):
    def get_secret(self, name: str) -> Optional[str]:
        ...


class SettingsSecretStore:
    """Serves provider keys from Settings (environment / .env)."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def get_secret(self, name: str) -> Optional[str]:
        value = getattr(self._settings, name, None)
        return value or None
