"""
ThoughtLogService: the surface exposed to the UI, HTTP routes and CLI.

Also the composition root: build_service() reads Settings once and wires
SecretStore -> ProviderClassifier -> AnalysisOrchestrator, the gateway,
the audio store and the pending queue.
"""
import datetime as dt
import logging
from pathlib import Path
from typing import List, Optional, Protocol

from thoughtlog.ai.classifier import Classifier
from thoughtlog.ai.provider import ProviderClassifier
from thoughtlog.ai.retry import RetryOptions, RetryPolicy
from thoughtlog.ai.secrets import SettingsSecretStore
from thoughtlog.analysis.orchestrator import AnalysisOrchestrator
from thoughtlog.analysis.segments import AnalysisResult
from thoughtlog.config import Settings, get_settings
from thoughtlog.errors import recovery_for
from thoughtlog.models.read import LogRead, LogWithSegments
from thoughtlog.pending.queue import (
    CaptureOutcome,
    PendingQueue,
    PendingRetryConfig,
    RetryOutcome,
    SweepResult,
)
from thoughtlog.storage.audio import AudioStore
from thoughtlog.storage.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Receives notifications for one interactive submission, in order. Delivery is not retried."""

    def progress(self, status: str, percent: int) -> None:
        ...

    def complete(self, result: Optional[AnalysisResult], log_id: int) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class NullProgressSink:
    def progress(self, status: str, percent: int) -> None:
        pass

    def complete(self, result: Optional[AnalysisResult], log_id: int) -> None:
        pass

    def error(self, message: str) -> None:
        pass


class LoggingProgressSink:
    """Writes notifications to the log. Used by the CLI."""

    def progress(self, status: str, percent: int) -> None:
        logger.info("[%3d%%] %s", percent, status)

    def complete(self, result: Optional[AnalysisResult], log_id: int) -> None:
        count = len(result.segments) if result else 0
        logger.info("Log %d saved with %d segments", log_id, count)

    def error(self, message: str) -> None:
        logger.error(message)


def _error_message(exc: BaseException) -> str:
    hint = recovery_for(exc)
    return f"{hint.message} {hint.action} ({exc})"


class ThoughtLogService:
    """Analysis, persistence and pending-queue operations behind one object."""

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        gateway: PersistenceGateway,
        queue: PendingQueue,
    ):
        self.orchestrator = orchestrator
        self.gateway = gateway
        self.queue = queue

    # ─── Analysis ─────────────────────────────────────────────────────────────

    async def analyze_audio(self, audio: bytes, mime_type: str = "audio/wav") -> AnalysisResult:
        return await self.orchestrator.analyze_audio(audio, mime_type)

    async def analyze_text(self, text: str) -> AnalysisResult:
        return await self.orchestrator.analyze_text(text)

    def save_analysis_result(
        self,
        result: AnalysisResult,
        audio_path: Optional[str] = None,
        log_date: Optional[dt.date] = None,
    ) -> LogWithSegments:
        return self.gateway.save_analysis_result(result, audio_path=audio_path, log_date=log_date)

    # ─── Pending queue ────────────────────────────────────────────────────────

    async def queue_for_analysis(
        self,
        audio: bytes,
        log_date: Optional[dt.date] = None,
        mime_type: str = "audio/wav",
    ) -> int:
        return await self.queue.queue_for_analysis(audio, log_date, mime_type)

    async def retry_pending(self, log_id: int) -> RetryOutcome:
        return await self.queue.retry_pending(log_id)

    async def retry_all_pending(self) -> SweepResult:
        return await self.queue.retry_all_pending()

    def has_pending_items(self) -> bool:
        return self.queue.has_pending_items()

    def pending_items(self) -> List[LogRead]:
        return self.queue.pending_items()

    def reset_retry_count(self, log_id: int) -> LogRead:
        return self.queue.reset_retry_count(log_id)

    def mark_as_analyzed(self, log_id: int) -> LogRead:
        return self.queue.mark_as_analyzed(log_id)

    # ─── Stored logs ──────────────────────────────────────────────────────────

    def get_log(self, log_id: int) -> Optional[LogWithSegments]:
        return self.gateway.get(log_id)

    def list_logs(self, limit: int = 100, offset: int = 0) -> List[LogRead]:
        return self.gateway.list_all(limit=limit, offset=offset)

    def delete_log(self, log_id: int) -> None:
        """Delete a Log with its segments, then its audio file if any."""
        log = self.gateway.get(log_id)
        self.gateway.delete_log(log_id)
        if log is not None and log.audio_path:
            self.queue.audio_store.delete(log.audio_path)

    # ─── Interactive submissions ──────────────────────────────────────────────

    async def submit_text(
        self,
        text: str,
        sink: Optional[ProgressSink] = None,
        log_date: Optional[dt.date] = None,
    ) -> LogWithSegments:
        """
        Analyse and store typed text, reporting progress.

        Every error is reported through sink.error and then raised.
        """
        sink = sink or NullProgressSink()
        try:
            sink.progress("Analyzing text", 10)
            result = await self.orchestrator.analyze_text(text)
            sink.progress("Saving results", 80)
            saved = self.gateway.save_analysis_result(result, log_date=log_date)
        except Exception as exc:
            sink.error(_error_message(exc))
            raise
        sink.progress("Done", 100)
        sink.complete(result, saved.id)
        return saved

    async def submit_audio(
        self,
        audio: bytes,
        mime_type: str = "audio/wav",
        sink: Optional[ProgressSink] = None,
        log_date: Optional[dt.date] = None,
    ) -> CaptureOutcome:
        """
        Store and analyse a recording, reporting progress.

        Transient analysis failures are queued silently and reported as
        complete with no result. Other failures go to sink.error and are raised.
        """
        sink = sink or NullProgressSink()
        try:
            sink.progress("Saving recording", 10)
            sink.progress("Transcribing and analyzing", 30)
            outcome = await self.queue.capture(audio, log_date, mime_type)
        except Exception as exc:
            sink.error(_error_message(exc))
            raise

        if outcome.error is not None and not outcome.pending:
            sink.error(_error_message(outcome.error))
            raise outcome.error

        sink.progress("Queued for later analysis" if outcome.pending else "Done", 100)
        sink.complete(outcome.result, outcome.log_id)
        return outcome


def build_service(
    settings: Optional[Settings] = None,
    engine=None,
    classifier: Optional[Classifier] = None,
) -> ThoughtLogService:
    """Wire every component from Settings. Pass engine/classifier to substitute them."""
    settings = settings or get_settings()
    if engine is None:
        from thoughtlog.db.engine import get_engine

        engine = get_engine()

    if classifier is None:
        retry = RetryPolicy(
            RetryOptions(
                max_retries=settings.retry_max_retries,
                initial_delay_ms=settings.retry_initial_delay_ms,
                max_delay_ms=settings.retry_max_delay_ms,
                backoff_multiplier=settings.retry_backoff_multiplier,
            )
        )
        classifier = ProviderClassifier(
            SettingsSecretStore(settings),
            retry=retry,
            timeout_ms=settings.request_timeout_ms,
            claude_model=settings.claude_model,
            whisper_model=settings.whisper_model,
            max_tokens=settings.classify_max_tokens,
        )

    orchestrator = AnalysisOrchestrator(classifier)
    gateway = PersistenceGateway(engine)
    queue = PendingQueue(
        orchestrator,
        gateway,
        AudioStore(Path(settings.audio_dir)),
        PendingRetryConfig(
            max_retries=settings.pending_max_retries,
            retry_delay_ms=settings.pending_retry_delay_ms,
            exponential_backoff=settings.pending_exponential_backoff,
            sweep_pause_ms=settings.pending_sweep_pause_ms,
        ),
    )
    return ThoughtLogService(orchestrator, gateway, queue)
