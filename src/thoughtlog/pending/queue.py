"""
PendingQueue: durable fallback for audio analysis.

Per-Log state machine:

  NEW --analyse ok--------------------> ANALYZED
  NEW --transient failure-------------> PENDING (retry_count=1)
  NEW --any other failure-------------> terminal (pending_analysis=False, last_error set)
  PENDING --retry ok------------------> ANALYZED
  PENDING --retry fails---------------> PENDING (retry_count+1)
  PENDING --result rejected by storage-> terminal (last_error set)
  PENDING with retry_count >= max ----> inert: skipped by sweeps until reset

Audio is written to the AudioStore before analysis is attempted, so the
bytes survive whatever happens next. A retry computes the next backoff
delay but never sleeps on it; the scheduler owns the cadence.
"""
import asyncio
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set

from thoughtlog.analysis.orchestrator import AnalysisOrchestrator
from thoughtlog.analysis.segments import AnalysisResult
from thoughtlog.errors import NotFoundError, ValidationError, is_transient
from thoughtlog.models.read import LogRead
from thoughtlog.storage.audio import AudioStore, mime_type_for
from thoughtlog.storage.gateway import PersistenceGateway
from thoughtlog.storage.schemas import LogCreate, segments_from_analysis

logger = logging.getLogger(__name__)


@dataclass
class PendingRetryConfig:
    max_retries: int = 3
    retry_delay_ms: float = 5000
    exponential_backoff: bool = True
    sweep_pause_ms: float = 1000  # between items in one sweep

    def next_delay_ms(self, retry_count: int) -> float:
        """Delay before the next retry of a Log that has failed `retry_count` retries so far."""
        if not self.exponential_backoff:
            return self.retry_delay_ms
        return self.retry_delay_ms * 2 ** retry_count


@dataclass
class CaptureOutcome:
    log_id: int
    result: Optional[AnalysisResult] = None
    pending: bool = False
    error: Optional[BaseException] = None


@dataclass
class RetryOutcome:
    log_id: int
    succeeded: bool = False
    skipped: bool = False
    reason: Optional[str] = None
    next_delay_ms: Optional[float] = None
    error: Optional[str] = None


@dataclass
class SweepResult:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    already_running: bool = False


class PendingQueue:
    """Stores audio first, analyses it, and retries transient failures later."""

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        gateway: PersistenceGateway,
        audio_store: AudioStore,
        config: Optional[PendingRetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.gateway = gateway
        self.audio_store = audio_store
        self.config = config or PendingRetryConfig()
        self._sleep = sleep
        self._sweeping = False
        self._in_flight: Set[int] = set()

    # ─── Capture ──────────────────────────────────────────────────────────────

    async def capture(
        self,
        audio: bytes,
        log_date: Optional[dt.date] = None,
        mime_type: str = "audio/wav",
    ) -> CaptureOutcome:
        """
        Store the recording, analyse it and persist the outcome.

        Analysis errors never escape: they become a pending Log (transient)
        or a terminal Log (anything else), reported in the outcome. An
        analysis the gateway refuses to store also becomes a terminal Log
        that keeps its audio_path. Errors saving that Log (e.g. a Log
        already exists for the date) propagate; the stored audio file is kept.
        """
        log_date = log_date or dt.date.today()
        audio_path = str(await self.audio_store.save(audio, log_date, mime_type))

        try:
            result = await self.orchestrator.analyze_audio(audio, mime_type)
        except Exception as exc:
            pending = is_transient(exc)
            saved = self.gateway.save(
                LogCreate(
                    date=log_date,
                    audio_path=audio_path,
                    pending_analysis=pending,
                    retry_count=1 if pending else 0,
                    last_error=str(exc),
                )
            )
            if pending:
                logger.warning("Log %d queued for retry: %s", saved.id, exc)
            else:
                logger.error("Log %d failed with non-retryable error: %s", saved.id, exc)
            return CaptureOutcome(log_id=saved.id, pending=pending, error=exc)

        try:
            saved = self.gateway.save_analysis_result(result, audio_path=audio_path, log_date=log_date)
        except ValidationError as exc:
            # Keep a row pointing at the audio; a duplicate date still raises here
            saved = self.gateway.save(
                LogCreate(date=log_date, audio_path=audio_path, last_error=str(exc))
            )
            logger.error("Analysis for log %d could not be stored: %s", saved.id, exc)
            return CaptureOutcome(log_id=saved.id, error=exc)
        return CaptureOutcome(log_id=saved.id, result=result)

    async def queue_for_analysis(
        self,
        audio: bytes,
        log_date: Optional[dt.date] = None,
        mime_type: str = "audio/wav",
    ) -> int:
        """capture() reduced to the Log id."""
        outcome = await self.capture(audio, log_date, mime_type)
        return outcome.log_id

    # ─── Retry ────────────────────────────────────────────────────────────────

    async def retry_pending(self, log_id: int) -> RetryOutcome:
        """
        Re-run analysis for one pending Log.

        Raises:
            NotFoundError: no such Log.
            ValidationError: the Log has no stored audio.
        """
        log = self.gateway.get(log_id)
        if log is None:
            raise NotFoundError("Log", log_id)
        if not log.audio_path:
            raise ValidationError(f"Log {log_id} has no audio file to retry")

        skip_reason = self._skip_reason(log)
        if skip_reason:
            logger.info("Skipping log %d: %s", log_id, skip_reason)
            return RetryOutcome(log_id=log_id, skipped=True, reason=skip_reason)

        self._in_flight.add(log_id)
        try:
            try:
                audio = await self.audio_store.read(log.audio_path)
                result = await self.orchestrator.analyze_audio(audio, mime_type_for(log.audio_path))
                self.gateway.complete_analysis(
                    log_id, result.transcript, segments_from_analysis(result.segments)
                )
            except ValidationError as exc:
                # Storage rules reject this analysis the same way on every attempt
                self.gateway.mark_terminal(log_id, str(exc))
                logger.error("Analysis of log %d could not be stored, giving up: %s", log_id, exc)
                return RetryOutcome(log_id=log_id, reason="analysis could not be stored", error=str(exc))
            except Exception as exc:
                self.gateway.mark_pending(log_id, str(exc))
                delay_ms = self.config.next_delay_ms(log.retry_count)
                logger.warning(
                    "Retry failed for log %d: %s. Next retry in %.0fms (attempt %d/%d)",
                    log_id,
                    exc,
                    delay_ms,
                    log.retry_count + 1,
                    self.config.max_retries,
                )
                return RetryOutcome(log_id=log_id, next_delay_ms=delay_ms, error=str(exc))

            logger.info("Analysed pending log %d (%d segments)", log_id, len(result.segments))
            return RetryOutcome(log_id=log_id, succeeded=True)
        finally:
            self._in_flight.discard(log_id)

    async def retry_all_pending(self) -> SweepResult:
        """Retry every pending Log, one at a time. A no-op while another sweep runs."""
        if self._sweeping:
            logger.info("Pending sweep already running, skipping")
            return SweepResult(already_running=True)

        self._sweeping = True
        try:
            sweep = SweepResult()
            pending = self.pending_items()
            if not pending:
                logger.debug("No pending logs to retry")
                return sweep

            logger.info("Retrying %d pending logs", len(pending))
            for log in pending:
                if log.retry_count >= self.config.max_retries:
                    sweep.skipped += 1
                    continue
                if sweep.processed:
                    await self._sleep(self.config.sweep_pause_ms / 1000)
                sweep.processed += 1
                try:
                    outcome = await self.retry_pending(log.id)
                except Exception as exc:
                    logger.error("Retry of log %d raised: %s", log.id, exc)
                    sweep.failed += 1
                    continue
                if outcome.succeeded:
                    sweep.succeeded += 1
                elif outcome.skipped:
                    sweep.skipped += 1
                else:
                    sweep.failed += 1

            logger.info(
                "Pending sweep complete: %d succeeded, %d failed, %d skipped",
                sweep.succeeded,
                sweep.failed,
                sweep.skipped,
            )
            return sweep
        finally:
            self._sweeping = False

    # ─── Inspection and admin ─────────────────────────────────────────────────

    def pending_items(self) -> List[LogRead]:
        """Pending Logs that still have audio to analyse, oldest first."""
        return [log for log in self.gateway.pending_logs() if log.audio_path]

    def has_pending_items(self) -> bool:
        return bool(self.pending_items())

    def reset_retry_count(self, log_id: int) -> LogRead:
        """Make an inert Log eligible for sweeps again."""
        return self.gateway.reset_retry_count(log_id)

    def mark_as_analyzed(self, log_id: int) -> LogRead:
        return self.gateway.mark_analyzed(log_id)

    def delete_audio_file(self, log_id: int) -> bool:
        """Remove a Log's stored audio and clear its audio_path. False if there was none."""
        log = self.gateway.get(log_id)
        if log is None:
            raise NotFoundError("Log", log_id)
        if not log.audio_path:
            return False
        self.audio_store.delete(log.audio_path)
        self.gateway.update_log(log_id, audio_path=None)
        return True

    def _skip_reason(self, log: LogRead) -> Optional[str]:
        if log.id in self._in_flight:
            return "retry already in progress"
        if not log.pending_analysis:
            return "not pending"
        if log.retry_count >= self.config.max_retries:
            return f"retry limit reached ({log.retry_count}/{self.config.max_retries})"
        return None
