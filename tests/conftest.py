"""Shared test fixtures."""
import datetime as dt
import json
from typing import Generator, List, Optional

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from thoughtlog.analysis.orchestrator import AnalysisOrchestrator
from thoughtlog.db.engine import enable_sqlite_foreign_keys

# Import all models so SQLModel.metadata knows about them
from thoughtlog.models.log import Accomplishment, Idea, IdeaTag, Learning, Log, Todo  # noqa: F401
from thoughtlog.pending.queue import PendingQueue, PendingRetryConfig
from thoughtlog.storage.audio import AudioStore
from thoughtlog.storage.gateway import PersistenceGateway

SAMPLE_RESPONSE = json.dumps(
    {
        "segments": [
            {"type": "accomplishment", "text": "Finished the auth module", "confidence": 0.95},
            {"type": "todo", "text": "Write tests for auth", "confidence": 0.9, "priority": "high"},
            {"type": "idea", "text": "Add OAuth support", "confidence": 0.85, "category": "product"},
            {"type": "learning", "text": "Refresh tokens need rotation", "topic": "security"},
        ]
    }
)


class FakeClassifier:
    """
    Scripted Classifier.

    Each entry in transcripts / responses is either a value to
    return or an exception to raise, consumed in order. The last entry repeats.
    """

    def __init__(
        self,
        transcripts: Optional[List] = None,
        responses: Optional[List] = None,
    ):
        self.transcripts = list(transcripts or ["I finished the auth module."])
        self.responses = list(responses or [SAMPLE_RESPONSE])
        self.transcribe_calls: List[bytes] = []
        self.classify_calls: List[str] = []

    @staticmethod
    def _next(results: List):
        item = results.pop(0) if len(results) > 1 else results[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> str:
        self.transcribe_calls.append(audio)
        return self._next(self.transcripts)

    async def classify(self, text: str, instructions: str) -> str:
        self.classify_calls.append(text)
        return self._next(self.responses)


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with FK enforcement. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="seeded_log")
def seeded_log_fixture(test_session: Session) -> Log:
    """A persisted Log for use in segment tests."""
    log = Log(date=dt.date(2025, 1, 15), transcript="Morning notes")
    test_session.add(log)
    test_session.commit()
    test_session.refresh(log)
    return log


@pytest.fixture(name="gateway")
def gateway_fixture(engine) -> PersistenceGateway:
    return PersistenceGateway(engine)


@pytest.fixture(name="audio_store")
def audio_store_fixture(tmp_path) -> AudioStore:
    return AudioStore(tmp_path / "audio")


@pytest.fixture(name="classifier")
def classifier_fixture() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture(name="queue")
def queue_fixture(classifier, gateway, audio_store) -> PendingQueue:
    return PendingQueue(
        AnalysisOrchestrator(classifier),
        gateway,
        audio_store,
        PendingRetryConfig(max_retries=3, retry_delay_ms=5000, sweep_pause_ms=0),
        sleep=no_sleep,
    )
