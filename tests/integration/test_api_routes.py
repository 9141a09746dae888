"""Integration tests for the HTTP routes and error mapping."""
import pytest
from conftest import FakeClassifier, no_sleep
from fastapi.testclient import TestClient

from thoughtlog.analysis.orchestrator import AnalysisOrchestrator
from thoughtlog.api.main import create_app
from thoughtlog.errors import AuthError, NetworkError, RateLimitError
from thoughtlog.pending.queue import PendingQueue, PendingRetryConfig
from thoughtlog.service import ThoughtLogService
from thoughtlog.storage.audio import AudioStore
from thoughtlog.storage.gateway import PersistenceGateway


@pytest.fixture(name="make_client")
def make_client_fixture(engine, tmp_path):
    clients = []

    def _make(classifier=None) -> TestClient:
        orchestrator = AnalysisOrchestrator(classifier or FakeClassifier())
        gateway = PersistenceGateway(engine)
        queue = PendingQueue(
            orchestrator,
            gateway,
            AudioStore(tmp_path / "audio"),
            PendingRetryConfig(sweep_pause_ms=0),
            sleep=no_sleep,
        )
        client = TestClient(create_app(ThoughtLogService(orchestrator, gateway, queue)))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture(name="client")
def client_fixture(make_client) -> TestClient:
    return make_client()


def post_audio(client, date="2025-01-15"):
    return client.post(
        f"/logs/audio?date={date}",
        content=b"voice",
        headers={"content-type": "audio/wav"},
    )


class TestAnalyzeRoutes:
    def test_text(self, client):
        response = client.post("/analyze/text", json={"text": "Finished auth, need tests."})

        assert response.status_code == 200
        body = response.json()
        assert [s["type"] for s in body["segments"]] == ["accomplishment", "todo", "idea", "learning"]
        assert body["stats"]["total"] == 4
        assert body["stats"]["unscored"] == 1
        assert client.get("/logs/").json() == []

    def test_audio(self, client):
        response = client.post("/analyze/audio", content=b"voice", headers={"content-type": "audio/webm"})
        assert response.status_code == 200
        assert response.json()["transcript"] == "I finished the auth module."

    def test_empty_audio_body(self, client):
        response = client.post("/analyze/audio", content=b"")
        assert response.status_code == 422
        assert response.json()["kind"] == "validation"


class TestLogRoutes:
    def test_create_from_text(self, client):
        response = client.post("/logs/text", json={"text": "Busy day.", "date": "2025-01-15"})

        assert response.status_code == 201
        body = response.json()
        assert body["date"] == "2025-01-15"
        assert body["todos"][0]["priority"] == 1
        assert body["ideas"][0]["tags"] == ["product"]

    def test_duplicate_date(self, client):
        client.post("/logs/text", json={"text": "First.", "date": "2025-01-15"})
        response = client.post("/logs/text", json={"text": "Second.", "date": "2025-01-15"})
        assert response.status_code == 422
        assert "already exists" in response.json()["detail"]

    def test_create_from_audio(self, client):
        response = post_audio(client)
        assert response.status_code == 201
        assert response.json()["pending"] is False
        assert response.json()["segment_count"] == 4

    def test_list_get_delete(self, client):
        log_id = client.post("/logs/text", json={"text": "Notes.", "date": "2025-01-15"}).json()["id"]

        assert [log["id"] for log in client.get("/logs/").json()] == [log_id]
        assert client.get(f"/logs/{log_id}").json()["transcript"] == "Notes."
        assert client.delete(f"/logs/{log_id}").status_code == 204
        assert client.get(f"/logs/{log_id}").status_code == 404

    def test_missing_log(self, client):
        response = client.get("/logs/999")
        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"
        assert response.json()["recovery"]["action"]


class TestPendingRoutes:
    def test_queue_then_retry(self, make_client):
        client = make_client(FakeClassifier(transcripts=[NetworkError("offline"), "Back online."]))

        queued = post_audio(client)
        assert queued.status_code == 202
        assert queued.json()["pending"] is True
        log_id = queued.json()["log_id"]

        assert [log["id"] for log in client.get("/pending/").json()] == [log_id]

        retried = client.post(f"/pending/{log_id}/retry").json()
        assert retried["succeeded"] is True
        assert client.get("/pending/").json() == []

    def test_sweep(self, make_client):
        client = make_client(FakeClassifier(transcripts=[NetworkError("offline"), "Back online."]))
        post_audio(client)

        body = client.post("/pending/retry").json()

        assert body == {
            "processed": 1,
            "succeeded": 1,
            "failed": 0,
            "skipped": 0,
            "already_running": False,
        }

    def test_reset_and_mark_analyzed(self, make_client):
        client = make_client(FakeClassifier(transcripts=[NetworkError("offline")]))
        log_id = post_audio(client).json()["log_id"]

        assert client.post(f"/pending/{log_id}/reset").json()["retry_count"] == 0
        assert client.post(f"/pending/{log_id}/analyzed").json()["pending_analysis"] is False
        assert client.get("/pending/").json() == []

    def test_retry_unknown_log(self, client):
        assert client.post("/pending/42/retry").status_code == 404


class TestErrorMapping:
    def test_blank_text_is_422(self, client):
        response = client.post("/analyze/text", json={"text": " "})
        assert response.status_code == 422
        assert response.json()["kind"] == "validation"

    def test_network_error_is_503(self, make_client):
        client = make_client(FakeClassifier(responses=[NetworkError("offline")]))
        response = client.post("/analyze/text", json={"text": "hello"})
        assert response.status_code == 503
        assert response.json()["kind"] == "network"

    def test_rate_limit_sets_retry_after(self, make_client):
        client = make_client(FakeClassifier(responses=[RateLimitError("slow down", retry_after_seconds=30)]))
        response = client.post("/analyze/text", json={"text": "hello"})
        assert response.status_code == 503
        assert response.headers["retry-after"] == "30"

    def test_unparseable_response_is_502(self, make_client):
        client = make_client(FakeClassifier(responses=["not json at all"]))
        response = client.post("/analyze/text", json={"text": "hello"})
        assert response.status_code == 502
        assert response.json()["kind"] == "parse"

    def test_auth_error_is_502(self, make_client):
        client = make_client(FakeClassifier(responses=[AuthError("bad key", 401)]))
        response = client.post("/analyze/text", json={"text": "hello"})
        assert response.status_code == 502
        assert response.json()["detail"] == "bad key"
