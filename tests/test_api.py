from unittest.mock import patch

from fastapi.testclient import TestClient

from groq_stt import main
from groq_stt.services.pipeline import BatchTranscriptionPipeline
from groq_stt.services.transcription_client import TranscriptionClient

from conftest import FakeUpstream, text_response

client = TestClient(main.app)


def test_health_reports_credential(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "abc")
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "credential_configured": True}

    monkeypatch.delenv("GROQ_API_KEY")
    assert client.get("/health").json()["credential_configured"] is False


def test_transcribe_endpoint(settings, sleep_recorder):
    upstream = FakeUpstream(lambda req, n: text_response("from the api"))
    transport_client = TranscriptionClient(settings, transport=upstream.transport, sleep=sleep_recorder)
    pipeline = BatchTranscriptionPipeline(settings, credential_supplier=lambda: "k", client=transport_client)

    with patch.object(main, "pipeline", pipeline):
        response = client.post("/transcribe", json={"items": [{"id": "a", "url": "https://example.com/a.mp3"}]})

    assert response.status_code == 200
    data = response.json()
    assert data["is_error"] is False
    assert data["content"] == "from the api"
    assert data["structured"]["results"][0]["id"] == "a"
    assert len(upstream.calls) == 1


def test_transcribe_rejects_invalid_request():
    response = client.post("/transcribe", json={"items": [{"file_path": "/a.mp3", "url": "https://example.com/a.mp3"}]})
    assert response.status_code == 422


def test_transcribe_without_credential(monkeypatch, settings):
    pipeline = BatchTranscriptionPipeline(settings, credential_supplier=lambda: None)
    with patch.object(main, "pipeline", pipeline):
        response = client.post("/transcribe", json={"url": "https://example.com/a.mp3"})

    data = response.json()
    assert data["is_error"] is True
    assert data["structured"]["error"] == "missing_api_key"
