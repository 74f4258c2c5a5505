import asyncio
import json
import os

from groq_stt.domain.models import TranscribeBatchRequest
from groq_stt.services.pipeline import BatchTranscriptionPipeline
from groq_stt.services.transcription_client import TranscriptionClient

from conftest import FakeUpstream, json_response, text_response


def _pipeline(settings, upstream, sleep_recorder, api_key="test-key") -> BatchTranscriptionPipeline:
    client = TranscriptionClient(settings, transport=upstream.transport, sleep=sleep_recorder, rand=lambda: 0.5)
    return BatchTranscriptionPipeline(settings, credential_supplier=lambda: api_key, client=client)


def _by_url(request, n):
    if b"bad.mp3" in request.content:
        return json_response({"error": {"message": "unsupported audio"}}, 400)
    return text_response("transcribed")


def test_mixed_batch_keeps_order_and_counts(settings, tmp_path, sleep_recorder):
    good = tmp_path / "good.wav"
    good.write_bytes(b"RIFF-fake")
    empty = tmp_path / "empty.wav"
    empty.write_bytes(b"")
    req = TranscribeBatchRequest(
        items=[
            {"id": "one", "url": "https://example.com/first.mp3"},
            {"id": "two", "url": "https://example.com/bad.mp3"},
            {"id": "three", "file_path": str(good)},
            {"id": "four", "file_path": str(empty)},
            {"id": "five", "url": "https://example.com/last.mp3"},
        ],
        concurrency=2,
    )
    upstream = FakeUpstream(_by_url)

    response = asyncio.run(_pipeline(settings, upstream, sleep_recorder).handle(req))

    report = response.structured
    assert not response.is_error
    assert report["summary"] == {"total": 5, "ok": 3, "failed": 2}
    assert [r["id"] for r in report["results"]] == ["one", "two", "three", "four", "five"]
    assert [r["index"] for r in report["results"]] == [0, 1, 2, 3, 4]
    assert report["results"][1]["error"]["code"] == "groq_api_error"
    assert report["results"][1]["error"]["status"] == 400
    assert report["results"][3]["error"]["code"] == "file_empty"
    # the empty file never reaches the upstream API
    assert len(upstream.calls) == 4
    assert response.content.startswith("Transcription complete.\nTotal: 5 | OK: 3 | Failed: 2")

    saved = [r["output"]["saved_path"] for r in report["results"] if r["ok"]]
    assert len(set(saved)) == 3
    assert all(os.path.exists(p) for p in saved)


def test_missing_credential_makes_no_calls(settings, sleep_recorder):
    upstream = FakeUpstream(lambda req, n: text_response("unused"))
    req = TranscribeBatchRequest(items=[{"url": "https://example.com/a.mp3"}])

    response = asyncio.run(_pipeline(settings, upstream, sleep_recorder, api_key=None).handle(req))

    assert response.is_error
    assert response.structured["error"] == "missing_api_key"
    assert "GROQ_API_KEY is not set." in response.content
    assert upstream.calls == []


def test_empty_batch_is_invalid_input(settings, sleep_recorder):
    upstream = FakeUpstream(lambda req, n: text_response("unused"))

    response = asyncio.run(_pipeline(settings, upstream, sleep_recorder).handle(TranscribeBatchRequest()))

    assert response.is_error
    assert response.structured["error"] == "invalid_input"
    assert "Provide at least one audio source" in response.content
    assert response.structured["usage"]["example_single"]["items"][0]["file_path"].endswith(".mp3")
    assert upstream.calls == []


def test_single_item_renders_requested_format(settings, sleep_recorder):
    upstream = FakeUpstream(lambda req, n: json_response({"text": "single", "language": "en", "segments": []}))
    req = TranscribeBatchRequest(
        url="https://example.com/one.mp3",
        response_format="verbose_json",
        include_metadata=True,
        output_format="markdown",
    )

    response = asyncio.run(_pipeline(settings, upstream, sleep_recorder).handle(req))

    assert not response.is_error
    assert response.content.startswith("# Transcription\n\nsingle\n")
    assert "## Metadata" in response.content
    echo = response.structured["request"]
    assert echo["model"] == "whisper-large-v3-turbo"
    assert echo["items"] == [{"url": "https://example.com/one.mp3"}]
    assert echo["output_format"] == "markdown"
    assert response.structured["truncated"] is False


def test_single_item_failure_is_an_error_response(settings, sleep_recorder):
    upstream = FakeUpstream(_by_url)
    req = TranscribeBatchRequest(items=[{"url": "https://example.com/bad.mp3"}])

    response = asyncio.run(_pipeline(settings, upstream, sleep_recorder).handle(req))

    assert response.is_error
    assert response.content.startswith("Error: Groq API request failed (status 400).")
    assert response.structured["summary"]["failed"] == 1


def test_multi_item_items_are_rendered_as_text(settings, sleep_recorder):
    upstream = FakeUpstream(lambda req, n: text_response("abc"))
    req = TranscribeBatchRequest(
        items=[{"url": "https://example.com/a.mp3"}, {"url": "https://example.com/b.mp3"}],
        output_format="json",
    )

    response = asyncio.run(_pipeline(settings, upstream, sleep_recorder).handle(req))

    summary = json.loads(response.content)
    assert summary["summary"]["ok"] == 2
    assert summary["results"][0]["transcript_preview"] == "abc"


def test_alternating_upstream_by_call_order(settings, sleep_recorder):
    upstream = FakeUpstream(
        lambda req, n: text_response("ok") if n % 2 else json_response({"error": {"message": "rejected"}}, 400)
    )
    req = TranscribeBatchRequest(
        items=[{"url": f"https://example.com/{i}.mp3"} for i in range(5)],
        concurrency=2,
    )

    response = asyncio.run(_pipeline(settings, upstream, sleep_recorder).handle(req))

    report = response.structured
    assert report["summary"] == {"total": 5, "ok": 3, "failed": 2}
    assert [r["index"] for r in report["results"]] == [0, 1, 2, 3, 4]
    assert report["results"][1]["error"]["code"] == "groq_api_error"
    assert report["results"][1]["error"]["status"] == 400
    assert len(upstream.calls) == 5
