import pytest
from pydantic import ValidationError

from groq_stt.domain.models import (
    OutputFormat,
    ResponseFormat,
    SharedOptions,
    Source,
    TimestampGranularity,
    TranscribeBatchRequest,
    TranscribeItem,
    TranscriptionRequest,
)


def test_item_needs_exactly_one_source_type():
    with pytest.raises(ValidationError):
        TranscribeItem(file_path="/a.mp3", url="https://example.com/a.mp3")
    with pytest.raises(ValidationError):
        TranscribeItem(id="lonely")


def test_item_rejects_two_local_path_fields():
    with pytest.raises(ValidationError):
        TranscribeItem(file_path="/a.mp3", audio_path="/b.mp3")


def test_path_aliases_resolve_to_file_path():
    assert TranscribeItem(audio_path="/a.mp3").source() == Source(file_path="/a.mp3")
    assert TranscribeItem(path="/b.mp3").echo() == {"file_path": "/b.mp3"}


@pytest.mark.parametrize("url", ["ftp://example.com/a.mp3", "not a url", "https://"])
def test_item_url_must_be_http(url):
    with pytest.raises(ValidationError):
        TranscribeItem(url=url)


def test_save_as_must_be_a_bare_filename():
    with pytest.raises(ValidationError):
        TranscribeItem(file_path="/a.mp3", save_as="dir/out.txt")


def test_unknown_fields_are_rejected():
    with pytest.raises(ValidationError):
        TranscribeBatchRequest(items=[{"url": "https://example.com/a.mp3"}], speed=2)


def test_timestamps_require_verbose_json():
    with pytest.raises(ValidationError):
        TranscribeBatchRequest(items=[{"url": "https://example.com/a.mp3"}], timestamp_granularities=["word"])
    req = TranscribeBatchRequest(
        items=[{"url": "https://example.com/a.mp3"}],
        response_format="verbose_json",
        timestamp_granularities=["word", "segment"],
    )
    assert req.timestamp_granularities == [TimestampGranularity.WORD, TimestampGranularity.SEGMENT]


def test_duplicate_item_ids_are_rejected():
    with pytest.raises(ValidationError):
        TranscribeBatchRequest(items=[
            {"id": "x", "url": "https://example.com/a.mp3"},
            {"id": "x", "url": "https://example.com/b.mp3"},
        ])


@pytest.mark.parametrize("field,value", [("concurrency", 0), ("concurrency", 11), ("temperature", 1.5),
                                         ("language", "e"), ("prompt", "p" * 1001)])
def test_range_checks(field, value):
    with pytest.raises(ValidationError):
        TranscribeBatchRequest(items=[{"url": "https://example.com/a.mp3"}], **{field: value})


def test_defaults():
    req = TranscribeBatchRequest()
    assert req.concurrency == 8
    assert req.response_format == ResponseFormat.TEXT
    assert req.output_format == OutputFormat.TEXT
    assert req.temperature == 0.0
    assert req.effective_items() == []


def test_single_source_shortcut_becomes_one_item():
    req = TranscribeBatchRequest(file_path="/a.mp3", save_as="a.txt")
    items = req.effective_items()
    assert len(items) == 1
    assert items[0].local_path == "/a.mp3"
    assert items[0].save_as == "a.txt"


def test_shortcut_cannot_mix_sources():
    with pytest.raises(ValidationError):
        TranscribeBatchRequest(file_path="/a.mp3", url="https://example.com/a.mp3")


def test_merge_applies_non_none_overrides_only():
    shared = SharedOptions(model="m1", language="en", temperature=0.2)
    req = TranscriptionRequest.merge(shared, Source(url="https://example.com/a.mp3"), language=None, prompt="hint")
    assert req.language == "en"
    assert req.prompt == "hint"
    assert req.temperature == 0.2
    assert req.model == "m1"


def test_merge_rejects_unknown_option():
    with pytest.raises(TypeError):
        TranscriptionRequest.merge(SharedOptions(model="m"), Source(url="https://example.com/a.mp3"), speed=2)


def test_shared_options_fall_back_to_default_model():
    req = TranscribeBatchRequest(items=[{"url": "https://example.com/a.mp3"}])
    assert req.shared_options("whisper-large-v3").model == "whisper-large-v3"
    req = TranscribeBatchRequest(items=[{"url": "https://example.com/a.mp3"}], model="custom")
    assert req.shared_options("whisper-large-v3").model == "custom"
