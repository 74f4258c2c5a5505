"""
item_processor.py

ItemProcessor runs the whole single-item flow: resolve the input (local bytes or
URL), call the STT endpoint through `TranscriptionClient`, extract the transcript
for the requested response format, optionally normalize segment/word metadata,
persist the artifact and build the tagged `ItemResult`.

`process()` never raises for per-item problems. Input, upstream, transport and
unexpected errors all come back as failure results; a failed save is recorded
on an otherwise successful result.
"""

from __future__ import annotations

import asyncio
import json
import math
from typing import Any, Dict, List, Optional, Tuple

import httpx

from groq_stt.config.settings import Settings
from groq_stt.domain.models import ResponseFormat, TranscriptionRequest
from groq_stt.domain.results import ItemError, ItemResult, RawUpstreamResponse, TranscriptOutput
from groq_stt.helpers.file_utils import FileUtils
from groq_stt.helpers.text_utils import TextUtils
from groq_stt.logger import get_logger
from groq_stt.services.artifact_writer import (
    FORMATS,
    MIME_TYPES,
    ArtifactWriter,
    json_contents,
    text_contents,
)
from groq_stt.services.errors import (
    FileInputError,
    InvalidInputError,
    UpstreamApiError,
    to_error_message,
)
from groq_stt.services.renderer import render_output
from groq_stt.services.transcription_client import TranscriptionClient

log = get_logger("Item Processor")


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def extract_transcript(response_format: ResponseFormat, raw: RawUpstreamResponse) -> Tuple[Optional[str], Any]:
    """
    Returns (transcript or None, parsed body or None).
    Plain text responses are the transcript verbatim; structured ones carry it in `text`.
    """
    if response_format == ResponseFormat.TEXT:
        return raw.text, None

    parsed = raw.parsed_json
    if parsed is None:
        try:
            parsed = json.loads(raw.text)
        except ValueError:
            parsed = None
    if isinstance(parsed, dict) and isinstance(parsed.get("text"), str):
        return parsed["text"], parsed
    return None, parsed


def normalize_segments(raw_segments: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw_segments, list):
        return []
    segments: List[Dict[str, Any]] = []
    for s in raw_segments:
        if not isinstance(s, dict):
            continue
        start, end = _finite(s.get("start")), _finite(s.get("end"))
        text = s.get("text") if isinstance(s.get("text"), str) else ""
        if start is None or end is None or not text:
            continue
        seg: Dict[str, Any] = {}
        seg_id = s.get("id")
        if isinstance(seg_id, (int, float)) and not isinstance(seg_id, bool):
            seg["id"] = seg_id
        seg.update({"start": start, "end": end, "text": text})
        segments.append(seg)
    return segments


def normalize_words(raw_words: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw_words, list):
        return []
    words: List[Dict[str, Any]] = []
    for w in raw_words:
        if not isinstance(w, dict):
            continue
        word = w.get("word") if isinstance(w.get("word"), str) else ""
        start, end = _finite(w.get("start")), _finite(w.get("end"))
        if not word or start is None or end is None:
            continue
        words.append({"word": word, "start": start, "end": end})
    return words


def extract_metadata(parsed: Dict[str, Any]) -> Dict[str, Any]:
    segments = normalize_segments(parsed.get("segments"))
    words = normalize_words(parsed.get("words"))
    metadata: Dict[str, Any] = {}
    if isinstance(parsed.get("language"), str):
        metadata["language"] = parsed["language"]
    duration = parsed.get("duration")
    if isinstance(duration, (int, float)) and not isinstance(duration, bool):
        metadata["duration"] = duration
    metadata.update({
        "segments_count": len(segments),
        "words_count": len(words),
        "segments": segments,
        "words": words,
    })
    return metadata


class ItemProcessor:
    def __init__(self, settings: Settings, client: TranscriptionClient, writer: ArtifactWriter) -> None:
        self.client = client
        self.writer = writer
        self.max_upload_bytes = settings.MAX_UPLOAD_BYTES
        self.body_limit = settings.ERROR_BODY_LIMIT
        self.preview_limit = settings.ERROR_MESSAGE_PREVIEW_LIMIT

    async def process(self, api_key: str, request: TranscriptionRequest, index: int = 0,
                      item_id: Optional[str] = None) -> ItemResult:
        try:
            output = await self._transcribe(api_key, request)
        except Exception as e:
            error = self._to_item_error(e)
            log.warning("Item failed | index=%d | code=%s | status=%s | message=%s",
                        index, error.code, error.status, TextUtils.preview_message(error.message, self.preview_limit))
            return ItemResult(index=index, id=item_id, source=request.source, error=error,
                              content=f"Error: {error.message}")

        log.info("Item transcribed | index=%d | chars=%d | saved=%s", index, len(output.transcript), output.saved)
        return ItemResult(
            index=index,
            id=item_id,
            source=request.source,
            output=output,
            content=render_output(output, request.output_format, request.include_metadata),
        )

    def _to_item_error(self, error: Exception) -> ItemError:
        if isinstance(error, FileInputError):
            return ItemError(code=error.code, message=error.message, details=error.details)
        if isinstance(error, InvalidInputError):
            return ItemError(code=error.code, message=to_error_message(error))
        if isinstance(error, UpstreamApiError):
            body, truncated = TextUtils.truncate_body(error.body, self.body_limit)
            message = f"Groq API request failed (status {error.status}). {error.body or ''}".strip()
            return ItemError(code=error.code, message=message, status=error.status,
                             body=body, body_truncated=truncated, has_body=True)
        if isinstance(error, (httpx.TransportError, asyncio.TimeoutError)):
            return ItemError(
                code="transport_error",
                message=f"Transcription request failed after {self.client.max_attempts} attempt(s): {to_error_message(error)}",
            )
        log.error("Unexpected item error: %r", error, exc_info=True)
        return ItemError(code="unexpected_error", message=to_error_message(error))

    async def _transcribe(self, api_key: str, request: TranscriptionRequest) -> TranscriptOutput:
        upload: Optional[Tuple[str, bytes]] = None
        if request.source.file_path:
            upload = await asyncio.to_thread(FileUtils.read_audio_file, request.source.file_path, self.max_upload_bytes)
        elif not request.source.url:
            raise InvalidInputError("Choose one source type for each item: a local file path or a public url.")

        raw = await self.client.create_transcription(api_key, request, upload)
        if not raw.ok:
            raise UpstreamApiError(raw.status, f"Groq API error ({raw.status}).", raw.text)

        transcript, parsed = extract_transcript(request.response_format, raw)
        if transcript is None:
            log.warning("No `text` field in %s response; using raw body as transcript", request.response_format.value)
            transcript = raw.text

        metadata = None
        if request.include_metadata and isinstance(parsed, dict):
            metadata = extract_metadata(parsed)

        request_echo = request.echo()
        response_echo = {"content_type": raw.content_type}
        extension = self.writer.extension_for(request.is_text)

        saved_path: Optional[str] = None
        bytes_written: Optional[int] = None
        save_error: Optional[str] = None
        try:
            if request.is_text:
                contents = text_contents(transcript)
            else:
                contents = json_contents(
                    model=request.model,
                    transcript=transcript,
                    request=request_echo,
                    response=response_echo,
                    raw_text=raw.text,
                    raw_json=raw.parsed_json,
                    metadata=metadata,
                )
            artifact = await asyncio.to_thread(
                self.writer.reserve_and_write, request.source, extension, contents, request.save_as
            )
            saved_path, bytes_written = artifact.path, artifact.bytes_written
        except Exception as e:
            save_error = to_error_message(e)
            log.warning("Transcript not saved | source=%s | error=%s", request.source.to_dict(), save_error)

        return TranscriptOutput(
            model=request.model,
            transcript=transcript,
            request=request_echo,
            response=response_echo,
            metadata=metadata,
            saved=save_error is None,
            saved_path=saved_path,
            bytes_written=bytes_written,
            save_error=save_error,
            saved_format=FORMATS[extension],
            saved_mime_type=MIME_TYPES[extension],
        )
