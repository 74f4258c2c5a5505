"""
artifact_writer.py

Persists transcripts under the transcripts directory.

Default names are `<base>__<YYYYMMDDThhmmssSSSZ>.<ext>`, where `<base>` is derived
from the source (file name or last URL path segment) and sanitized. The name is
reserved by the create-only open itself, so two workers can never claim the same
file; a clash in the same millisecond moves on to `__2`, `__3`, ... .

An explicit `save_as` is taken as-is (after sanitation) and is never overwritten:
a second write with the same name fails with `ArtifactExistsError`.
"""

from __future__ import annotations

import json
import os
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional
from urllib.parse import urlparse

from groq_stt.config.settings import Settings
from groq_stt.domain.models import Source
from groq_stt.domain.results import TranscriptArtifact
from groq_stt.logger import get_logger
from groq_stt.services.errors import (
    ArtifactExistsError,
    ArtifactNameError,
    ArtifactReservationError,
)

log = get_logger("Artifact Writer")

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")
_EXTENSION = re.compile(r"\.([a-zA-Z0-9]+)$")
_MAX_BASE_LEN = 120

MIME_TYPES = {"txt": "text/plain", "json": "application/json"}
FORMATS = {"txt": "text", "json": "json"}


def timestamp_slug(now: Optional[datetime] = None) -> str:
    """UTC timestamp with millisecond precision, e.g. 20250102T030405678Z."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.strftime("%Y%m%dT%H%M%S") + f"{now.microsecond // 1000:03d}Z"


def sanitize_segment(segment: str) -> str:
    replaced = _UNSAFE_CHARS.sub("_", segment.strip())
    collapsed = re.sub(r"_+", "_", replaced)
    return collapsed.strip("_")[:_MAX_BASE_LEN] or "transcript"


def _strip_extension(name: str) -> str:
    return _EXTENSION.sub("", name)


def derive_base_name(source: Source) -> str:
    if source.file_path:
        return sanitize_segment(_strip_extension(os.path.basename(source.file_path)))
    if source.url:
        try:
            parsed = urlparse(source.url)
        except ValueError:
            return "audio"
        segments = [s for s in (parsed.path or "").split("/") if s]
        last = segments[-1] if segments else (parsed.hostname or "")
        without_ext = _strip_extension(last)
        return sanitize_segment(without_ext if without_ext else "audio")
    return "transcript"


def text_contents(transcript: str) -> str:
    return transcript if transcript.endswith("\n") else transcript + "\n"


def json_contents(
    *,
    model: str,
    transcript: str,
    request: Dict[str, Any],
    response: Dict[str, Any],
    raw_text: str,
    raw_json: Any = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> str:
    payload: Dict[str, Any] = {
        "saved_at": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "model": model,
        "transcript": transcript,
        "request": request,
        "response": response,
    }
    if metadata is not None:
        payload["metadata"] = metadata
    if raw_json is None:
        try:
            raw_json = json.loads(raw_text)
        except ValueError:
            raw_json = None
    payload["groq_response"] = raw_json
    payload["groq_raw_text"] = raw_text
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


class ArtifactWriter:
    def __init__(self, settings: Settings, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)) -> None:
        self.transcripts_dir = settings.TRANSCRIPTS_DIR
        self.max_collisions = settings.MAX_NAME_COLLISIONS
        self._clock = clock

    @staticmethod
    def extension_for(is_text: bool) -> str:
        return "txt" if is_text else "json"

    def output_dir(self) -> str:
        path = os.path.abspath(self.transcripts_dir)
        os.makedirs(path, exist_ok=True)
        return path

    def explicit_filename(self, save_as: str, extension: str) -> str:
        if "/" in save_as or "\\" in save_as or "\0" in save_as:
            raise ArtifactNameError(f"save_as must be a bare filename, got: '{save_as}'.")
        match = _EXTENSION.search(save_as.strip())
        provided = match.group(1).lower() if match else None
        if provided and provided != extension:
            raise ArtifactNameError(f"save_as extension '.{provided}' does not match expected '.{extension}'.")
        # length cap applies to the stem so the extension always survives
        stem = save_as.strip()[:match.start()] if match else save_as
        return f"{sanitize_segment(stem)}.{extension}"

    def reserve_and_write(
        self,
        source: Source,
        extension: str,
        contents: str,
        save_as: Optional[str] = None,
    ) -> TranscriptArtifact:
        dir_path = self.output_dir()
        data = contents.encode("utf-8")

        if save_as:
            path = os.path.join(dir_path, self.explicit_filename(save_as, extension))
            try:
                self._write_new(path, data)
            except FileExistsError:
                raise ArtifactExistsError(f"Transcript file already exists: '{path}'.")
        else:
            path = self._reserve_default(dir_path, derive_base_name(source), extension, data)

        size = os.stat(path).st_size
        log.info("Transcript saved | path=%s | bytes=%d", path, size)
        return TranscriptArtifact(path=path, bytes_written=size, format=FORMATS[extension], mime_type=MIME_TYPES[extension])

    def _reserve_default(self, dir_path: str, base: str, extension: str, data: bytes) -> str:
        base = sanitize_segment(base)
        ts = timestamp_slug(self._clock())
        for name in self._candidate_names(base, ts, extension):
            path = os.path.join(dir_path, name)
            try:
                self._write_new(path, data)
                return path
            except FileExistsError:
                continue
        raise ArtifactReservationError("Unable to reserve a transcript filename (too many collisions).")

    def _candidate_names(self, base: str, ts: str, extension: str) -> Iterator[str]:
        yield f"{base}__{ts}.{extension}"
        for i in range(2, self.max_collisions + 1):
            yield f"{base}__{ts}__{i}.{extension}"

    @staticmethod
    def _write_new(path: str, data: bytes) -> None:
        with open(path, "xb") as fh:
            try:
                fh.write(data)
            except Exception:
                # a half-written file would hold the reserved name forever
                fh.close()
                os.remove(path)
                raise
