"""
models.py

This module defines the request models used by the transcription service.

Pydantic models validate the caller-facing batch request:

- ""TranscribeItem"": one audio source (exactly one of ``file_path`` / ``path`` /
  ``audio_path`` / ``url``), an optional correlation ``id`` and an optional
  ``save_as`` filename under the transcripts directory.
- ""TranscribeBatchRequest"": the list of items plus the options shared by every
  item (model, language, prompt, temperature, response format, timestamp
  granularities, metadata flag, output rendering, concurrency).

Frozen dataclasses carry the validated values through the pipeline:

- ""Source"": where the audio comes from.
- ""SharedOptions"": batch-level defaults.
- ""TranscriptionRequest"": the per-item request, built once by merging shared
  options with item-level values (item wins) and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class OutputFormat(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    JSON = "json"


class ResponseFormat(str, Enum):
    JSON = "json"
    VERBOSE_JSON = "verbose_json"
    TEXT = "text"


class TimestampGranularity(str, Enum):
    WORD = "word"
    SEGMENT = "segment"


def _has_path_separator(name: str) -> bool:
    return "/" in name or "\\" in name or "\0" in name


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid url: '{value}'.")
    return value


class TranscribeItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = Field(default=None, min_length=1, description="Optional correlation ID to help match results back to inputs.")
    save_as: Optional[str] = Field(default=None, min_length=1, description='Optional output filename under ./transcripts, e.g. "intro.txt".')
    file_path: Optional[str] = Field(default=None, min_length=1, description="Local path to an audio file.")
    path: Optional[str] = Field(default=None, min_length=1, description="Local path to an audio file.")
    audio_path: Optional[str] = Field(default=None, min_length=1, description="Local path to an audio file.")
    url: Optional[str] = Field(default=None, min_length=1, description="Public URL to an audio file.")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)

    @model_validator(mode="after")
    def one_source(self) -> "TranscribeItem":
        local = [v for v in (self.file_path, self.path, self.audio_path) if v]
        if len(local) > 1:
            raise ValueError("Choose one local path field: file_path, path, or audio_path.")
        if bool(local) == bool(self.url):
            raise ValueError("Choose one source type for each item: a local file path or a public url.")
        if self.save_as is not None and _has_path_separator(self.save_as):
            raise ValueError('save_as should be a filename like "intro.txt".')
        return self

    @property
    def local_path(self) -> Optional[str]:
        return self.file_path or self.path or self.audio_path

    def source(self) -> "Source":
        return Source(file_path=self.local_path, url=self.url)

    def echo(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.id:
            out["id"] = self.id
        if self.local_path:
            out["file_path"] = self.local_path
        if self.url:
            out["url"] = self.url
        if self.save_as:
            out["save_as"] = self.save_as
        return out


class TranscribeBatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: List[TranscribeItem] = Field(default_factory=list, description="Audio sources to transcribe.")

    # single-source shortcut, wrapped as items[0] when items is empty
    file_path: Optional[str] = Field(default=None, min_length=1)
    url: Optional[str] = Field(default=None, min_length=1)
    save_as: Optional[str] = Field(default=None, min_length=1)
    output_dir: Optional[str] = Field(default=None, min_length=1, description="Accepted for compatibility; transcripts are saved under the configured transcripts directory.")

    model: Optional[str] = Field(default=None, min_length=1, description="Groq model ID (default: whisper-large-v3-turbo).")
    language: Optional[str] = Field(default=None, min_length=2, max_length=8, description="ISO-639-1 language code.")
    prompt: Optional[str] = Field(default=None, max_length=1000)
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    response_format: ResponseFormat = ResponseFormat.TEXT
    timestamp_granularities: List[TimestampGranularity] = Field(default_factory=list)
    include_metadata: bool = False
    output_format: OutputFormat = OutputFormat.TEXT
    concurrency: int = Field(default=8, ge=1, le=10)

    @field_validator("url")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)

    @model_validator(mode="after")
    def cross_field_rules(self) -> "TranscribeBatchRequest":
        if self.timestamp_granularities and self.response_format != ResponseFormat.VERBOSE_JSON:
            raise ValueError('To request timestamps, set response_format to "verbose_json" and provide timestamp_granularities.')

        if self.file_path and self.url:
            raise ValueError("Choose one source type for the single input shortcut: file_path or url.")
        if self.save_as is not None and _has_path_separator(self.save_as):
            raise ValueError('save_as should be a filename like "intro.txt".')

        seen = set()
        for item in self.items:
            if not item.id:
                continue
            if item.id in seen:
                raise ValueError(f"Duplicate item id '{item.id}'. IDs must be unique.")
            seen.add(item.id)
        return self

    def effective_items(self) -> List[TranscribeItem]:
        if self.items:
            return list(self.items)
        if self.file_path or self.url:
            return [TranscribeItem(file_path=self.file_path, url=self.url, save_as=self.save_as)]
        return []

    def shared_options(self, default_model: str) -> "SharedOptions":
        return SharedOptions(
            model=self.model or default_model,
            language=self.language,
            prompt=self.prompt,
            temperature=self.temperature,
            response_format=self.response_format,
            timestamp_granularities=tuple(self.timestamp_granularities),
            include_metadata=self.include_metadata,
            output_format=self.output_format,
        )


@dataclass(frozen=True)
class Source:
    file_path: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.file_path:
            out["file_path"] = self.file_path
        if self.url:
            out["url"] = self.url
        return out


@dataclass(frozen=True)
class SharedOptions:
    model: str
    language: Optional[str] = None
    prompt: Optional[str] = None
    temperature: Optional[float] = 0.0
    response_format: ResponseFormat = ResponseFormat.TEXT
    timestamp_granularities: Tuple[TimestampGranularity, ...] = ()
    include_metadata: bool = False
    output_format: OutputFormat = OutputFormat.TEXT


@dataclass(frozen=True)
class TranscriptionRequest:
    source: Source
    model: str
    save_as: Optional[str] = None
    language: Optional[str] = None
    prompt: Optional[str] = None
    temperature: Optional[float] = 0.0
    response_format: ResponseFormat = ResponseFormat.TEXT
    timestamp_granularities: Tuple[TimestampGranularity, ...] = ()
    include_metadata: bool = False
    output_format: OutputFormat = OutputFormat.TEXT

    @classmethod
    def merge(cls, shared: SharedOptions, source: Source, save_as: Optional[str] = None,
              **overrides: Any) -> "TranscriptionRequest":
        """
        Shared options first, then any non-None item-level value on top.
        """
        values = {f.name: getattr(shared, f.name) for f in fields(shared)}
        for key, value in overrides.items():
            if key not in values:
                raise TypeError(f"Unknown transcription option: {key}")
            if value is not None:
                values[key] = value
        if isinstance(values["timestamp_granularities"], list):
            values["timestamp_granularities"] = tuple(values["timestamp_granularities"])
        return cls(source=source, save_as=save_as, **values)

    @property
    def is_text(self) -> bool:
        return self.response_format == ResponseFormat.TEXT

    def echo(self) -> Dict[str, Any]:
        """Request parameters echoed back in results and JSON artifacts."""
        out: Dict[str, Any] = dict(self.source.to_dict())
        if self.language:
            out["language"] = self.language
        if self.prompt:
            out["prompt"] = self.prompt
        out["temperature"] = self.temperature
        out["response_format"] = self.response_format.value
        out["timestamp_granularities"] = [g.value for g in self.timestamp_granularities]
        return out
