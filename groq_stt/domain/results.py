"""
results.py

Result-side data model: what the transport hands back, what the artifact writer
produced, the tagged per-item result and the aggregated batch report. All types
are frozen; `to_dict()` produces the structured (JSON-ready) shape returned to
callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from groq_stt.domain.models import Source


@dataclass(frozen=True)
class RawUpstreamResponse:
    status: int
    text: str
    parsed_json: Any = None
    content_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class TranscriptArtifact:
    path: str
    bytes_written: int
    format: str
    mime_type: str


@dataclass(frozen=True)
class TranscriptOutput:
    model: str
    transcript: str
    request: Dict[str, Any]
    response: Dict[str, Any]
    saved_format: str
    saved_mime_type: str
    metadata: Optional[Dict[str, Any]] = None
    saved: bool = False
    saved_path: Optional[str] = None
    bytes_written: Optional[int] = None
    save_error: Optional[str] = None
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "model": self.model,
            "transcript": self.transcript,
            "truncated": self.truncated,
            "request": dict(self.request),
            "response": dict(self.response),
        }
        if self.metadata is not None:
            out["metadata"] = self.metadata
        out["saved"] = self.saved
        out["saved_format"] = self.saved_format
        out["saved_mime_type"] = self.saved_mime_type
        if self.saved:
            out["saved_path"] = self.saved_path
            out["bytes_written"] = self.bytes_written
        else:
            out["save_error"] = self.save_error
        return out


@dataclass(frozen=True)
class ItemError:
    code: str
    message: str
    status: Optional[int] = None
    body: Optional[str] = None
    body_truncated: Optional[bool] = None
    has_body: bool = False
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.status:
            out["status"] = self.status
        if self.has_body:
            out["body"] = self.body
            out["body_truncated"] = bool(self.body_truncated)
        if self.details:
            out["details"] = dict(self.details)
        return out


@dataclass(frozen=True)
class ItemResult:
    index: int
    source: Source
    id: Optional[str] = None
    output: Optional[TranscriptOutput] = None
    error: Optional[ItemError] = None
    content: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if (self.output is None) == (self.error is None):
            raise ValueError("ItemResult needs exactly one of output or error")

    @property
    def ok(self) -> bool:
        return self.output is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"index": self.index}
        if self.id:
            out["id"] = self.id
        out["source"] = self.source.to_dict()
        out["ok"] = self.ok
        if self.output is not None:
            out["output"] = self.output.to_dict()
        else:
            out["error"] = self.error.to_dict()
        return out


@dataclass(frozen=True)
class BatchSummary:
    total: int
    ok: int
    failed: int

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "ok": self.ok, "failed": self.failed}


@dataclass(frozen=True)
class BatchReport:
    model: str
    request: Dict[str, Any]
    summary: BatchSummary
    results: Tuple[ItemResult, ...]
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "request": dict(self.request),
            "summary": self.summary.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "truncated": self.truncated,
        }
