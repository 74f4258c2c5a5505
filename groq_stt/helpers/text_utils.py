"""
text_utils.py

Small text helpers for error reporting.

1. truncate_body: caps an upstream response body for the structured failure,
   appending a `[truncated]` marker when it was cut.
2. preview_message: one-line, length-capped preview of an error message for
   human-facing summaries. The structured failure keeps the full message.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

TRUNCATION_MARKER = "\n\n[truncated]"


class TextUtils:
    @staticmethod
    def truncate_body(body: Optional[str], limit: int) -> Tuple[Optional[str], bool]:
        if body is None:
            return None, False
        if len(body) <= limit:
            return body, False
        return body[:limit] + TRUNCATION_MARKER, True

    @staticmethod
    def preview_message(message: Optional[str], limit: int) -> str:
        raw = re.sub(r"\s+", " ", (message or "").strip())
        if len(raw) <= limit:
            return raw
        return raw[:limit] + "…"
