"""
file_utils.py

This module provides helpers for handling local audio inputs before they are
uploaded to the transcription endpoint.

Methods:

1. read_audio_file:
  Validates a local path (null bytes, existence, regular file, non-empty,
  upload cap) and returns the file name and its bytes. Failures raise
  `FileInputError` carrying a stable error code.

2. format_bytes:
  Human-readable size used in error messages, e.g. `27262976 bytes (~26.0MB)`.
"""

from __future__ import annotations

import math
import os
from typing import Tuple

from groq_stt.logger import get_logger
from groq_stt.services.errors import FileInputError

log = get_logger("File Utils")


class FileUtils:
    @staticmethod
    def format_bytes(num_bytes: float) -> str:
        if not isinstance(num_bytes, (int, float)) or not math.isfinite(num_bytes) or num_bytes < 0:
            return str(num_bytes)
        mb = num_bytes / (1024 * 1024)
        if mb >= 1:
            return f"{num_bytes} bytes (~{mb:.1f}MB)"
        kb = num_bytes / 1024
        if kb >= 1:
            return f"{num_bytes} bytes (~{kb:.1f}KB)"
        return f"{num_bytes} bytes"

    @staticmethod
    def read_audio_file(file_path: str, max_bytes: int) -> Tuple[str, bytes]:
        """
        Reads a local audio file for upload.
        Returns (filename, bytes). Raises FileInputError on unusable input.
        """
        if "\0" in file_path:
            raise FileInputError("invalid_file_path", "Invalid file_path (contains null byte).")

        resolved = os.path.abspath(file_path)
        try:
            st = os.stat(resolved)
        except OSError:
            raise FileInputError("file_not_found", f"Audio file not found at file_path='{file_path}'.")

        if not os.path.isfile(resolved):
            raise FileInputError("file_path_not_a_file", f"file_path must point to a file, got: '{file_path}'.")

        if st.st_size == 0:
            raise FileInputError(
                "file_empty",
                "Audio file is empty (0 bytes). Provide a non-empty audio file or use url.",
                {"size_bytes": 0},
            )

        if st.st_size > max_bytes:
            raise FileInputError(
                "file_too_large",
                f"Audio file too large ({FileUtils.format_bytes(st.st_size)}). Groq file uploads are "
                f"limited to {FileUtils.format_bytes(max_bytes)}. Please provide a smaller file or use url.",
                {"size_bytes": st.st_size, "max_bytes": max_bytes},
            )

        try:
            with open(resolved, "rb") as fh:
                data = fh.read()
        except OSError as e:
            raise FileInputError(
                "file_unreadable",
                f"Audio file could not be read at file_path='{file_path}': {e}",
            )
        log.info("Read audio | file=%s | bytes=%d", resolved, len(data))
        return os.path.basename(resolved), data
