"""
settings.py
This module defines a `Settings` dataclass that centralizes configuration
parameters for the Groq Speech-to-Text (STT) batch service. Values are read from
the environment once, at process start, through `Settings.from_env()`; the
resulting object is immutable and passed explicitly to the components that need it.
"""

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip(), 10)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # STT server + model
    BASE_URL: str = "https://api.groq.com/openai/v1"
    DEFAULT_MODEL: str = "whisper-large-v3-turbo"

    # Credential: name of the environment variable holding the API key
    API_KEY_ENV: str = "GROQ_API_KEY"

    # Timeouts / retries
    REQUEST_TIMEOUT_MS: int = 300_000
    MAX_RETRIES: int = 2
    RETRY_BASE_MS: int = 250

    # Transcript artifacts
    TRANSCRIPTS_DIR: str = "transcripts"
    MAX_NAME_COLLISIONS: int = 10_000

    # Upload cap for local files (Groq direct upload limit)
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024

    # Error previews
    ERROR_BODY_LIMIT: int = 4_000
    ERROR_MESSAGE_PREVIEW_LIMIT: int = 200

    @property
    def transcriptions_url(self) -> str:
        return f"{self.BASE_URL.rstrip('/')}/audio/transcriptions"

    @property
    def request_timeout_sec(self) -> float:
        return self.REQUEST_TIMEOUT_MS / 1000.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            BASE_URL=os.getenv("GROQ_OPENAI_BASE_URL") or cls.BASE_URL,
            DEFAULT_MODEL=os.getenv("GROQ_STT_DEFAULT_MODEL") or cls.DEFAULT_MODEL,
            REQUEST_TIMEOUT_MS=_env_int("GROQ_STT_REQUEST_TIMEOUT_MS", cls.REQUEST_TIMEOUT_MS),
            MAX_RETRIES=_env_int("GROQ_STT_MAX_RETRIES", cls.MAX_RETRIES),
            RETRY_BASE_MS=_env_int("GROQ_STT_RETRY_BASE_MS", cls.RETRY_BASE_MS),
            TRANSCRIPTS_DIR=os.getenv("GROQ_STT_TRANSCRIPTS_DIR") or cls.TRANSCRIPTS_DIR,
        )
