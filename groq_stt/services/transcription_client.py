"""
transcription_client.py
-----------------------

This module defines the `TranscriptionClient` class, which is responsible for
interacting with the Groq Speech-to-Text (STT) HTTP API using asynchronous I/O.

Key Responsibilities:
1. Build the multipart form (`file` or `url`, `model`, `language`, `prompt`,
   `temperature`, `response_format`, `timestamp_granularities[]`) for one request.
   The form is rebuilt for every attempt; multipart bodies are not reused.
2. Send it with a per-attempt timeout and retry transient failures
   (429/500/502/503/504, timeouts, connection errors) with exponential backoff
   and jitter. Any other non-2xx answer is returned to the caller unchanged.
3. Hand back the raw body, the content type and, for JSON content types, the
   parsed body.
"""

from __future__ import annotations

import asyncio
import json
import random
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import httpx

from groq_stt.config.settings import Settings
from groq_stt.domain.models import TranscriptionRequest
from groq_stt.domain.results import RawUpstreamResponse
from groq_stt.logger import get_logger

log = get_logger("Transcription Client")

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

FormParts = List[Tuple[str, Tuple[Any, ...]]]


def _field(name: str, value: str) -> Tuple[str, Tuple[None, bytes]]:
    return name, (None, value.encode("utf-8"))


def _parse_json_body(text: str, content_type: Optional[str]) -> Any:
    if not content_type or "application/json" not in content_type:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class TranscriptionClient:
    """
    Only handles STT HTTP I/O and the retry policy.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.url = settings.transcriptions_url
        self.timeout_sec = settings.request_timeout_sec
        self.max_retries = max(0, settings.MAX_RETRIES)
        self.retry_base_ms = settings.RETRY_BASE_MS
        self._transport = transport
        self._sleep = sleep
        self._rand = rand

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @staticmethod
    def form_factory(request: TranscriptionRequest, upload: Optional[Tuple[str, bytes]] = None) -> Callable[[], FormParts]:
        def make_body() -> FormParts:
            parts: FormParts = []
            if upload is not None:
                filename, data = upload
                parts.append(("file", (filename, data, "application/octet-stream")))
            elif request.source.url:
                parts.append(_field("url", request.source.url))
            else:
                raise ValueError("Invalid transcription request: missing file or url.")

            parts.append(_field("model", request.model))
            if request.language:
                parts.append(_field("language", request.language))
            if request.prompt:
                parts.append(_field("prompt", request.prompt))
            if request.temperature is not None:
                parts.append(_field("temperature", str(request.temperature)))
            parts.append(_field("response_format", request.response_format.value))
            for granularity in request.timestamp_granularities:
                parts.append(_field("timestamp_granularities[]", granularity.value))
            return parts

        return make_body

    def backoff_seconds(self, attempt: int) -> float:
        base_ms = self.retry_base_ms * (2 ** (attempt - 1))
        jitter = self._rand() * 0.25 + 0.875
        return max(0, round(base_ms * jitter)) / 1000.0

    async def create_transcription(
        self,
        api_key: str,
        request: TranscriptionRequest,
        upload: Optional[Tuple[str, bytes]] = None,
    ) -> RawUpstreamResponse:
        make_body = self.form_factory(request, upload)
        async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self._transport) as client:
            response = await self._post_with_retry(client, api_key, make_body)

        content_type = response.headers.get("content-type")
        body_text = response.text
        return RawUpstreamResponse(
            status=response.status_code,
            text=body_text,
            parsed_json=_parse_json_body(body_text, content_type) if response.is_success else None,
            content_type=content_type,
        )

    async def _post_with_retry(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        make_body: Callable[[], FormParts],
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {api_key}"}

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await asyncio.wait_for(
                    client.post(self.url, files=make_body(), headers=headers),
                    timeout=self.timeout_sec,
                )
            except (httpx.TransportError, asyncio.TimeoutError) as e:
                if attempt == self.max_attempts:
                    log.error("Upstream request failed | attempts=%d | error=%r", attempt, e)
                    raise
                delay = self.backoff_seconds(attempt)
                log.warning("Upstream transport error, retrying | attempt=%d/%d | delay=%.3fs | error=%r",
                            attempt, self.max_attempts, delay, e)
                await self._sleep(delay)
                continue

            if response.is_success:
                return response

            if response.status_code not in RETRYABLE_STATUSES or attempt == self.max_attempts:
                return response

            await response.aclose()
            delay = self.backoff_seconds(attempt)
            log.warning("Upstream retryable status | attempt=%d/%d | status=%d | delay=%.3fs",
                        attempt, self.max_attempts, response.status_code, delay)
            await self._sleep(delay)

        raise RuntimeError("Unreachable: retry loop exhausted attempts.")
