import json
from typing import Callable, List, Optional

import httpx
import pytest

from groq_stt.config.settings import Settings


class FakeUpstream:
    """Records every request and answers through `handler(request, call_number)`."""

    def __init__(self, handler: Callable[[httpx.Request, int], httpx.Response]):
        self.handler = handler
        self.calls: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.handler(request, len(self.calls))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def text_response(body: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=body, headers={"content-type": "text/plain; charset=utf-8"})


def json_response(payload, status: int = 200) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(payload).encode(), headers={"content-type": "application/json"})


def form_has(request: httpx.Request, name: str, value: Optional[str] = None) -> bool:
    body = request.content
    if value is None:
        return f'name="{name}"'.encode() in body
    return f'name="{name}"\r\n\r\n{value}\r\n'.encode() in body


@pytest.fixture
def settings(tmp_path):
    return Settings(TRANSCRIPTS_DIR=str(tmp_path / "transcripts"))


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "meeting.mp3"
    path.write_bytes(b"ID3\x03\x00fake-audio-bytes")
    return str(path)
