"""Pytest configuration and shared fixtures."""

import asyncio
import json
from typing import Optional

import httpx
import pytest

from live_interpreter.config import Credentials, Settings
from live_interpreter.errors import SynthesisBusyError
from live_interpreter.state import PipelineState


# ==================== Fakes ====================

_CLOSED = object()


class FakeWebSocket:
    """Minimal stand-in for a websockets client connection."""

    def __init__(self):
        self.sent: list = []
        self.close_code: Optional[int] = None
        self.close_reason: Optional[str] = None
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    def feed(self, message) -> None:
        if isinstance(message, dict):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the server closing the connection."""
        self.close_code = code
        self.close_reason = reason
        self._incoming.put_nowait(_CLOSED)

    async def send(self, message) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        if self.close_code is None:
            self.drop(1000)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class FakeTranslator:
    """Translator whose results are released by the test, one request at a time."""

    def __init__(self):
        self.calls: list[tuple[str, str, str]] = []
        self._futures: list[asyncio.Future] = []

    async def translate(self, text, source_language, target_language):
        self.calls.append((text, source_language, target_language))
        future = asyncio.get_running_loop().create_future()
        self._futures.append(future)
        return await future

    def resolve(self, index: int, value) -> None:
        self._futures[index].set_result(value)

    def fail(self, index: int, error: Exception) -> None:
        self._futures[index].set_exception(error)


class FakeSynthesizer:
    """Records utterances; each one lasts until the test finishes it."""

    def __init__(self, auto_finish: bool = False):
        self.spoken: list[tuple[str, str]] = []
        self.auto_finish = auto_finish
        self._speaking = False
        self._done: Optional[asyncio.Event] = None
        self.error: Optional[Exception] = None

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    async def speak(self, text, language):
        if self._speaking:
            raise SynthesisBusyError("Speech already in progress")
        self._speaking = True
        self.spoken.append((text, language))
        try:
            if self.error is not None:
                raise self.error
            if not self.auto_finish:
                self._done = asyncio.Event()
                await self._done.wait()
        finally:
            self._speaking = False

    def finish(self) -> None:
        if self._done is not None:
            self._done.set()


def json_transport(handler_log: list, status: int = 200, payload=None, content: Optional[bytes] = None):
    """httpx MockTransport that records requests and answers with a fixed response."""

    def handler(request: httpx.Request) -> httpx.Response:
        handler_log.append(request)
        if content is not None:
            return httpx.Response(status, content=content)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


# ==================== Fixtures ====================

@pytest.fixture
def credentials():
    return Credentials(gladia="gl-key", azure="az-key", elevenlabs="el-key", azure_region="westeurope")


@pytest.fixture
def settings(credentials):
    return Settings(
        source_language="en",
        target_language="es",
        debounce_seconds=0.05,
        credentials=credentials,
    )


@pytest.fixture
def state():
    return PipelineState()


@pytest.fixture
def fake_translator():
    return FakeTranslator()


@pytest.fixture
def fake_synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def websocket():
    return FakeWebSocket()
