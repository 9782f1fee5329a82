"""
Streaming transcription session: HTTP handshake plus a websocket carrying PCM out and transcripts in.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

import httpx
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from .audio import NUM_CHANNELS, SAMPLE_RATE
from .errors import (
    ConfigurationError,
    ConnectivityError,
    DecodeError,
    InterpreterError,
    ProviderError,
)
from .languages import is_auto_detect

logger = logging.getLogger(__name__)

GLADIA_LIVE_URL = "https://api.gladia.io/v2/live"
AUDIO_ENCODING = "wav/pcm"
BIT_DEPTH = 16
HANDSHAKE_TIMEOUT = 10.0
NORMAL_CLOSURE = 1000
STOP_MESSAGE = {"type": "stop_recording"}


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class FragmentKind(str, Enum):
    PARTIAL = "partial"
    FINAL = "final"


@dataclass(frozen=True)
class TranscriptFragment:
    """Recognized text from the provider.

    `translation` is set on the provider's own translation events, which are
    delivered as partial (display-only) fragments.
    """
    text: str
    kind: FragmentKind
    language: Optional[str] = None
    utterance_id: Optional[str] = None
    translation: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.kind is FragmentKind.FINAL


@dataclass(frozen=True)
class ProviderEvent:
    """Any other provider envelope (speech_start, speech_end, lifecycle, acks)."""
    type: str
    data: dict = field(default_factory=dict)


def build_session_config(source_language: str, target_language: str) -> dict:
    """Session configuration sent with the handshake request."""
    messages = {
        "receive_final_transcripts": True,
        "receive_speech_events": True,
        "receive_pre_processing_events": False,
        "receive_realtime_processing_events": True,
        "receive_partial_transcripts": True,
        "receive_post_processing_events": False,
        "receive_acknowledgments": True,
        "receive_errors": True,
        "receive_lifecycle_events": True,
    }
    return {
        "encoding": AUDIO_ENCODING,
        "sample_rate": SAMPLE_RATE,
        "bit_depth": BIT_DEPTH,
        "channels": NUM_CHANNELS,
        "endpointing": 0.05,
        "language_config": {
            "languages": [] if is_auto_detect(source_language) else [source_language],
            "code_switching": True,
        },
        "pre_processing": {
            "speech_threshold": 0.4,
        },
        "realtime_processing": {
            "translation": True,
            "translation_config": {
                "target_languages": [target_language],
                "context_adaptation": True,
            },
            "sentiment_analysis": True,
        },
        "messages_config": messages,
    }


def parse_message(raw: Union[str, bytes]) -> Union[TranscriptFragment, ProviderEvent]:
    """Turn one inbound envelope into a fragment or event.

    Raises ProviderError for error envelopes and DecodeError for anything
    that is not a well-formed envelope.
    """
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Invalid JSON message: {e}") from e

    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        raise DecodeError("Message has no type")

    msg_type = message["type"]
    data = message.get("data") or {}
    if not isinstance(data, dict):
        raise DecodeError(f"Message {msg_type!r} has a non-object data field")

    if msg_type == "error":
        detail = data.get("message") or message.get("message") or "Transcription error"
        raise ProviderError(str(detail))

    if msg_type == "transcript":
        utterance = data.get("utterance")
        if not isinstance(utterance, dict) or not isinstance(utterance.get("text"), str):
            raise DecodeError("Transcript message without utterance text")
        return TranscriptFragment(
            text=utterance["text"],
            kind=FragmentKind.FINAL if data.get("is_final") is True else FragmentKind.PARTIAL,
            language=utterance.get("language"),
            utterance_id=data.get("id"),
        )

    if msg_type == "translation":
        translated = data.get("translated_utterance")
        if not isinstance(translated, dict) or not isinstance(translated.get("text"), str):
            raise DecodeError("Translation message without translated text")
        original = data.get("utterance") or {}
        return TranscriptFragment(
            text=str(original.get("text", "")),
            kind=FragmentKind.PARTIAL,
            language=data.get("target_language"),
            utterance_id=data.get("utterance_id"),
            translation=translated["text"],
        )

    return ProviderEvent(type=msg_type, data=data)


class TranscriptionSession:
    """One live transcription session with the provider.

    Audio frames pushed from the capture thread go through a bounded channel
    and are dropped while the connection is not open or the channel is full.
    """

    def __init__(
        self,
        api_key: Optional[str],
        on_fragment: Callable[[TranscriptFragment], None],
        on_error: Optional[Callable[[InterpreterError], None]] = None,
        on_event: Optional[Callable[[ProviderEvent], None]] = None,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
        channel_size: int = 64,
        api_url: str = GLADIA_LIVE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connect: Callable[[str], Any] = ws_connect,
    ):
        self.api_key = api_key
        self.on_fragment = on_fragment
        self.on_error = on_error
        self.on_event = on_event
        self.on_state_change = on_state_change
        self.channel_size = channel_size
        self.api_url = api_url
        self._transport = transport
        self._connect = connect

        self.state = ConnectionState.IDLE
        self.session_id: Optional[str] = None
        self.url: Optional[str] = None
        self.source_language: Optional[str] = None
        self.target_language: Optional[str] = None
        self.last_error: Optional[InterpreterError] = None
        self.frames_sent = 0
        self.frames_dropped = 0

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._websocket = None
        self._channel: Optional[asyncio.Queue] = None
        self._tasks: list[asyncio.Task] = []
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def _set_state(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        logger.debug("Transcription session %s -> %s", self.state.value, state.value)
        self.state = state
        if self.on_state_change:
            self.on_state_change(state)

    def _report(self, error: InterpreterError) -> None:
        self.last_error = error
        logger.error("Transcription error: %s", error)
        if self.on_error:
            self.on_error(error)

    def _fail(self, error: InterpreterError) -> None:
        self._set_state(ConnectionState.FAILED)
        self._report(error)

    async def _request_session(self, config: dict) -> tuple[str, str]:
        """Ask the provider for a session id and websocket URL."""
        headers = {"X-Gladia-Key": self.api_key or "", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=HANDSHAKE_TIMEOUT) as client:
                response = await client.post(self.api_url, headers=headers, json=config)
        except httpx.HTTPError as e:
            raise ConnectivityError(f"Failed to reach transcription service: {e}") from e

        if response.is_error:
            detail = response.text or response.reason_phrase
            raise ConnectivityError(
                f"Failed to initialize transcription session: {response.status_code} - {detail}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid session response: {e}") from e
        if not isinstance(payload, dict) or not payload.get("id") or not payload.get("url"):
            raise DecodeError("Session response is missing id or url")
        return str(payload["id"]), str(payload["url"])

    async def open(self, source_language: str, target_language: str) -> bool:
        """Start a session. Returns True once the websocket is open."""
        if self._websocket is not None or self.state is ConnectionState.CONNECTING:
            await self.close()

        self.last_error = None
        self.frames_sent = 0
        self.frames_dropped = 0
        self.source_language = source_language
        self.target_language = target_language

        if not self.api_key:
            self._fail(ConfigurationError("Gladia API key not configured"))
            return False

        self._loop = asyncio.get_running_loop()
        self._closing = False
        self._set_state(ConnectionState.CONNECTING)

        try:
            config = build_session_config(source_language, target_language)
            self.session_id, self.url = await self._request_session(config)
            logger.info("Transcription session %s created", self.session_id)
            self._websocket = await self._connect(self.url)
        except InterpreterError as e:
            self._fail(e)
            return False
        except (OSError, WebSocketException) as e:
            self._fail(ConnectivityError(f"WebSocket connection error: {e}"))
            return False

        self._channel = asyncio.Queue(maxsize=self.channel_size)
        self._set_state(ConnectionState.OPEN)
        self._tasks = [
            asyncio.create_task(self._send_frames(), name="transcription-sender"),
            asyncio.create_task(self._receive_messages(), name="transcription-receiver"),
        ]
        return True

    def push_frame(self, frame: bytes) -> None:
        """Hand a PCM frame to the session. Safe to call from the audio thread."""
        loop = self._loop
        if loop is None or self.state is not ConnectionState.OPEN:
            self.frames_dropped += 1
            return
        try:
            loop.call_soon_threadsafe(self._enqueue, frame)
        except RuntimeError:
            # Event loop already closed
            self.frames_dropped += 1

    def _enqueue(self, frame: bytes) -> None:
        channel = self._channel
        if channel is None or self.state is not ConnectionState.OPEN:
            self.frames_dropped += 1
            return
        try:
            channel.put_nowait(frame)
        except asyncio.QueueFull:
            self.frames_dropped += 1
            logger.debug("Outbound audio channel full, dropping frame")

    async def _send_frames(self) -> None:
        """Drain the outbound channel into the websocket."""
        channel = self._channel
        websocket = self._websocket
        if channel is None or websocket is None:
            return
        while True:
            frame = await channel.get()
            try:
                await websocket.send(frame)
            except ConnectionClosed:
                return
            self.frames_sent += 1
            if self.frames_sent % 200 == 0:
                logger.debug("Sent %d audio frames", self.frames_sent)

    async def _receive_messages(self) -> None:
        """Read provider envelopes until the socket closes."""
        websocket = self._websocket
        if websocket is None:
            return
        try:
            async for message in websocket:
                self._handle_message(message)
        except ConnectionClosed:
            pass

        if self._closing:
            return

        code = getattr(websocket, "close_code", None)
        if code == NORMAL_CLOSURE:
            logger.info("Transcription session closed by provider")
            self._set_state(ConnectionState.CLOSED)
            return
        reason = getattr(websocket, "close_reason", None) or "Unknown reason"
        self._fail(ConnectivityError(f"Connection closed unexpectedly: {reason} (code {code})"))

    def _handle_message(self, message: Union[str, bytes]) -> None:
        if isinstance(message, bytes):
            logger.debug("Ignoring binary message from provider")
            return
        try:
            item = parse_message(message)
        except ProviderError as e:
            self._report(e)
            return
        except DecodeError as e:
            logger.warning("Skipping malformed message: %s", e)
            return

        if isinstance(item, TranscriptFragment):
            self.on_fragment(item)
        elif self.on_event:
            self.on_event(item)

    async def close(self) -> None:
        """Send the stop signal, close the socket and release everything. Idempotent."""
        websocket = self._websocket
        if websocket is None and not self._tasks:
            if self.state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
                self._set_state(ConnectionState.CLOSED)
            return

        was_open = self.state is ConnectionState.OPEN
        self._closing = True
        self._set_state(ConnectionState.CLOSING)

        if websocket is not None:
            if was_open:
                try:
                    await websocket.send(json.dumps(STOP_MESSAGE))
                except ConnectionClosed:
                    pass
            try:
                await websocket.close()
            except (OSError, WebSocketException) as e:
                logger.debug("Error while closing websocket: %s", e)

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._tasks = []
        self._websocket = None
        self._channel = None
        self.session_id = None
        self._set_state(ConnectionState.CLOSED)
