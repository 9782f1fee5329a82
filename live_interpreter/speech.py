"""
Speech synthesis and the policy deciding when translated text gets spoken.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from .audio import AudioPlayer
from .errors import (
    ConfigurationError,
    ConnectivityError,
    InterpreterError,
    ProviderError,
    SynthesisBusyError,
)
from .languages import voice_for
from .state import SENTENCE_END, PipelineState

logger = logging.getLogger(__name__)

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech"
ELEVENLABS_MODEL = "eleven_multilingual_v2"
OUTPUT_FORMAT = "pcm_16000"
SYNTHESIS_TIMEOUT = 30.0
DEBOUNCE_SECONDS = 0.7

VOICE_SETTINGS = {
    "stability": 0.7,
    "similarity_boost": 1.0,
    "style": 1.0,
    "use_speaker_boost": True,
}


class SpeechSynthesizer:
    """Synthesizes text remotely and plays it. Only one utterance at a time."""

    def __init__(
        self,
        api_key: Optional[str],
        player: AudioPlayer,
        endpoint: str = ELEVENLABS_TTS_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.player = player
        self.endpoint = endpoint
        self._transport = transport
        self._speaking = False

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    async def synthesize(self, text: str, language: str) -> bytes:
        """Fetch 16 kHz mono PCM for `text` in the voice for `language`."""
        if not self.api_key:
            raise ConfigurationError("ElevenLabs API key not configured")

        url = f"{self.endpoint}/{voice_for(language)}"
        headers = {"xi-api-key": self.api_key, "Content-Type": "application/json"}
        body = {"text": text, "model_id": ELEVENLABS_MODEL, "voice_settings": VOICE_SETTINGS}

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=SYNTHESIS_TIMEOUT) as client:
                response = await client.post(
                    url, params={"output_format": OUTPUT_FORMAT}, headers=headers, json=body
                )
        except httpx.HTTPError as e:
            raise ConnectivityError(f"Speech service unreachable: {e}") from e

        if response.is_error:
            raise ProviderError(f"Text-to-speech failed: {response.status_code} {response.reason_phrase}")
        return response.content

    async def speak(self, text: str, language: str) -> None:
        """Synthesize and play `text`; raises SynthesisBusyError if already speaking."""
        if not text.strip():
            return
        if self._speaking:
            raise SynthesisBusyError("Speech already in progress")
        if not self.api_key:
            raise ConfigurationError("ElevenLabs API key not configured")

        self._speaking = True
        try:
            pcm = await self.synthesize(text, language)
            await asyncio.to_thread(self.player.play, pcm)
        finally:
            self._speaking = False


class SpeechAction(str, Enum):
    NONE = "none"
    SPEAK = "speak"
    ARM = "arm"


@dataclass(frozen=True)
class SpeechDecision:
    action: SpeechAction
    text: str = ""


def decide_speech(unspoken: str, speaking: bool, recording: bool) -> SpeechDecision:
    """What to do with the unspoken translated text right now."""
    if not unspoken or speaking:
        return SpeechDecision(SpeechAction.NONE)
    if unspoken.endswith(SENTENCE_END):
        return SpeechDecision(SpeechAction.SPEAK, unspoken)
    if recording:
        return SpeechDecision(SpeechAction.ARM, unspoken)
    return SpeechDecision(SpeechAction.SPEAK, unspoken)


class SpeechCoordinator:
    """Turns translation updates into non-overlapping utterances.

    Complete sentences are spoken at once, unfinished text waits for a
    single debounce timer, and stopping the recording flushes the rest.
    """

    def __init__(
        self,
        state: PipelineState,
        synthesizer: SpeechSynthesizer,
        language: str,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ):
        self.state = state
        self.synthesizer = synthesizer
        self.language = language
        self.debounce_seconds = debounce_seconds
        self.utterances = 0

        self._timer: Optional[asyncio.TimerHandle] = None
        self._armed_text: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_speaking(self) -> bool:
        return (self._task is not None and not self._task.done()) or self.synthesizer.is_speaking

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def evaluate(self) -> None:
        """Re-run the speaking decision against the current state."""
        decision = decide_speech(self.state.unspoken, self.is_speaking, self.state.recording)
        if decision.action is SpeechAction.SPEAK:
            self._dispatch()
        elif decision.action is SpeechAction.ARM:
            self._arm(decision.text)

    def flush(self) -> None:
        """Recording stopped: drop the timer and speak whatever is left."""
        self.cancel_pending()
        if not self.is_speaking and self.state.unspoken:
            self._dispatch()

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._armed_text = None

    def _arm(self, text: str) -> None:
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._armed_text = text
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer, text)

    def _on_timer(self, armed_text: str) -> None:
        self._timer = None
        self._armed_text = None
        if self.is_speaking:
            return
        if self.state.unspoken != armed_text:
            logger.debug("Debounce superseded by newer text")
            return
        self._dispatch()

    def _dispatch(self) -> None:
        self.cancel_pending()
        text = self.state.claim_unspoken()
        if not text:
            return
        self.utterances += 1
        logger.info("Speaking: %s", text)
        task = asyncio.create_task(self._speak(text))
        self._task = task
        task.add_done_callback(self._on_speech_done)

    async def _speak(self, text: str) -> None:
        try:
            await self.synthesizer.speak(text, self.language)
        except InterpreterError as e:
            logger.warning("Speech failed: %s", e)
            self.state.errors.synthesis = str(e)
        else:
            self.state.errors.synthesis = None

    def _on_speech_done(self, task: asyncio.Task) -> None:
        if self._task is task:
            self._task = None
        if task.cancelled():
            return
        # Text that arrived while speaking is still waiting
        self.evaluate()

    async def wait_idle(self) -> None:
        """Wait until the current utterance, and any it triggers, has finished."""
        while self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
            await asyncio.sleep(0)

    async def aclose(self) -> None:
        self.cancel_pending()
        task = self._task
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._task = None
