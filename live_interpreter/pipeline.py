"""
Wires capture, transcription, translation and speech into one recording toggle.
"""

import asyncio
import logging
from typing import Optional

from .accumulator import TranscriptAccumulator
from .audio import AudioCapture, AudioPlayer
from .config import Settings
from .errors import InterpreterError
from .speech import SpeechCoordinator, SpeechSynthesizer
from .state import PipelineState
from .transcription import (
    ConnectionState,
    ProviderEvent,
    TranscriptFragment,
    TranscriptionSession,
)
from .translation import TranslationClient

logger = logging.getLogger(__name__)


class Interpreter:
    """Live interpreter: one recording session at a time."""

    def __init__(
        self,
        settings: Settings,
        capture: Optional[AudioCapture] = None,
        session: Optional[TranscriptionSession] = None,
        translator: Optional[TranslationClient] = None,
        synthesizer: Optional[SpeechSynthesizer] = None,
    ):
        self.settings = settings
        self.state = PipelineState()
        self.speech_detected = False
        creds = settings.credentials

        self.translator = translator or TranslationClient(creds.azure, creds.azure_region)
        self.synthesizer = synthesizer or SpeechSynthesizer(
            creds.elevenlabs, AudioPlayer(settings.output_device)
        )
        self.session = session or TranscriptionSession(
            creds.gladia,
            on_fragment=self._on_fragment,
            channel_size=settings.channel_size,
        )
        self.capture = capture or AudioCapture(
            device_index=settings.input_device,
            frame_ms=settings.frame_ms,
        )

        self.accumulator = TranscriptAccumulator(
            self.state,
            self.translator,
            settings.source_language,
            settings.target_language,
        )
        self.coordinator = SpeechCoordinator(
            self.state,
            self.synthesizer,
            settings.target_language,
            debounce_seconds=settings.debounce_seconds,
        )

        # Setup callbacks
        self.session.on_fragment = self._on_fragment
        self.session.on_error = self._on_session_error
        self.session.on_event = self._on_event
        self.capture.sink = self.session.push_frame
        self.accumulator.on_translation = self.coordinator.evaluate

    @property
    def is_recording(self) -> bool:
        return self.state.recording

    @property
    def connection_state(self) -> ConnectionState:
        return self.session.state

    def set_languages(self, source_language: str, target_language: str) -> None:
        """Languages used by the next recording."""
        self.settings.source_language = source_language
        self.settings.target_language = target_language

    async def start(self) -> bool:
        """Reset the buffers and open a new session. Returns True when recording."""
        if self.state.recording:
            return True

        await self._release()
        self.coordinator.cancel_pending()
        self.accumulator.reset()
        self.state.errors.clear()
        self.speech_detected = False

        source, target = self.settings.source_language, self.settings.target_language
        self.accumulator.source_language = source
        self.accumulator.target_language = target
        self.coordinator.language = target

        if not await self.session.open(source, target):
            return False

        if not await asyncio.to_thread(self.capture.start):
            self.state.errors.capture = "Microphone unavailable"
            await self.session.close()
            return False

        self.state.recording = True
        logger.info("Recording started (%s -> %s)", source, target)
        return True

    async def stop(self) -> None:
        """Stop recording, speak any remainder, then release audio and network."""
        if self.state.recording:
            self.state.recording = False
            self.coordinator.flush()
            logger.info("Recording stopped")
        await self._release()

    async def toggle(self) -> bool:
        """Flip the recording state. Returns whether recording is now active."""
        if self.state.recording:
            await self.stop()
        else:
            await self.start()
        return self.state.recording

    async def shutdown(self) -> None:
        await self.stop()
        self.accumulator.reset()
        await self.coordinator.aclose()

    async def _release(self) -> None:
        await asyncio.to_thread(self.capture.stop)
        await self.session.close()

    def _on_fragment(self, fragment: TranscriptFragment) -> None:
        if fragment.translation is not None:
            self.state.provider_caption = fragment.translation
        elif fragment.is_final:
            self.accumulator.on_final_fragment(fragment.text)
        else:
            self.state.live_caption = fragment.text

    def _on_session_error(self, error: InterpreterError) -> None:
        self.state.errors.transcription = str(error)

    def _on_event(self, event: ProviderEvent) -> None:
        if event.type == "speech_start":
            self.speech_detected = True
        elif event.type == "speech_end":
            self.speech_detected = False
        else:
            logger.debug("Provider event: %s", event.type)
