"""
Live Interpreter - speak in one language, hear yourself in another.

Streams the microphone to a live transcription service, translates the
running transcript and speaks the translation back.
"""

from .accumulator import TranscriptAccumulator
from .audio import AudioCapture, AudioPlayer, SAMPLE_RATE, NUM_CHANNELS, list_audio_devices
from .config import Credentials, Settings, load_credentials
from .errors import (
    ConfigurationError,
    ConnectivityError,
    DecodeError,
    InterpreterError,
    PlaybackError,
    ProviderError,
    SynthesisBusyError,
)
from .pipeline import Interpreter
from .speech import SpeechCoordinator, SpeechSynthesizer
from .state import PipelineState
from .transcription import ConnectionState, FragmentKind, TranscriptFragment, TranscriptionSession
from .translation import TranslationClient
from .ui import LiveInterpreterUI

__all__ = [
    "AudioCapture",
    "AudioPlayer",
    "ConfigurationError",
    "ConnectionState",
    "ConnectivityError",
    "Credentials",
    "DecodeError",
    "FragmentKind",
    "Interpreter",
    "InterpreterError",
    "LiveInterpreterUI",
    "NUM_CHANNELS",
    "PipelineState",
    "PlaybackError",
    "ProviderError",
    "SAMPLE_RATE",
    "Settings",
    "SpeechCoordinator",
    "SpeechSynthesizer",
    "SynthesisBusyError",
    "TranscriptAccumulator",
    "TranscriptFragment",
    "TranscriptionSession",
    "TranslationClient",
    "list_audio_devices",
    "load_credentials",
]
