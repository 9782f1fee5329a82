"""
Microphone capture and local playback through PortAudio.
"""

import logging
import threading
from typing import Callable, Optional

import numpy as np
import pyaudio  # type: ignore

from .errors import PlaybackError

logger = logging.getLogger(__name__)

# Wire format expected by the transcription and synthesis providers
SAMPLE_RATE = 16000
NUM_CHANNELS = 1
SAMPLE_WIDTH = 2  # 16-bit PCM
FRAME_MS = 50

FrameSink = Callable[[bytes], None]


def list_audio_devices() -> list[tuple[int, str]]:
    """List all available input devices. Returns list of (index, name) tuples."""
    audio = pyaudio.PyAudio()
    devices = []
    try:
        for i in range(audio.get_device_count()):
            info = audio.get_device_info_by_index(i)
            if info.get("maxInputChannels", 0) > 0:
                devices.append((i, str(info.get("name", "Unknown"))))
    finally:
        audio.terminate()
    return devices


def to_pcm16_mono(data: bytes, rate: int, channels: int) -> bytes:
    """Downmix interleaved int16 PCM to mono and resample it to 16 kHz."""
    samples = np.frombuffer(data, dtype=np.int16)
    if channels > 1:
        usable = len(samples) - len(samples) % channels
        samples = samples[:usable].reshape(-1, channels).mean(axis=1)
    samples = samples.astype(np.float32)

    if rate != SAMPLE_RATE and len(samples) > 0:
        target_len = max(1, int(round(len(samples) * SAMPLE_RATE / rate)))
        positions = np.linspace(0, len(samples) - 1, num=target_len)
        samples = np.interp(positions, np.arange(len(samples)), samples)

    return np.clip(np.round(samples), -32768, 32767).astype("<i2").tobytes()


class AudioCapture:
    """Captures microphone audio and hands 16 kHz mono PCM frames to a sink.

    The sink runs on PortAudio's callback thread, so it must not block.
    """

    def __init__(
        self,
        sink: Optional[FrameSink] = None,
        device_index: Optional[int] = None,
        frame_ms: int = FRAME_MS,
    ):
        self.sink = sink
        self.device_index = device_index
        self.frame_ms = frame_ms

        self._pyaudio: Optional[pyaudio.PyAudio] = None
        self._stream = None
        self._device_name: Optional[str] = None
        self._native_rate = SAMPLE_RATE
        self._native_channels = NUM_CHANNELS
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._stream is not None

    @property
    def device_name(self) -> Optional[str]:
        return self._device_name

    @property
    def needs_conversion(self) -> bool:
        return self._native_rate != SAMPLE_RATE or self._native_channels != NUM_CHANNELS

    def _find_microphone(self) -> Optional[tuple[int, dict]]:
        """Resolve the requested device, else the system default, else the first input."""
        assert self._pyaudio is not None

        if self.device_index is not None:
            try:
                info = self._pyaudio.get_device_info_by_index(self.device_index)
                if info.get("maxInputChannels", 0) > 0:
                    return self.device_index, info
            except (OSError, ValueError):
                pass
            return None

        try:
            info = self._pyaudio.get_default_input_device_info()
            return int(info["index"]), info
        except (OSError, KeyError):
            pass

        for i in range(self._pyaudio.get_device_count()):
            info = self._pyaudio.get_device_info_by_index(i)
            if info.get("maxInputChannels", 0) > 0:
                return i, info
        return None

    def _choose_format(self, idx: int, info: dict) -> None:
        """Prefer 16 kHz mono; fall back to the device's native format."""
        assert self._pyaudio is not None
        try:
            self._pyaudio.is_format_supported(
                SAMPLE_RATE,
                input_device=idx,
                input_channels=NUM_CHANNELS,
                input_format=pyaudio.paInt16,
            )
            self._native_rate = SAMPLE_RATE
            self._native_channels = NUM_CHANNELS
        except ValueError:
            self._native_rate = int(info.get("defaultSampleRate", SAMPLE_RATE))
            self._native_channels = max(1, min(2, int(info.get("maxInputChannels", 1))))
            logger.info(
                "Device does not offer 16 kHz mono, capturing at %d Hz x%d and converting",
                self._native_rate,
                self._native_channels,
            )

    def _on_audio(self, in_data, frame_count, time_info, status):
        """PortAudio callback: convert and forward one block."""
        if status:
            logger.debug("Audio callback status: %s", status)
        sink = self.sink
        if in_data and sink is not None:
            frame = in_data
            if self.needs_conversion:
                frame = to_pcm16_mono(in_data, self._native_rate, self._native_channels)
            try:
                sink(frame)
            except Exception:
                logger.exception("Audio sink failed")
        return (None, pyaudio.paContinue)

    def start(self) -> bool:
        """Open the microphone. Returns True if capture is running."""
        with self._lock:
            if self._stream is not None:
                return True

            self._pyaudio = pyaudio.PyAudio()
            found = self._find_microphone()
            if found is None:
                logger.error("No microphone found")
                self._release()
                return False

            idx, info = found
            self._device_name = str(info.get("name", "Unknown"))
            self._choose_format(idx, info)
            frames_per_buffer = int(self._native_rate * self.frame_ms / 1000)

            try:
                self._stream = self._pyaudio.open(
                    format=pyaudio.paInt16,
                    channels=self._native_channels,
                    rate=self._native_rate,
                    input=True,
                    input_device_index=idx,
                    frames_per_buffer=frames_per_buffer,
                    stream_callback=self._on_audio,
                )
            except (OSError, ValueError) as e:
                logger.error("Failed to open microphone %s: %s", self._device_name, e)
                self._release()
                return False

            # PortAudio exposes no echo cancellation or noise suppression switch
            logger.info(
                "Capturing from %s (echo cancellation/noise suppression left to the OS)",
                self._device_name,
            )
            self._stream.start_stream()
            return True

    def stop(self) -> None:
        """Stop capture and release the device. Safe to call repeatedly."""
        with self._lock:
            self._release()

    def _release(self) -> None:
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except OSError:
                pass
            self._stream = None

        if self._pyaudio is not None:
            try:
                self._pyaudio.terminate()
            except OSError:
                pass
            self._pyaudio = None


class AudioPlayer:
    """Plays 16 kHz mono PCM through the output device. Blocking."""

    def __init__(self, device_index: Optional[int] = None):
        self.device_index = device_index

    def play(self, pcm: bytes) -> None:
        if not pcm:
            return
        audio = pyaudio.PyAudio()
        stream = None
        try:
            stream = audio.open(
                format=pyaudio.paInt16,
                channels=NUM_CHANNELS,
                rate=SAMPLE_RATE,
                output=True,
                output_device_index=self.device_index,
            )
            stream.write(pcm)
            stream.stop_stream()
        except (OSError, ValueError) as e:
            raise PlaybackError(f"Audio playback failed: {e}") from e
        finally:
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
            audio.terminate()
