"""
Rich-based terminal UI for the live interpreter.
Terminal-native keyboard controls (only when terminal is focused).
"""

import asyncio
import logging
import sys
import termios
import tty
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from .languages import get_language_flag, get_language_name
from .pipeline import Interpreter
from .transcription import ConnectionState

logger = logging.getLogger(__name__)

# Display settings
UI_REFRESH_RATE = 4  # Hz
MAIN_LOOP_INTERVAL = 0.1  # seconds
MAX_PANEL_CHARS = 1200

ACCENT = "#3b82f6"
OK_COLOR = "#22c55e"
WARN_COLOR = "#eab308"
ERROR_COLOR = "#ef4444"

CONNECTION_STYLES = {
    ConnectionState.IDLE: ("Disconnected", "dim"),
    ConnectionState.CONNECTING: ("Connecting...", WARN_COLOR),
    ConnectionState.OPEN: ("Connected", OK_COLOR),
    ConnectionState.CLOSING: ("Closing...", WARN_COLOR),
    ConnectionState.CLOSED: ("Disconnected", "dim"),
    ConnectionState.FAILED: ("Connection failed", ERROR_COLOR),
}

STAGE_LABELS = (
    ("capture", "Microphone"),
    ("transcription", "Transcription"),
    ("translation", "Translation"),
    ("synthesis", "Speech"),
)


def tail(text: str, limit: int = MAX_PANEL_CHARS) -> str:
    """Keep the end of long transcripts visible."""
    if len(text) <= limit:
        return text
    return "…" + text[-limit:]


class LiveInterpreterUI:
    """Terminal view of the pipeline state with a recording toggle."""

    def __init__(self, interpreter: Interpreter, console: Optional[Console] = None):
        self.interpreter = interpreter
        self.console = console or Console()

        self._quit = asyncio.Event()
        self._toggle_task: Optional[asyncio.Task] = None
        self._old_term_settings = None

    def _read_key(self) -> Optional[str]:
        """Read a single key from terminal."""
        ch = sys.stdin.read(1)
        if not ch:
            return None
        return ch.lower()

    def _on_stdin_ready(self) -> None:
        key = self._read_key()
        if key:
            self._handle_key(key)

    def _start_keyboard_listener(self) -> None:
        """Put the terminal in cbreak mode and watch stdin from the event loop."""
        try:
            self._old_term_settings = termios.tcgetattr(sys.stdin)
            tty.setcbreak(sys.stdin.fileno())
            asyncio.get_running_loop().add_reader(sys.stdin.fileno(), self._on_stdin_ready)
        except (OSError, termios.error, NotImplementedError) as e:
            logger.warning("Keyboard controls unavailable: %s", e)

    def _stop_keyboard_listener(self) -> None:
        """Restore terminal settings."""
        try:
            asyncio.get_running_loop().remove_reader(sys.stdin.fileno())
        except (OSError, ValueError, NotImplementedError):
            pass
        if self._old_term_settings:
            try:
                termios.tcsetattr(sys.stdin, termios.TCSADRAIN, self._old_term_settings)
            except (OSError, termios.error):
                pass

    def _handle_key(self, key: str) -> None:
        """Handle a key press."""
        if key == 'q':
            self._quit.set()
        elif key in (' ', 'r'):
            self.request_toggle()

    def request_toggle(self) -> None:
        """Start/stop recording unless a toggle is already in progress."""
        if self._toggle_task is not None and not self._toggle_task.done():
            return
        self._toggle_task = asyncio.create_task(self.interpreter.toggle())

    def _render_source(self) -> Text:
        state = self.interpreter.state
        text = Text()
        if state.source_text:
            text.append(tail(state.source_text))
        if state.live_caption:
            if state.source_text:
                text.append(" ")
            text.append(state.live_caption, style="dim italic")
        if not text:
            text.append("Waiting for speech...", style="dim italic")
        return text

    def _render_translation(self) -> Text:
        """Spoken prefix dimmed, pending text bright."""
        state = self.interpreter.state
        text = Text()
        if not state.translated_text:
            text.append("Translation will appear here", style="dim italic")
        else:
            mark = state.spoken_watermark
            text.append(tail(state.translated_text[:mark]), style="dim")
            text.append(state.translated_text[mark:], style="bold")
        if state.provider_caption:
            text.append("\n")
            text.append(f"↳ {state.provider_caption}", style=f"dim italic {ACCENT}")
        return text

    def _render_status_bar(self) -> Text:
        interpreter = self.interpreter
        state = interpreter.state
        text = Text()

        if state.recording:
            text.append(" REC ", style=f"black on {ERROR_COLOR}")
        else:
            text.append(" IDLE ", style="black on white")

        label, style = CONNECTION_STYLES[interpreter.connection_state]
        text.append(f" │ {label}", style=style)
        if interpreter.speech_detected:
            text.append(" │ 🎙 speech", style=OK_COLOR)
        text.append(" │ Translating..." if state.translating else " │ Ready", style="dim")
        if interpreter.coordinator.is_speaking:
            text.append(" │ 🔊 speaking", style=ACCENT)
        return text

    def _render_errors(self) -> Optional[Text]:
        errors = self.interpreter.state.errors
        text = Text()
        for attr, label in STAGE_LABELS:
            message = getattr(errors, attr)
            if message:
                if text:
                    text.append("\n")
                text.append(f"{label}: ", style=f"bold {ERROR_COLOR}")
                text.append(message, style=ERROR_COLOR)
        return text if text else None

    def _render_hotkey_bar(self) -> Text:
        text = Text()
        action = "stop" if self.interpreter.is_recording else "record"
        for k, d in [("space", action), ("q", "quit")]:
            text.append(f" {k}", style=WARN_COLOR)
            text.append(f"={d}", style="dim")
        return text

    def _build_display(self) -> Group:
        settings = self.interpreter.settings
        source, target = settings.source_language, settings.target_language

        header = Text("🌐 Live Interpreter", style=f"bold {ACCENT}")
        header.append(
            f"  {get_language_name(source)} → {get_language_flag(target)} {get_language_name(target)}",
            style="dim",
        )

        parts = [
            Panel(header, style=ACCENT),
            Panel(self._render_source(), title="[bold]Live Transcription[/]", border_style=ACCENT),
            Panel(self._render_translation(), title="[bold]Translation[/]", border_style=OK_COLOR),
            self._render_status_bar(),
        ]
        errors = self._render_errors()
        if errors is not None:
            parts.append(errors)
        parts.append(self._render_hotkey_bar())
        return Group(*parts)

    async def run(self, autostart: bool = False) -> None:
        """Run the UI until the user quits."""
        self._start_keyboard_listener()

        try:
            with Live(
                self._build_display(),
                console=self.console,
                refresh_per_second=UI_REFRESH_RATE,
                vertical_overflow="crop",
            ) as live:
                if autostart:
                    self.request_toggle()
                while not self._quit.is_set():
                    live.update(self._build_display())
                    try:
                        await asyncio.wait_for(self._quit.wait(), MAIN_LOOP_INTERVAL)
                    except asyncio.TimeoutError:
                        pass
                live.update(self._build_display())
        finally:
            self._stop_keyboard_listener()
            if self._toggle_task is not None:
                await asyncio.gather(self._toggle_task, return_exceptions=True)
            await self.interpreter.shutdown()
