"""Tests for the terminal view."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from live_interpreter.config import Settings
from live_interpreter.state import PipelineState
from live_interpreter.transcription import ConnectionState
from live_interpreter.ui import LiveInterpreterUI, tail


def make_interpreter(state=None):
    interpreter = MagicMock()
    interpreter.settings = Settings(source_language="auto", target_language="es")
    interpreter.state = state or PipelineState()
    interpreter.connection_state = ConnectionState.IDLE
    interpreter.speech_detected = False
    interpreter.is_recording = False
    interpreter.coordinator.is_speaking = False
    interpreter.toggle = AsyncMock(return_value=True)
    interpreter.shutdown = AsyncMock()
    return interpreter


def render(ui) -> str:
    console = Console(record=True, width=100, color_system=None)
    console.print(ui._build_display())
    return console.export_text()


def test_tail_keeps_the_end():
    assert tail("abcdef", limit=3) == "…def"
    assert tail("abc", limit=3) == "abc"


def test_empty_view_shows_placeholders():
    ui = LiveInterpreterUI(make_interpreter())
    text = render(ui)
    assert "Waiting for speech..." in text
    assert "Translation will appear here" in text
    assert "Auto-Detect" in text
    assert "Spanish" in text
    assert "IDLE" in text


def test_view_shows_text_captions_and_errors():
    state = PipelineState(source_text="Hello world.", translated_text="Hola mundo.", live_caption="How")
    state.recording = True
    state.translating = 1
    state.errors.translation = "Translation failed: 500"
    interpreter = make_interpreter(state)
    interpreter.connection_state = ConnectionState.OPEN
    interpreter.is_recording = True

    text = render(LiveInterpreterUI(interpreter))

    assert "Hello world. How" in text
    assert "Hola mundo." in text
    assert "REC" in text
    assert "Connected" in text
    assert "Translating..." in text
    assert "Translation: Translation failed: 500" in text
    assert "=stop" in text


def test_spoken_prefix_is_rendered_separately():
    state = PipelineState(translated_text="Hola. Adiós")
    state.claim_unspoken()
    state.translated_text = "Hola. Adiós. ¿Qué tal?"
    ui = LiveInterpreterUI(make_interpreter(state))

    translation = ui._render_translation()

    assert translation.plain == "Hola. Adiós. ¿Qué tal?"
    assert len(translation.spans) == 2


@pytest.mark.asyncio
async def test_keys_toggle_and_quit():
    interpreter = make_interpreter()
    ui = LiveInterpreterUI(interpreter)

    ui._handle_key(" ")
    ui._handle_key("r")
    await ui._toggle_task
    interpreter.toggle.assert_awaited_once()

    ui._handle_key("q")
    assert ui._quit.is_set()
