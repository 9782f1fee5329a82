"""Tests for credentials and settings."""

import json
import logging

from rich.console import Console
from rich.logging import RichHandler

from live_interpreter.config import (
    DEFAULT_AZURE_REGION,
    Credentials,
    Settings,
    load_credentials,
    save_credentials,
    setup_logging,
)


def write_store(tmp_path, payload):
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_store_is_keyed_by_provider_name(tmp_path):
    path = write_store(tmp_path, {"gladia": "g", "azure": "a", "elevenlabs": "e", "azure_region": "westus"})

    creds = load_credentials(path, environ={})

    assert creds == Credentials(gladia="g", azure="a", elevenlabs="e", azure_region="westus")
    assert creds.missing() == []


def test_environment_overrides_store(tmp_path):
    path = write_store(tmp_path, {"gladia": "from-file", "azure": "a"})
    environ = {"GLADIA_API_KEY": "from-env", "AZURE_REGION": "northeurope"}

    creds = load_credentials(path, environ=environ)

    assert creds.gladia == "from-env"
    assert creds.azure == "a"
    assert creds.azure_region == "northeurope"
    assert creds.missing() == ["elevenlabs"]


def test_missing_store_means_no_keys(tmp_path):
    creds = load_credentials(str(tmp_path / "absent.json"), environ={})
    assert creds.missing() == ["gladia", "azure", "elevenlabs"]
    assert creds.azure_region == DEFAULT_AZURE_REGION


def test_blank_values_count_as_missing(tmp_path):
    path = write_store(tmp_path, {"gladia": "   ", "azure": ""})
    creds = load_credentials(path, environ={"ELEVENLABS_API_KEY": " el "})
    assert creds.gladia is None
    assert creds.azure is None
    assert creds.elevenlabs == "el"


def test_unreadable_store_is_ignored(tmp_path, caplog):
    path = tmp_path / "credentials.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        creds = load_credentials(str(path), environ={"AZURE_API_KEY": "a"})

    assert creds.azure == "a"
    assert creds.gladia is None
    assert "Ignoring credential store" in caplog.text


def test_save_then_load(tmp_path):
    path = str(tmp_path / "nested" / "credentials.json")
    save_credentials(Credentials(gladia="g", elevenlabs="e"), path)

    with open(path, encoding="utf-8") as f:
        stored = json.load(f)
    assert stored == {"gladia": "g", "elevenlabs": "e", "azure_region": DEFAULT_AZURE_REGION}
    assert load_credentials(path, environ={}) == Credentials(gladia="g", elevenlabs="e")


def test_settings_defaults():
    settings = Settings()
    assert settings.source_language == "auto"
    assert settings.debounce_seconds == 0.7
    assert settings.credentials == Credentials()


def test_setup_logging_routes_through_console(tmp_path):
    log_file = tmp_path / "logs" / "interpreter.log"
    setup_logging(Console(), "DEBUG", str(log_file))

    root = logging.getLogger()
    try:
        assert root.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in root.handlers)
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        assert logging.getLogger("websockets").level == logging.WARNING

        logging.getLogger("live_interpreter.test").info("hello file")
        for handler in root.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text(encoding="utf-8")
    finally:
        root.setLevel(logging.WARNING)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
