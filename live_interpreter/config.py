"""
Runtime settings and provider credentials.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler

from .languages import AUTO_DETECT

DEFAULT_AZURE_REGION = "eastus"
DEFAULT_CREDENTIALS_FILE = "credentials.json"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)

# Provider name -> environment variable holding its key
PROVIDER_ENV_KEYS = {
    "gladia": "GLADIA_API_KEY",
    "azure": "AZURE_API_KEY",
    "elevenlabs": "ELEVENLABS_API_KEY",
}


@dataclass(frozen=True)
class Credentials:
    """API keys for the three remote providers. Any of them may be missing."""
    gladia: Optional[str] = None
    azure: Optional[str] = None
    elevenlabs: Optional[str] = None
    azure_region: str = DEFAULT_AZURE_REGION

    def missing(self) -> list[str]:
        """Provider names without a configured key."""
        return [name for name in PROVIDER_ENV_KEYS if not getattr(self, name)]


def load_credentials(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Credentials:
    """Read credentials from the JSON store keyed by provider name.

    Environment variables override the store. A missing or unreadable store
    is treated as empty.
    """
    environ = os.environ if environ is None else environ
    stored: dict = {}

    if path and os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                stored = loaded
            else:
                logger.warning("Ignoring credential store %s: not a JSON object", path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring credential store %s: %s", path, e)

    keys = {}
    for provider, env_name in PROVIDER_ENV_KEYS.items():
        value = environ.get(env_name) or stored.get(provider)
        keys[provider] = value.strip() if isinstance(value, str) and value.strip() else None

    region = environ.get("AZURE_REGION") or stored.get("azure_region") or DEFAULT_AZURE_REGION
    return Credentials(azure_region=region, **keys)


def save_credentials(credentials: Credentials, path: str) -> None:
    """Write credentials to the JSON store, keyed by provider name."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    payload = {
        "gladia": credentials.gladia,
        "azure": credentials.azure,
        "azure_region": credentials.azure_region,
        "elevenlabs": credentials.elevenlabs,
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump({k: v for k, v in payload.items() if v}, f, ensure_ascii=False, indent=2)


@dataclass
class Settings:
    """Everything the pipeline needs to run one recording at a time."""
    source_language: str = AUTO_DETECT
    target_language: str = "es"
    input_device: Optional[int] = None
    output_device: Optional[int] = None
    debounce_seconds: float = 0.7
    frame_ms: int = 50
    channel_size: int = 64
    credentials_path: Optional[str] = DEFAULT_CREDENTIALS_FILE
    log_file: Optional[str] = None
    log_level: str = "INFO"
    credentials: Credentials = field(default_factory=Credentials)


def setup_logging(console: Console, level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Route log records through the UI console, and optionally to a file."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=False),
    ]
    if log_file:
        directory = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, format="%(message)s", datefmt="[%X]", handlers=handlers, force=True)
    # Keep protocol chatter out of the live view
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
