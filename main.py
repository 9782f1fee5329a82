#!/usr/bin/env python3
"""
Live Interpreter
Speak into the microphone and hear the translation spoken back.
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv
from rich.console import Console

from live_interpreter import (
    Interpreter,
    LiveInterpreterUI,
    Settings,
    list_audio_devices,
    load_credentials,
)
from live_interpreter.config import DEFAULT_CREDENTIALS_FILE, setup_logging
from live_interpreter.languages import AUTO_DETECT, get_all_language_codes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Live speech-to-speech translation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Keyboard shortcuts:
  space/r - Start or stop recording
  q       - Quit

API keys are read from GLADIA_API_KEY, AZURE_API_KEY, AZURE_REGION and
ELEVENLABS_API_KEY (.env is loaded), or from the credentials file.
        """
    )
    parser.add_argument(
        "--source-language", "-s",
        type=str,
        default=AUTO_DETECT,
        help="Spoken language code, or 'auto' to let the service detect it"
    )
    parser.add_argument(
        "--target-language", "-t",
        type=str,
        default="es",
        help="Language to translate into and speak (e.g., 'es')"
    )
    parser.add_argument(
        "--device", "-d",
        type=int,
        default=None,
        help="Audio input device index (use --list-devices to see options)"
    )
    parser.add_argument(
        "--output-device",
        type=int,
        default=None,
        help="Audio output device index for spoken translations"
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List available audio input devices and exit"
    )
    parser.add_argument(
        "--credentials",
        type=str,
        default=DEFAULT_CREDENTIALS_FILE,
        help="JSON credential store keyed by provider name"
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=0.7,
        help="Seconds to wait for more text before speaking an unfinished sentence"
    )
    parser.add_argument(
        "--start",
        action="store_true",
        help="Start recording immediately"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )
    return parser


def validate_languages(parser: argparse.ArgumentParser, source: str, target: str) -> None:
    valid_codes = get_all_language_codes()
    if source != AUTO_DETECT and source not in valid_codes:
        parser.error(f"Invalid source language code: {source}")
    if target not in valid_codes:
        parser.error(f"Invalid target language code: {target}")


def main(argv=None):
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    # List devices mode
    if args.list_devices:
        print("Available audio input devices:")
        for idx, name in list_audio_devices():
            print(f"  [{idx}] {name}")
        print("\nUse --device <index> to select a specific device.")
        sys.exit(0)

    source_language = args.source_language.strip()
    target_language = args.target_language.strip()
    validate_languages(parser, source_language, target_language)

    console = Console()
    settings = Settings(
        source_language=source_language,
        target_language=target_language,
        input_device=args.device,
        output_device=args.output_device,
        debounce_seconds=max(0.0, args.debounce),
        credentials_path=args.credentials,
        log_file=args.log_file,
        log_level="DEBUG" if args.verbose else "INFO",
        credentials=load_credentials(args.credentials),
    )
    setup_logging(console, settings.log_level, settings.log_file)

    missing = settings.credentials.missing()
    if missing:
        console.print(f"[yellow]Missing API keys: {', '.join(missing)} (those stages will report errors)[/]")

    interpreter = Interpreter(settings)
    ui = LiveInterpreterUI(interpreter, console=console)

    try:
        asyncio.run(ui.run(autostart=args.start))
    except KeyboardInterrupt:
        console.print("\n[yellow]Goodbye.[/]")


if __name__ == "__main__":
    main()
