"""
Language table shared by the transcription, translation and speech stages.
"""

from typing import Optional

# Source language value meaning "let the provider detect it"
AUTO_DETECT = "auto"

# Supported languages with display names and flag emojis
LANGUAGES = {
    "ar": {"name": "Arabic", "flag": "🇸🇦"},
    "bg": {"name": "Bulgarian", "flag": "🇧🇬"},
    "cs": {"name": "Czech", "flag": "🇨🇿"},
    "da": {"name": "Danish", "flag": "🇩🇰"},
    "de": {"name": "German", "flag": "🇩🇪"},
    "en": {"name": "English", "flag": "🇺🇸"},
    "es": {"name": "Spanish", "flag": "🇪🇸"},
    "et": {"name": "Estonian", "flag": "🇪🇪"},
    "fi": {"name": "Finnish", "flag": "🇫🇮"},
    "fr": {"name": "French", "flag": "🇫🇷"},
    "hi": {"name": "Hindi", "flag": "🇮🇳"},
    "hr": {"name": "Croatian", "flag": "🇭🇷"},
    "hu": {"name": "Hungarian", "flag": "🇭🇺"},
    "it": {"name": "Italian", "flag": "🇮🇹"},
    "ja": {"name": "Japanese", "flag": "🇯🇵"},
    "ko": {"name": "Korean", "flag": "🇰🇷"},
    "lt": {"name": "Lithuanian", "flag": "🇱🇹"},
    "lv": {"name": "Latvian", "flag": "🇱🇻"},
    "nl": {"name": "Dutch", "flag": "🇳🇱"},
    "no": {"name": "Norwegian", "flag": "🇳🇴"},
    "pl": {"name": "Polish", "flag": "🇵🇱"},
    "pt": {"name": "Portuguese", "flag": "🇵🇹"},
    "ro": {"name": "Romanian", "flag": "🇷🇴"},
    "ru": {"name": "Russian", "flag": "🇷🇺"},
    "sk": {"name": "Slovak", "flag": "🇸🇰"},
    "sl": {"name": "Slovenian", "flag": "🇸🇮"},
    "sv": {"name": "Swedish", "flag": "🇸🇪"},
    "tr": {"name": "Turkish", "flag": "🇹🇷"},
    "uk": {"name": "Ukrainian", "flag": "🇺🇦"},
    "zh": {"name": "Chinese (Simplified)", "flag": "🇨🇳"},
}

# ElevenLabs voice per target language; "default" is used for everything else
VOICES = {
    "en": "9BWtsMINqrJLrRacOk9x",  # Aria
    "es": "EXAVITQu4vr4xnSDxMaL",  # Sarah
    "fr": "FGY2WhTYpPnrIDTdsKH5",  # Laura
    "de": "CwhRBWXzGAHq8TQ4Fs17",  # Roger
    "it": "IKne3meq5aSn9XLyUdCD",  # Charlie
    "pt": "TX3LPaxmHKxFdv7VOQHJ",  # Liam
    "ru": "N2lVS1w4EtoT3dr4eOWO",  # Callum
    "ja": "SAz9YHcvj6GT2YYXdXww",  # River
    "ko": "JBFqnCBsd6RMkjVDRZzb",  # George
    "zh": "XB0fDUnXU5powFXDhCwa",  # Charlotte
    "ar": "Xb7hH8MSUJpSbSDYk0k2",  # Alice
    "hi": "XrExE9yKIg1WjnnlVkGX",  # Matilda
    "default": "9BWtsMINqrJLrRacOk9x",
}


def is_auto_detect(code: Optional[str]) -> bool:
    """True when the source language should be detected by the provider."""
    return not code or code == AUTO_DETECT


def get_language_name(code: str) -> str:
    """Get the display name for a language code."""
    if is_auto_detect(code):
        return "Auto-Detect"
    lang = LANGUAGES.get(code)
    if lang:
        return lang["name"]
    return code.upper()


def get_language_flag(code: str) -> str:
    """Get the flag emoji for a language code."""
    lang = LANGUAGES.get(code)
    if lang:
        return lang["flag"]
    return "🌐"


def get_all_language_codes() -> list[str]:
    """Get all supported language codes."""
    return sorted(LANGUAGES.keys())


def voice_for(language: str) -> str:
    """Pick the synthesis voice for a target language."""
    return VOICES.get(language, VOICES["default"])
