"""
Remote text translation (Azure Translator v3).
"""

import logging
from typing import Optional

import httpx

from .errors import ConfigurationError, ConnectivityError, DecodeError, ProviderError
from .languages import is_auto_detect

logger = logging.getLogger(__name__)

AZURE_TRANSLATE_URL = "https://api.cognitive.microsofttranslator.com/translate"
AZURE_API_VERSION = "3.0"
TRANSLATE_TIMEOUT = 10.0


class TranslationClient:
    """Translates text through the remote endpoint.

    Calls may overlap; callers decide which result is current.
    """

    def __init__(
        self,
        api_key: Optional[str],
        region: str,
        endpoint: str = AZURE_TRANSLATE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.region = region
        self.endpoint = endpoint
        self._transport = transport

    async def translate(self, text: str, source_language: str, target_language: str) -> Optional[str]:
        """Translate `text`. Returns None without calling out when text is blank."""
        if not text.strip():
            return None
        if not self.api_key:
            raise ConfigurationError("Azure API key not configured")

        params = {"api-version": AZURE_API_VERSION, "to": target_language}
        if not is_auto_detect(source_language):
            params["from"] = source_language
        headers = {
            "Ocp-Apim-Subscription-Key": self.api_key,
            "Ocp-Apim-Subscription-Region": self.region,
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=TRANSLATE_TIMEOUT) as client:
                response = await client.post(self.endpoint, params=params, headers=headers, json=[{"text": text}])
        except httpx.HTTPError as e:
            raise ConnectivityError(f"Translation service unreachable: {e}") from e

        if response.is_error:
            raise ProviderError(f"Translation failed: {response.status_code} {response.reason_phrase}")

        try:
            result = response.json()
            translated = result[0]["translations"][0]["text"]
        except (ValueError, LookupError, TypeError) as e:
            raise DecodeError("Invalid translation response format") from e
        if not isinstance(translated, str):
            raise DecodeError("Invalid translation response format")

        logger.debug("Translated %d chars -> %d chars", len(text), len(translated))
        return translated
