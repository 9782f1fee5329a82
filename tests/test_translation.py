"""Tests for the translation client."""

import json

import httpx
import pytest

from conftest import json_transport
from live_interpreter.errors import ConfigurationError, ConnectivityError, DecodeError, ProviderError
from live_interpreter.translation import TranslationClient

TRANSLATION_PAYLOAD = [{"translations": [{"text": "Hola mundo", "to": "es"}]}]


@pytest.mark.asyncio
async def test_translate_sends_expected_request():
    requests = []
    client = TranslationClient("az-key", "westeurope", transport=json_transport(requests, payload=TRANSLATION_PAYLOAD))

    result = await client.translate("Hello world", "en", "es")

    assert result == "Hola mundo"
    request = requests[0]
    assert request.method == "POST"
    assert request.url.params["api-version"] == "3.0"
    assert request.url.params["to"] == "es"
    assert request.url.params["from"] == "en"
    assert request.headers["Ocp-Apim-Subscription-Key"] == "az-key"
    assert request.headers["Ocp-Apim-Subscription-Region"] == "westeurope"
    assert json.loads(request.content) == [{"text": "Hello world"}]


@pytest.mark.asyncio
async def test_auto_detect_omits_source_language():
    requests = []
    client = TranslationClient("az-key", "eastus", transport=json_transport(requests, payload=TRANSLATION_PAYLOAD))

    await client.translate("Hello world", "auto", "es")

    assert "from" not in requests[0].url.params


@pytest.mark.asyncio
async def test_blank_text_makes_no_call():
    requests = []
    client = TranslationClient("az-key", "eastus", transport=json_transport(requests, payload=TRANSLATION_PAYLOAD))

    assert await client.translate("   ", "en", "es") is None
    assert requests == []


@pytest.mark.asyncio
async def test_missing_key_raises_configuration_error():
    requests = []
    client = TranslationClient(None, "eastus", transport=json_transport(requests, payload=TRANSLATION_PAYLOAD))

    with pytest.raises(ConfigurationError):
        await client.translate("Hello", "en", "es")
    assert requests == []


@pytest.mark.asyncio
async def test_error_status_raises_provider_error():
    client = TranslationClient("az-key", "eastus", transport=json_transport([], status=401, payload={"error": {}}))

    with pytest.raises(ProviderError, match="Translation failed: 401"):
        await client.translate("Hello", "en", "es")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"translations": []},
        [{"translations": []}],
        [{"translations": [{"to": "es"}]}],
        [{"translations": [{"text": 42}]}],
    ],
)
async def test_malformed_response_raises_decode_error(payload):
    client = TranslationClient("az-key", "eastus", transport=json_transport([], payload=payload))

    with pytest.raises(DecodeError, match="Invalid translation response format"):
        await client.translate("Hello", "en", "es")


@pytest.mark.asyncio
async def test_non_json_response_raises_decode_error():
    client = TranslationClient("az-key", "eastus", transport=json_transport([], content=b"<html>"))

    with pytest.raises(DecodeError):
        await client.translate("Hello", "en", "es")


@pytest.mark.asyncio
async def test_transport_failure_raises_connectivity_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = TranslationClient("az-key", "eastus", transport=httpx.MockTransport(handler))

    with pytest.raises(ConnectivityError):
        await client.translate("Hello", "en", "es")
