import json

import httpx
import pytest

from talksync.services.chat_backend_client import (
    ChatBackendClient,
    INVALID_RESPONSE_REPLY,
    NO_DATA_REPLY,
    PARSE_ERROR_REPLY,
)
from talksync.services.language_detector import LanguageDetector, UNDETERMINED
from talksync.services.translation_client import TranslationClient

TRANSLATE_URL = "https://translate.test/language/translate/v2"
BACKEND_URL = "https://backend.test/chat"


def test_language_detector_english():
    detector = LanguageDetector()

    assert detector.detect("The weather is lovely today and I would like to go for a walk.") == "en"


def test_language_detector_spanish():
    detector = LanguageDetector()

    assert detector.detect("Hola, me gustaría reservar una mesa para dos personas esta noche.") == "es"


def test_language_detector_empty_text():
    detector = LanguageDetector()

    assert detector.detect("") == UNDETERMINED
    assert detector.detect("   ") == UNDETERMINED


def test_language_detector_no_features():
    detector = LanguageDetector()

    assert detector.detect("12345 !!!") == UNDETERMINED


@pytest.mark.asyncio
async def test_translation_client_request_shape(make_json_transport):
    requests = []
    transport = make_json_transport(
        {"data": {"translations": [{"translatedText": "hello"}]}},
        requests=requests,
    )
    client = TranslationClient(url=TRANSLATE_URL, api_key="secret-key", transport=transport)

    result = await client.translate("hola")

    assert result == "hello"
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.params["key"] == "secret-key"
    assert json.loads(request.content) == {"q": "hola", "target": "en", "format": "text"}


@pytest.mark.asyncio
async def test_translation_client_falls_back_on_http_error(make_json_transport):
    transport = make_json_transport({"error": {"code": 403}}, status_code=403)
    client = TranslationClient(url=TRANSLATE_URL, api_key="secret-key", transport=transport)

    assert await client.translate("bonjour") == "bonjour"


@pytest.mark.asyncio
async def test_translation_client_falls_back_on_unexpected_shape(make_json_transport):
    transport = make_json_transport({"data": {"translations": []}})
    client = TranslationClient(url=TRANSLATE_URL, api_key="secret-key", transport=transport)

    assert await client.translate("bonjour") == "bonjour"


@pytest.mark.asyncio
async def test_translation_client_falls_back_on_malformed_json(make_json_transport):
    transport = make_json_transport(content=b"<html>oops</html>")
    client = TranslationClient(url=TRANSLATE_URL, api_key="secret-key", transport=transport)

    assert await client.translate("ciao") == "ciao"


@pytest.mark.asyncio
async def test_translation_client_falls_back_on_transport_error(make_failing_transport):
    transport = make_failing_transport(
        lambda request: httpx.ConnectError("connection refused", request=request)
    )
    client = TranslationClient(url=TRANSLATE_URL, api_key="secret-key", transport=transport)

    assert await client.translate("hallo") == "hallo"


@pytest.mark.asyncio
async def test_translation_client_falls_back_on_invalid_url(make_failing_transport):
    transport = make_failing_transport(lambda request: httpx.InvalidURL("Invalid port: 'abc'"))
    client = TranslationClient(url=TRANSLATE_URL, api_key="secret-key", transport=transport)

    assert await client.translate("hallo") == "hallo"


@pytest.mark.asyncio
async def test_translation_client_without_api_key_sends_nothing(make_json_transport):
    requests = []
    transport = make_json_transport({}, requests=requests)
    client = TranslationClient(url=TRANSLATE_URL, api_key="", transport=transport)

    assert await client.translate("hola") == "hola"
    assert requests == []


@pytest.mark.asyncio
async def test_chat_backend_client_returns_reply(make_json_transport):
    requests = []
    transport = make_json_transport({"reply": "Hi there!"}, requests=requests)
    client = ChatBackendClient(url=BACKEND_URL, transport=transport)

    reply = await client.send_message("hello")

    assert reply == "Hi there!"
    assert requests[0].method == "POST"
    assert json.loads(requests[0].content) == {"message": "hello"}


@pytest.mark.asyncio
async def test_chat_backend_client_missing_reply_field(make_json_transport):
    client = ChatBackendClient(url=BACKEND_URL, transport=make_json_transport({"answer": "x"}))

    assert await client.send_message("hello") == INVALID_RESPONSE_REPLY


@pytest.mark.asyncio
async def test_chat_backend_client_non_string_reply(make_json_transport):
    client = ChatBackendClient(url=BACKEND_URL, transport=make_json_transport({"reply": 42}))

    assert await client.send_message("hello") == INVALID_RESPONSE_REPLY


@pytest.mark.asyncio
async def test_chat_backend_client_empty_body(make_json_transport):
    client = ChatBackendClient(url=BACKEND_URL, transport=make_json_transport(content=b""))

    assert await client.send_message("hello") == NO_DATA_REPLY


@pytest.mark.asyncio
async def test_chat_backend_client_malformed_json(make_json_transport):
    client = ChatBackendClient(url=BACKEND_URL, transport=make_json_transport(content=b"not json"))

    assert await client.send_message("hello") == PARSE_ERROR_REPLY


@pytest.mark.asyncio
async def test_chat_backend_client_server_error(make_json_transport):
    client = ChatBackendClient(
        url=BACKEND_URL,
        transport=make_json_transport({"detail": "boom"}, status_code=500),
    )

    assert await client.send_message("hello") == "Error: server returned 500"


@pytest.mark.asyncio
async def test_chat_backend_client_transport_error(make_failing_transport):
    transport = make_failing_transport(
        lambda request: httpx.ConnectError("connection refused", request=request)
    )
    client = ChatBackendClient(url=BACKEND_URL, transport=transport)

    reply = await client.send_message("hello")

    assert reply.startswith("Error: ")
    assert "connection refused" in reply


@pytest.mark.asyncio
async def test_chat_backend_client_invalid_url(make_failing_transport):
    transport = make_failing_transport(lambda request: httpx.InvalidURL("Invalid port: 'abc'"))
    client = ChatBackendClient(url=BACKEND_URL, transport=transport)

    assert await client.send_message("hello") == "Error: Invalid port: 'abc'"
