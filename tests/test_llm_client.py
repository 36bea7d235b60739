"""Tests for the Anthropic generation client, against httpx.MockTransport."""
import json

import httpx
import pytest

from app.services.exceptions import AuthError, EmptyResponseError, TransportError
from app.services.llm_client import AnthropicGenerationClient


def _messages_response(*texts: str) -> dict:
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": t} for t in texts],
        "stop_reason": "end_turn",
    }


def _client(handler) -> AnthropicGenerationClient:
    return AnthropicGenerationClient(api_key="sk-test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_generate_returns_text_and_sends_messages_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_messages_response('["a", ', '"b"]'))

    text = await _client(handler).generate("Extract facts.", "Input Text: ...")

    assert text == '["a", "b"]'
    assert seen["url"].endswith("/v1/messages")
    assert seen["headers"]["x-api-key"] == "sk-test"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    assert seen["body"]["system"] == "Extract facts."
    assert seen["body"]["messages"] == [{"role": "user", "content": "Input Text: ..."}]


@pytest.mark.asyncio
async def test_structured_request_appends_json_only_instruction():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_messages_response("[]"))

    await _client(handler).generate("Extract facts.", "x", expect_structured=True)

    assert seen["body"]["system"].startswith("Extract facts.")
    assert "Respond ONLY with valid JSON" in seen["body"]["system"]


@pytest.mark.asyncio
async def test_missing_credential_fails_without_network_call():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_messages_response("x"))

    client = AnthropicGenerationClient(api_key="", transport=httpx.MockTransport(handler))
    assert client.is_configured is False

    with pytest.raises(AuthError):
        await client.generate("a", "b")
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_rejected_credential_is_auth_error(status_code):
    def handler(request):
        return httpx.Response(status_code, json={"error": {"type": "authentication_error"}})

    with pytest.raises(AuthError):
        await _client(handler).generate("a", "b")


@pytest.mark.asyncio
async def test_server_error_is_transport_error_with_status():
    def handler(request):
        return httpx.Response(529, json={"error": {"type": "overloaded_error"}})

    with pytest.raises(TransportError) as exc_info:
        await _client(handler).generate("a", "b")
    assert exc_info.value.status_code == 529


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        await _client(handler).generate("a", "b")


@pytest.mark.asyncio
async def test_timeout_is_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError):
        await _client(handler).generate("a", "b")


@pytest.mark.asyncio
async def test_no_text_blocks_is_empty_response():
    def handler(request):
        return httpx.Response(200, json={"content": [{"type": "tool_use", "id": "x"}]})

    with pytest.raises(EmptyResponseError):
        await _client(handler).generate("a", "b")


@pytest.mark.asyncio
async def test_whitespace_text_is_empty_response():
    def handler(request):
        return httpx.Response(200, json=_messages_response("  \n "))

    with pytest.raises(EmptyResponseError):
        await _client(handler).generate("a", "b")
