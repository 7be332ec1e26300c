import asyncio
import json

import httpx
import pytest

from lumin.errors import ModelNotFoundError, ProviderError
from lumin.llm_client import LLMClient


def _run(client, prompt="hi", model="claude-test"):
    async def go():
        try:
            return await client.generate(prompt, model=model, max_tokens=100, temperature=0.5)
        finally:
            await client.aclose()

    return asyncio.run(go())


def test_anthropic_request_and_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"content": [{"type": "text", "text": "lesson json"}]})

    client = LLMClient("sk-test", provider="anthropic", transport=httpx.MockTransport(handler))
    assert _run(client) == "lesson json"
    assert seen["url"] == "https://api.anthropic.com/v1/messages"
    assert seen["headers"]["x-api-key"] == "sk-test"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    assert seen["body"] == {
        "model": "claude-test",
        "max_tokens": 100,
        "temperature": 0.5,
        "messages": [{"role": "user", "content": "hi"}],
    }


def test_anthropic_unknown_model():
    def handler(request):
        return httpx.Response(
            404,
            json={"type": "error", "error": {"type": "not_found_error", "message": "model: claude-test"}},
        )

    client = LLMClient("sk-test", provider="anthropic", transport=httpx.MockTransport(handler))
    with pytest.raises(ModelNotFoundError) as info:
        _run(client)
    assert info.value.model == "claude-test"


def test_other_status_is_plain_provider_error():
    def handler(request):
        return httpx.Response(
            529, json={"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
        )

    client = LLMClient("sk-test", provider="anthropic", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError) as info:
        _run(client)
    assert not isinstance(info.value, ModelNotFoundError)
    assert info.value.status_code == 529
    assert "Overloaded" in str(info.value)


def test_404_without_not_found_type_is_not_a_model_error():
    def handler(request):
        return httpx.Response(404, text="no route")

    client = LLMClient("sk-test", provider="anthropic", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError) as info:
        _run(client)
    assert not isinstance(info.value, ModelNotFoundError)


def test_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = LLMClient("sk-test", provider="anthropic", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError, match="connection refused"):
        _run(client)


def test_unexpected_reply_shape():
    def handler(request):
        return httpx.Response(200, json={"content": []})

    client = LLMClient("sk-test", provider="anthropic", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError, match="Unexpected"):
        _run(client)


def test_gemini_request_and_not_found():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        if "missing" in request.url.path:
            return httpx.Response(404, json={"error": {"code": 404, "status": "NOT_FOUND", "message": "gone"}})
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "hello"}]}}]})

    client = LLMClient("g-key", provider="gemini", transport=httpx.MockTransport(handler))
    assert _run(client, model="gemini-2.5-flash") == "hello"
    assert seen["url"].path == "/v1beta/models/gemini-2.5-flash:generateContent"
    assert seen["url"].params["key"] == "g-key"
    assert seen["body"]["generationConfig"] == {"maxOutputTokens": 100, "temperature": 0.5}

    client = LLMClient("g-key", provider="gemini", transport=httpx.MockTransport(handler))
    with pytest.raises(ModelNotFoundError):
        _run(client, model="missing-model")


def test_unknown_provider_rejected():
    with pytest.raises(ProviderError):
        LLMClient("key", provider="carrier-pigeon")
