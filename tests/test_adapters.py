"""
airouter - Provider Adapter Tests

Wire-format tests for the local (Ollama) and remote (Anthropic) adapters
using httpx.MockTransport - no network access. The integration class at
the bottom needs a live local server and RUN_INTEGRATION=1.
"""

import json
import os

import httpx
import pytest

from airouter.adapters import AdapterConfig, LocalAdapter, RemoteAdapter, messages_to_prompt
from airouter.core.errors import (
    CreditExhaustedError,
    ProviderTimeoutError,
    ProviderTransportError,
    RateLimitedError,
    UpstreamError,
)
from airouter.core.models import ErrorClass, Provider, RequestContext

from conftest import make_ctx


def _local(handler) -> LocalAdapter:
    return LocalAdapter(
        AdapterConfig(base_url="http://ollama.test", default_model="llama3.1:8b", timeout=60.0),
        transport=httpx.MockTransport(handler),
    )


def _remote(handler, api_key="sk-test") -> RemoteAdapter:
    return RemoteAdapter(
        AdapterConfig(
            base_url="https://api.remote.test",
            default_model="claude-3-haiku-20240307",
            api_key=api_key,
            timeout=30.0,
        ),
        transport=httpx.MockTransport(handler),
    )


def _anthropic_reply(text="Hello from remote", model="claude-3-haiku-20240307"):
    return {
        "id": "msg-test123",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
        "model": model,
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 12, "output_tokens": 7},
    }


# ============================================================
# Prompt Formatting
# ============================================================

class TestMessagesToPrompt:
    """Local prompt flattening."""

    def test_roles(self):
        ctx = RequestContext.from_messages([
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
            {"role": "user", "content": "Bye"},
        ])
        assert messages_to_prompt(ctx.messages) == (
            "Human: Be brief\n\nHuman: Hi\n\nAssistant: Hello\n\nHuman: Bye"
        )

    def test_empty(self):
        assert messages_to_prompt(()) == ""


# ============================================================
# Local Adapter
# ============================================================

class TestLocalAdapter:
    """Ollama wire format."""

    @pytest.mark.asyncio
    async def test_generate_payload_and_reply(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"model": "llama3.1:8b", "response": "Hi there", "done": True})

        adapter = _local(handler)
        reply = await adapter.generate(make_ctx("Hello", max_tokens=50, model="ignored-for-local"))

        assert seen["path"] == "/api/generate"
        assert seen["body"] == {
            "model": "llama3.1:8b",
            "prompt": "Human: Hello",
            "stream": False,
            "options": {"temperature": 0.7, "max_tokens": 50, "top_p": 0.9},
        }
        assert reply.text == "Hi there"
        assert reply.model == "llama3.1:8b"
        assert reply.usage == {"input_tokens": 3, "output_tokens": 2}
        await adapter.close()

    @pytest.mark.asyncio
    async def test_list_models(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": [{"name": "llama3.1:8b"}, {"name": "phi3"}]})

        adapter = _local(handler)
        assert await adapter.list_models() == ["llama3.1:8b", "phi3"]

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(ProviderTransportError) as exc_info:
            await _local(handler).generate(make_ctx())

        assert exc_info.value.error_class == ErrorClass.TRANSPORT
        assert exc_info.value.provider == "local"

    @pytest.mark.asyncio
    async def test_read_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderTimeoutError):
            await _local(handler).generate(make_ctx())

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "model 'llama3.1:8b' not found"})

        with pytest.raises(UpstreamError) as exc_info:
            await _local(handler).generate(make_ctx())

        assert "not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_probe(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": [{"name": "llama3.1:8b"}]})
            return httpx.Response(200, json={"response": "ok", "done": True})

        result = await _local(handler).probe()
        assert result.available is True
        assert result.models == ["llama3.1:8b"]
        assert result.error is None

    @pytest.mark.asyncio
    async def test_probe_without_models(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"models": []})

        result = await _local(handler).probe()
        assert result.available is False
        assert result.error == "No models installed"

    @pytest.mark.asyncio
    async def test_probe_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        result = await _local(handler).probe()
        assert result.available is False
        assert result.error


# ============================================================
# Remote Adapter
# ============================================================

class TestRemoteAdapter:
    """Anthropic Messages wire format."""

    @pytest.mark.asyncio
    async def test_generate_payload_and_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_anthropic_reply())

        ctx = RequestContext.from_messages(
            [
                {"role": "system", "content": "Be brief"},
                {"role": "user", "content": "Hello"},
            ],
            max_tokens=200,
        )
        reply = await _remote(handler).generate(ctx)

        assert seen["path"] == "/v1/messages"
        assert seen["headers"]["x-api-key"] == "sk-test"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert seen["body"] == {
            "model": "claude-3-haiku-20240307",
            "max_tokens": 200,
            "messages": [{"role": "user", "content": "Hello"}],
            "system": "Be brief",
        }
        assert reply.text == "Hello from remote"
        assert reply.usage == {"input_tokens": 12, "output_tokens": 7}

    @pytest.mark.asyncio
    async def test_model_override(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            return httpx.Response(200, json=_anthropic_reply(model=body["model"]))

        reply = await _remote(handler).generate(make_ctx(model="claude-3-5-sonnet-20241022"))
        assert reply.model == "claude-3-5-sonnet-20241022"

    @pytest.mark.asyncio
    async def test_joins_text_blocks(self):
        def handler(request: httpx.Request) -> httpx.Response:
            data = _anthropic_reply()
            data["content"] = [
                {"type": "text", "text": "Part one. "},
                {"type": "tool_use", "id": "t1", "name": "x", "input": {}},
                {"type": "text", "text": "Part two."},
            ]
            return httpx.Response(200, json=data)

        reply = await _remote(handler).generate(make_ctx())
        assert reply.text == "Part one. Part two."

    @pytest.mark.asyncio
    async def test_low_credit_balance(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={
                "type": "error",
                "error": {
                    "type": "invalid_request_error",
                    "message": "Your credit balance is too low to access the Anthropic API.",
                },
            })

        with pytest.raises(CreditExhaustedError) as exc_info:
            await _remote(handler).generate(make_ctx())

        assert exc_info.value.error_class == ErrorClass.CREDIT_EXHAUSTED
        assert exc_info.value.status_code == 402

    @pytest.mark.asyncio
    async def test_payment_required(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(402, text="nope")

        with pytest.raises(CreditExhaustedError):
            await _remote(handler).generate(make_ctx())

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                429,
                json={"type": "error", "error": {"type": "rate_limit_error", "message": "Slow down"}},
                headers={"retry-after": "12"},
            )

        with pytest.raises(RateLimitedError) as exc_info:
            await _remote(handler).generate(make_ctx())

        assert exc_info.value.error.retry_after == 12

    @pytest.mark.asyncio
    async def test_error_envelope_with_200(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "type": "error",
                "error": {"type": "billing_error", "message": "Billing issue: insufficient credits"},
            })

        with pytest.raises(CreditExhaustedError):
            await _remote(handler).generate(make_ctx())

    @pytest.mark.asyncio
    async def test_probe_without_key(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_anthropic_reply())

        result = await _remote(handler, api_key=None).probe()

        assert result.available is False
        assert result.error == "Remote API key not configured"
        assert calls == []

    @pytest.mark.asyncio
    async def test_probe_sends_tiny_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_anthropic_reply())

        result = await _remote(handler).probe()

        assert result.available is True
        assert result.provider == Provider.REMOTE
        assert seen["body"]["max_tokens"] == 10

    @pytest.mark.asyncio
    async def test_probe_credit_exhausted(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={
                "type": "error",
                "error": {"type": "invalid_request_error", "message": "Your credit balance is too low"},
            })

        result = await _remote(handler).probe()
        assert result.available is False
        assert result.credit_exhausted is True
        assert result.to_dict()["credit_exhausted"] is True


# ============================================================
# Live Local Server (RUN_INTEGRATION=1)
# ============================================================

@pytest.mark.integration
class TestLocalServerIntegration:
    """Talks to a real Ollama server at LOCAL_BASE_URL."""

    @pytest.mark.asyncio
    async def test_list_and_generate(self):
        adapter = LocalAdapter(AdapterConfig(
            base_url=os.getenv("LOCAL_BASE_URL", "http://localhost:11434"),
            default_model=os.getenv("LOCAL_DEFAULT_MODEL", "llama3.1:8b"),
            timeout=60.0,
        ))
        try:
            models = await adapter.list_models()
            assert models
            if adapter.default_model not in models:
                adapter.default_model = models[0]

            reply = await adapter.generate(make_ctx("Say hello in one word.", max_tokens=10))
            assert reply.text
            assert reply.model
        finally:
            await adapter.close()
