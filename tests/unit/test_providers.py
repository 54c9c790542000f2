"""
Unit tests for the reasoning service providers.

This module contains unit tests for:
- Retry-After parsing
- Message conversion for the Anthropic and OpenAI-compatible formats
- OpenAI-compatible HTTP error mapping (rate limits, server errors)
- Provider factory configuration errors
"""

import json
from types import SimpleNamespace

import httpx
import pytest

from pipe_factory.errors import ProviderConfigurationError
from pipe_factory.llm import (
    AnthropicProvider,
    LLMConfig,
    Message,
    ModelTier,
    OpenAICompatibleProvider,
    ToolCall,
    ToolResponse,
    create_provider,
    create_provider_from_env,
    parse_retry_after,
)
from pipe_factory.llm.anthropic_provider import to_anthropic_messages
from pipe_factory.llm.openai_compatible_provider import (
    parse_tool_arguments,
    to_openai_messages,
    to_openai_tools,
)


@pytest.fixture
def history():
    """User task, one tool call, its result with a camera frame."""
    return [
        Message(role="user", content="TASK: cut"),
        Message(
            role="assistant",
            content="Cutting now",
            tool_calls=[ToolCall(id="call-1", name="operate", args={})],
        ),
        Message(
            role="user",
            tool_results=[ToolResponse(
                call_id="call-1",
                name="operate",
                response="Sheet cut to size",
                attachment=b"\x89PNG",
            )],
        ),
    ]


class TestParseRetryAfter:
    """Test Retry-After conversion to milliseconds."""

    @pytest.mark.parametrize("value,expected", [
        ("2", 2000),
        ("0.5", 500),
        ("0", 0),
        (None, None),
        ("", None),
        ("soon", None),
        ("-3", None),
    ])
    def test_values(self, value, expected):
        assert parse_retry_after(value) == expected


class TestAnthropicConversion:
    """Test the Anthropic content block format."""

    def test_tool_use_and_result_blocks(self, history):
        converted = to_anthropic_messages(history)

        assert converted[0] == {"role": "user", "content": "TASK: cut"}
        assert converted[1]["content"] == [
            {"type": "text", "text": "Cutting now"},
            {"type": "tool_use", "id": "call-1", "name": "operate", "input": {}},
        ]
        result = converted[2]["content"][0]
        assert result["type"] == "tool_result"
        assert result["tool_use_id"] == "call-1"
        assert result["is_error"] is False
        assert result["content"][0] == {"type": "text", "text": "Sheet cut to size"}

    def test_attachment_sent_as_image(self, history):
        image = to_anthropic_messages(history)[2]["content"][0]["content"][1]

        assert image["type"] == "image"
        assert image["source"]["media_type"] == "image/png"
        assert image["source"]["data"] == "iVBORw=="

    def test_convert_response(self):
        response = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Moving to the cutter"),
                SimpleNamespace(type="tool_use", id="tu-1", name="moveTo", input={"stationId": "cutter"}),
            ],
            usage=SimpleNamespace(input_tokens=120, output_tokens=30),
            model="claude-haiku",
            stop_reason="tool_use",
        )

        converted = AnthropicProvider._convert(response)

        assert converted.type == "tool_calls"
        assert converted.content == "Moving to the cutter"
        assert converted.tool_calls == [ToolCall(id="tu-1", name="moveTo", args={"stationId": "cutter"})]
        assert converted.usage["total_tokens"] == 150

    def test_text_only_response(self):
        response = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="Done")],
            usage=SimpleNamespace(input_tokens=1, output_tokens=1),
            model="claude-haiku",
            stop_reason="end_turn",
        )

        assert AnthropicProvider._convert(response).type == "text"


class TestOpenAIConversion:
    """Test the chat completions format."""

    def test_messages(self, history):
        converted = to_openai_messages(history, system="You operate the cutter.")

        assert converted[0] == {"role": "system", "content": "You operate the cutter."}
        assert converted[2]["tool_calls"][0]["function"] == {"name": "operate", "arguments": "{}"}
        assert converted[3] == {"role": "tool", "tool_call_id": "call-1", "content": "Sheet cut to size"}
        assert len(converted) == 4

    def test_tools(self):
        tools = to_openai_tools([{
            "name": "moveTo",
            "description": "Walk",
            "input_schema": {"type": "object", "properties": {}},
        }])

        assert tools == [{
            "type": "function",
            "function": {
                "name": "moveTo",
                "description": "Walk",
                "parameters": {"type": "object", "properties": {}},
            },
        }]

    @pytest.mark.parametrize("raw,expected", [
        ('{"stationId": "roller"}', {"stationId": "roller"}),
        ({"stationId": "roller"}, {"stationId": "roller"}),
        ("", {}),
        (None, {}),
        ("{not json", {}),
        ("[1, 2]", {}),
    ])
    def test_parse_tool_arguments(self, raw, expected):
        assert parse_tool_arguments(raw) == expected


class TestOpenAICompatibleProvider:
    """Test HTTP handling against a mock transport."""

    @pytest.fixture
    def provider_with(self):
        providers = []

        def make(handler):
            provider = OpenAICompatibleProvider(LLMConfig(
                api_key="sk-test",
                base_url="https://llm.example.test/v1",
                provider_type="openai-compatible",
            ))
            provider._client = httpx.AsyncClient(
                base_url="https://llm.example.test/v1",
                transport=httpx.MockTransport(handler),
            )
            providers.append(provider)
            return provider

        return make

    @pytest.mark.asyncio
    async def test_tool_call_response(self, provider_with):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "model": "worker-model",
                "choices": [{
                    "finish_reason": "tool_calls",
                    "message": {
                        "content": None,
                        "tool_calls": [{
                            "id": "c1",
                            "function": {"name": "operate", "arguments": "{}"},
                        }],
                    },
                }],
                "usage": {"prompt_tokens": 10, "completion_tokens": 2, "total_tokens": 12},
            })

        provider = provider_with(handler)
        response = await provider.complete(
            [Message(role="user", content="go")],
            tier=ModelTier.HAIKU,
            tools=[{"name": "operate", "description": "Run", "input_schema": {"type": "object"}}],
            system="sys",
        )
        await provider.close()

        assert response.type == "tool_calls"
        assert response.tool_calls[0].name == "operate"
        assert seen["body"]["model"] == "claude-haiku-4-20250514"
        assert seen["body"]["messages"][0] == {"role": "system", "content": "sys"}
        assert seen["body"]["tools"][0]["function"]["name"] == "operate"

    @pytest.mark.asyncio
    async def test_rate_limit_with_retry_after(self, provider_with):
        provider = provider_with(
            lambda request: httpx.Response(429, headers={"retry-after": "3"}, text="slow down")
        )

        response = await provider.complete([Message(role="user", content="go")])

        assert response.type == "error"
        assert response.rate_limited
        assert response.retry_after_ms == 3000

    @pytest.mark.asyncio
    async def test_rate_limit_without_hint(self, provider_with):
        provider = provider_with(lambda request: httpx.Response(429, text="slow down"))

        response = await provider.complete([Message(role="user", content="go")])

        assert response.rate_limited
        assert response.retry_after_ms is None

    @pytest.mark.asyncio
    async def test_server_error_is_not_rate_limited(self, provider_with):
        provider = provider_with(lambda request: httpx.Response(500, text="boom"))

        response = await provider.complete([Message(role="user", content="go")])

        assert response.type == "error"
        assert not response.rate_limited
        assert response.error == "LLM API error: 500 - boom"

    @pytest.mark.asyncio
    async def test_non_json_body(self, provider_with):
        provider = provider_with(lambda request: httpx.Response(200, text="<html>gateway</html>"))

        response = await provider.complete([Message(role="user", content="go")])

        assert response.type == "error"
        assert not response.rate_limited
        assert response.error.startswith("LLM response is not JSON")

    @pytest.mark.asyncio
    async def test_body_without_choices(self, provider_with):
        provider = provider_with(lambda request: httpx.Response(200, json={"model": "worker-model"}))

        response = await provider.complete([Message(role="user", content="go")])

        assert response.type == "error"
        assert response.error == "Malformed LLM response (KeyError: 'choices')"

    @pytest.mark.asyncio
    async def test_transport_error(self, provider_with):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = provider_with(handler)

        response = await provider.complete([Message(role="user", content="go")])

        assert response.type == "error"
        assert response.error.startswith("LLM transport error")


class TestProviderFactory:
    """Test provider creation and configuration errors."""

    def test_unknown_type(self):
        with pytest.raises(ProviderConfigurationError):
            create_provider("carrier-pigeon", api_key="k")

    def test_missing_key(self):
        with pytest.raises(ProviderConfigurationError):
            create_provider("anthropic")

    def test_openai_requires_base_url(self):
        with pytest.raises(ProviderConfigurationError):
            create_provider("openai-compatible", api_key="k")

    def test_creates_anthropic(self):
        provider = create_provider("anthropic", api_key="k", model="planner-model")

        assert isinstance(provider, AnthropicProvider)
        assert provider.get_model_for_tier(ModelTier.SONNET) == "planner-model"
        assert provider.get_model_for_tier(None) == "planner-model"

    def test_from_env_without_credentials(self, monkeypatch):
        for name in ("OPENAI_API_BASE", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "ANTHROPIC_BASE_URL"):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ProviderConfigurationError):
            create_provider_from_env()

    def test_from_env_prefers_openai_compatible(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_BASE", "http://localhost:11434/v1")
        monkeypatch.setenv("OPENAI_API_KEY", "local")
        monkeypatch.setenv("WORKER_MODEL", "small-model")

        provider = create_provider_from_env()

        assert isinstance(provider, OpenAICompatibleProvider)
        assert provider.get_model_for_tier(ModelTier.HAIKU) == "small-model"

    def test_sdk_retries_disabled(self):
        assert LLMConfig(api_key="k").max_retries == 0
