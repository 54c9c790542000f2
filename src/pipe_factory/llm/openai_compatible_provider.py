"""
OpenAI-Compatible LLM Provider

Universal provider for any API that follows the OpenAI chat completion
format with function calling: OpenRouter, local models (Ollama,
LM Studio) and other compatible services.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .provider import (
    LLMConfig,
    LLMProvider,
    LLMResponse,
    Message,
    ModelTier,
    ToolCall,
    parse_retry_after,
)

logger = logging.getLogger(__name__)


def to_openai_messages(messages: List[Message], system: Optional[str] = None) -> List[Dict[str, Any]]:
    """Convert session history to the chat completions format."""
    converted: List[Dict[str, Any]] = []
    if system:
        converted.append({"role": "system", "content": system})
    for msg in messages:
        if msg.role == "assistant":
            entry: Dict[str, Any] = {"role": "assistant", "content": msg.content or None}
            if msg.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.args)},
                    }
                    for call in msg.tool_calls
                ]
            converted.append(entry)
        elif msg.tool_results:
            # Attachments are dropped; most compatible servers reject images in tool messages
            for result in msg.tool_results:
                converted.append({
                    "role": "tool",
                    "tool_call_id": result.call_id,
                    "content": result.response,
                })
            if msg.content:
                converted.append({"role": "user", "content": msg.content})
        else:
            converted.append({"role": msg.role, "content": msg.content})
    return converted


def to_openai_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": t["name"],
                "description": t["description"],
                "parameters": t["input_schema"],
            },
        }
        for t in tools
    ]


def parse_tool_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Malformed tool arguments: %s", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAICompatibleProvider(LLMProvider):
    """
    OpenAI-compatible API provider.

    HTTP 429 becomes a rate-limited error response using the Retry-After
    header when the server sends one.
    """

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout,
            )

    async def complete(
        self,
        messages: List[Message],
        tier: Optional[ModelTier] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        system: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        await self.initialize()

        model = self.get_model_for_tier(tier)
        payload: Dict[str, Any] = {
            "model": model,
            "messages": to_openai_messages(messages, system),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        if tools:
            payload["tools"] = to_openai_tools(tools)

        try:
            response = await self._client.post("/chat/completions", json=payload)
            if response.status_code == 429:
                retry_after = parse_retry_after(response.headers.get("retry-after"))
                logger.warning("Rate limited by %s (retry after %s ms)", self.config.base_url, retry_after)
                return LLMResponse.failure(
                    f"Rate limited: {response.text}", rate_limited=True, retry_after_ms=retry_after
                )
            response.raise_for_status()
            data = response.json()
        except ValueError as e:
            return LLMResponse.failure(f"LLM response is not JSON: {e}")
        except httpx.TimeoutException:
            return LLMResponse.failure(f"LLM request timed out after {self.config.timeout}s")
        except httpx.HTTPStatusError as e:
            return LLMResponse.failure(f"LLM API error: {e.response.status_code} - {e.response.text}")
        except httpx.HTTPError as e:
            return LLMResponse.failure(f"LLM transport error: {e}")

        try:
            return self._convert(data, model)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            return LLMResponse.failure(f"Malformed LLM response ({type(e).__name__}: {e})")

    @staticmethod
    def _convert(data: Dict[str, Any], model: str) -> LLMResponse:
        choice = data["choices"][0]
        message = choice.get("message", {})
        calls = [
            ToolCall(
                id=raw.get("id", f"call_{i}"),
                name=raw["function"]["name"],
                args=parse_tool_arguments(raw["function"].get("arguments")),
            )
            for i, raw in enumerate(message.get("tool_calls") or [])
        ]
        usage = data.get("usage", {})
        return LLMResponse(
            type="tool_calls" if calls else "text",
            content=message.get("content") or "",
            tool_calls=calls,
            model=data.get("model", model),
            usage={
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
            stop_reason=choice.get("finish_reason"),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
