"""
Anthropic Claude LLM Provider

Native implementation for Anthropic's Claude API with tool use.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage

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


def to_anthropic_messages(messages: List[Message]) -> List[Dict[str, Any]]:
    """Convert session history to Anthropic content blocks."""
    converted = []
    for msg in messages:
        if msg.role == "assistant":
            blocks: List[Dict[str, Any]] = []
            if msg.content:
                blocks.append({"type": "text", "text": msg.content})
            for call in msg.tool_calls:
                blocks.append({
                    "type": "tool_use",
                    "id": call.id,
                    "name": call.name,
                    "input": call.args,
                })
            converted.append({"role": "assistant", "content": blocks or msg.content})
        elif msg.tool_results:
            blocks = []
            for result in msg.tool_results:
                content: List[Dict[str, Any]] = [{"type": "text", "text": result.response}]
                if result.attachment:
                    content.append({
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": "image/png",
                            "data": base64.b64encode(result.attachment).decode("ascii"),
                        },
                    })
                blocks.append({
                    "type": "tool_result",
                    "tool_use_id": result.call_id,
                    "content": content,
                    "is_error": result.is_error,
                })
            if msg.content:
                blocks.append({"type": "text", "text": msg.content})
            converted.append({"role": "user", "content": blocks})
        else:
            converted.append({"role": msg.role, "content": msg.content})
    return converted


class AnthropicProvider(LLMProvider):
    """
    Anthropic Claude API provider.

    Uses the official Anthropic Python SDK. Rate limits come back as
    rate-limited error responses carrying the server's retry-after hint.
    """

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client: Optional[AsyncAnthropic] = None

    async def initialize(self) -> None:
        """Initialize the Anthropic async client."""
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=self.config.api_key,
                base_url=self.config.base_url,  # Can override for proxy
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
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

        params: Dict[str, Any] = {
            "model": self.get_model_for_tier(tier),
            "messages": to_anthropic_messages(messages),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        if system:
            params["system"] = system
        if tools:
            params["tools"] = tools

        try:
            response: AnthropicMessage = await self._client.messages.create(**params)
        except anthropic.RateLimitError as e:
            retry_after = parse_retry_after(e.response.headers.get("retry-after"))
            logger.warning("Anthropic rate limit hit (retry after %s ms)", retry_after)
            return LLMResponse.failure(str(e), rate_limited=True, retry_after_ms=retry_after)
        except anthropic.APIError as e:
            logger.error("Anthropic API error: %s", e)
            return LLMResponse.failure(f"LLM API error: {e}")

        return self._convert(response)

    @staticmethod
    def _convert(response: AnthropicMessage) -> LLMResponse:
        text_parts = []
        calls = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                calls.append(ToolCall(id=block.id, name=block.name, args=dict(block.input or {})))

        usage = {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
            "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
        }
        return LLMResponse(
            type="tool_calls" if calls else "text",
            content="\n".join(text_parts),
            tool_calls=calls,
            model=response.model,
            usage=usage,
            stop_reason=response.stop_reason,
        )

    async def close(self) -> None:
        """Close the Anthropic client."""
        if self._client:
            await self._client.close()
            self._client = None
