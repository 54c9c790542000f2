"""
Base LLM Provider Interface and Configuration

Defines the contract between agent sessions and the reasoning service:
messages carry text, tool calls and tool responses; a response is either
final text, a batch of tool calls, or an error (possibly rate-limited).
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from dataclasses import dataclass, field
from pydantic import BaseModel, Field


class ModelTier(str, Enum):
    """
    Model tier classification for the agent hierarchy.

    - sonnet: the planner, which reads the whole step digest
    - haiku: worker sessions, which call a handful of primitive tools
    - opus: available for harder orders
    """

    SONNET = "sonnet"
    HAIKU = "haiku"
    OPUS = "opus"


@dataclass
class LLMConfig:
    """
    Configuration for LLM provider connection.

    Supports both Anthropic native and OpenAI-compatible APIs.
    """

    api_key: str
    base_url: Optional[str] = None  # None for Anthropic native, URL for OpenAI-compatible
    model: str = "claude-sonnet-4-20250514"

    tier_models: Dict[ModelTier, str] = field(default_factory=lambda: {
        ModelTier.SONNET: "claude-sonnet-4-20250514",
        ModelTier.HAIKU: "claude-haiku-4-20250514",
        ModelTier.OPUS: "claude-opus-4-20250514",
    })

    max_tokens: int = 4096
    temperature: float = 0.2
    timeout: int = 60
    # SDK-level retries are off; AgentSession owns rate-limit backoff
    max_retries: int = 0

    provider_type: str = "anthropic"  # "anthropic" or "openai-compatible"

    def get_model_for_tier(self, tier: ModelTier) -> str:
        """Get the model name for a given tier."""
        return self.tier_models.get(tier, self.model)


class ToolCall(BaseModel):
    """One tool invocation requested by the reasoning service."""

    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ToolResponse(BaseModel):
    """Result of resolving a ToolCall, sent back on the next turn."""

    call_id: str
    name: str
    response: str
    is_error: bool = False
    attachment: Optional[bytes] = None


class Message(BaseModel):
    """
    Chat message representation.

    Assistant turns may carry tool_calls; user turns may carry
    tool_results for the previous batch.
    """

    role: str  # "user" or "assistant"
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_results: List[ToolResponse] = Field(default_factory=list)


class LLMResponse(BaseModel):
    """Response from LLM provider."""

    type: Literal["text", "tool_calls", "error"]
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    error: Optional[str] = None
    rate_limited: bool = False
    retry_after_ms: Optional[int] = None
    model: str = ""
    usage: Dict[str, int] = Field(default_factory=dict)
    stop_reason: Optional[str] = None

    @classmethod
    def failure(
        cls, error: str, rate_limited: bool = False, retry_after_ms: Optional[int] = None
    ) -> "LLMResponse":
        return cls(
            type="error", error=error, rate_limited=rate_limited, retry_after_ms=retry_after_ms
        )


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Convert a Retry-After header (seconds) to milliseconds."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    if seconds < 0:
        return None
    return int(seconds * 1000)


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Providers never raise for transport or API failures; they return an
    error LLMResponse so the session can decide what to do.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client = None

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the provider client."""
        pass

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        tier: Optional[ModelTier] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        system: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Request the next turn from the reasoning service.

        Args:
            messages: Conversation history
            tier: Model tier to use (overrides config.model)
            tools: Tool definitions (name, description, input_schema)
            system: System prompt
            **kwargs: Additional provider-specific parameters

        Returns:
            LLMResponse of type text, tool_calls or error
        """
        pass

    def get_model_for_tier(self, tier: Optional[ModelTier]) -> str:
        """Get the appropriate model for the given tier."""
        if tier is None:
            return self.config.model
        return self.config.get_model_for_tier(tier)

    async def close(self) -> None:
        """Close the provider connection."""
        if self._client:
            await self._client.close()
            self._client = None
