"""
LLM Provider Abstraction

The reasoning service consulted by agent sessions, behind one interface:
- Anthropic Claude (native tool use)
- OpenAI-compatible APIs (OpenRouter, local models, etc.)
"""

from .provider import (
    LLMConfig,
    LLMProvider,
    LLMResponse,
    Message,
    ModelTier,
    ToolCall,
    ToolResponse,
    parse_retry_after,
)
from .anthropic_provider import AnthropicProvider
from .openai_compatible_provider import OpenAICompatibleProvider
from .factory import create_provider, create_provider_from_env

__all__ = [
    "LLMProvider",
    "LLMConfig",
    "ModelTier",
    "Message",
    "ToolCall",
    "ToolResponse",
    "LLMResponse",
    "parse_retry_after",
    "AnthropicProvider",
    "OpenAICompatibleProvider",
    "create_provider_from_env",
    "create_provider",
]
