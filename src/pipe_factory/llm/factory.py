"""
LLM Provider Factory

Creates provider instances from the environment (.env) or explicit
configuration.
"""

import os
from typing import Optional
from dotenv import load_dotenv

from ..errors import ProviderConfigurationError
from .provider import LLMConfig, LLMProvider, ModelTier
from .anthropic_provider import AnthropicProvider
from .openai_compatible_provider import OpenAICompatibleProvider

load_dotenv()


def _tier_models_from_env() -> dict[ModelTier, str]:
    planner = os.getenv("PLANNER_MODEL", "claude-sonnet-4-20250514")
    return {
        ModelTier.SONNET: planner,
        ModelTier.HAIKU: os.getenv("WORKER_MODEL", "claude-haiku-4-20250514"),
        ModelTier.OPUS: os.getenv("OPUS_MODEL", "claude-opus-4-20250514"),
    }


def create_provider_from_env() -> LLMProvider:
    """
    Create an LLM provider instance from environment variables.

    Reads:
    - OPENAI_API_BASE + OPENAI_API_KEY: OpenAI-compatible endpoint
    - ANTHROPIC_API_KEY (+ optional ANTHROPIC_BASE_URL): Anthropic Claude
    - PLANNER_MODEL, WORKER_MODEL: model tier mappings

    Raises:
        ProviderConfigurationError: If neither provider is configured
    """
    tier_models = _tier_models_from_env()

    base_url = os.getenv("OPENAI_API_BASE")
    api_key = os.getenv("OPENAI_API_KEY")
    if base_url and api_key:
        config = LLMConfig(
            api_key=api_key,
            base_url=base_url,
            provider_type="openai-compatible",
            model=tier_models[ModelTier.SONNET],
            tier_models=tier_models,
        )
        return OpenAICompatibleProvider(config)

    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise ProviderConfigurationError(
            "No LLM provider configured. Set either:\n"
            "  - ANTHROPIC_API_KEY for Anthropic Claude\n"
            "  - OPENAI_API_BASE + OPENAI_API_KEY for OpenAI-compatible provider\n"
            "or run with --offline"
        )

    config = LLMConfig(
        api_key=api_key,
        base_url=os.getenv("ANTHROPIC_BASE_URL"),
        provider_type="anthropic",
        model=tier_models[ModelTier.SONNET],
        tier_models=tier_models,
    )
    return AnthropicProvider(config)


def create_provider(
    provider_type: str = "anthropic",
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    model: str = "claude-sonnet-4-20250514",
    tier_models: Optional[dict[ModelTier, str]] = None,
    **kwargs,
) -> LLMProvider:
    """
    Create an LLM provider with explicit configuration.

    Args:
        provider_type: "anthropic" or "openai-compatible"
        api_key: API key for the provider
        base_url: Base URL (optional for Anthropic, required for OpenAI-compatible)
        model: Default model name
        tier_models: Mapping of ModelTier to model names
        **kwargs: Additional LLMConfig parameters
    """
    if provider_type not in ("anthropic", "openai-compatible"):
        raise ProviderConfigurationError(f"Unknown provider type: {provider_type}")
    if not api_key:
        raise ProviderConfigurationError(f"An API key is required for {provider_type}")
    if provider_type == "openai-compatible" and not base_url:
        raise ProviderConfigurationError("base_url is required for openai-compatible providers")

    if tier_models is None:
        tier_models = {
            ModelTier.SONNET: model,
            ModelTier.HAIKU: "claude-haiku-4-20250514",
            ModelTier.OPUS: "claude-opus-4-20250514",
        }

    config = LLMConfig(
        api_key=api_key,
        base_url=base_url,
        model=model,
        tier_models=tier_models,
        provider_type=provider_type,
        **kwargs,
    )

    if provider_type == "openai-compatible":
        return OpenAICompatibleProvider(config)
    return AnthropicProvider(config)
