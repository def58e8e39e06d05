from typing import Any

from .base import LLMProvider
from .providers import OpenRouterProvider

OPENAI_BASE_URL = "https://api.openai.com/v1"


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider instance.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Provider type ('openrouter', 'openai')
        **config: Provider-specific configuration
            For OpenRouter:
                - api_key: str (required)
                - model: str (default: 'mistralai/mistral-7b-instruct:free')
                - base_url: str (default: 'https://openrouter.ai/api/v1')
            For OpenAI:
                - api_key: str (required)
                - model: str (required, e.g. 'gpt-4o-mini')

    Returns:
        Initialized LLM provider instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> provider = create_llm_provider(
        ...     "openrouter",
        ...     api_key="sk-or-...",
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower == "openrouter":
        if "api_key" not in config:
            raise TypeError("OpenRouter provider requires 'api_key' in config")
        return OpenRouterProvider(**config)

    if provider_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI provider requires 'api_key' in config")
        if "model" not in config:
            raise TypeError("OpenAI provider requires 'model' in config")
        # Same wire protocol, no OpenRouter attribution headers
        config.setdefault("base_url", OPENAI_BASE_URL)
        config.setdefault("referer", None)
        config.setdefault("title", None)
        return OpenRouterProvider(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'openrouter', 'openai'"
    )
