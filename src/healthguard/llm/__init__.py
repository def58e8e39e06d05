"""LLM providers behind the health assistant."""

from .base import LLMProvider
from .factory import create_llm_provider
from .models import Completion, CompletionStream, GenerationParams, PromptMessage, TokenUsage
from .providers import OpenRouterProvider

__all__ = [
    "Completion",
    "CompletionStream",
    "GenerationParams",
    "LLMProvider",
    "OpenRouterProvider",
    "PromptMessage",
    "TokenUsage",
    "create_llm_provider",
]
