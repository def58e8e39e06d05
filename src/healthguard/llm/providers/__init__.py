from .openrouter import OpenRouterProvider

__all__ = ["OpenRouterProvider"]
