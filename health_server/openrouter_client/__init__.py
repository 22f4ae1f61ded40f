"""OpenRouter client package."""

from .client import OpenRouterTextGenerator, request_chat_completion

__all__ = ["OpenRouterTextGenerator", "request_chat_completion"]
