"""LLM provider abstraction module."""

from chatcompact.providers.base import LLMProvider, LLMResponse

__all__ = ["LLMProvider", "LLMResponse"]
