"""LLM module."""

from .llm_provider import (
    Completion,
    ILLMProvider,
    LLMProvider,
    MockLLMProvider,
    TokenUsage,
    estimate_tokens,
)

__all__ = [
    "Completion",
    "ILLMProvider",
    "LLMProvider",
    "MockLLMProvider",
    "TokenUsage",
    "estimate_tokens",
]
