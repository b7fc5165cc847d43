"""LLM Provider implementation using Anthropic Claude API."""

import math
import os
from dataclasses import dataclass
from typing import Protocol

import anthropic

from ..config import DEFAULT_MODEL
from ..errors import CompletionError


@dataclass(frozen=True)
class TokenUsage:
    """Token accounting for one completion."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class Completion:
    """Text returned by the completion service plus its cost."""

    text: str
    usage: TokenUsage = TokenUsage()


class ILLMProvider(Protocol):
    """Abstraction for LLM access."""

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> Completion:
        """Generate completion. Raises CompletionError on failure."""
        ...


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(self, api_key: str | None = None, model: str = DEFAULT_MODEL):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> Completion:
        """Generate completion using Claude API."""
        if not messages:
            raise CompletionError("No messages to complete")

        params: dict = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if system:
            params["system"] = system
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = await self._client.messages.create(**params)
        except Exception as e:
            raise CompletionError(f"LLM API error: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        )
        usage = getattr(response, "usage", None)
        return Completion(
            text=text,
            usage=TokenUsage(
                input_tokens=getattr(usage, "input_tokens", 0) or 0,
                output_tokens=getattr(usage, "output_tokens", 0) or 0,
            ),
        )


def estimate_tokens(text: str) -> int:
    """Rough token estimate: about four characters per token."""
    return math.ceil(len(text) / 4)


class MockLLMProvider:
    """Offline provider producing deterministic text; used when no API key is set."""

    def __init__(self, model: str = "mock-model"):
        self._model = model
        self.calls: list[dict] = []

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> Completion:
        """Echo the last user turn, prefixed with the persona's first line."""
        if not messages:
            raise CompletionError("No messages to complete")

        self.calls.append({"messages": messages, "system": system})

        prompt = messages[-1]["content"]
        persona = (system or "").strip().splitlines()[0] if system else "Assistant"
        text = f"[{self._model}] {persona}\n\nResponse to: {prompt}"[: max_tokens * 4]

        prompt_text = (system or "") + "".join(m["content"] for m in messages)
        return Completion(
            text=text,
            usage=TokenUsage(
                input_tokens=estimate_tokens(prompt_text),
                output_tokens=estimate_tokens(text),
            ),
        )
