"""Shared abstractions for language model clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class BaseLLMClient(ABC):
    """Abstract base class for LLM providers.

    Implementations raise ``UpstreamRateLimited`` on HTTP 429 and
    ``UpstreamError`` on any other provider failure.
    """

    @abstractmethod
    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float | None = None,
    ) -> str:
        """Return a chat-style completion."""

    async def aclose(self) -> None:
        """Release network resources held by the client."""
