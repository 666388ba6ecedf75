"""OpenAI chat completion client wrapper."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from openai import AsyncOpenAI

from integrations.upstream import malformed_response, openai_errors
from llm.base import BaseLLMClient

LOGGER = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """Wrapper for the OpenAI Chat Completion API.

    The underlying ``AsyncOpenAI`` client is shared with the speech components,
    so closing it is left to whoever built it.
    """

    def __init__(self, client: AsyncOpenAI, *, model: str) -> None:
        self._client = client
        self._model = model

    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float | None = None,
    ) -> str:
        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        with openai_errors("OpenAI chat"):
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=list(messages),
                max_tokens=max_tokens,
                **kwargs,
            )
        with malformed_response("OpenAI chat"):
            return response.choices[0].message.content or ""
