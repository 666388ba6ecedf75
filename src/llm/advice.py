"""Medical guidance generation on top of a chat-capable LLM client."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from agents.backoff import BackoffRetrier
from agents.errors import UpstreamError
from llm.base import BaseLLMClient
from prompts.loader import load_prompt

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT_FILE = "telehealth_system.txt"


@dataclass(frozen=True)
class AdviceReply:
    text: str
    token_limit: int


class AdviceGenerator:
    """Answers a single utterance. No conversation history is kept between calls."""

    def __init__(
        self,
        llm: BaseLLMClient,
        retrier: BackoffRetrier,
        *,
        max_tokens: int,
        system_prompt: str | None = None,
    ) -> None:
        self._llm = llm
        self._retrier = retrier
        self._max_tokens = max_tokens
        self._system_prompt = (system_prompt or load_prompt(SYSTEM_PROMPT_FILE)).strip()

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def build_messages(self, utterance: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": utterance.strip()},
        ]

    async def generate(self, utterance: str) -> AdviceReply:
        """Return advice for the utterance.

        Raises:
            UpstreamError: the model failed, returned nothing, or stayed rate
                limited for the whole retry budget.
        """

        messages = self.build_messages(utterance)

        async def _call() -> str:
            return await self._llm.chat(messages, max_tokens=self._max_tokens)

        text = (await self._retrier.run(_call, label="Advice generation")).strip()
        if not text:
            raise UpstreamError("Language model returned an empty reply.")

        LOGGER.info("Advice generated (%d chars, cap %d tokens)", len(text), self._max_tokens)
        return AdviceReply(text=text, token_limit=self._max_tokens)
