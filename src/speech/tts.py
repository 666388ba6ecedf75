"""Text-to-speech synthesis for assistant replies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from openai import AsyncOpenAI

from agents.backoff import BackoffRetrier
from agents.errors import SynthesisError, UpstreamError
from integrations.upstream import openai_errors

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TTSConfig:
    model: str = "tts-1"
    voice: str = "alloy"
    response_format: str = "mp3"


class BaseSynthesizer(ABC):
    """Interface for all text-to-speech synthesizers."""

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Synthesize speech for the given text.

        Raises:
            SynthesisError: when no audio could be produced.
        """


class OpenAISynthesizer(BaseSynthesizer):
    """OpenAI speech endpoint guarded by a backoff retrier."""

    def __init__(
        self,
        client: AsyncOpenAI,
        retrier: BackoffRetrier,
        config: TTSConfig | None = None,
    ) -> None:
        self._client = client
        self._retrier = retrier
        self._config = config or TTSConfig()

    @property
    def mime_type(self) -> str:
        return f"audio/{self._config.response_format}"

    async def synthesize(self, text: str) -> bytes:
        async def _call() -> bytes:
            with openai_errors("OpenAI speech"):
                response = await self._client.audio.speech.create(
                    model=self._config.model,
                    voice=self._config.voice,
                    input=text,
                    response_format=self._config.response_format,
                )
            return response.content

        try:
            audio = await self._retrier.run(_call, label="Speech synthesis")
        except UpstreamError as exc:
            raise SynthesisError(f"Speech synthesis failed: {exc.detail}") from exc

        if not audio:
            raise SynthesisError("Speech synthesis returned no audio.")
        return audio
