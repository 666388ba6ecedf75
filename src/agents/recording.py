"""Record-and-respond: answer a finished call recording with one reply."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from agents.errors import AssistantError, UpstreamError
from agents.fallback import select_fallback
from integrations.recordings import RecordingFetcher
from llm.advice import AdviceGenerator
from speech.transcriber import RecordingTranscriber

LOGGER = logging.getLogger(__name__)

NO_RECORDING_MESSAGE = "I did not receive a recording. Please try again later."
APOLOGY_MESSAGE = "I apologize, but I encountered an error. Please try again later."

ReplySource = Literal["model", "fallback", "apology"]


@dataclass(frozen=True)
class RecordingReply:
    transcript: str
    text: str
    source: ReplySource


class RecordingResponder:
    def __init__(
        self,
        fetcher: RecordingFetcher,
        transcriber: RecordingTranscriber,
        advice: AdviceGenerator,
        *,
        language: str | None = None,
        fallback: Callable[[str], str] = select_fallback,
    ) -> None:
        self._fetcher = fetcher
        self._transcriber = transcriber
        self._advice = advice
        self._language = language
        self._fallback = fallback

    async def respond(self, recording_url: str | None) -> RecordingReply:
        """Always produces something to say back to the caller."""

        if not recording_url:
            return RecordingReply(transcript="", text=NO_RECORDING_MESSAGE, source="apology")

        try:
            recording = await self._fetcher.fetch(recording_url)
            transcript = await self._transcriber.transcribe(
                recording.content,
                filename=recording.filename,
                content_type=recording.content_type,
                language=self._language,
            )
        except AssistantError as exc:
            LOGGER.error("Error processing recording: %s", exc.detail)
            return RecordingReply(transcript="", text=APOLOGY_MESSAGE, source="apology")

        try:
            reply = await self._advice.generate(transcript)
        except UpstreamError as exc:
            LOGGER.warning("Advice unavailable for recording, using fallback: %s", exc.detail)
            return RecordingReply(transcript=transcript, text=self._fallback(transcript), source="fallback")

        return RecordingReply(transcript=transcript, text=reply.text, source="model")
