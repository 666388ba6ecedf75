"""Live call orchestration: inbound audio to spoken advice and back."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from agents.aggregator import UtteranceAggregator
from agents.errors import (
    AssistantError,
    SynthesisError,
    TranscriptionLostError,
    TranscriptionSetupError,
    TransportError,
    UpstreamError,
)
from agents.fallback import select_fallback
from integrations.twilio_streaming import audio_message
from llm.advice import AdviceGenerator
from speech.transcriber import TextFragment, TranscriptionSession
from speech.tts import BaseSynthesizer
from telephony.channel import AudioChannel

LOGGER = logging.getLogger(__name__)


class CallState(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class ReplySequencer:
    """Releases outbound replies in the order their utterances were flushed.

    A turn that produces nothing still has to report in, otherwise every later
    reply would wait for it forever.
    """

    def __init__(self, send: Callable[[dict[str, Any]], bool]) -> None:
        self._send = send
        self._issued = 0
        self._next = 0
        self._ready: dict[int, dict[str, Any] | None] = {}

    def reserve(self) -> int:
        seq = self._issued
        self._issued += 1
        return seq

    def complete(self, seq: int, message: dict[str, Any] | None) -> None:
        if seq < self._next or seq in self._ready:
            raise ValueError(f"Reply slot {seq} already completed")
        self._ready[seq] = message
        while self._next in self._ready:
            ready = self._ready.pop(self._next)
            self._next += 1
            if ready is not None:
                self._send(ready)

    @property
    def waiting(self) -> int:
        return len(self._ready)


class CallSession:
    """Owns the channel and transcription session of one call for its whole life."""

    def __init__(
        self,
        call_id: str,
        channel: AudioChannel,
        transcription: TranscriptionSession,
        advice: AdviceGenerator,
        synthesizer: BaseSynthesizer,
        *,
        language: str = "en",
        word_threshold: int = 5,
        max_buffer_chars: int = 2000,
        fallback: Callable[[str], str] = select_fallback,
    ) -> None:
        self.call_id = call_id
        self.close_reason: str | None = None
        self._channel = channel
        self._transcription = transcription
        self._advice = advice
        self._synthesizer = synthesizer
        self._language = language
        self._fallback = fallback
        self._state = CallState.CONNECTING
        self._aggregator = UtteranceAggregator(
            self._dispatch_turn,
            word_threshold=word_threshold,
            max_chars=max_buffer_chars,
        )
        self._sequencer = ReplySequencer(channel.send_outbound)
        self._turns: set[asyncio.Task] = set()
        self._closer: asyncio.Task | None = None

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def pending_turns(self) -> int:
        return len(self._turns)

    async def run(self) -> None:
        """Drive the call until the channel closes."""

        self._channel.on_inbound_chunk(self._on_inbound)
        self._channel.on_close(self._on_close)
        self._transcription.on_fragment(self._on_fragment)
        self._transcription.on_lost(self._on_transcription_lost)

        LOGGER.info("Call %s connecting", self.call_id)
        try:
            await self._transcription.start(self._language)
        except TranscriptionSetupError as exc:
            LOGGER.error("Call %s transcription setup failed: %s", self.call_id, exc.detail)
            self.close_reason = exc.detail
            self._state = CallState.CLOSING
            await self._channel.close(TransportError(exc.detail))
            await self._teardown()
            return

        if self._state is CallState.CONNECTING:
            self._state = CallState.ACTIVE
            LOGGER.info("Call %s active", self.call_id)
        await self._channel.serve()

    async def drain(self) -> None:
        """Wait for every dispatched turn to finish."""

        while self._turns:
            await asyncio.gather(*list(self._turns), return_exceptions=True)

    async def _on_inbound(self, chunk: bytes) -> None:
        if self._state is not CallState.ACTIVE:
            return
        await self._transcription.feed(chunk)

    def _on_fragment(self, fragment: TextFragment) -> None:
        if self._state is not CallState.ACTIVE:
            return
        self._aggregator.append(fragment.text)

    def _on_transcription_lost(self, reason: str) -> None:
        if self._state is not CallState.ACTIVE or self._closer is not None:
            return
        LOGGER.error("Call %s lost transcription: %s", self.call_id, reason)
        self._closer = asyncio.create_task(self._channel.close(TranscriptionLostError(reason)))

    def _dispatch_turn(self, utterance: str) -> None:
        seq = self._sequencer.reserve()
        task = asyncio.create_task(self._run_turn(seq, utterance))
        self._turns.add(task)
        task.add_done_callback(self._turns.discard)

    async def _run_turn(self, seq: int, utterance: str) -> None:
        message = None
        try:
            text = await self._reply_text(utterance)
            try:
                audio = await self._synthesizer.synthesize(text)
            except SynthesisError as exc:
                LOGGER.error("Call %s turn %d skipped: %s", self.call_id, seq, exc.detail)
                return
            message = audio_message(audio)
        except Exception:
            LOGGER.exception("Call %s turn %d failed", self.call_id, seq)
        finally:
            self._sequencer.complete(seq, message)

    async def _reply_text(self, utterance: str) -> str:
        try:
            reply = await self._advice.generate(utterance)
        except UpstreamError as exc:
            LOGGER.warning("Call %s advice unavailable, using fallback: %s", self.call_id, exc.detail)
            return self._fallback(utterance)
        return reply.text

    async def _on_close(self, reason: AssistantError | None) -> None:
        if self._state in (CallState.CLOSING, CallState.CLOSED):
            return
        self._state = CallState.CLOSING
        if reason is not None:
            self.close_reason = reason.detail
        await self._teardown()

    async def _teardown(self) -> None:
        try:
            await self._transcription.end()
        finally:
            self._aggregator.discard()
            self._state = CallState.CLOSED
            LOGGER.info(
                "Call %s closed (%d turn(s) still in flight)", self.call_id, len(self._turns)
            )
