"""Speech-to-text: realtime sessions for live calls and one-shot recordings."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import websockets
from openai import AsyncOpenAI
from websockets.exceptions import ConnectionClosed, WebSocketException

from agents.backoff import BackoffRetrier
from agents.errors import NoSpeechDetectedError, TranscriptionSetupError
from integrations.upstream import openai_errors

LOGGER = logging.getLogger(__name__)

COMPLETED_EVENT = "conversation.item.input_audio_transcription.completed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TextFragment:
    """A piece of transcribed speech as produced by the remote service."""

    text: str
    received_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class TranscriberConfig:
    api_key: str
    url: str = "wss://api.openai.com/v1/realtime?intent=transcription"
    model: str = "whisper-1"
    input_audio_format: str = "g711_ulaw"
    setup_timeout_seconds: float = 10.0
    silence_duration_ms: int = 500


FragmentHandler = Callable[[TextFragment], None]
LostHandler = Callable[[str], None]


class TranscriptionSession:
    """One realtime transcription connection, bound to one call.

    Audio goes in through ``feed`` in arrival order. Transcripts come back on
    a background receive task and are handed to the ``on_fragment`` handler.
    The connection is closed by ``end`` on every path, including failed setup.
    """

    def __init__(self, config: TranscriberConfig, *, connect: Callable[..., Any] = websockets.connect) -> None:
        self._config = config
        self._connect = connect
        self._ws: Any = None
        self._receiver: asyncio.Task | None = None
        self._handler: FragmentHandler | None = None
        self._lost_handler: LostHandler | None = None
        self._ended = False
        self._lost = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ended and not self._lost

    def on_fragment(self, handler: FragmentHandler) -> None:
        self._handler = handler

    def on_lost(self, handler: LostHandler) -> None:
        """Called once with a reason if the service drops the connection before ``end``."""

        self._lost_handler = handler

    async def start(self, language: str) -> TranscriptionSession:
        if self._ws is not None:
            raise RuntimeError("Transcription session already started")

        try:
            self._ws = await self._connect(
                self._config.url,
                additional_headers={
                    "Authorization": f"Bearer {self._config.api_key}",
                    "OpenAI-Beta": "realtime=v1",
                },
                ping_interval=20,
                ping_timeout=20,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise TranscriptionSetupError(f"Could not connect to transcription service: {exc}") from exc

        try:
            await self._ws.send(json.dumps(self._session_update(language)))
            await asyncio.wait_for(
                self._await_configured(), timeout=self._config.setup_timeout_seconds
            )
        except TranscriptionSetupError:
            await self.end()
            raise
        except (OSError, ValueError, asyncio.TimeoutError, WebSocketException) as exc:
            await self.end()
            raise TranscriptionSetupError(f"Transcription session setup failed: {exc!r}") from exc

        self._receiver = asyncio.create_task(self._receive_loop())
        LOGGER.info("Transcription session started (model=%s, language=%s)", self._config.model, language)
        return self

    async def feed(self, chunk: bytes) -> None:
        if not chunk or not self.is_open:
            return
        try:
            await self._ws.send(
                json.dumps(
                    {
                        "type": "input_audio_buffer.append",
                        "audio": base64.b64encode(chunk).decode("ascii"),
                    }
                )
            )
        except ConnectionClosed as exc:
            self._connection_lost(f"Transcription service closed the connection: {exc}")

    async def end(self) -> None:
        """Signal end of audio and release the connection. Safe to call repeatedly."""

        if self._ended:
            return
        self._ended = True
        ws, self._ws = self._ws, None
        try:
            if ws is not None:
                try:
                    await ws.send(json.dumps({"type": "input_audio_buffer.commit"}))
                except WebSocketException as exc:
                    LOGGER.debug("End-of-audio signal not delivered: %s", exc)
        finally:
            if self._receiver is not None:
                self._receiver.cancel()
                try:
                    await self._receiver
                except asyncio.CancelledError:
                    pass
                self._receiver = None
            if ws is not None:
                await ws.close()
            LOGGER.info("Transcription session closed")

    async def __aenter__(self) -> TranscriptionSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.end()

    def _session_update(self, language: str) -> dict[str, Any]:
        return {
            "type": "transcription_session.update",
            "session": {
                "input_audio_format": self._config.input_audio_format,
                "input_audio_transcription": {
                    "model": self._config.model,
                    "language": language,
                },
                "turn_detection": {
                    "type": "server_vad",
                    "silence_duration_ms": self._config.silence_duration_ms,
                },
            },
        }

    async def _await_configured(self) -> None:
        async for message in self._ws:
            event = json.loads(message)
            event_type = event.get("type", "")
            if event_type == "transcription_session.updated":
                return
            if event_type == "error":
                detail = (event.get("error") or {}).get("message") or str(event)
                raise TranscriptionSetupError(f"Transcription service rejected setup: {detail}")
        raise TranscriptionSetupError("Transcription service closed the connection during setup")

    async def _receive_loop(self) -> None:
        ws = self._ws
        try:
            async for message in ws:
                try:
                    event = json.loads(message)
                except json.JSONDecodeError:
                    LOGGER.warning("Ignoring malformed transcription event")
                    continue

                event_type = event.get("type", "")
                if event_type == COMPLETED_EVENT:
                    text = (event.get("transcript") or "").strip()
                    if text:
                        LOGGER.info("Transcription: %s", text)
                        self._dispatch(TextFragment(text=text))
                elif event_type == "error":
                    error_info = event.get("error") or {}
                    LOGGER.error("Transcription service error: %s", error_info.get("message", event))
        except ConnectionClosed as exc:
            self._connection_lost(f"Transcription service closed the connection: {exc}")
            return
        self._connection_lost("Transcription service closed the connection")

    def _connection_lost(self, reason: str) -> None:
        if self._ended or self._lost:
            return
        self._lost = True
        LOGGER.warning("%s", reason)
        if self._lost_handler is None:
            return
        try:
            self._lost_handler(reason)
        except Exception:
            LOGGER.exception("Connection-lost handler failed")

    def _dispatch(self, fragment: TextFragment) -> None:
        if self._handler is None:
            return
        try:
            self._handler(fragment)
        except Exception:
            LOGGER.exception("Fragment handler failed")


class RecordingTranscriber:
    """One-shot transcription of a finished call recording."""

    def __init__(self, client: AsyncOpenAI, retrier: BackoffRetrier, *, model: str = "whisper-1") -> None:
        self._client = client
        self._retrier = retrier
        self._model = model

    async def transcribe(
        self,
        audio_bytes: bytes,
        *,
        filename: str = "recording.wav",
        content_type: str = "audio/wav",
        language: str | None = None,
    ) -> str:
        kwargs: dict[str, Any] = {}
        if language:
            kwargs["language"] = language

        async def _call() -> str:
            with openai_errors("OpenAI transcription"):
                result = await self._client.audio.transcriptions.create(
                    model=self._model,
                    file=(filename, audio_bytes, content_type),
                    **kwargs,
                )
            return result.text

        text = (await self._retrier.run(_call, label="Recording transcription")).strip()
        if not text:
            raise NoSpeechDetectedError()
        LOGGER.info("Transcription: %s", text)
        return text
