"""Per-call duplex audio transport."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from agents.errors import AssistantError, TransportError
from integrations.twilio_streaming import is_inbound_audio, parse_media_stream_event

LOGGER = logging.getLogger(__name__)

NORMAL_CLOSE_CODES = frozenset({1000, 1001, 1005})

InboundHandler = Callable[[bytes], Awaitable[None]]
CloseHandler = Callable[[AssistantError | None], Awaitable[None] | None]


class AudioChannel(ABC):
    """Full-duplex audio transport bound to one call.

    Inbound chunks are pushed to a single handler in arrival order. Outbound
    messages are queued without blocking and leave in the order they were
    queued. Close handlers fire exactly once; afterwards nothing is delivered
    and outbound messages are dropped.
    """

    @property
    @abstractmethod
    def closed(self) -> bool: ...

    @abstractmethod
    def on_inbound_chunk(self, handler: InboundHandler) -> None: ...

    @abstractmethod
    def on_close(self, handler: CloseHandler) -> None: ...

    @abstractmethod
    def send_outbound(self, message: dict[str, Any]) -> bool:
        """Queue a message; returns False when it was dropped because the channel is closed."""

    @abstractmethod
    async def serve(self) -> None:
        """Pump the transport until it closes."""

    @abstractmethod
    async def close(self, reason: AssistantError | None = None) -> None: ...


class WebSocketAudioChannel(AudioChannel):
    """AudioChannel over a FastAPI WebSocket.

    Binary frames are raw audio. Text frames are Twilio Media Streams events,
    of which only inbound-track media is forwarded; a ``stop`` event ends the
    stream.
    """

    def __init__(self, websocket: WebSocket, *, call_id: str = "unknown") -> None:
        self.call_id = call_id
        self.stream_sid: str | None = None
        self._ws = websocket
        self._outbound: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._inbound_handler: InboundHandler | None = None
        self._close_handlers: list[CloseHandler] = []
        self._closed = False
        self._error: TransportError | None = None
        self._reader: asyncio.Task | None = None
        self._writer: asyncio.Task | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def on_inbound_chunk(self, handler: InboundHandler) -> None:
        self._inbound_handler = handler

    def on_close(self, handler: CloseHandler) -> None:
        self._close_handlers.append(handler)

    def send_outbound(self, message: dict[str, Any]) -> bool:
        if self._closed:
            LOGGER.debug("Channel %s closed; dropping outbound %s message", self.call_id, message.get("type"))
            return False
        self._outbound.put_nowait(message)
        return True

    async def serve(self) -> None:
        if self._closed:
            return

        self._writer = asyncio.create_task(self._write_loop())
        self._reader = asyncio.create_task(self._read_loop())
        try:
            await asyncio.wait({self._reader})
        finally:
            reader = self._reader
            if not reader.done():
                reader.cancel()
            elif not reader.cancelled() and reader.exception() is not None and self._error is None:
                exc = reader.exception()
                LOGGER.error("Audio stream %s failed: %r", self.call_id, exc)
                self._error = TransportError(f"Audio stream failed: {exc!r}")
            await self._shutdown(self._error)

    async def close(self, reason: AssistantError | None = None) -> None:
        await self._shutdown(reason)

    async def _read_loop(self) -> None:
        while not self._closed:
            message = await self._ws.receive()
            if message["type"] == "websocket.disconnect":
                code = message.get("code", 1000)
                LOGGER.info("Audio stream %s disconnected (code=%s)", self.call_id, code)
                if code not in NORMAL_CLOSE_CODES:
                    self._error = TransportError(f"Client disconnected abnormally (code={code})")
                return
            if not await self._handle_frame(message):
                return

    async def _handle_frame(self, message: dict[str, Any]) -> bool:
        data = message.get("bytes")
        if data is not None:
            await self._deliver(data)
            return True

        text = message.get("text")
        if text is None:
            return True

        try:
            event = parse_media_stream_event(text)
        except ValueError:
            LOGGER.warning("Ignoring malformed media stream frame on %s", self.call_id)
            return True

        if event.event == "start":
            self.stream_sid = event.stream_sid
            if event.call_sid:
                self.call_id = event.call_sid
            LOGGER.info("Media stream started (call=%s, stream=%s)", self.call_id, self.stream_sid)
        elif event.event == "stop":
            LOGGER.info("Media stream %s stopped by provider", self.call_id)
            return False
        elif is_inbound_audio(event):
            await self._deliver(event.audio or b"")
        return True

    async def _deliver(self, chunk: bytes) -> None:
        if chunk and self._inbound_handler is not None and not self._closed:
            await self._inbound_handler(chunk)

    async def _write_loop(self) -> None:
        while True:
            message = await self._outbound.get()
            try:
                await self._ws.send_text(json.dumps(message))
            except (RuntimeError, OSError, WebSocketDisconnect) as exc:
                self._error = self._error or TransportError(f"Outbound send failed: {exc!r}")
                if self._reader is not None:
                    self._reader.cancel()
                return

    async def _shutdown(self, reason: AssistantError | None) -> None:
        if self._closed:
            return
        self._closed = True

        current = asyncio.current_task()
        for task in (self._reader, self._writer):
            if task is not None and task is not current and not task.done():
                task.cancel()

        await self._close_socket()

        if reason is not None:
            LOGGER.warning("Audio channel %s closed: %s", self.call_id, reason.detail)
        else:
            LOGGER.info("Audio channel %s closed", self.call_id)

        for handler in self._close_handlers:
            try:
                result = handler(reason)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                LOGGER.exception("Close handler failed for %s", self.call_id)

    async def _close_socket(self) -> None:
        client_state = getattr(self._ws, "client_state", None)
        app_state = getattr(self._ws, "application_state", None)
        if WebSocketState.DISCONNECTED in (client_state, app_state):
            return
        try:
            await self._ws.close()
        except RuntimeError as exc:
            LOGGER.debug("WebSocket already closed: %s", exc)
