"""In-memory stand-ins for the network-facing collaborators."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable

from agents.backoff import BackoffProfile, BackoffRetrier
from agents.errors import AssistantError, SynthesisError, TranscriptionSetupError
from llm.base import BaseLLMClient
from speech.transcriber import TextFragment
from speech.tts import BaseSynthesizer
from telephony.channel import AudioChannel


async def settle(rounds: int = 10) -> None:
    """Let pending callbacks and freshly created tasks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)


def fast_retrier(max_attempts: int = 5) -> tuple[BackoffRetrier, list[float]]:
    sleeps: list[float] = []

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    profile = BackoffProfile(base_delay_ms=100, cap_delay_ms=2000, max_attempts=max_attempts)
    return BackoffRetrier(profile, sleep=_sleep), sleeps


class ScriptedLLM(BaseLLMClient):
    """Plays back a script of replies; exceptions in the script are raised."""

    def __init__(self, script: Iterable[object] = (), *, default: str = "Please rest.") -> None:
        self.script = list(script)
        self.default = default
        self.calls: list[list[dict[str, str]]] = []
        self.max_tokens: list[int] = []
        self.gates: dict[str, asyncio.Event] = {}

    async def chat(self, messages, *, max_tokens: int, temperature: float | None = None) -> str:
        messages = list(messages)
        self.calls.append(messages)
        self.max_tokens.append(max_tokens)

        user_text = messages[-1]["content"]
        for keyword, gate in self.gates.items():
            if keyword in user_text:
                await gate.wait()

        if self.script:
            item = self.script.pop(0)
            if isinstance(item, BaseException):
                raise item
            return str(item)
        return self.default


class FakeSynthesizer(BaseSynthesizer):
    def __init__(self, audio: bytes = b"speech-bytes", *, failures: int = 0) -> None:
        self.audio = audio
        self.failures = failures
        self.texts: list[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.texts.append(text)
        if self.failures:
            self.failures -= 1
            raise SynthesisError("voice unavailable")
        return self.audio


class FakeTranscription:
    """Duck-typed TranscriptionSession."""

    def __init__(self, *, fail_setup: bool = False, echo: bool = False) -> None:
        self.fail_setup = fail_setup
        self.echo = echo
        self.language: str | None = None
        self.fed: list[bytes] = []
        self.ended = False
        self._handler = None
        self._lost_handler = None

    def on_fragment(self, handler) -> None:
        self._handler = handler

    def on_lost(self, handler) -> None:
        self._lost_handler = handler

    def drop(self, reason: str = "Transcription service closed the connection") -> None:
        assert self._lost_handler is not None
        self._lost_handler(reason)

    async def start(self, language: str):
        self.language = language
        if self.fail_setup:
            raise TranscriptionSetupError("invalid api key")
        return self

    async def feed(self, chunk: bytes) -> None:
        self.fed.append(chunk)
        if self.echo:
            self.emit(chunk.decode("utf-8"))

    def emit(self, text: str) -> None:
        assert self._handler is not None
        self._handler(TextFragment(text=text))

    async def end(self) -> None:
        self.ended = True


class FakeChannel(AudioChannel):
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.dropped: list[dict] = []
        self.close_reasons: list[AssistantError | None] = []
        self._closed = False
        self._inbound = None
        self._close_handlers = []
        self._done = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def on_inbound_chunk(self, handler) -> None:
        self._inbound = handler

    def on_close(self, handler) -> None:
        self._close_handlers.append(handler)

    def send_outbound(self, message: dict) -> bool:
        if self._closed:
            self.dropped.append(message)
            return False
        self.sent.append(message)
        return True

    async def serve(self) -> None:
        await self._done.wait()

    async def close(self, reason: AssistantError | None = None) -> None:
        if self._closed:
            return
        self._closed = True
        self.close_reasons.append(reason)
        self._done.set()
        for handler in self._close_handlers:
            await handler(reason)

    async def push(self, chunk: bytes) -> None:
        await self._inbound(chunk)


class FakeWebSocket:
    """Enough of starlette's WebSocket for WebSocketAudioChannel."""

    def __init__(self) -> None:
        self.incoming: asyncio.Queue[dict] = asyncio.Queue()
        self.sent: list[dict] = []
        self.closed = False
        self.fail_sends = False

    def push_text(self, payload: dict) -> None:
        self.incoming.put_nowait({"type": "websocket.receive", "text": json.dumps(payload)})

    def push_raw_text(self, text: str) -> None:
        self.incoming.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data: bytes) -> None:
        self.incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def disconnect(self, code: int = 1000) -> None:
        self.incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    async def receive(self) -> dict:
        return await self.incoming.get()

    async def send_text(self, text: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000) -> None:
        self.closed = True
