from __future__ import annotations

import asyncio
import base64

import httpx
import pytest

from agents.errors import NoSpeechDetectedError, RecordingUnavailableError, UpstreamRateLimited
from agents.fallback import select_fallback
from agents.recording import APOLOGY_MESSAGE, NO_RECORDING_MESSAGE, RecordingResponder
from fakes import ScriptedLLM, fast_retrier
from integrations.recordings import Recording, RecordingFetchConfig, RecordingFetcher
from llm.advice import AdviceGenerator
from llm.vllm_client import VLLMClient


class StubFetcher:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.urls: list[str] = []

    async def fetch(self, url: str) -> Recording:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return Recording(content=b"RIFF", content_type="audio/wav", filename="recording.wav")


class StubTranscriber:
    def __init__(self, text: str = "I have had a fever since yesterday", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict] = []

    async def transcribe(self, audio_bytes, *, filename, content_type, language=None) -> str:
        self.calls.append({"audio": audio_bytes, "filename": filename, "language": language})
        if self.error is not None:
            raise self.error
        return self.text


def _responder(*, fetcher=None, transcriber=None, llm=None):
    retrier, _ = fast_retrier(max_attempts=3)
    llm = llm or ScriptedLLM(["Drink fluids and rest."])
    responder = RecordingResponder(
        fetcher or StubFetcher(),
        transcriber or StubTranscriber(),
        AdviceGenerator(llm, retrier, max_tokens=300),
        language="en",
    )
    return responder, llm


def test_recording_reply_from_model():
    transcriber = StubTranscriber()
    responder, llm = _responder(transcriber=transcriber)

    reply = asyncio.run(responder.respond("https://api.twilio.com/rec/RE1"))

    assert reply.source == "model"
    assert reply.text == "Drink fluids and rest."
    assert reply.transcript == "I have had a fever since yesterday"
    assert llm.max_tokens == [300]
    assert transcriber.calls[0]["language"] == "en"


def test_missing_recording_url_gets_apology():
    fetcher = StubFetcher()
    responder, _ = _responder(fetcher=fetcher)

    reply = asyncio.run(responder.respond(None))

    assert reply.text == NO_RECORDING_MESSAGE
    assert fetcher.urls == []


@pytest.mark.parametrize(
    "fetch_error, transcribe_error",
    [
        (RecordingUnavailableError("Recording download returned HTTP 404"), None),
        (None, NoSpeechDetectedError()),
    ],
)
def test_unusable_recording_gets_apology(fetch_error, transcribe_error):
    responder, llm = _responder(
        fetcher=StubFetcher(error=fetch_error),
        transcriber=StubTranscriber(error=transcribe_error),
    )

    reply = asyncio.run(responder.respond("https://api.twilio.com/rec/RE1"))

    assert reply.source == "apology"
    assert reply.text == APOLOGY_MESSAGE
    assert llm.calls == []


def test_advice_failure_uses_fallback():
    llm = ScriptedLLM([UpstreamRateLimited()] * 3)
    responder, _ = _responder(llm=llm)

    reply = asyncio.run(responder.respond("https://api.twilio.com/rec/RE1"))

    assert reply.source == "fallback"
    assert reply.text == select_fallback("I have had a fever since yesterday")
    assert "fever" in reply.text.lower()


def test_fetcher_retries_rate_limit_and_authenticates():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if len(seen) == 1:
            return httpx.Response(429)
        return httpx.Response(200, content=b"ID3audio", headers={"content-type": "audio/mpeg"})

    retrier, sleeps = fast_retrier(max_attempts=3)
    fetcher = RecordingFetcher(
        retrier,
        RecordingFetchConfig(account_sid="AC123", auth_token="secret"),
        transport=httpx.MockTransport(handler),
    )

    recording = asyncio.run(fetcher.fetch("https://api.twilio.com/rec/RE1"))

    assert recording.content == b"ID3audio"
    assert recording.filename == "recording.mp3"
    assert len(seen) == 2
    assert len(sleeps) == 1
    expected = "Basic " + base64.b64encode(b"AC123:secret").decode("ascii")
    assert seen[0].headers["authorization"] == expected


def test_fetcher_reports_missing_recording():
    retrier, sleeps = fast_retrier(max_attempts=3)
    fetcher = RecordingFetcher(
        retrier,
        transport=httpx.MockTransport(lambda request: httpx.Response(404)),
    )

    with pytest.raises(RecordingUnavailableError) as excinfo:
        asyncio.run(fetcher.fetch("https://api.twilio.com/rec/missing"))

    assert "404" in excinfo.value.detail
    assert sleeps == []


def test_unreadable_model_reply_uses_fallback():
    async def scenario():
        llm = VLLMClient(
            "http://llm.internal",
            model="local",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>gateway</html>")),
        )
        responder, _ = _responder(llm=llm)
        try:
            return await responder.respond("https://api.twilio.com/rec/RE1")
        finally:
            await llm.aclose()

    reply = asyncio.run(scenario())

    assert reply.source == "fallback"
    assert reply.text == select_fallback("I have had a fever since yesterday")
