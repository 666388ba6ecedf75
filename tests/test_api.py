from __future__ import annotations

import base64

from agents.call_session import CallSession
from agents.errors import NoSpeechDetectedError
from agents.recording import RecordingReply
from fakes import FakeSynthesizer, FakeTranscription, ScriptedLLM, fast_retrier
from llm.advice import AdviceGenerator


class StubResponder:
    def __init__(self, reply: RecordingReply | None = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.urls: list[str | None] = []

    async def respond(self, recording_url):
        self.urls.append(recording_url)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeServices:
    def __init__(self, responder: StubResponder | None = None) -> None:
        self.recording_responder = responder or StubResponder()
        self.llm = ScriptedLLM(default="Rest and drink water.")
        self.synthesizer = FakeSynthesizer(audio=b"mp3-bytes")
        self.sessions: list[CallSession] = []
        self.transcriptions: list[FakeTranscription] = []

    def new_call_session(self, channel, call_id: str) -> CallSession:
        retrier, _ = fast_retrier()
        transcription = FakeTranscription(echo=True)
        session = CallSession(
            call_id,
            channel,
            transcription,
            AdviceGenerator(self.llm, retrier, max_tokens=150),
            self.synthesizer,
        )
        self.transcriptions.append(transcription)
        self.sessions.append(session)
        return session


def _media(text: str) -> dict:
    return {
        "event": "media",
        "streamSid": "MZ1",
        "media": {"track": "inbound", "payload": base64.b64encode(text.encode()).decode("ascii")},
    }


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_recording_endpoint_returns_reply(client, override_services):
    responder = StubResponder(
        RecordingReply(transcript="I have a cough", text="Try warm tea with honey.", source="model")
    )
    override_services(FakeServices(responder))

    response = client.post(
        "/api/recordings",
        json={"recording_url": "https://api.twilio.com/rec/RE1", "call_sid": "CA1"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "transcript": "I have a cough",
        "reply": "Try warm tea with honey.",
        "source": "model",
    }
    assert responder.urls == ["https://api.twilio.com/rec/RE1"]


def test_recording_endpoint_maps_assistant_errors(client, override_services):
    override_services(FakeServices(StubResponder(error=NoSpeechDetectedError())))

    response = client.post("/api/recordings", json={"recording_url": "https://api.twilio.com/rec/RE1"})

    assert response.status_code == 422
    assert response.json() == {"detail": "No speech detected."}


def test_media_stream_speaks_advice_back(client, override_services):
    services = FakeServices()
    override_services(services)

    with client.websocket_connect("/api/stream?callSid=CA1") as websocket:
        websocket.send_json({"event": "start", "start": {"streamSid": "MZ1", "callSid": "CA1"}})
        websocket.send_json(_media("I have a"))
        websocket.send_json(_media("bad headache"))

        message = websocket.receive_json()
        websocket.send_json({"event": "stop", "streamSid": "MZ1"})

    assert message == {"type": "audio", "audio": base64.b64encode(b"mp3-bytes").decode("ascii")}
    assert services.synthesizer.texts == ["Rest and drink water."]
    assert services.llm.calls[0][1]["content"] == "I have a bad headache"
    assert services.transcriptions[0].fed == [b"I have a", b"bad headache"]
