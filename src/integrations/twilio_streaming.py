"""Twilio Media Streams message parsing and outbound payload framing."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class MediaStreamEvent:
    event: str
    stream_sid: str | None = None
    call_sid: str | None = None
    track: str | None = None
    audio: bytes | None = None


def parse_twilio_ws_message(text: str) -> dict[str, Any]:
    return json.loads(text)


def parse_media_stream_event(text: str) -> MediaStreamEvent:
    """Decode one Twilio Media Streams text frame.

    Raises:
        ValueError: the frame is not a JSON object or carries an invalid payload.
    """

    message = parse_twilio_ws_message(text)
    if not isinstance(message, dict):
        raise ValueError("Media stream frame is not a JSON object")

    event = str(message.get("event") or "")
    stream_sid = message.get("streamSid")

    if event == "start":
        start = message.get("start") or {}
        return MediaStreamEvent(
            event=event,
            stream_sid=start.get("streamSid") or stream_sid,
            call_sid=start.get("callSid"),
        )

    if event == "media":
        media = message.get("media") or {}
        track = media.get("track")
        payload = media.get("payload")
        audio = None
        if isinstance(payload, str) and payload:
            try:
                audio = base64.b64decode(payload, validate=True)
            except binascii.Error as exc:
                raise ValueError("Media payload is not valid base64") from exc
        return MediaStreamEvent(event=event, stream_sid=stream_sid, track=track, audio=audio)

    return MediaStreamEvent(event=event, stream_sid=stream_sid)


def is_inbound_audio(event: MediaStreamEvent) -> bool:
    # Twilio omits the track on single-track streams; with both_tracks only the caller's side counts.
    return event.event == "media" and bool(event.audio) and event.track in (None, "inbound")


def audio_message(audio: bytes) -> dict[str, str]:
    """Outbound frame carrying synthesized speech."""

    return {"type": "audio", "audio": base64.b64encode(audio).decode("ascii")}
