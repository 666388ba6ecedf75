"""FastAPI routes exposing assistant capabilities."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, WebSocket

from api.dependencies import get_services
from api.schemas import HealthResponse, RecordingAdviceResponse, RecordingRequest
from config.settings import get_settings
from telephony.channel import WebSocketAudioChannel

if TYPE_CHECKING:  # pragma: no cover
    from agents.services import AssistantServices

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(environment=get_settings().environment)


@router.post("/recordings", response_model=RecordingAdviceResponse)
async def respond_to_recording(
    payload: RecordingRequest,
    services: AssistantServices = Depends(get_services),
) -> RecordingAdviceResponse:
    LOGGER.info("Recording received for call %s", payload.call_sid or "unknown")
    reply = await services.recording_responder.respond(payload.recording_url)
    return RecordingAdviceResponse(
        transcript=reply.transcript,
        reply=reply.text,
        source=reply.source,
    )


@router.websocket("/stream")
async def media_stream(
    websocket: WebSocket,
    services: AssistantServices = Depends(get_services),
) -> None:
    await websocket.accept()
    call_id = websocket.query_params.get("callSid") or "unknown"
    LOGGER.info("WebSocket connection established (call=%s)", call_id)

    channel = WebSocketAudioChannel(websocket, call_id=call_id)
    session = services.new_call_session(channel, call_id)
    await session.run()
    LOGGER.info("WebSocket connection closed (call=%s, state=%s)", call_id, session.state.value)
