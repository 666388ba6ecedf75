"""API-facing Pydantic models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    environment: str


class RecordingRequest(BaseModel):
    recording_url: str | None = Field(
        default=None, description="Provider URL of the finished call recording."
    )
    call_sid: str | None = None


class RecordingAdviceResponse(BaseModel):
    transcript: str
    reply: str = Field(description="Text to read back to the caller.")
    source: Literal["model", "fallback", "apology"]
