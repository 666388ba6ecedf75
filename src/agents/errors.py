"""Domain-specific exceptions for assistant operations.

These exceptions are safe to import from API layers without pulling in provider SDKs.
"""

from __future__ import annotations


class AssistantError(Exception):
    status_code: int = 500
    default_detail: str = "Assistant error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class UpstreamError(AssistantError):
    """A non-rate-limit failure reported by an external service."""

    status_code = 503
    default_detail = "Upstream service failed."


class UpstreamRateLimited(UpstreamError):
    status_code = 429
    default_detail = "Upstream service rate limited the request."


class TranscriptionSetupError(AssistantError):
    status_code = 503
    default_detail = "Transcription session could not be started."


class TranscriptionLostError(AssistantError):
    status_code = 503
    default_detail = "Transcription service connection was lost."


class SynthesisError(AssistantError):
    status_code = 503
    default_detail = "Speech synthesis failed."


class TransportError(AssistantError):
    status_code = 502
    default_detail = "Audio transport failed."


class NoSpeechDetectedError(AssistantError):
    status_code = 422
    default_detail = "No speech detected."


class RecordingUnavailableError(AssistantError):
    status_code = 502
    default_detail = "Recording could not be retrieved."
