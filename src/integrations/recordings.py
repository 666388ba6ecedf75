"""Download call recordings from the telephony provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from agents.backoff import BackoffRetrier
from agents.errors import RecordingUnavailableError, UpstreamError
from integrations.upstream import http_errors

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordingFetchConfig:
    account_sid: str | None = None
    auth_token: str | None = None
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class Recording:
    content: bytes
    content_type: str
    filename: str


class RecordingFetcher:
    """Fetches recording audio, authenticating with Twilio credentials when configured."""

    def __init__(
        self,
        retrier: BackoffRetrier,
        config: RecordingFetchConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._retrier = retrier
        self._config = config or RecordingFetchConfig()
        self._transport = transport

    def _auth(self) -> tuple[str, str] | None:
        if self._config.account_sid and self._config.auth_token:
            return (self._config.account_sid, self._config.auth_token)
        return None

    async def fetch(self, url: str) -> Recording:
        LOGGER.info("Recording URL: %s", url)

        async def _call() -> httpx.Response:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                auth=self._auth(),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                with http_errors("Recording download"):
                    response = await client.get(url)
                    response.raise_for_status()
            return response

        try:
            response = await self._retrier.run(_call, label="Recording download")
        except UpstreamError as exc:
            raise RecordingUnavailableError(exc.detail) from exc

        content_type = response.headers.get("content-type", "audio/wav").split(";")[0].strip()
        return Recording(
            content=response.content,
            content_type=content_type,
            filename=_filename_for(content_type),
        )


def _filename_for(content_type: str) -> str:
    extension = {
        "audio/mpeg": "mp3",
        "audio/mp3": "mp3",
        "audio/ogg": "ogg",
        "audio/webm": "webm",
    }.get(content_type, "wav")
    return f"recording.{extension}"
