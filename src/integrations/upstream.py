"""Translate provider SDK exceptions into the assistant's error taxonomy."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import httpx
import openai

from agents.errors import UpstreamError, UpstreamRateLimited


@contextmanager
def openai_errors(service: str) -> Iterator[None]:
    try:
        yield
    except openai.RateLimitError as exc:
        raise UpstreamRateLimited(f"{service} rate limited (429): {exc}") from exc
    except openai.APIError as exc:
        raise UpstreamError(f"{service} failed: {exc}") from exc


@contextmanager
def http_errors(service: str) -> Iterator[None]:
    try:
        yield
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        if status == 429:
            raise UpstreamRateLimited(f"{service} rate limited (429)") from exc
        raise UpstreamError(f"{service} returned HTTP {status}") from exc
    except httpx.HTTPError as exc:
        raise UpstreamError(f"{service} request failed: {exc}") from exc


MALFORMED_RESPONSE_ERRORS = (ValueError, KeyError, IndexError, TypeError, AttributeError)


@contextmanager
def malformed_response(service: str) -> Iterator[None]:
    """Treat a reply body that cannot be decoded or lacks expected fields as an upstream failure."""

    try:
        yield
    except MALFORMED_RESPONSE_ERRORS as exc:
        raise UpstreamError(f"{service} response malformed: {exc!r}") from exc
