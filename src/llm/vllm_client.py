"""Client for self-hosted vLLM or TGI compatible inference endpoints."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, List

import httpx

from agents.errors import UpstreamError
from integrations.upstream import http_errors, malformed_response
from llm.base import BaseLLMClient

LOGGER = logging.getLogger(__name__)


class VLLMClient(BaseLLMClient):
    """Minimal client for a self-hosted OpenAI-compatible inference server."""

    def __init__(
        self,
        endpoint: str,
        *,
        model: str,
        api_key: str | None = None,
        timeout: float = 90,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("Self-hosted LLM endpoint must be configured.")

        self._endpoint = endpoint.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": list(messages),
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            payload["temperature"] = temperature

        with http_errors("Self-hosted LLM"):
            response = await self._http.post(
                f"{self._endpoint}/v1/chat/completions",
                json=payload,
                headers=self._headers(),
            )
            response.raise_for_status()

        with malformed_response("Self-hosted LLM"):
            data = response.json()
            choices: List[dict] = data.get("choices", [])
            if not choices:
                raise UpstreamError("LLM response contains no choices.")
            return choices[0]["message"]["content"] or ""

    async def aclose(self) -> None:
        await self._http.aclose()
