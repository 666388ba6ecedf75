"""Factory returning configured LLM client implementation."""

from __future__ import annotations

from openai import AsyncOpenAI

from config.settings import Settings
from llm.base import BaseLLMClient
from llm.openai_client import OpenAIClient
from llm.vllm_client import VLLMClient


def build_openai_client(settings: Settings) -> AsyncOpenAI:
    """Build the process-wide OpenAI client shared by every call session."""

    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY must be configured.")

    # Retries are handled by our own backoff profiles.
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url or None,
        max_retries=0,
    )


def build_llm_client(settings: Settings, openai_client: AsyncOpenAI) -> BaseLLMClient:
    """Instantiate the configured LLM connector."""

    if settings.llm_provider == "openai":
        return OpenAIClient(openai_client, model=settings.llm_model)
    if settings.llm_provider == "self_hosted_vllm":
        return VLLMClient(
            settings.llm_endpoint or "",
            model=settings.llm_model,
            api_key=settings.llm_api_key,
        )
    raise ValueError(f"Unsupported llm_provider: {settings.llm_provider}")
