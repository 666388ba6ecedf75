"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from config.settings import get_settings

if TYPE_CHECKING:  # pragma: no cover
    from agents.services import AssistantServices


@lru_cache(maxsize=1)
def _services_factory() -> AssistantServices:
    # Lazy import so the API layer can be imported without provider credentials.
    from agents.services import build_services

    return build_services(get_settings())


def get_services() -> AssistantServices:
    return _services_factory()


async def close_services() -> None:
    if _services_factory.cache_info().currsize:
        await _services_factory().aclose()
        _services_factory.cache_clear()
