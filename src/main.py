"""Entry point for the telehealth voice assistant service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agents.errors import AssistantError
from api.dependencies import close_services
from api.routes import router as api_router
from config.settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_services()


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Telehealth Voice Assistant",
    description="Phone-based assistant that turns spoken symptoms into brief spoken guidance.",
    lifespan=lifespan,
)
app.include_router(api_router, prefix="/api")


@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
