from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from iaboard.api import (
    ai,
    canvas,
    downloads,
    health,
    integrations,
    media,
    modules,
    projects,
    tickets,
    workflows,
    youtube,
)
from iaboard.core.orchestrator import orchestrator
from iaboard.integrations.base import IntegrationError
from iaboard.memory import utils as db_utils
from iaboard.memory.db import dispose_engine, get_session, init_db
from iaboard.settings import get_settings
from iaboard.utils.errors import ProviderNotConfiguredError, QuotaExceededError
from iaboard.utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_settings()
    await init_db()

    # Runs left "processing" by a previous process continue from their checkpoint
    try:
        async with get_session() as session:
            interrupted = await db_utils.list_workflow_runs(session, status="processing")
        if interrupted:
            LOGGER.info("Found %d interrupted workflow runs. Attempting to resume...", len(interrupted))
            for run in interrupted:
                await orchestrator.resume_run(run.id)
    except Exception as e:
        LOGGER.error("Failed to recover workflow state: %s", e)

    yield
    await orchestrator.shutdown()
    await dispose_engine()


app = FastAPI(
    title="IA Board API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def check_api_key(request: Request, call_next):
    settings = get_settings()
    if settings.admin_api_key and request.url.path.startswith("/api"):
        api_key = request.headers.get("X-API-Key")
        if api_key != settings.admin_api_key:
            if request.method == "OPTIONS":
                return await call_next(request)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API Key"},
            )
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        LOGGER.info(
            "%s %s %s in %dms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
    return response


@app.exception_handler(ProviderNotConfiguredError)
async def provider_not_configured_handler(request: Request, exc: ProviderNotConfiguredError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": str(exc), "provider": exc.provider},
    )


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"success": False, "error": str(exc), "resetTime": exc.reset_time},
    )


@app.exception_handler(IntegrationError)
async def integration_error_handler(request: Request, exc: IntegrationError):
    LOGGER.warning("%s call failed: %s", exc.vendor, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "error": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    LOGGER.error("Global exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


app.include_router(health.router)
app.include_router(ai.router)
app.include_router(modules.router)
app.include_router(tickets.router)
app.include_router(workflows.router)
app.include_router(downloads.router)
app.include_router(canvas.router)
app.include_router(projects.router)
app.include_router(integrations.router)
app.include_router(media.router)
app.include_router(youtube.router)
