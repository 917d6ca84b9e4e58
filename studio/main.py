from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studio.api import files, history, plugins, websocket, workspace
from studio.api.errors import http_status_for
from studio.core.errors import StudioError
from studio.core.event_bus import EventBus, broadcast_to_websockets
from studio.core.orchestrator import Orchestrator
from studio.core.persistence import create_storage
from studio.core.resources import ResourceTicker
from studio.core.store import ProjectStore
from studio.memory.db import dispose_engine
from studio.settings import get_settings
from studio.utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings = get_settings()
    LOGGER.info("Starting studio (llm_mode=%s, storage=%s)", settings.llm_mode, settings.storage_backend)
    bus = EventBus()
    unsubscribe = bus.subscribe(broadcast_to_websockets)
    store = await ProjectStore.open(create_storage(), key=settings.storage_key, bus=bus)
    orchestrator = Orchestrator(store)
    ticker = ResourceTicker(store)
    ticker.start()

    app.state.orchestrator = orchestrator
    app.state.ticker = ticker
    yield

    # Shutdown
    await ticker.stop()
    await orchestrator.shutdown()
    unsubscribe()
    if settings.storage_backend == "sqlite":
        await dispose_engine()
    LOGGER.info("Studio stopped")


app = FastAPI(
    title="Agentic Studio Backend",
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
    # Only enforce if key is set and path starts with /api (exclude docs/websocket)
    if settings.admin_api_key and request.url.path.startswith("/api"):
        api_key = request.headers.get("X-API-Key")
        if api_key != settings.admin_api_key:
            # Allow OPTIONS for CORS
            if request.method == "OPTIONS":
                return await call_next(request)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API Key"},
            )
    return await call_next(request)


@app.exception_handler(StudioError)
async def studio_exception_handler(request: Request, exc: StudioError):
    code = http_status_for(exc)
    LOGGER.info("%s %s rejected (%d): %s", request.method, request.url.path, code, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    LOGGER.error("Global exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


app.include_router(workspace.router)
app.include_router(history.router)
app.include_router(plugins.router)
app.include_router(files.router)
app.include_router(websocket.router)
