# telebridge/main.py
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from telebridge.config import Settings, get_settings
from telebridge.errors import BridgeError, format_context
from telebridge.routers import calls, incoming, livekit, twilio_status, twilio_voice
from telebridge.services.call_registry import CallRegistry
from telebridge.services.kv_store import build_store

logger = logging.getLogger(__name__)


def _log_configuration(settings: Settings) -> None:
    logger.info(
        "Configuration check twilio_configured=%s livekit_configured=%s sip_domain=%s store=%s",
        settings.twilio_configured,
        settings.livekit_configured,
        settings.LIVEKIT_SIP_DOMAIN,
        settings.CALL_STORE_BACKEND,
    )
    logger.info(
        "Direct SIP routing: Twilio -> LiveKit SIP -> Room: %s{caller_number}",
        settings.SIP_ROOM_PREFIX,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    app.state.registry = CallRegistry(build_store(settings))
    _log_configuration(settings)
    yield
    app.state.registry.close()


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    logger.error(
        "%s on %s %s: %s %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.detail,
        format_context(exc.context),
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BridgeError, bridge_error_handler)

    # Routers
    app.include_router(livekit.router, prefix="/api")
    app.include_router(calls.router, prefix="/api")
    app.include_router(incoming.router, prefix="/api")
    app.include_router(twilio_voice.router, prefix="/api")
    app.include_router(twilio_status.router, prefix="/api")

    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "app": settings.APP_NAME,
            "env": settings.ENV,
            "store": settings.CALL_STORE_BACKEND,
            "twilio_configured": settings.twilio_configured,
            "livekit_configured": settings.livekit_configured,
        }

    # Browser client; mounted last so it never shadows the API
    if Path(settings.STATIC_DIR).is_dir():
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("telebridge.main:app", host="0.0.0.0", port=settings.PORT)
