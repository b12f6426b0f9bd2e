"""
InsightSmith - consultation chat service
FastAPI backend: mode-aware conversation, quick actions, web search, voice
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging
import asyncio
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from routers import chat, sessions, voice
from routers.chat_orchestration.session import isoformat, utcnow
from config import RuntimeConfig, runtime_config
from dependencies import AppServices, build_services
from errors import InsightSmithError, error_response, log_error
from lexicon_loader import Lexicon
from logging_config import log_session, setup_logging

logger = logging.getLogger(__name__)


async def periodic_session_sweep(services: AppServices, interval_seconds: float):
    """Periodically drop sessions idle for longer than the configured TTL."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = services.store.sweep_expired()
            if removed:
                log_session(logger, "swept", "-", removed=removed, remaining=len(services.store))
        except Exception as e:
            logger.error(f"Periodic session sweep error: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    services: AppServices = app.state.services
    config = services.config

    setup_logging(config.log_level)
    logger.info(
        f"{config.app_name} v{config.app_version} starting "
        f"(llm={'enabled' if services.llm else 'disabled'}, "
        f"search={'enabled' if config.searxng_enabled else 'disabled'})"
    )

    sweep_task = asyncio.create_task(
        periodic_session_sweep(services, interval_seconds=config.session_sweep_interval_s)
    )

    yield

    # Shutdown
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass
    logger.info(f"{config.app_name} signing off ({len(services.store)} sessions dropped)")


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# Request body size limits (base64 audio is ~4/3 of the raw bytes)
MAX_BODY_SIZE_API = 1 * 1024 * 1024


def max_body_size_voice(config: RuntimeConfig) -> int:
    return config.max_audio_bytes * 4 // 3 + 64 * 1024


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests with bodies exceeding size limits."""

    def __init__(self, app, voice_limit: int):
        super().__init__(app)
        self.voice_limit = voice_limit

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            size = int(content_length)
            is_voice = request.url.path.startswith("/api/voice")
            limit = self.voice_limit if is_voice else MAX_BODY_SIZE_API
            if size > limit:
                return JSONResponse(
                    status_code=413,
                    content={"success": False, "error": f"Request body too large ({size} bytes, limit {limit} bytes)"},
                )
        return await call_next(request)


async def insightsmith_error_handler(request: Request, exc: InsightSmithError):
    if exc.status_code >= 500:
        log_error(logger, exc, context=request.url.path, include_traceback=False)
    else:
        logger.warning(f"{request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"{request.url.path}: invalid request body ({len(exc.errors())} errors)")
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})


def create_app(
    config: Optional[RuntimeConfig] = None,
    lexicon: Optional[Lexicon] = None,
    services: Optional[AppServices] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Runtime config (module-level runtime_config when omitted)
        lexicon: Lexicon override
        services: Pre-built components; tests pass isolated instances here
    """
    config = services.config if services else (config or runtime_config)
    services = services or build_services(config, lexicon=lexicon)

    app = FastAPI(
        title=config.app_name,
        description="Consultation chat with guide / socrates / hard modes",
        version=config.app_version,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, voice_limit=max_body_size_voice(config))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InsightSmithError, insightsmith_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # API Routers
    app.include_router(chat.router, prefix="/api", tags=["chat"])
    app.include_router(sessions.router, prefix="/api", tags=["sessions"])
    app.include_router(voice.router, prefix="/api", tags=["voice"])

    @app.get("/")
    async def root():
        return {
            "message": f"{config.app_name} API",
            "version": config.app_version,
            "status": "running",
            "timestamp": isoformat(utcnow()),
        }

    @app.get("/health")
    async def health():
        """Liveness plus session counts."""
        try:
            stats = services.store.stats()
            return {
                "status": "healthy",
                "timestamp": isoformat(utcnow()),
                "sessionStats": {
                    "totalSessions": stats["totalSessions"],
                    "activeSessions": stats["activeSessions"],
                    "totalMessages": stats["totalMessages"],
                },
                "llm": "enabled" if services.composer.llm_active else "disabled",
            }
        except Exception as e:
            log_error(logger, e, context="Health")
            return JSONResponse(status_code=500, content={"status": "unhealthy", "error": "Service error"})

    return app


app = create_app()


def run():
    """Serve the default app with uvicorn (HOST / PORT from the environment)."""
    import uvicorn

    uvicorn.run("main:app", host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8000")))


if __name__ == "__main__":
    run()
