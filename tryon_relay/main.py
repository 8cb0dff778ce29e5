import time
import uuid
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from . import __version__
from .config import Settings
from .errors import TryOnError
from .logging_config import configure_logging
from .routers.tryon import router as tryon_router
from .schemas.tryon import ErrorResponse
from .services.collaborators import TryOnCollaborator, get_collaborator


logger = structlog.get_logger("tryon_relay")


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _validate_config(settings: Settings) -> None:
    errors = []
    if settings.collaborator_timeout_seconds <= 0:
        errors.append("COLLABORATOR_TIMEOUT_SECONDS must be positive")
    if settings.max_upload_mb <= 0:
        errors.append("MAX_UPLOAD_MB must be positive")
    if not settings.accepted_media_types:
        errors.append("ACCEPTED_MEDIA_TYPES must list at least one media type")
    elif any(not t.startswith("image/") for t in settings.accepted_media_types):
        errors.append("ACCEPTED_MEDIA_TYPES must only contain image/* types")
    if settings.collaborator == "gradio":
        if not settings.tryon_space.strip():
            errors.append("TRYON_SPACE must be set for the gradio collaborator")
        elif not settings.hf_token and settings.collaborator_base_url.endswith(".hf.space"):
            errors.append("HF_TOKEN is not set; hosted Space requests run under anonymous quota")
    if errors:
        if settings.strict_config:
            raise RuntimeError("Configuration error: " + "; ".join(errors))
        for e in errors:
            logger.warning("config_warning", warning=e)


def create_app(settings: Optional[Settings] = None, collaborator: Optional[TryOnCollaborator] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level, settings.json_logs)
    _validate_config(settings)

    app = FastAPI(title="Try-On Relay", version=__version__)
    app.state.settings = settings
    app.state.collaborator = collaborator or get_collaborator(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        request_id = uuid.uuid4().hex[:8]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        resp = None

        try:
            logger.info("request_started",
                        path=str(request.url.path),
                        method=request.method,
                        client_ip=request.client.host if request.client else "unknown",
                        content_type=request.headers.get("content-type", "unknown"))
            resp = await call_next(request)
            resp.headers["X-Request-ID"] = request_id
            return resp
        finally:
            duration_ms = int((time.time() - start) * 1000)
            status_code = getattr(resp, "status_code", 500) if resp else 500
            logger.info("request_completed",
                        path=str(request.url.path),
                        method=request.method,
                        status=status_code,
                        duration_ms=duration_ms)

    @app.exception_handler(TryOnError)
    async def handle_tryon_error(request: Request, exc: TryOnError):
        return _error_response(exc.status_code, exc.client_message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        logger.warning("request_invalid", path=str(request.url.path), errors=len(exc.errors()))
        return _error_response(400, "Invalid request parameters")

    @app.exception_handler(Exception)
    async def handle_exceptions(request: Request, exc: Exception):
        logger.error("unhandled_exception",
                     path=str(request.url.path),
                     method=request.method,
                     error=str(exc),
                     error_type=type(exc).__name__,
                     exc_info=True)
        return _error_response(500, "Internal server error")

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "collaborator": settings.collaborator}

    app.include_router(tryon_router)
    logger.info("app_configured",
                collaborator=settings.collaborator,
                max_upload_mb=settings.max_upload_mb,
                timeout_seconds=settings.collaborator_timeout_seconds)
    return app


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
