"""
FastAPI Application
==================

Main FastAPI application serving display directives, render triggers and the
generated-assets store.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from byos_render.config.settings import get_settings
from byos_render.config.logging import get_logger
from byos_render.core.devices.repository import InMemoryDeviceRepository
from byos_render.core.errors import RenderError, TemplateError
from byos_render.core.rendering.pipeline import RenderPipeline
from byos_render.api.routes.display import router as display_router
from byos_render.api.routes.health import router as health_router
from byos_render.api.routes.render import router as render_router
from byos_render.models.schemas import ErrorResponse

logger = get_logger(__name__)

# Coarse failure category -> (HTTP status, error code)
ERROR_STATUS = {
    "configuration": (422, "TEMPLATE_ERROR"),
    "unavailable": (503, "RENDERER_UNAVAILABLE"),
    "conversion": (500, "CONVERSION_ERROR"),
    "storage": (500, "STORAGE_ERROR"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting BYOS render server", base_url=settings.base_url)
    settings.generated_path.mkdir(parents=True, exist_ok=True)

    try:
        yield
    finally:
        logger.info("Shutting down BYOS render server")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    description="Render web pages into 1-bit bitmaps for e-ink displays",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Collaborators; replaced through dependency overrides in tests
app.state.device_repository = InMemoryDeviceRepository()
app.state.render_pipeline = RenderPipeline(settings=settings)

app.include_router(display_router)
app.include_router(render_router)
app.include_router(health_router)
app.mount("/storage", StaticFiles(directory=settings.assets_path, check_dir=False), name="storage")


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)  # type: ignore
    response.headers["X-Request-ID"] = request_id  # type: ignore

    return response  # type: ignore


# Exception handlers
@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom HTTP exception handler with structured error response."""
    error_response = ErrorResponse(
        error=str(exc.detail),
        error_code=str(exc.status_code),
        details=None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=error_response.model_dump(mode="json"))


@app.exception_handler(RenderError)
async def render_exception_handler(request: Request, exc: RenderError) -> JSONResponse:
    """Map render failures to a status code by category."""
    status_code, error_code = ERROR_STATUS.get(exc.category, (500, "RENDER_ERROR"))

    details = {"type": type(exc).__name__, "message": exc.message}
    if isinstance(exc, TemplateError):
        details.update(stage=exc.stage, cause=exc.cause)
    if exc.diagnostic:
        details["diagnostic"] = exc.diagnostic

    error_response = ErrorResponse(
        error=str(exc),
        error_code=error_code,
        details=details if settings.debug or isinstance(exc, TemplateError) else None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "Render failed",
        error_code=error_code,
        error_type=type(exc).__name__,
        error_message=str(exc),
        cause=repr(exc.__cause__) if exc.__cause__ else None,
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=status_code, content=error_response.model_dump(mode="json"))


def main() -> None:
    """Run the server with uvicorn."""
    uvicorn.run(
        "byos_render.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
