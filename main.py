from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fileupload.api.routes import router as upload_router
from fileupload.core.config import Settings, load_settings
from fileupload.core.limits import PayloadTooLarge, RequestSizeLimitMiddleware
from fileupload.services.storage import ensure_upload_dir


logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    ensure_upload_dir(settings.upload_dir)

    logger.info("Server starting on port %d", settings.port)
    logger.info("Upload directory: %s", settings.upload_dir)
    logger.info("Max file size: %d MB", settings.max_size_mb)
    yield


async def _http_error_as_text(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


async def _payload_too_large(request: Request, exc: PayloadTooLarge) -> PlainTextResponse:
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return PlainTextResponse("File too large", status_code=413)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="File Upload Service", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_upload_bytes)
    app.add_exception_handler(StarletteHTTPException, _http_error_as_text)
    app.add_exception_handler(PayloadTooLarge, _payload_too_large)
    app.include_router(upload_router)
    return app


app = create_app()


if __name__ == "__main__":
    settings = app.state.settings
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
