from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Final

import anyio
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect

from fileupload.core.config import Settings
from fileupload.core.file_utils import stored_filename, upload_timestamp
from fileupload.services.storage import save_stream


logger = logging.getLogger(__name__)

router = APIRouter()

INDEX_HTML: Final[str] = (Path(__file__).resolve().parents[1] / "static" / "index.html").read_text(
    encoding="utf-8"
)
FILE_FIELD: Final[str] = "file"


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/", tags=["Pages"], response_class=HTMLResponse)
async def index() -> HTMLResponse:
    return HTMLResponse(INDEX_HTML)


@router.get("/health", tags=["Health"], response_class=PlainTextResponse)
async def health() -> PlainTextResponse:
    return PlainTextResponse("OK")


@router.post("/upload", tags=["Uploads"], response_class=PlainTextResponse)
async def upload_file(request: Request) -> PlainTextResponse:
    settings = _get_settings(request)

    # The request body is already bounded by RequestSizeLimitMiddleware;
    # PayloadTooLarge escapes from here and is rendered as 413.
    try:
        form = await request.form()
    except ClientDisconnect as e:
        logger.info("Client disconnected during upload")
        raise HTTPException(status_code=400, detail="Upload interrupted") from e
    except (MultiPartException, StarletteHTTPException) as e:
        logger.warning("Rejected malformed form body: %s", e)
        raise HTTPException(status_code=400, detail="Failed to parse form") from e

    try:
        upload = form.get(FILE_FIELD)
        if not isinstance(upload, UploadFile) or not upload.filename:
            raise HTTPException(status_code=400, detail="No file provided")

        timestamp = upload_timestamp()
        final_name = stored_filename(upload.filename, timestamp)
        dest_path = settings.upload_dir / final_name

        await upload.seek(0)
        try:
            written = await anyio.to_thread.run_sync(
                partial(save_stream, upload.file, dest_path, limit=settings.max_upload_bytes)
            )
        except OSError:
            logger.exception("Failed to save upload to %s", dest_path)
            raise HTTPException(status_code=500, detail="Failed to save file")
    finally:
        await form.close()

    logger.info("File uploaded: %s (%d bytes)", final_name, written)
    return PlainTextResponse(f"File uploaded successfully: {final_name}")
