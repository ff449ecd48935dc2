"""API route definitions for the SVG conversion service."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile
from fastapi.responses import Response

from ..config import Settings, settings_dependency
from ..errors import InputError, PackagingError, RenderFailure, raise_error
from ..rendering import (
    BatchCoordinator,
    BatchItem,
    BatchSession,
    RasterRenderer,
    SessionJanitor,
    output_name_for,
)
from .schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()

SVG_MIME_TYPE = "image/svg+xml"
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def renderer_dependency(settings: Settings = Depends(settings_dependency)) -> RasterRenderer:
    return RasterRenderer.from_settings(settings.render)


def janitor_dependency(request: Request) -> SessionJanitor:
    return request.app.state.janitor


def _parse_scale(raw: Optional[str], settings: Settings) -> int:
    """Leading-integer parse; missing or non-positive values use the default."""

    match = _LEADING_INT_RE.match(raw or "")
    try:
        value = int(match.group(1)) if match else 0
    except ValueError:
        # digit runs past the interpreter's int conversion limit
        value = settings.render.max_scale + 1
    if value <= 0:
        return settings.render.default_scale
    if value > settings.render.max_scale:
        raise_error(
            "ERR_INVALID_SCALE",
            detail=f"scale must be between 1 and {settings.render.max_scale}",
        )
    return value


def _is_svg_upload(upload: UploadFile) -> bool:
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    filename = (upload.filename or "").lower()
    return content_type == SVG_MIME_TYPE or filename.endswith(".svg")


async def _read_svg(upload: UploadFile, settings: Settings) -> str:
    if not _is_svg_upload(upload):
        raise_error("ERR_FORMAT_UNSUPPORTED", detail=f"Only SVG files are supported: {upload.filename}")

    limit = settings.upload.max_file_size_mb * 1024 * 1024
    data = await upload.read(limit + 1)
    if len(data) > limit:
        raise_error(
            "ERR_FILE_TOO_LARGE",
            detail=f"{upload.filename} exceeds {settings.upload.max_file_size_mb}MB",
        )
    return data.decode("utf-8", errors="replace")


async def _schedule_cleanup(janitor: SessionJanitor, session: BatchSession, delay: float) -> None:
    janitor.schedule_cleanup(session, delay)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.post("/api/convert", responses=_ERROR_RESPONSES)
async def convert_single(
    svg: Optional[UploadFile] = File(None),
    scale: Optional[str] = Form(None),
    settings: Settings = Depends(settings_dependency),
    renderer: RasterRenderer = Depends(renderer_dependency),
) -> Response:
    if svg is None:
        raise_error("ERR_FILE_MISSING")

    markup = await _read_svg(svg, settings)
    scale_value = _parse_scale(scale, settings)
    logger.info("Converting %s at %dx", svg.filename, scale_value)

    try:
        image = await renderer.render(markup, scale_value)
    except InputError as exc:
        raise_error("ERR_INVALID_SCALE", detail=str(exc))
    except RenderFailure as exc:
        logger.error("Conversion of %s failed: %s", svg.filename, exc)
        raise_error("ERR_RENDER_FAILED", detail=str(exc))

    filename = output_name_for(svg.filename or "", 0)
    logger.info("Converted %s (%dx%d)", filename, image.width, image.height)
    return Response(
        content=image.png,
        media_type="image/png",
        headers={
            "Content-Disposition": f'attachment; filename="{quote(filename)}"',
            "X-Image-Width": str(image.width),
            "X-Image-Height": str(image.height),
        },
    )


@router.post("/api/convert-batch", responses=_ERROR_RESPONSES)
async def convert_batch(
    background_tasks: BackgroundTasks,
    svgs: Optional[List[UploadFile]] = File(None),
    scale: Optional[str] = Form(None),
    settings: Settings = Depends(settings_dependency),
    renderer: RasterRenderer = Depends(renderer_dependency),
    janitor: SessionJanitor = Depends(janitor_dependency),
) -> Response:
    if not svgs:
        raise_error("ERR_FILE_MISSING")
    if len(svgs) > settings.upload.max_batch_files:
        raise_error(
            "ERR_BATCH_LIMIT_EXCEEDED",
            detail=f"At most {settings.upload.max_batch_files} files per batch",
        )

    items = [BatchItem(name=upload.filename or "", markup=await _read_svg(upload, settings)) for upload in svgs]
    scale_value = _parse_scale(scale, settings)

    coordinator = BatchCoordinator(
        renderer,
        Path(settings.storage.temp_dir),
        concurrency=settings.batch.concurrency,
    )
    try:
        result = await coordinator.run_batch(items, scale_value)
    except InputError as exc:
        raise_error("ERR_FILE_MISSING", detail=str(exc))
    except PackagingError as exc:
        raise_error("ERR_PACKAGING_FAILED", detail=str(exc))
    except OSError as exc:
        logger.exception("Batch session could not be prepared")
        raise_error("ERR_RENDER_FAILED", detail=str(exc))

    background_tasks.add_task(
        _schedule_cleanup, janitor, result.session, settings.storage.cleanup_delay_sec
    )

    archive_name = f"svg-to-png-{int(time.time() * 1000)}.zip"
    return Response(
        content=result.archive_bytes,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{archive_name}"',
            "X-Converted-Count": str(len(result.succeeded)),
            "X-Failed-Count": str(len(result.failed)),
        },
    )
