"""Error code registry, domain exceptions and helpers for consistent API responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class ConversionError(Exception):
    """Base class for failures raised by the render pipeline."""


class InputError(ConversionError):
    """No usable input was supplied; correctable by the caller."""


class RenderFailure(ConversionError):
    """A single render failed at one of its stages."""

    def __init__(self, stage: str, message: str, *, timed_out: bool = False) -> None:
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.message = message
        self.timed_out = timed_out


class PackagingError(ConversionError):
    """The batch archive could not be produced."""


@dataclass(frozen=True)
class ErrorCodeSpec:
    code: str
    zh: str
    en: str
    http_status: int


class ErrorRegistry:
    def __init__(self) -> None:
        self._codes: Dict[str, ErrorCodeSpec] = {}

    def register(self, spec: ErrorCodeSpec) -> None:
        if spec.code in self._codes:
            raise ValueError(f"Error code {spec.code} already registered")
        self._codes[spec.code] = spec

    def get(self, code: str) -> ErrorCodeSpec:
        if code not in self._codes:
            raise KeyError(f"Unknown error code: {code}")
        return self._codes[code]

    def to_dict(self) -> Dict[str, ErrorCodeSpec]:
        return dict(self._codes)


ERRORS = ErrorRegistry()


def register_default_errors() -> None:
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_FILE_MISSING",
            zh="请上传 SVG 文件",
            en="Please upload an SVG file",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_FORMAT_UNSUPPORTED",
            zh="只支持 SVG 文件",
            en="Only SVG files are supported",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_FILE_TOO_LARGE",
            zh="单个文件大小超出限制",
            en="File exceeds the upload size limit",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_BATCH_LIMIT_EXCEEDED",
            zh="批量任务超出数量限制",
            en="Batch exceeds the allowed number of files",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_INVALID_SCALE",
            zh="倍率超出允许范围",
            en="Scale is outside the allowed range",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_RENDER_FAILED",
            zh="转换失败，请重试",
            en="Conversion failed, please retry",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_PACKAGING_FAILED",
            zh="打包失败",
            en="Failed to build the result archive",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    )


register_default_errors()


def error_payload(code: str, *, detail: Optional[str] = None) -> Dict[str, str]:
    spec = ERRORS.get(code)
    return {
        "error": detail or spec.en,
        "error_code": spec.code,
        "zh_message": spec.zh,
    }


def raise_error(code: str, *, detail: Optional[str] = None) -> None:
    spec = ERRORS.get(code)
    raise HTTPException(status_code=spec.http_status, detail=error_payload(code, detail=detail))


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        body = exc.detail
    else:
        body = {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


def install_error_handlers(app: FastAPI) -> None:
    """Render ``HTTPException`` details as a flat ``{"error": ...}`` body."""

    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
