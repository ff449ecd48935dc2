"""Single-document render driver: one fresh engine session per call."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ..config import RenderSettings
from ..errors import InputError, RenderFailure
from ..monitoring import record_render
from .base import CanvasSize, RenderedImage, RenderRequest
from .dimensions import resolve_canvas
from .engine import EnginePage, EngineSession, PlaywrightEngine, RenderEngine
from .environment import build_document

logger = logging.getLogger(__name__)


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


async def _close_quietly(resource: EngineSession | EnginePage, label: str) -> None:
    try:
        await resource.close()
    except Exception:
        logger.warning("Failed to close engine %s", label, exc_info=True)


class RasterRenderer:
    """Turn SVG markup into PNG bytes through an isolated browser session.

    Every call launches its own engine instance and tears it down on every
    exit path, so a hung or crashed render never affects another request.
    """

    def __init__(self, engine: RenderEngine, settings: RenderSettings | None = None) -> None:
        self.engine = engine
        self.settings = settings or RenderSettings()

    @classmethod
    def from_settings(cls, settings: RenderSettings) -> "RasterRenderer":
        engine = PlaywrightEngine(headless=settings.headless, args=settings.browser_args)
        return cls(engine, settings)

    @property
    def default_canvas(self) -> CanvasSize:
        return CanvasSize(self.settings.default_width, self.settings.default_height)

    def resolve_scale(self, scale: Optional[int]) -> int:
        if scale is None:
            return self.settings.default_scale
        if scale < 1 or scale > self.settings.max_scale:
            raise InputError(f"scale must be between 1 and {self.settings.max_scale}, got {scale}")
        return scale

    def prepare(self, markup: str, scale: Optional[int] = None) -> RenderRequest:
        canvas = resolve_canvas(markup, default=self.default_canvas)
        return RenderRequest(markup=markup, canvas=canvas, scale=self.resolve_scale(scale))

    async def render(self, markup: str, scale: Optional[int] = None) -> RenderedImage:
        request = self.prepare(markup, scale)
        html = build_document(request.markup, request.canvas, self.settings.font_stack)

        started = time.perf_counter()
        status = "failure"
        try:
            async with self._session() as session:
                async with self._page(session, request) as page:
                    await self._load(page, html)
                    await self._settle(page)
                    png = await self._capture(page, request.canvas)
            status = "success"
        finally:
            record_render(status, time.perf_counter() - started)

        image = RenderedImage(png=png, canvas=request.canvas, scale=request.scale)
        logger.info(
            "Rendered %dx%d canvas at %dx -> %dx%d",
            request.canvas.width,
            request.canvas.height,
            request.scale,
            image.width,
            image.height,
        )
        return image

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[EngineSession]:
        try:
            session = await self.engine.launch()
        except Exception as exc:
            raise RenderFailure("launch", _describe(exc)) from exc
        try:
            yield session
        finally:
            await _close_quietly(session, "session")

    @asynccontextmanager
    async def _page(self, session: EngineSession, request: RenderRequest) -> AsyncIterator[EnginePage]:
        try:
            page = await session.new_page(request.canvas, request.scale)
        except Exception as exc:
            raise RenderFailure("launch", _describe(exc)) from exc
        try:
            yield page
        finally:
            await _close_quietly(page, "page")

    async def _load(self, page: EnginePage, html: str) -> None:
        timeout_sec = self.settings.load_timeout_sec
        try:
            await page.set_content(html, timeout_ms=timeout_sec * 1000)
        except TimeoutError as exc:
            raise RenderFailure(
                "load", f"content did not settle within {timeout_sec:g}s", timed_out=True
            ) from exc
        except Exception as exc:
            raise RenderFailure("load", _describe(exc)) from exc

    async def _settle(self, page: EnginePage) -> None:
        try:
            await page.wait_for_fonts()
        except Exception as exc:
            raise RenderFailure("fonts", _describe(exc)) from exc
        # fonts.ready does not cover every late paint
        await asyncio.sleep(self.settings.settle_delay_ms / 1000)

    async def _capture(self, page: EnginePage, canvas: CanvasSize) -> bytes:
        clip = {"x": 0, "y": 0, "width": canvas.width, "height": canvas.height}
        try:
            return await page.screenshot(clip)
        except Exception as exc:
            raise RenderFailure("capture", _describe(exc)) from exc
