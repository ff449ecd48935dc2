"""Rendering engine adapters.

The pipeline only needs a handful of operations from a browser: launch an
isolated instance, open a page with a fixed surface, load HTML, wait for
fonts and take a clipped PNG screenshot. ``RenderEngine`` captures exactly
that surface so the pipeline can be exercised without a real browser.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .base import CanvasSize

logger = logging.getLogger(__name__)

FONTS_READY_SCRIPT = "() => document.fonts.ready.then(() => true)"


class EnginePage(ABC):
    @abstractmethod
    async def set_content(self, html: str, timeout_ms: float) -> None:
        """Load ``html`` and wait for network idle; raise ``TimeoutError`` past ``timeout_ms``."""

    @abstractmethod
    async def wait_for_fonts(self) -> None:
        """Resolve once the page's font faces have loaded."""

    @abstractmethod
    async def screenshot(self, clip: Dict[str, float]) -> bytes:
        """Capture ``clip`` as PNG bytes with the page background kept."""

    @abstractmethod
    async def close(self) -> None:
        ...


class EngineSession(ABC):
    @abstractmethod
    async def new_page(self, canvas: CanvasSize, scale: int) -> EnginePage:
        """Open a page whose viewport is ``canvas`` at device scale ``scale``."""

    @abstractmethod
    async def close(self) -> None:
        ...


class RenderEngine(ABC):
    @abstractmethod
    async def launch(self) -> EngineSession:
        """Start a fresh, isolated engine instance."""


class PlaywrightPage(EnginePage):
    def __init__(self, context: Any, page: Any) -> None:
        self._context = context
        self._page = page

    async def set_content(self, html: str, timeout_ms: float) -> None:
        try:
            await self._page.set_content(html, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise TimeoutError(str(exc)) from exc

    async def wait_for_fonts(self) -> None:
        await self._page.evaluate(FONTS_READY_SCRIPT)

    async def screenshot(self, clip: Dict[str, float]) -> bytes:
        return await self._page.screenshot(type="png", clip=clip, omit_background=False)

    async def close(self) -> None:
        try:
            await self._page.close()
        finally:
            await self._context.close()


class PlaywrightSession(EngineSession):
    def __init__(self, playwright: Any, browser: Any) -> None:
        self._playwright = playwright
        self._browser = browser

    async def new_page(self, canvas: CanvasSize, scale: int) -> EnginePage:
        context = await self._browser.new_context(
            viewport={"width": canvas.width, "height": canvas.height},
            device_scale_factor=scale,
        )
        try:
            page = await context.new_page()
        except Exception:
            await context.close()
            raise
        return PlaywrightPage(context, page)

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class PlaywrightEngine(RenderEngine):
    """Headless Chromium driven through ``playwright.async_api``."""

    def __init__(self, *, headless: bool = True, args: Optional[Sequence[str]] = None) -> None:
        self.headless = headless
        self.args = list(args or [])

    async def launch(self) -> EngineSession:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=self.headless, args=self.args)
        except Exception:
            await playwright.stop()
            raise
        logger.debug("Chromium launched (headless=%s)", self.headless)
        return PlaywrightSession(playwright, browser)
