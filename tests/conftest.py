"""Shared pytest fixtures for the SVG conversion service tests."""

from __future__ import annotations

import os
import struct
from typing import Dict, List

import pytest

os.environ.setdefault("SVG_DISABLE_METRICS", "1")

from svg_converter.config import (  # noqa: E402  (import after env var)
    LoggingSettings,
    RenderSettings,
    Settings,
    StorageSettings,
    UploadSettings,
)
from svg_converter.rendering import CanvasSize, EnginePage, EngineSession, RenderEngine  # noqa: E402

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def fake_png(width: int, height: int) -> bytes:
    """Signature plus an IHDR-shaped header carrying the pixel size."""

    return PNG_SIGNATURE + struct.pack(">I4sII", 13, b"IHDR", width, height)


def png_size(data: bytes) -> tuple[int, int]:
    _, _, width, height = struct.unpack(">I4sII", data[8:24])
    return width, height


class FakePage(EnginePage):
    def __init__(self, engine: "FakeEngine", canvas: CanvasSize, scale: int) -> None:
        self.engine = engine
        self.canvas = canvas
        self.scale = scale
        self.html = ""

    async def set_content(self, html: str, timeout_ms: float) -> None:
        self.engine.calls.append(("set_content", timeout_ms))
        self.html = html
        if "FAIL_TIMEOUT" in html:
            raise TimeoutError("navigation timeout")
        if "FAIL_LOAD" in html:
            raise RuntimeError("page crashed")

    async def wait_for_fonts(self) -> None:
        self.engine.calls.append(("wait_for_fonts", None))

    async def screenshot(self, clip: Dict[str, float]) -> bytes:
        self.engine.calls.append(("screenshot", clip))
        if "FAIL_CAPTURE" in self.html:
            raise RuntimeError("capture failed")
        return fake_png(int(clip["width"]) * self.scale, int(clip["height"]) * self.scale)

    async def close(self) -> None:
        self.engine.calls.append(("page_close", None))
        self.engine.pages_closed += 1


class FakeSession(EngineSession):
    def __init__(self, engine: "FakeEngine") -> None:
        self.engine = engine

    async def new_page(self, canvas: CanvasSize, scale: int) -> EnginePage:
        self.engine.calls.append(("new_page", (canvas.width, canvas.height, scale)))
        return FakePage(self.engine, canvas, scale)

    async def close(self) -> None:
        self.engine.calls.append(("session_close", None))
        self.engine.sessions_closed += 1


class FakeEngine(RenderEngine):
    """In-memory stand-in for the browser; failures are triggered by markers in the markup."""

    def __init__(self) -> None:
        self.fail_launch = False
        self.launched = 0
        self.sessions_closed = 0
        self.pages_closed = 0
        self.calls: List[tuple] = []

    async def launch(self) -> EngineSession:
        if self.fail_launch:
            raise RuntimeError("browser executable not found")
        self.launched += 1
        self.calls.append(("launch", None))
        return FakeSession(self)


@pytest.fixture()
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def render_settings() -> RenderSettings:
    return RenderSettings(settle_delay_ms=300, load_timeout_sec=30)


@pytest.fixture()
def test_settings(tmp_path, render_settings) -> Settings:
    return Settings(
        service_name="svg-to-png-test",
        environment="test",
        render=render_settings,
        upload=UploadSettings(max_file_size_mb=1, max_batch_files=5),
        storage=StorageSettings(temp_dir=str(tmp_path / "temp"), cleanup_delay_sec=0),
        logging=LoggingSettings(level="DEBUG", log_dir=str(tmp_path / "logs")),
    )
