"""Render pipeline: canvas inference, browser rendering, batching and cleanup."""

from __future__ import annotations

from .base import (
	DEFAULT_CANVAS,
	BatchItem,
	BatchOutcome,
	BatchResult,
	BatchSession,
	CanvasSize,
	RenderedImage,
	RenderRequest,
)
from .batch import BatchCoordinator, output_name_for
from .dimensions import resolve_canvas
from .engine import EnginePage, EngineSession, PlaywrightEngine, RenderEngine
from .environment import build_document
from .janitor import SessionJanitor, remove_session
from .renderer import RasterRenderer

__all__ = [
	"DEFAULT_CANVAS",
	"BatchCoordinator",
	"BatchItem",
	"BatchOutcome",
	"BatchResult",
	"BatchSession",
	"CanvasSize",
	"EnginePage",
	"EngineSession",
	"PlaywrightEngine",
	"RasterRenderer",
	"RenderEngine",
	"RenderRequest",
	"RenderedImage",
	"SessionJanitor",
	"build_document",
	"output_name_for",
	"remove_session",
	"resolve_canvas",
]
