"""SVG to PNG conversion service driven by a headless browser."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
	from fastapi import FastAPI

	from .config import Settings


def create_app(settings: "Settings" | None = None) -> "FastAPI":
	from .app import create_app as _create_app

	return _create_app(settings)


__all__ = ["create_app"]
