"""Value types shared by the render pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class CanvasSize:
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas dimensions must be positive, got {self.width}x{self.height}")


DEFAULT_CANVAS = CanvasSize(width=900, height=1200)


@dataclass(frozen=True)
class RenderRequest:
    markup: str
    canvas: CanvasSize
    scale: int = 2


@dataclass(frozen=True)
class RenderedImage:
    png: bytes
    canvas: CanvasSize
    scale: int

    @property
    def width(self) -> int:
        return self.canvas.width * self.scale

    @property
    def height(self) -> int:
        return self.canvas.height * self.scale


@dataclass(frozen=True)
class BatchItem:
    name: str
    markup: str


@dataclass(frozen=True)
class BatchSession:
    id: str
    working_dir: Path
    archive_path: Path


@dataclass
class BatchOutcome:
    name: str
    output_name: str
    status: str
    path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass
class BatchResult:
    session: BatchSession
    archive_bytes: bytes
    outcomes: List[BatchOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[BatchOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> List[BatchOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]
