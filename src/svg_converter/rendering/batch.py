"""Batch fan-out: render many documents into one isolated session and zip them."""

from __future__ import annotations

import asyncio
import logging
import zipfile
from pathlib import Path, PurePath
from typing import List, Optional, Sequence, Set, Union
from uuid import uuid4

from ..errors import InputError, PackagingError, RenderFailure
from ..monitoring import record_batch
from .base import BatchItem, BatchOutcome, BatchResult, BatchSession, RenderedImage
from .janitor import remove_session
from .renderer import RasterRenderer

logger = logging.getLogger(__name__)

RenderSlot = Union[RenderedImage, Exception]


def output_name_for(name: str, index: int) -> str:
    """Map an uploaded document name to its PNG file name (basename only)."""

    base = PurePath(name.replace("\\", "/")).name if name else ""
    stem = base[: -len(".svg")] if base.lower().endswith(".svg") else base
    if stem in {"", ".", ".."}:
        return f"image-{index + 1}.png"
    return f"{stem}.png"


def _dedupe(name: str, taken: Set[str]) -> str:
    candidate = name
    stem, suffix = name[: -len(".png")], ".png"
    counter = 2
    while candidate in taken:
        candidate = f"{stem}-{counter}{suffix}"
        counter += 1
    taken.add(candidate)
    return candidate


def _write_archive(archive_path: Path, files: Sequence[Path]) -> bytes:
    with zipfile.ZipFile(
        archive_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as archive:
        for path in files:
            archive.write(path, arcname=path.name)
    return archive_path.read_bytes()


class BatchCoordinator:
    """Runs the renderer over many documents inside one private working area."""

    def __init__(self, renderer: RasterRenderer, temp_root: Path, *, concurrency: int = 1) -> None:
        self.renderer = renderer
        self.temp_root = Path(temp_root)
        self.concurrency = max(1, concurrency)

    def open_session(self) -> BatchSession:
        session_id = uuid4().hex
        working_dir = self.temp_root / session_id
        working_dir.mkdir(parents=True, exist_ok=False)
        return BatchSession(
            id=session_id,
            working_dir=working_dir,
            archive_path=self.temp_root / f"{session_id}.zip",
        )

    async def run_batch(self, items: Sequence[BatchItem], scale: Optional[int] = None) -> BatchResult:
        if not items:
            raise InputError("No SVG documents supplied")
        scale = self.renderer.resolve_scale(scale)

        session = self.open_session()
        logger.info("Batch %s: %d documents at %dx", session.id, len(items), scale)
        try:
            slots = await self._render_all(items, scale)
            outcomes = await self._store(session, items, slots)
            archive_bytes = await self._package(session, outcomes)
        except BaseException:
            remove_session(session)
            record_batch("failure")
            raise

        result = BatchResult(session=session, archive_bytes=archive_bytes, outcomes=outcomes)
        record_batch("success", succeeded=len(result.succeeded), failed=len(result.failed))
        logger.info(
            "Batch %s finished: %d converted, %d failed, archive %.1fKB",
            session.id,
            len(result.succeeded),
            len(result.failed),
            len(archive_bytes) / 1024,
        )
        return result

    async def _render_all(self, items: Sequence[BatchItem], scale: int) -> List[RenderSlot]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _render_one(item: BatchItem) -> RenderSlot:
            async with semaphore:
                try:
                    return await self.renderer.render(item.markup, scale)
                except RenderFailure as exc:
                    logger.warning("❌ %s: %s", item.name, exc)
                    return exc
                except Exception as exc:
                    logger.exception("❌ %s: unexpected render error", item.name)
                    return exc

        return list(await asyncio.gather(*(_render_one(item) for item in items)))

    async def _store(
        self, session: BatchSession, items: Sequence[BatchItem], slots: Sequence[RenderSlot]
    ) -> List[BatchOutcome]:
        outcomes: List[BatchOutcome] = []
        taken: Set[str] = set()
        for index, (item, slot) in enumerate(zip(items, slots)):
            output_name = output_name_for(item.name, index)
            if isinstance(slot, Exception):
                outcomes.append(
                    BatchOutcome(name=item.name, output_name=output_name, status="failure", error=str(slot))
                )
                continue

            output_name = _dedupe(output_name, taken)
            path = session.working_dir / output_name
            try:
                await asyncio.to_thread(path.write_bytes, slot.png)
            except OSError as exc:
                logger.warning("❌ %s: could not store output: %s", item.name, exc)
                outcomes.append(
                    BatchOutcome(name=item.name, output_name=output_name, status="failure", error=str(exc))
                )
                continue

            logger.info("✅ %s", item.name)
            outcomes.append(BatchOutcome(name=item.name, output_name=output_name, status="success", path=path))
        return outcomes

    async def _package(self, session: BatchSession, outcomes: Sequence[BatchOutcome]) -> bytes:
        files = [outcome.path for outcome in outcomes if outcome.ok and outcome.path is not None]
        try:
            return await asyncio.to_thread(_write_archive, session.archive_path, files)
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            logger.error("Batch %s: archive creation failed: %s", session.id, exc)
            raise PackagingError(f"Failed to build archive: {exc}") from exc
