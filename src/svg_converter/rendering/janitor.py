"""Deferred, best-effort removal of batch scratch areas."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .base import BatchSession

logger = logging.getLogger(__name__)


def remove_session(session: BatchSession) -> None:
    """Delete the session's working directory and archive, ignoring failures."""

    shutil.rmtree(session.working_dir, ignore_errors=True)
    try:
        session.archive_path.unlink(missing_ok=True)
    except OSError as exc:
        logger.debug("Archive cleanup skipped for %s: %s", session.id, exc)


class SessionJanitor:
    """Schedules removal of batch sessions after their response went out.

    Timers are asyncio tasks keyed by session id. Cancelling a timer (for
    example on shutdown) removes the session immediately instead of leaking it.
    """

    def __init__(self, temp_root: Path, default_delay: float = 5.0) -> None:
        self.temp_root = Path(temp_root)
        self.default_delay = default_delay
        self._pending: Dict[str, Tuple[BatchSession, asyncio.Task[None]]] = {}

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def schedule_cleanup(self, session: BatchSession, delay: Optional[float] = None) -> asyncio.Task[None]:
        existing = self._pending.get(session.id)
        if existing is not None and not existing[1].done():
            return existing[1]

        wait = self.default_delay if delay is None else delay
        task = asyncio.get_running_loop().create_task(
            self._expire(session, wait), name=f"cleanup-{session.id}"
        )
        self._pending[session.id] = (session, task)
        logger.debug("Cleanup of session %s scheduled in %.1fs", session.id, wait)
        return task

    async def _expire(self, session: BatchSession, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        finally:
            self._pending.pop(session.id, None)
            remove_session(session)
            logger.debug("Session %s cleaned up", session.id)

    def cleanup_now(self, session: BatchSession) -> None:
        entry = self._pending.pop(session.id, None)
        if entry is not None:
            entry[1].cancel()
        remove_session(session)

    async def shutdown(self) -> None:
        entries = list(self._pending.values())
        self._pending.clear()
        for _, task in entries:
            task.cancel()
        if entries:
            await asyncio.gather(*(task for _, task in entries), return_exceptions=True)
        # timers cancelled before their first step never reach their finally block
        for session, _ in entries:
            remove_session(session)

    def purge_stale(self, max_age_sec: float) -> int:
        """Remove leftovers in the temp root older than ``max_age_sec``."""

        if not self.temp_root.exists():
            return 0

        cutoff = time.time() - max_age_sec
        removed = 0
        for entry in self.temp_root.iterdir():
            if entry.name in self._pending or entry.stem in self._pending:
                continue
            try:
                if entry.stat().st_mtime > cutoff:
                    continue
                if entry.is_dir():
                    shutil.rmtree(entry, ignore_errors=True)
                else:
                    entry.unlink(missing_ok=True)
            except OSError as exc:
                logger.debug("Stale entry %s not removed: %s", entry, exc)
                continue
            removed += 1

        if removed:
            logger.info("Purged %d stale entries from %s", removed, self.temp_root)
        return removed
