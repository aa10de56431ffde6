"""Squad folder watcher using watchfiles.

Any markdown change under the squad folder invalidates the provider's
caches so the next read re-parses from disk.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from watchfiles import Change, awatch

from squaddash.observability import record_cache_refresh

logger = logging.getLogger("squaddash.watcher")

WATCHED_SUFFIXES = (".md",)


class SquadFileWatcher:
    """Background watcher that calls `provider.refresh()` on markdown changes."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    async def start(self, provider, squad_dir: Path) -> None:
        if self._running:
            logger.warning("Squad file watcher already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop(provider, Path(squad_dir)))
        logger.info(f"Squad file watcher started for {squad_dir}")

    async def stop(self) -> None:
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Squad file watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, provider, squad_dir: Path) -> None:
        if not squad_dir.exists():
            logger.warning(f"Squad folder {squad_dir} does not exist, watcher has nothing to monitor")
            self._running = False
            return

        try:
            async for changes in awatch(squad_dir, stop_event=self._stop_event):
                if not self._running:
                    break
                relevant = self.relevant_changes(changes)
                if relevant:
                    logger.info(f"Detected {len(relevant)} squad file changes, refreshing")
                    provider.refresh()
                    record_cache_refresh("watcher")
        except asyncio.CancelledError:
            logger.info("Squad file watcher task cancelled")
        except Exception as e:
            logger.error(f"Squad file watcher error: {e}")
        finally:
            self._running = False

    @staticmethod
    def relevant_changes(changes: set[tuple[Change, str]]) -> list[Path]:
        """Markdown paths among raw watchfiles changes, whatever the change type."""
        result: list[Path] = []
        for _change_type, path_str in changes:
            path = Path(path_str)
            if path.suffix.lower() in WATCHED_SUFFIXES:
                result.append(path)
        return result
