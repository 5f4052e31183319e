"""Fire-and-forget persistence of freshly fetched day records.

The request that triggered a write never waits for it and never sees its
outcome; a failed write only shows up in the logs and is not retried.
"""

import asyncio
import logging

from spache.services.day_store import DayStore

logger = logging.getLogger(__name__)


class WriteBehind:
    def __init__(self, store: DayStore):
        self.store = store
        # Strong references, otherwise the event loop may drop running tasks
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, records: dict[int, list], label: str = "") -> asyncio.Task:
        task = asyncio.create_task(self._write(records, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _write(self, records: dict[int, list], label: str) -> None:
        try:
            await self.store.update(records)
        except Exception as e:
            logger.error("Caching %s failed: %s", label or f"{len(records)} days", e)
            return
        logger.info("Stored %s (%d days)", label, len(records))

    async def drain(self) -> None:
        """Wait for every write submitted so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
