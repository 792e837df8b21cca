"""One cancellable deferred task per live transfer code."""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class ExpiryScheduler:
    def __init__(self, on_expire: Callable[[str], Awaitable[object]]):
        self._on_expire = on_expire
        self._tasks: dict[str, asyncio.Task] = {}

    def arm(self, code: str, delay: float) -> None:
        """Schedule on_expire(code) after delay seconds, replacing any pending entry."""
        self.disarm(code)
        task = asyncio.create_task(self._fire(code, max(delay, 0.0)), name=f"expire-{code}")
        self._tasks[code] = task

    def disarm(self, code: str) -> bool:
        task = self._tasks.pop(code, None)
        if task is None:
            return False
        if task is not asyncio.current_task():
            task.cancel()
        return True

    def pending(self, code: str) -> bool:
        return code in self._tasks

    def cancel_all(self) -> None:
        for code in list(self._tasks):
            self.disarm(code)

    def __len__(self) -> int:
        return len(self._tasks)

    async def _fire(self, code: str, delay: float) -> None:
        await asyncio.sleep(delay)
        # Drop our own entry first so the purge's disarm is a no-op for this task
        if self._tasks.get(code) is asyncio.current_task():
            del self._tasks[code]
        try:
            await self._on_expire(code)
        except Exception:
            logger.exception(f"Expiry of transfer {code} failed")
