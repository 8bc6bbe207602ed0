import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class DelayedTaskScheduler:
    """
    Runs a coroutine once after a delay.

    Best effort only: pending work lives in memory and is lost on shutdown
    or restart. A key that is already pending is not scheduled again.
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, key: str, delay: float, callback: Callable[..., Awaitable[Any]], *args: Any) -> bool:
        task = self._tasks.get(key)
        if task is not None and not task.done():
            logger.debug(f"Delayed task {key} already pending")
            return False

        self._tasks[key] = asyncio.create_task(self._run_later(key, delay, callback, args))
        logger.info(f"Scheduled delayed task {key} in {delay}s")
        return True

    def is_pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def _run_later(self, key: str, delay: float, callback, args) -> None:
        try:
            await asyncio.sleep(delay)
            await callback(*args)
        except asyncio.CancelledError:
            logger.info(f"Delayed task {key} cancelled")
            raise
        except Exception:
            logger.exception(f"Delayed task {key} failed")
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]

    async def shutdown(self) -> None:
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
