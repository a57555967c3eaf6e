"""Search-as-you-type debouncing on top of asyncio timers."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.5
DEFAULT_MIN_LENGTH = 3


class Debouncer:
    """
    Run a coroutine once typing pauses.

    Each ``feed`` cancels the pending timer. Text shorter than
    ``min_length`` (after trimming) schedules nothing, so only the final
    qualifying keystroke of a burst triggers ``callback``.
    """

    def __init__(
        self,
        callback: Callable[[str], Awaitable[Any]],
        delay: float = DEFAULT_DELAY,
        min_length: int = DEFAULT_MIN_LENGTH
    ):
        self.callback = callback
        self.delay = delay
        self.min_length = min_length
        self.result: Any = None
        self._pending: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def feed(self, text: str) -> bool:
        """
        Register a keystroke. Must be called from a running event loop.

        Returns:
            True if a new timer was started
        """
        self.cancel()

        query = (text or "").strip()
        if len(query) < self.min_length:
            return False

        self._pending = asyncio.get_running_loop().create_task(self._fire(query))
        return True

    async def _fire(self, query: str):
        await asyncio.sleep(self.delay)
        logger.debug(f"Debounce elapsed, searching: {query}")
        self.result = await self.callback(query)
        return self.result

    def cancel(self):
        if self.pending:
            self._pending.cancel()
        self._pending = None

    async def flush(self) -> Any:
        """
        Wait for the pending call, if any, and return its result.

        A pending call cancelled by a later keystroke yields the last
        result. Cancelling the caller of ``flush`` propagates and leaves
        the pending call running.
        """
        task = self._pending
        if task is None:
            return self.result
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return self.result
            raise
