import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class FetchSequencer:
    """Orders overlapping re-fetches: only a response newer than the last applied one wins."""

    def __init__(self):
        self._issued = 0
        self._applied = 0

    def next_ticket(self) -> int:
        self._issued += 1
        return self._issued

    def accept(self, ticket: int) -> bool:
        if ticket <= self._applied:
            return False
        self._applied = ticket
        return True

    @property
    def last_applied(self) -> int:
        return self._applied


class Debouncer:
    """Runs ``action`` once ``delay`` seconds after the last ``trigger()``."""

    def __init__(self, delay: float, action: Callable[[], Awaitable[None]]):
        self.delay = delay
        self.action = action
        self._pending: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def trigger(self) -> None:
        self.cancel()
        self._pending = asyncio.ensure_future(self._fire())
        self._pending.add_done_callback(self._done)

    def cancel(self) -> None:
        if self.pending:
            self._pending.cancel()
        self._pending = None

    async def _fire(self) -> None:
        await asyncio.sleep(self.delay)
        await self.action()

    @staticmethod
    def _done(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced action failed", exc_info=task.exception())
