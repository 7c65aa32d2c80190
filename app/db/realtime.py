"""
Realtime change feed over PostgreSQL LISTEN/NOTIFY.

A trigger on watched tables publishes one JSON payload per row change on the
``row_changes`` channel. The hub keeps one listener connection and fans each
change out to the subscriptions whose (schema, table, event) match.
"""
import asyncio
import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

import asyncpg
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CHANGE_CHANNEL = "row_changes"
EVENTS = {"*", "INSERT", "UPDATE", "DELETE"}

ChangeCallback = Callable[["RowChange"], Union[None, Awaitable[None]]]


class RowChange(BaseModel):
    schema_name: str = Field("public", alias="schema")
    table: str
    event: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    model_config = {"populate_by_name": True}

    @classmethod
    def from_payload(cls, payload: str) -> "RowChange":
        change = cls.model_validate_json(payload)
        change.event = change.event.upper()
        return change


class Subscription:
    """A standing listener on one table. Call ``release()`` when the owner goes away."""

    def __init__(self, hub: "RealtimeHub", sub_id: int, table: str, event: str,
                 schema: str, callback: ChangeCallback):
        self.hub = hub
        self.id = sub_id
        self.table = table
        self.event = event
        self.schema = schema
        self.callback = callback
        self.active = True

    def matches(self, change: RowChange) -> bool:
        if not self.active:
            return False
        if change.table != self.table or change.schema_name != self.schema:
            return False
        return self.event == "*" or self.event == change.event

    def release(self) -> None:
        self.hub.remove_channel(self)

    def __repr__(self):
        return f"<Subscription(id={self.id}, {self.schema}.{self.table}, event={self.event})>"


class RealtimeHub:

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn
        self.conn: Optional[asyncpg.Connection] = None
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()

    # ------------------ Lifecycle ------------------ #

    async def start(self) -> None:
        if self.conn is not None:
            return
        self.conn = await asyncpg.connect(dsn=self.dsn)
        await self.conn.add_listener(CHANGE_CHANNEL, self._on_notify)
        logger.info("Realtime listener attached to channel %s", CHANGE_CHANNEL)

    async def stop(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._subscriptions.clear()
        if self.conn is not None:
            try:
                await self.conn.remove_listener(CHANGE_CHANNEL, self._on_notify)
            finally:
                await self.conn.close()
                self.conn = None
            logger.info("Realtime listener closed.")

    # ------------------ Subscriptions ------------------ #

    def channel(self, table: str, callback: ChangeCallback, event: str = "*",
                schema: str = "public") -> Subscription:
        event = event.upper()
        if event not in EVENTS:
            raise ValueError(f"Unsupported realtime event '{event}'")
        sub = Subscription(self, next(self._ids), table, event, schema, callback)
        self._subscriptions[sub.id] = sub
        logger.debug("Subscribed %r", sub)
        return sub

    def remove_channel(self, sub: Subscription) -> None:
        sub.active = False
        if self._subscriptions.pop(sub.id, None) is not None:
            logger.debug("Released %r", sub)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    # ------------------ Dispatch ------------------ #

    def _on_notify(self, connection, pid, channel, payload) -> None:
        try:
            change = RowChange.from_payload(payload)
        except ValidationError as e:
            logger.warning("Dropping malformed change payload on %s: %s", channel, e)
            return
        self.dispatch(change)

    def dispatch(self, change: RowChange) -> int:
        """Deliver a change to every matching subscription; returns how many matched."""
        delivered = 0
        for sub in list(self._subscriptions.values()):
            if not sub.matches(change):
                continue
            delivered += 1
            try:
                result = sub.callback(change)
            except Exception:
                logger.exception("Realtime callback failed for %r", sub)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)
        return delivered

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Realtime callback task failed", exc_info=task.exception())
