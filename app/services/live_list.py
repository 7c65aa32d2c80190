"""
Live list page state for the users and companies pages.

Holds page number, page size, free-text search and equality filters. Any change
re-issues a count query and a ranged data query and replaces the whole local
list. Search changes are debounced. Offset pagination means a row inserted
between the count and the data query can shift the last page by one; that
boundary is accepted.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from app.schemas.resource_schema import Pagination
from app.schemas.user_schema import UserRecord, VerificationToggle
from app.services.refresh import Debouncer, FetchSequencer
from app.services.user_service import ListPageConfig, UserService

logger = logging.getLogger(__name__)

Send = Callable[[dict], Awaitable[None]]


class ListPage:

    def __init__(self, service: UserService, config: ListPageConfig, send: Send,
                 debounce_seconds: float = 0.5):
        self.service = service
        self.config = config
        self.send = send
        self.page = 1
        self.page_size = config.default_page_size
        self.search: Optional[str] = None
        self.filters: Dict[str, Any] = {}
        self.items: List[UserRecord] = []
        self.total = 0
        self.sequencer = FetchSequencer()
        self.debouncer = Debouncer(debounce_seconds, self.refresh)

    def snapshot(self) -> dict:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "page_size_options": list(self.config.page_size_options),
            "search": self.search,
            "filters": self.filters,
            "total": self.total,
            "items": [item.model_dump(mode="json", by_alias=True) for item in self.items],
        }

    async def refresh(self) -> bool:
        ticket = self.sequencer.next_ticket()
        try:
            result = await self.service.list_page(
                self.config, self.page, self.page_size, self.search, self.filters,
            )
        except HTTPException as e:
            if not self.sequencer.accept(ticket):
                logger.debug("Discarding stale %s page failure #%s", self.config.name, ticket)
                return False
            logger.error("Failed to load %s page: %s", self.config.name, e.detail)
            await self.send({"type": "error", "message": str(e.detail)})
            return False
        if not self.sequencer.accept(ticket):
            logger.debug("Discarding stale %s page response #%s", self.config.name, ticket)
            return False
        self.items = list(result.data)
        self.total = result.total
        await self.send({"type": "list", "data": self.snapshot()})
        return True

    async def _reject(self, e: ValidationError) -> bool:
        error = e.errors()[0]
        await self.send({"type": "error", "message": f"Invalid {error['loc'][-1]}: {error['msg']}"})
        return False

    async def set_page(self, page: Any) -> bool:
        try:
            pagination = Pagination(current=page, page_size=self.page_size)
        except ValidationError as e:
            return await self._reject(e)
        self.page = pagination.current
        return await self.refresh()

    async def set_page_size(self, page_size: Any) -> bool:
        try:
            pagination = Pagination(current=1, page_size=page_size)
        except ValidationError as e:
            return await self._reject(e)
        self.page_size = pagination.page_size
        self.page = 1
        return await self.refresh()

    async def set_filter(self, field: str, value: Any) -> bool:
        if field not in self.config.filter_fields:
            await self.send({"type": "error", "message": f"'{field}' is not a filter on this page"})
            return False
        if value is None:
            self.filters.pop(field, None)
        else:
            self.filters[field] = value
        self.page = 1
        return await self.refresh()

    def set_search(self, text: Optional[str]) -> None:
        """Record the search text; the query runs once typing settles."""
        self.search = (text or "").strip() or None
        self.page = 1
        self.debouncer.trigger()

    async def toggle_verified(self, user_id, is_verified: bool) -> bool:
        try:
            user = await self.service.set_verified(user_id, is_verified)
        except HTTPException as e:
            await self.send({"type": "error", "message": str(e.detail)})
            return False
        self.patch_item(user)
        await self.send({
            "type": "notice",
            "message": f"User {'verified' if is_verified else 'unverified'} successfully",
        })
        await self.send({"type": "list", "data": self.snapshot()})
        return True

    def patch_item(self, user: UserRecord) -> None:
        self.items = [user if item.id == user.id else item for item in self.items]

    async def handle(self, message: dict) -> None:
        action = message.get("action")
        if action == "refresh":
            await self.refresh()
        elif action == "page":
            await self.set_page(message.get("value", 1))
        elif action == "page_size":
            await self.set_page_size(message.get("value", self.config.default_page_size))
        elif action == "filter":
            await self.set_filter(message.get("field"), message.get("value"))
        elif action == "search":
            self.set_search(message.get("value"))
        elif action == "toggle_verified":
            try:
                toggle = VerificationToggle.model_validate({"isVerified": message.get("value")})
            except ValidationError as e:
                await self._reject(e)
                return
            await self.toggle_verified(message.get("id"), toggle.is_verified)
        else:
            await self.send({"type": "error", "message": f"Unknown action '{action}'"})

    def close(self) -> None:
        self.debouncer.cancel()
