import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from fastapi import HTTPException

from app.core.exceptions import RecordNotFound
from app.db.realtime import RealtimeHub, RowChange, Subscription
from app.repositories.user_repo import UserRepository
from app.repositories.verification_repo import VerificationRepository
from app.schemas.user_schema import UserSummary
from app.schemas.verification_schema import (
    VERIFICATION_STAGES,
    KanbanColumn,
    VerificationBoard,
    VerificationCard,
    VerificationRecord,
    VerificationStatus,
)
from app.services.refresh import FetchSequencer

logger = logging.getLogger(__name__)

VERIFICATION_TABLE = "verification"


def group_by_status(cards: Iterable[VerificationCard]) -> VerificationBoard:
    """Bucket cards into the three board columns; status is matched case-insensitively."""
    groups: Dict[str, List[VerificationCard]] = {}
    for card in cards:
        if not card.status:
            logger.warning("Verification %s has no status, skipping", card.id)
            continue
        groups.setdefault(card.status.upper(), []).append(card)

    columns = []
    for col_id, title, status in VERIFICATION_STAGES:
        items = groups.get(status.value, [])
        columns.append(KanbanColumn(id=col_id, title=title, status=status, count=len(items), items=items))
    return VerificationBoard(columns=columns)


class VerificationService:

    def __init__(self, verification_repo: VerificationRepository, user_repo: UserRepository):
        self.verification_repo = verification_repo
        self.user_repo = user_repo

    async def _user_summaries(self, records: List[VerificationRecord]) -> Dict:
        user_ids = {r.user_id for r in records}
        if not user_ids:
            return {}
        try:
            users = await self.user_repo.find_in("id", user_ids)
        except HTTPException as e:
            logger.warning("Could not fetch user data for verifications: %s", e.detail)
            return {}
        return {u.id: UserSummary(id=u.id, email=u.email, name=u.name, avatar_url=u.avatar_url) for u in users}

    async def fetch_board(self) -> VerificationBoard:
        records = await self.verification_repo.list_recent()
        users = await self._user_summaries(records)
        cards = [
            VerificationCard(**record.model_dump(), user=users.get(record.user_id))
            for record in records
        ]
        return group_by_status(cards)

    async def change_status(self, verification_id: int, status: VerificationStatus) -> VerificationRecord:
        record = await self.verification_repo.update_status(verification_id, status)
        if record is None:
            raise RecordNotFound(VERIFICATION_TABLE, verification_id)
        logger.info("Verification %s set to %s", verification_id, record.status)
        return record


Send = Callable[[dict], Awaitable[None]]


class BoardSession:
    """One open Kanban board: re-fetches on local changes and on realtime notifications.

    Overlapping fetches are sequenced so a stale response never replaces a newer
    board. The realtime subscription is released when the session closes.
    """

    def __init__(self, service: VerificationService, hub: RealtimeHub, send: Send):
        self.service = service
        self.hub = hub
        self.send = send
        self.sequencer = FetchSequencer()
        self.board: Optional[VerificationBoard] = None
        self.subscription: Optional[Subscription] = None

    async def __aenter__(self) -> "BoardSession":
        self.open()
        await self.refresh()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if self.subscription is None:
            self.subscription = self.hub.channel(VERIFICATION_TABLE, self.on_change, event="*")

    def close(self) -> None:
        if self.subscription is not None:
            self.subscription.release()
            self.subscription = None

    async def on_change(self, change: RowChange) -> None:
        logger.debug("Verification %s received, refreshing board", change.event)
        await self.refresh()

    async def refresh(self) -> bool:
        ticket = self.sequencer.next_ticket()
        try:
            board = await self.service.fetch_board()
        except HTTPException as e:
            if not self.sequencer.accept(ticket):
                logger.debug("Discarding stale board failure #%s", ticket)
                return False
            logger.error("Error fetching verification requests: %s", e.detail)
            await self.send({"type": "error", "message": f"Failed to load verification requests: {e.detail}"})
            return False
        if not self.sequencer.accept(ticket):
            logger.debug("Discarding stale board response #%s", ticket)
            return False
        self.board = board
        await self.send({"type": "board", "data": board.model_dump(mode="json")})
        return True

    async def change_status(self, verification_id: int, status: VerificationStatus) -> bool:
        try:
            record = await self.service.change_status(verification_id, status)
        except HTTPException as e:
            await self.send({"type": "error", "message": str(e.detail)})
            return False
        await self.send({
            "type": "notice",
            "message": f"Verification {record.status.lower()} successfully",
        })
        await self.refresh()
        return True

    async def handle(self, message: dict) -> None:
        action = message.get("action")
        if action == "refresh":
            await self.refresh()
        elif action == "change_status":
            try:
                status = VerificationStatus(str(message.get("status", "")).upper())
            except ValueError:
                await self.send({"type": "error", "message": f"Unknown status '{message.get('status')}'"})
                return
            await self.change_status(message.get("id"), status)
        else:
            await self.send({"type": "error", "message": f"Unknown action '{action}'"})
