from typing import List

from app.repositories.resource_repo import Executor, ResourceRepository
from app.schemas.activity_schema import HistoryRecord, RentalWithOwner


class ActivityRepository:
    """Read-only queries behind the dashboard activity feed."""

    def __init__(self, conn: Executor):
        self.conn = conn
        self.history = ResourceRepository(conn, "history")
        self.rentals = ResourceRepository(conn, "rental_requests")
        self.deals = ResourceRepository(conn, "deals")

    async def recent_history(self, limit: int = 5) -> List[HistoryRecord]:
        sql = f"SELECT {self.history.select_list} FROM history ORDER BY created_at DESC LIMIT $1;"
        records = await self.history.run("fetch", sql, limit)
        return [self.history.to_record(r) for r in records]

    async def approved_rentals(self, limit: int = 5) -> List[RentalWithOwner]:
        sql = """
            SELECT r.*, v.owner_id
            FROM rental_requests r
            LEFT JOIN vehicles v ON v.id = r.vehicle_id
            WHERE r.status = 'approved'
            ORDER BY r.created_at DESC
            LIMIT $1;
        """
        records = await self.rentals.run("fetch", sql, limit)
        return [RentalWithOwner.model_validate(dict(r)) for r in records]
