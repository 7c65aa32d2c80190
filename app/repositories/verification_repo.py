from datetime import datetime, timezone
from typing import List, Optional

from app.repositories.resource_repo import Executor, ResourceRepository
from app.schemas.verification_schema import VerificationRecord, VerificationStatus


class VerificationRepository(ResourceRepository):

    def __init__(self, conn: Executor):
        super().__init__(conn, "verification")

    async def list_recent(self) -> List[VerificationRecord]:
        sql = f"SELECT {self.select_list} FROM verification ORDER BY created_at DESC;"
        records = await self.run("fetch", sql)
        return [self.to_record(r) for r in records]

    async def update_status(self, verification_id: int, status: VerificationStatus,
                            updated_at: Optional[datetime] = None) -> Optional[VerificationRecord]:
        """Single-row write of (status, updated_at). No transition guard."""
        updated_at = updated_at or datetime.now(timezone.utc)
        sql = f"""
            UPDATE verification SET status = $1, updated_at = $2
            WHERE id = $3
            RETURNING {self.select_list};
        """
        record = await self.run("fetchrow", sql, VerificationStatus(status).value, updated_at,
                                self.coerce("id", verification_id))
        return self.to_record(record) if record else None
