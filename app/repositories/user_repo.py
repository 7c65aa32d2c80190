from datetime import datetime, timezone
from typing import Optional

from app.repositories.resource_repo import Executor, ResourceRepository
from app.schemas.user_schema import UserRecord


class UserRepository(ResourceRepository):
    """``users`` table, plus the credential columns the generic accessor never exposes."""

    def __init__(self, conn: Executor):
        super().__init__(conn, "users")

    async def get_by_id(self, user_id) -> Optional[UserRecord]:
        return await self.get_one(user_id)

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        sql = f"SELECT {self.select_list} FROM users WHERE lower(email) = lower($1);"
        record = await self.run("fetchrow", sql, email)
        return self.to_record(record) if record else None

    async def get_password_hash(self, email: str) -> Optional[dict]:
        sql = "SELECT id, hashed_password FROM users WHERE lower(email) = lower($1);"
        record = await self.run("fetchrow", sql, email)
        return dict(record) if record else None

    async def create_account(self, email: str, hashed_password: str, profile: Optional[dict] = None) -> UserRecord:
        profile = profile or {}
        sql = f"""
            INSERT INTO users (email, hashed_password, name, role, avatar_url, phone)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {self.select_list};
        """
        record = await self.run(
            "fetchrow",
            sql,
            email,
            hashed_password,
            profile.get("name") or profile.get("full_name"),
            profile.get("role") or "user",
            profile.get("avatar_url"),
            profile.get("phone"),
        )
        return self.to_record(record)

    async def set_password(self, user_id, hashed_password: str) -> bool:
        sql = "UPDATE users SET hashed_password = $1, updated_at = $2 WHERE id = $3 RETURNING id;"
        updated = await self.run("fetchval", sql, hashed_password, datetime.now(timezone.utc),
                                 self.coerce("id", user_id))
        return updated is not None

    async def set_role(self, user_id, role: str) -> Optional[UserRecord]:
        return await self.update(user_id, {"role": role})

    async def set_verified(self, user_id, is_verified: bool) -> Optional[UserRecord]:
        return await self.update(user_id, {"isVerified": is_verified})
