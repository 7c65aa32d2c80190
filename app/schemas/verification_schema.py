import enum
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel

from app.schemas.user_schema import UserSummary


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# (column id, title, status) in board order
VERIFICATION_STAGES = (
    ("1", "Pending", VerificationStatus.PENDING),
    ("2", "Approved", VerificationStatus.APPROVED),
    ("3", "Rejected", VerificationStatus.REJECTED),
)


class VerificationRecord(BaseModel):
    """A row of the ``verification`` table. Status is kept raw; the board normalises it."""
    id: int
    user_id: UUID
    national_id_image_url: Optional[str] = None
    license_image_url: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class VerificationCard(VerificationRecord):
    user: Optional[UserSummary] = None


class KanbanColumn(BaseModel):
    id: str
    title: str
    status: VerificationStatus
    count: int
    items: List[VerificationCard]


class VerificationBoard(BaseModel):
    columns: List[KanbanColumn]

    def column(self, status: VerificationStatus) -> KanbanColumn:
        for col in self.columns:
            if col.status == status:
                return col
        raise KeyError(status)


class StatusChange(BaseModel):
    status: VerificationStatus
