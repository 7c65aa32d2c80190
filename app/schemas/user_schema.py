from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr, field_validator


class UserSummary(BaseModel):
    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {
        "from_attributes": True
    }


class UserRecord(BaseModel):
    """A row of the ``users`` table as it leaves the store."""
    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    is_verified: bool = Field(False, alias="isVerified")
    is_company: bool = Field(False, alias="isCompany")
    is_owner: bool = Field(False, alias="isOwner")
    is_renter: bool = Field(False, alias="isRenter")
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
    }

    @field_validator("is_verified", "is_company", "is_owner", "is_renter", mode="before")
    @classmethod
    def null_is_false(cls, value):
        return False if value is None else value

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"


class UserUpdate(BaseModel):
    """Fields editable from the user and company edit forms."""
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: Optional[bool] = Field(None, alias="isVerified")
    is_company: Optional[bool] = Field(None, alias="isCompany")
    is_owner: Optional[bool] = Field(None, alias="isOwner")
    is_renter: Optional[bool] = Field(None, alias="isRenter")

    model_config = {
        "populate_by_name": True,
    }

    def to_columns(self) -> dict:
        return self.model_dump(exclude_unset=True, by_alias=True)


class CompanyCreate(BaseModel):
    email: EmailStr
    name: str
    phone: Optional[str] = None
    role: str = "user"
    avatar_url: Optional[str] = None
    is_verified: bool = Field(False, alias="isVerified")
    is_owner: bool = Field(False, alias="isOwner")
    is_renter: bool = Field(False, alias="isRenter")

    model_config = {
        "populate_by_name": True,
    }

    def to_columns(self) -> dict:
        columns = self.model_dump(by_alias=True)
        columns["isCompany"] = True
        return columns


class RoleOption(BaseModel):
    value: str
    label: str


class VerificationToggle(BaseModel):
    is_verified: bool = Field(..., alias="isVerified")

    model_config = {
        "populate_by_name": True,
    }
