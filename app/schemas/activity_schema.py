from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Literal, Union
from uuid import UUID

from pydantic import BaseModel


class HistoryRecord(BaseModel):
    id: int
    title: Optional[str] = None
    message: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class VehicleRecord(BaseModel):
    id: int
    owner_id: Optional[UUID] = None

    model_config = {"from_attributes": True}


class RentalRequestRecord(BaseModel):
    id: int
    user_id: Optional[UUID] = None
    vehicle_id: Optional[int] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[str] = None
    address: Optional[str] = None
    payment: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RentalWithOwner(RentalRequestRecord):
    """Rental request joined to its vehicle's owner."""
    owner_id: Optional[UUID] = None


class DealRecord(BaseModel):
    id: int
    title: Optional[str] = None
    value: Optional[Decimal] = None
    stage: Optional[str] = None
    company: Optional[str] = None

    model_config = {"from_attributes": True}


class Contact(BaseModel):
    id: Optional[UUID] = None
    name: str
    email: str = ""
    phone: str = "Not provided"
    avatar_url: Optional[str] = None
    role: str


class DealInfo(BaseModel):
    id: int
    title: str
    value: Optional[Decimal] = None
    stage: Optional[str] = None
    company: Optional[str] = None


class RentalDetails(BaseModel):
    vehicle_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: str
    address: str
    payment: str
    notes: str
    contacts: List[Contact]
    deal: Optional[DealInfo] = None


class HistoryActivity(BaseModel):
    type: Literal["history"] = "history"
    id: str
    title: Optional[str] = None
    message: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: datetime


class RentalActivity(BaseModel):
    type: Literal["rental"] = "rental"
    id: str
    title: str
    message: str
    user_id: Optional[UUID] = None
    status: Optional[str] = None
    created_at: datetime
    rental: RentalDetails


Activity = Union[HistoryActivity, RentalActivity]
