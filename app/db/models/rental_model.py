from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Date, DateTime, Text, func
from sqlalchemy.dialects.postgresql import UUID
from app.db.base import Base


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class RentalRequest(Base):
    __tablename__ = "rental_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, server_default="pending", index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    location = Column(String, nullable=True)
    address = Column(String, nullable=True)
    payment = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Deal(Base):
    """Shares its id with the rental request it describes."""
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=True)
    value = Column(Numeric(14, 2), nullable=True)
    stage = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)


class History(Base):
    __tablename__ = "history"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
