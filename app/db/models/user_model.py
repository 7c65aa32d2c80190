from sqlalchemy import Column, String, Boolean, DateTime, func, text
from sqlalchemy.dialects.postgresql import UUID
from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    email = Column(String(255), unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, server_default="user")
    isVerified = Column(Boolean, nullable=False, server_default="false")
    isCompany = Column(Boolean, nullable=False, server_default="false")
    isOwner = Column(Boolean, nullable=False, server_default="false")
    isRenter = Column(Boolean, nullable=False, server_default="false")
    avatar_url = Column(String, nullable=True)
    phone = Column(String(30), nullable=True)
    hashed_password = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
