from pydantic import BaseModel, Field, EmailStr
from typing import Any, Dict, Optional

from app.schemas.user_schema import UserRecord


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    provider_name: Optional[str] = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    data: Optional[Dict[str, Any]] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class UpdatePasswordRequest(BaseModel):
    password: str = Field(..., min_length=6)


class AuthActionResult(BaseModel):
    success: bool
    redirect_to: Optional[str] = None
    error: Optional[str] = None
    access_token: Optional[str] = None


class AuthCheckResult(BaseModel):
    authenticated: bool
    redirect_to: Optional[str] = None
    error: Optional[str] = None


class Identity(UserRecord):
    avatar: Optional[str] = None

    @classmethod
    def from_user(cls, user: UserRecord) -> "Identity":
        data = user.model_dump(by_alias=True)
        data["name"] = user.email
        data["avatar"] = user.avatar_url
        return cls.model_validate(data)
