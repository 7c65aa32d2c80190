import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

from fastapi import HTTPException

from app.repositories.user_repo import UserRepository
from app.schemas.auth_schema import AuthActionResult, AuthCheckResult, Identity
from app.schemas.user_schema import UserRecord
from app.core.security import (
    RESET_PURPOSE,
    SESSION_PURPOSE,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from app.core.config import Settings, settings as default_settings
from app.core.exceptions import TokenInvalidException, UserAlreadyExistsException

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


def _detail(exc: HTTPException, fallback: str) -> str:
    detail = exc.detail
    if isinstance(detail, dict):
        detail = detail.get("error")
    return str(detail) if detail else fallback


class AuthService:
    """Auth adapter: every outcome is a uniform result, every store failure a single error message."""

    def __init__(self, user_repo: UserRepository, settings: Settings = default_settings):
        self.user_repo = user_repo
        self.settings = settings

    # ------------------ Sessions ------------------ #

    async def authenticate(self, email: str, password: str) -> Optional[UserRecord]:
        account = await self.user_repo.get_password_hash(email)
        if not account:
            return None
        if not verify_password(password, account.get("hashed_password") or ""):
            return None
        return await self.user_repo.get_by_id(account["id"])

    def create_token_for_user(self, user: UserRecord) -> str:
        access_token_expires = timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        return create_access_token(subject=str(user.id), expires_delta=access_token_expires)

    async def user_from_token(self, token: Optional[str], purpose: str = SESSION_PURPOSE) -> UserRecord:
        if not token:
            raise TokenInvalidException()
        payload = decode_access_token(token, purpose=purpose)
        user = await self.user_repo.get_by_id(payload["sub"])
        if user is None:
            raise TokenInvalidException()
        return user

    def oauth_url(self, provider_name: str) -> Optional[str]:
        if not self.settings.AUTH_URL:
            return None
        query = urlencode({
            "provider": provider_name,
            "redirect_to": f"{self.settings.SITE_URL}/auth/callback",
        })
        return f"{self.settings.AUTH_URL.rstrip('/')}/authorize?{query}"

    # ------------------ Adapter operations ------------------ #

    async def login(self, email: Optional[str] = None, password: Optional[str] = None,
                    provider_name: Optional[str] = None) -> AuthActionResult:
        try:
            if email and password:
                user = await self.authenticate(email, password)
                if user is None:
                    return AuthActionResult(success=False, error="Invalid login credentials")
                return AuthActionResult(success=True, redirect_to="/",
                                        access_token=self.create_token_for_user(user))

            if provider_name:
                url = self.oauth_url(provider_name)
                if url is None:
                    return AuthActionResult(success=False, error="OAuth login failed")
                return AuthActionResult(success=True, redirect_to=url)

            return AuthActionResult(success=False, error="Invalid login credentials")
        except HTTPException as e:
            logger.error("Login failed: %s", e.detail)
            return AuthActionResult(success=False, error=_detail(e, "Login failed"))

    async def register(self, email: str, password: str, data: Optional[dict] = None) -> AuthActionResult:
        try:
            await self.register_user(email, password, data)
        except HTTPException as e:
            logger.warning("Registration failed for %s: %s", email, e.detail)
            return AuthActionResult(success=False, error=_detail(e, "Registration failed"))
        return AuthActionResult(success=True, redirect_to=f"{LOGIN_PATH}?registered=true")

    async def register_user(self, email: str, password: str, data: Optional[dict] = None) -> UserRecord:
        existing = await self.user_repo.get_by_email(email)
        if existing:
            raise UserAlreadyExistsException("email")
        return await self.user_repo.create_account(email, hash_password(password), data)

    async def logout(self) -> AuthActionResult:
        return AuthActionResult(success=True, redirect_to=LOGIN_PATH)

    async def check(self, token: Optional[str]) -> AuthCheckResult:
        if not token:
            return AuthCheckResult(authenticated=False, redirect_to=LOGIN_PATH)
        try:
            await self.user_from_token(token)
        except HTTPException as e:
            return AuthCheckResult(authenticated=False, redirect_to=LOGIN_PATH,
                                   error=_detail(e, "Session check failed"))
        return AuthCheckResult(authenticated=True)

    async def get_permissions(self, token: Optional[str]) -> Optional[str]:
        try:
            user = await self.user_from_token(token)
        except HTTPException:
            return None
        return user.role

    async def get_identity(self, token: Optional[str]) -> Optional[Identity]:
        try:
            user = await self.user_from_token(token)
        except HTTPException:
            return None
        return Identity.from_user(user)

    async def forgot_password(self, email: str) -> AuthActionResult:
        try:
            user = await self.user_repo.get_by_email(email)
        except HTTPException as e:
            return AuthActionResult(success=False,
                                    error=_detail(e, "Failed to send password reset email"))
        if user is not None:
            token = create_access_token(
                subject=str(user.id),
                expires_delta=timedelta(minutes=self.settings.RESET_TOKEN_EXPIRE_MINUTES),
                purpose=RESET_PURPOSE,
            )
            link = f"{self.settings.SITE_URL}/reset-password?{urlencode({'token': token})}"
            logger.info("Password reset issued for user %s", user.id)
            logger.debug("Reset link: %s", link)
        return AuthActionResult(success=True)

    async def update_password(self, token: Optional[str], password: str) -> AuthActionResult:
        try:
            try:
                user = await self.user_from_token(token, purpose=RESET_PURPOSE)
            except TokenInvalidException:
                user = await self.user_from_token(token, purpose=SESSION_PURPOSE)
            await self.user_repo.set_password(user.id, hash_password(password))
        except HTTPException as e:
            return AuthActionResult(success=False, error=_detail(e, "Failed to update password"))
        return AuthActionResult(success=True, redirect_to=LOGIN_PATH)

    async def create_admin(self, email: str, password: str) -> UserRecord:
        user = await self.register_user(email, password, {"role": "admin"})
        updated = await self.user_repo.set_role(user.id, "admin")
        return updated or user
