from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from app.schemas.auth_schema import (
    AuthActionResult,
    AuthCheckResult,
    ForgotPasswordRequest,
    Identity,
    LoginRequest,
    RegisterRequest,
    Token,
    UpdatePasswordRequest,
)
from app.schemas.user_schema import UserRecord
from app.api.v1.deps import get_auth_service, get_current_user, oauth2_scheme
from app.core.exceptions import InvalidCredentialsException
from app.services.auth_services import AuthService

router = APIRouter(tags=["auth"], prefix="/api/v1/auth")


@router.post("/login", response_model=AuthActionResult)
async def login(body: LoginRequest, auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.login(body.email, body.password, body.provider_name)


@router.post("/token", response_model=Token)
async def token(form_data: OAuth2PasswordRequestForm = Depends(),
                auth_svc: AuthService = Depends(get_auth_service)):
    user = await auth_svc.authenticate(form_data.username, form_data.password)
    if not user:
        raise InvalidCredentialsException()
    return Token(access_token=auth_svc.create_token_for_user(user), token_type="bearer")


@router.post("/register", response_model=AuthActionResult, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.register(body.email, body.password, body.data)


@router.post("/logout", response_model=AuthActionResult)
async def logout(auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.logout()


@router.get("/check", response_model=AuthCheckResult)
async def check(token: Optional[str] = Depends(oauth2_scheme),
                auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.check(token)


@router.get("/identity", response_model=Optional[Identity])
async def identity(token: Optional[str] = Depends(oauth2_scheme),
                   auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.get_identity(token)


@router.get("/permissions", response_model=Optional[str])
async def permissions(token: Optional[str] = Depends(oauth2_scheme),
                      auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.get_permissions(token)


@router.post("/forgot-password", response_model=AuthActionResult)
async def forgot_password(body: ForgotPasswordRequest, auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.forgot_password(body.email)


@router.post("/update-password", response_model=AuthActionResult)
async def update_password(body: UpdatePasswordRequest,
                          token: Optional[str] = Depends(oauth2_scheme),
                          auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.update_password(token, body.password)


@router.get("/me", response_model=UserRecord)
async def read_current_user(current_user: UserRecord = Depends(get_current_user)):
    return current_user
