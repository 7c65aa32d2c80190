from typing import Optional
from fastapi import Depends, HTTPException, WebSocket, status
from fastapi.security import OAuth2PasswordBearer
from asyncpg import Connection

from app.core.config import settings
from app.db.session import BackendClient, get_backend, get_db_connection
from app.middleware.auth_middleware import api_key_matches
from app.repositories.activity_repo import ActivityRepository
from app.repositories.resource_repo import ResourceRepository
from app.repositories.user_repo import UserRepository
from app.repositories.verification_repo import VerificationRepository
from app.schemas.user_schema import UserRecord
from app.services.auth_services import AuthService
from app.services.dashboard_service import RENTAL_REQUESTS, DashboardService
from app.services.user_service import UserService
from app.services.verification_service import VerificationService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


def get_user_repo(conn: Connection = Depends(get_db_connection)) -> UserRepository:
    return UserRepository(conn)


def get_auth_service(user_repo: UserRepository = Depends(get_user_repo)) -> AuthService:
    return AuthService(user_repo)


def get_user_service(user_repo: UserRepository = Depends(get_user_repo)) -> UserService:
    return UserService(user_repo, allow_unverify=settings.ALLOW_UNVERIFY)


def get_verification_service(conn: Connection = Depends(get_db_connection)) -> VerificationService:
    return VerificationService(VerificationRepository(conn), UserRepository(conn))


def get_dashboard_service(backend: BackendClient = Depends(get_backend)) -> DashboardService:
    # parallel counts: go through the pool, one connection cannot run queries concurrently
    pool = backend.pool
    return DashboardService(
        UserRepository(pool),
        ResourceRepository(pool, RENTAL_REQUESTS),
        ActivityRepository(pool),
    )


async def get_current_user(
        token: Optional[str] = Depends(oauth2_scheme),
        auth_svc: AuthService = Depends(get_auth_service),
) -> UserRecord:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await auth_svc.user_from_token(token)


# ------------------ WebSocket sessions ------------------ #
# A live session outlives any single query, so it goes through the pool.

def get_pool_user_repo(backend: BackendClient = Depends(get_backend)) -> UserRepository:
    return UserRepository(backend.pool)


def get_live_user_service(user_repo: UserRepository = Depends(get_pool_user_repo)) -> UserService:
    return UserService(user_repo, allow_unverify=settings.ALLOW_UNVERIFY)


def get_live_auth_service(user_repo: UserRepository = Depends(get_pool_user_repo)) -> AuthService:
    return AuthService(user_repo)


def get_live_verification_service(
        backend: BackendClient = Depends(get_backend),
        user_repo: UserRepository = Depends(get_pool_user_repo),
) -> VerificationService:
    return VerificationService(VerificationRepository(backend.pool), user_repo)


async def authorize_websocket(websocket: WebSocket, auth_svc: AuthService) -> Optional[UserRecord]:
    """Browsers cannot set headers on a WebSocket, so key and token travel as query params."""
    if not api_key_matches(websocket.query_params.get("apikey"), settings.BACKEND_ANON_KEY):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    try:
        return await auth_svc.user_from_token(websocket.query_params.get("token"))
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
