import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from app.api.v1.deps import (
    authorize_websocket,
    get_current_user,
    get_live_auth_service,
    get_live_user_service,
    get_user_service,
)
from app.core.config import settings
from app.schemas.resource_schema import ListResult
from app.schemas.user_schema import RoleOption, UserRecord, UserUpdate, VerificationToggle
from app.services.auth_services import AuthService
from app.services.live_list import ListPage
from app.services.user_service import COMPANIES_PAGE, USERS_PAGE, UserService, role_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=ListResult[UserRecord], dependencies=[Depends(get_current_user)])
async def list_users(
        page: int = Query(1, ge=1),
        page_size: int = Query(USERS_PAGE.default_page_size, ge=1, le=100),
        q: Optional[str] = Query(None, description="Search by name"),
        role: Optional[str] = None,
        is_verified: Optional[bool] = Query(None, alias="isVerified"),
        is_company: Optional[bool] = Query(None, alias="isCompany"),
        is_owner: Optional[bool] = Query(None, alias="isOwner"),
        is_renter: Optional[bool] = Query(None, alias="isRenter"),
        user_svc: UserService = Depends(get_user_service),
):
    filters = {
        "role": role,
        "isVerified": is_verified,
        "isCompany": is_company,
        "isOwner": is_owner,
        "isRenter": is_renter,
    }
    return await user_svc.list_page(USERS_PAGE, page, page_size, q, filters)


@router.get("/roles", response_model=List[RoleOption], dependencies=[Depends(get_current_user)])
async def list_roles():
    return role_options()


@router.websocket("/ws")
async def live_users(websocket: WebSocket, page: str = "users",
                     auth_svc: AuthService = Depends(get_live_auth_service),
                     user_svc: UserService = Depends(get_live_user_service)):
    await websocket.accept()
    if await authorize_websocket(websocket, auth_svc) is None:
        return

    config = COMPANIES_PAGE if page == "companies" else USERS_PAGE
    list_page = ListPage(user_svc, config, websocket.send_json,
                         debounce_seconds=settings.SEARCH_DEBOUNCE_SECONDS)
    try:
        await list_page.refresh()
        while True:
            await list_page.handle(await websocket.receive_json())
    except WebSocketDisconnect:
        logger.debug("Live %s page disconnected", config.name)
    finally:
        list_page.close()


@router.get("/{user_id}", response_model=UserRecord, dependencies=[Depends(get_current_user)])
async def get_user(user_id: UUID, user_svc: UserService = Depends(get_user_service)):
    return await user_svc.get_user(user_id)


@router.patch("/{user_id}", response_model=UserRecord, dependencies=[Depends(get_current_user)])
async def update_user(user_id: UUID, body: UserUpdate, user_svc: UserService = Depends(get_user_service)):
    return await user_svc.update_user(user_id, body)


@router.patch("/{user_id}/verification", response_model=UserRecord,
              dependencies=[Depends(get_current_user)])
async def set_verification(user_id: UUID, body: VerificationToggle,
                           user_svc: UserService = Depends(get_user_service)):
    return await user_svc.set_verified(user_id, body.is_verified)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT,
               dependencies=[Depends(get_current_user)])
async def delete_user(user_id: UUID, user_svc: UserService = Depends(get_user_service)):
    await user_svc.delete_user(user_id)
