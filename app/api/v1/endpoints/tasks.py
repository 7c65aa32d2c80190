import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.api.v1.deps import (
    authorize_websocket,
    get_current_user,
    get_live_auth_service,
    get_live_verification_service,
    get_verification_service,
)
from app.db.session import BackendClient, get_backend
from app.schemas.verification_schema import StatusChange, VerificationBoard, VerificationRecord
from app.services.auth_services import AuthService
from app.services.verification_service import BoardSession, VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@router.get("", response_model=VerificationBoard, dependencies=[Depends(get_current_user)])
async def verification_board(svc: VerificationService = Depends(get_verification_service)):
    return await svc.fetch_board()


@router.patch("/{verification_id}/status", response_model=VerificationRecord,
              dependencies=[Depends(get_current_user)])
async def change_status(verification_id: int, body: StatusChange,
                        svc: VerificationService = Depends(get_verification_service)):
    return await svc.change_status(verification_id, body.status)


@router.websocket("/ws")
async def live_board(websocket: WebSocket,
                     backend: BackendClient = Depends(get_backend),
                     auth_svc: AuthService = Depends(get_live_auth_service),
                     svc: VerificationService = Depends(get_live_verification_service)):
    await websocket.accept()
    if await authorize_websocket(websocket, auth_svc) is None:
        return

    try:
        async with BoardSession(svc, backend.realtime, websocket.send_json) as session:
            while True:
                await session.handle(await websocket.receive_json())
    except WebSocketDisconnect:
        logger.debug("Verification board disconnected")
