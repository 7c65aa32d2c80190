from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.deps import get_current_user, get_user_service
from app.schemas.resource_schema import ListResult
from app.schemas.user_schema import CompanyCreate, UserRecord, UserUpdate
from app.services.user_service import COMPANIES_PAGE, UserService

router = APIRouter(
    prefix="/api/v1/companies",
    tags=["companies"],
    dependencies=[Depends(get_current_user)],
)


@router.get("", response_model=ListResult[UserRecord])
async def list_companies(
        page: int = Query(1, ge=1),
        page_size: int = Query(COMPANIES_PAGE.default_page_size, ge=1, le=100),
        q: Optional[str] = Query(None, description="Search by company name"),
        user_svc: UserService = Depends(get_user_service),
):
    return await user_svc.list_page(COMPANIES_PAGE, page, page_size, q)


@router.post("", response_model=UserRecord, status_code=status.HTTP_201_CREATED)
async def create_company(body: CompanyCreate, user_svc: UserService = Depends(get_user_service)):
    return await user_svc.create_company(body)


@router.get("/{company_id}", response_model=UserRecord)
async def get_company(company_id: UUID, user_svc: UserService = Depends(get_user_service)):
    return await user_svc.get_company(company_id)


@router.patch("/{company_id}", response_model=UserRecord)
async def update_company(company_id: UUID, body: UserUpdate,
                         user_svc: UserService = Depends(get_user_service)):
    return await user_svc.update_company(company_id, body)
