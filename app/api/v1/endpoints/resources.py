from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from asyncpg import Connection

from app.api.v1.deps import get_current_user, get_db_connection
from app.core.exceptions import RecordNotFound
from app.repositories.resource_repo import ResourceRepository
from app.schemas.resource_schema import DeleteResult, ListResult, parse_list_params

router = APIRouter(
    prefix="/api/v1/resources",
    tags=["resources"],
    dependencies=[Depends(get_current_user)],
)

BULK_OPERATIONS = {
    "GET": "get_many",
    "POST": "create_many",
    "PATCH": "update_many",
    "DELETE": "delete_many",
}


def get_resource_repo(resource: str, conn: Connection = Depends(get_db_connection)) -> ResourceRepository:
    return ResourceRepository(conn, resource)


@router.get("/{resource}", response_model=ListResult)
async def list_records(
        filter: Optional[List[str]] = Query(None, description="field=op=value"),
        sort: Optional[List[str]] = Query(None, description="field=asc|desc"),
        current: int = Query(1, ge=1),
        page_size: int = Query(10, ge=1, le=1000),
        repo: ResourceRepository = Depends(get_resource_repo),
):
    params = parse_list_params(filter, sort, current, page_size)
    return await repo.list(params)


@router.api_route("/{resource}/bulk", methods=list(BULK_OPERATIONS))
async def bulk(request: Request, repo: ResourceRepository = Depends(get_resource_repo)):
    return await getattr(repo, BULK_OPERATIONS[request.method])()


@router.get("/{resource}/{record_id}")
async def get_record(record_id: str, repo: ResourceRepository = Depends(get_resource_repo)):
    record = await repo.get_one(record_id)
    if record is None:
        raise RecordNotFound(repo.resource, record_id)
    return record


@router.post("/{resource}", status_code=status.HTTP_201_CREATED)
async def create_record(variables: Dict[str, Any] = Body(...),
                        repo: ResourceRepository = Depends(get_resource_repo)):
    return await repo.create(variables)


@router.patch("/{resource}/{record_id}")
async def update_record(record_id: str, variables: Dict[str, Any] = Body(...),
                        repo: ResourceRepository = Depends(get_resource_repo)):
    record = await repo.update(record_id, variables)
    if record is None:
        raise RecordNotFound(repo.resource, record_id)
    return record


@router.delete("/{resource}/{record_id}", response_model=DeleteResult)
async def delete_record(record_id: str, repo: ResourceRepository = Depends(get_resource_repo)):
    deleted = await repo.delete(record_id)
    if deleted is None:
        raise RecordNotFound(repo.resource, record_id)
    return DeleteResult(id=deleted)
