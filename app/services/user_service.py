import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from app.core.exceptions import InvalidResourceQuery, RecordNotFound, TransitionNotAllowed
from app.repositories.user_repo import UserRepository
from app.schemas.resource_schema import (
    Filter,
    FilterOperator,
    ListParams,
    ListResult,
    Pagination,
    Sort,
    SortOrder,
)
from app.schemas.user_schema import CompanyCreate, RoleOption, UserRecord, UserUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListPageConfig:
    name: str
    search_field: str = "name"
    default_page_size: int = 10
    filter_fields: Tuple[str, ...] = ()
    permanent_filters: Tuple[Filter, ...] = ()
    sorters: Tuple[Sort, ...] = field(default_factory=lambda: (Sort(field="created_at", order=SortOrder.DESC),))
    page_size_options: Tuple[int, ...] = (10, 20, 50, 100)


USERS_PAGE = ListPageConfig(
    name="users",
    filter_fields=("role", "isVerified", "isCompany", "isOwner", "isRenter"),
)

COMPANIES_PAGE = ListPageConfig(
    name="companies",
    default_page_size=12,
    permanent_filters=(Filter(field="isCompany", operator=FilterOperator.EQ, value=True),),
    page_size_options=(12, 24, 48, 96),
)


# choices offered by the user edit form
USER_ROLES = (
    ("user", "User"),
    ("admin", "Admin"),
    ("moderator", "Moderator"),
)


def role_options() -> List[RoleOption]:
    return [RoleOption(value=value, label=label) for value, label in USER_ROLES]


def build_list_params(config: ListPageConfig, page: int = 1, page_size: Optional[int] = None,
                      search: Optional[str] = None, filters: Optional[Dict[str, Any]] = None) -> ListParams:
    applied = list(config.permanent_filters)
    for name, value in (filters or {}).items():
        if name not in config.filter_fields:
            raise InvalidResourceQuery(f"'{name}' is not a filter on the {config.name} page.")
        if value is not None:
            applied.append(Filter(field=name, operator=FilterOperator.EQ, value=value))
    if search:
        applied.append(Filter(field=config.search_field, operator=FilterOperator.CONTAINS, value=search))
    return ListParams(
        filters=applied,
        sorters=list(config.sorters),
        pagination=Pagination(current=page, page_size=page_size or config.default_page_size),
    )


class UserService:

    def __init__(self, user_repo: UserRepository, allow_unverify: bool = True):
        self.user_repo = user_repo
        self.allow_unverify = allow_unverify

    async def list_page(self, config: ListPageConfig, page: int = 1, page_size: Optional[int] = None,
                        search: Optional[str] = None, filters: Optional[Dict[str, Any]] = None) -> ListResult:
        params = build_list_params(config, page, page_size, search, filters)
        return await self.user_repo.list(params)

    async def get_user(self, user_id) -> UserRecord:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise RecordNotFound("users", user_id)
        return user

    async def _guard_unverify(self, user_id, is_verified: Optional[bool]) -> None:
        if self.allow_unverify or is_verified is not False:
            return
        current = await self.get_user(user_id)
        if current.is_verified:
            raise TransitionNotAllowed("Unverifying a verified user is disabled.")

    async def update_user(self, user_id, changes: UserUpdate) -> UserRecord:
        await self._guard_unverify(user_id, changes.is_verified)
        user = await self.user_repo.update(user_id, changes.to_columns())
        if user is None:
            raise RecordNotFound("users", user_id)
        return user

    async def set_verified(self, user_id, is_verified: bool) -> UserRecord:
        await self._guard_unverify(user_id, is_verified)
        user = await self.user_repo.set_verified(user_id, is_verified)
        if user is None:
            raise RecordNotFound("users", user_id)
        logger.info("User %s %s", user_id, "verified" if is_verified else "unverified")
        return user

    async def delete_user(self, user_id) -> None:
        deleted = await self.user_repo.delete(user_id)
        if deleted is None:
            raise RecordNotFound("users", user_id)

    # ------------------ Companies ------------------ #

    async def create_company(self, company: CompanyCreate) -> UserRecord:
        return await self.user_repo.create(company.to_columns())

    async def get_company(self, company_id) -> UserRecord:
        user = await self.user_repo.get_by_id(company_id)
        if user is None or not user.is_company:
            raise RecordNotFound("companies", company_id)
        return user

    async def update_company(self, company_id, changes: UserUpdate) -> UserRecord:
        await self.get_company(company_id)
        return await self.update_user(company_id, changes)
