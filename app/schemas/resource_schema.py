import enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from app.core.exceptions import InvalidResourceQuery

T = TypeVar("T")


class FilterOperator(str, enum.Enum):
    EQ = "eq"
    NEQ = "neq"
    LT = "lt"
    GT = "gt"
    LTE = "lte"
    GTE = "gte"
    CONTAINS = "contains"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class Filter(BaseModel):
    field: str
    operator: FilterOperator = FilterOperator.EQ
    value: Any = None

    @classmethod
    def parse(cls, raw: str) -> "Filter":
        """Parse ``field=op=value``; the value may itself contain ``=``."""
        parts = raw.split("=", 2)
        if len(parts) != 3 or not parts[0]:
            raise InvalidResourceQuery(f"Malformed filter '{raw}', expected field=op=value.")
        field, op, value = parts
        try:
            operator = FilterOperator(op)
        except ValueError:
            raise InvalidResourceQuery(f"Unsupported filter operator '{op}'.")
        return cls(field=field, operator=operator, value=value)


class Sort(BaseModel):
    field: str
    order: SortOrder = SortOrder.ASC

    @classmethod
    def parse(cls, raw: str) -> "Sort":
        field, _, order = raw.partition("=")
        if not field:
            raise InvalidResourceQuery(f"Malformed sort '{raw}', expected field=asc|desc.")
        try:
            return cls(field=field, order=SortOrder(order or "asc"))
        except ValueError:
            raise InvalidResourceQuery(f"Unsupported sort order '{order}'.")


class Pagination(BaseModel):
    current: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=1000)

    @property
    def offset(self) -> int:
        return (self.current - 1) * self.page_size


class ListParams(BaseModel):
    filters: List[Filter] = Field(default_factory=list)
    sorters: List[Sort] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class ListResult(BaseModel, Generic[T]):
    data: List[T]
    total: int


class DeleteResult(BaseModel):
    id: Any


def parse_list_params(filters: Optional[List[str]], sorts: Optional[List[str]],
                      current: int = 1, page_size: int = 10) -> ListParams:
    return ListParams(
        filters=[Filter.parse(f) for f in filters or []],
        sorters=[Sort.parse(s) for s in sorts or []],
        pagination=Pagination(current=current, page_size=page_size),
    )
