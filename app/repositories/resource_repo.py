import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

import asyncpg
from asyncpg import Connection
from asyncpg.pool import Pool
from pydantic import BaseModel, TypeAdapter, ValidationError

from app.core.exceptions import BackendUnavailable, InvalidResourceQuery, UnsupportedOperation
from app.schemas.activity_schema import DealRecord, HistoryRecord, RentalRequestRecord, VehicleRecord
from app.schemas.resource_schema import Filter, FilterOperator, ListParams, ListResult, Sort, SortOrder
from app.schemas.user_schema import UserRecord
from app.schemas.verification_schema import VerificationRecord

logger = logging.getLogger(__name__)

Executor = Union[Connection, Pool]

RESOURCES: Dict[str, Type[BaseModel]] = {
    "users": UserRecord,
    "verification": VerificationRecord,
    "rental_requests": RentalRequestRecord,
    "vehicles": VehicleRecord,
    "history": HistoryRecord,
    "deals": DealRecord,
}

READ_ONLY_COLUMNS = {"id", "created_at"}

_OPERATORS = {
    FilterOperator.EQ: "=",
    FilterOperator.NEQ: "<>",
    FilterOperator.LT: "<",
    FilterOperator.GT: ">",
    FilterOperator.LTE: "<=",
    FilterOperator.GTE: ">=",
}


def resolve_resource(resource: str) -> Type[BaseModel]:
    if not resource:
        raise InvalidResourceQuery("Resource name is required.")
    try:
        return RESOURCES[resource]
    except KeyError:
        raise InvalidResourceQuery(f"Unknown resource '{resource}'.")


@lru_cache(maxsize=None)
def record_columns(model: Type[BaseModel]) -> Tuple[str, ...]:
    """Store column names for a record type, in declaration order."""
    return tuple(field.alias or name for name, field in model.model_fields.items())


@lru_cache(maxsize=None)
def _column_adapter(model: Type[BaseModel], column: str) -> TypeAdapter:
    for name, field in model.model_fields.items():
        if (field.alias or name) == column:
            return TypeAdapter(field.annotation)
    raise KeyError(column)


def quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class ResourceRepository:
    """Uniform CRUD over one named table, in the shape of a hosted query builder.

    Filters and sorts are applied in the order given. Bulk operations are not
    supported. Every row returned is validated into the resource's record type.
    """

    def __init__(self, conn: Executor, resource: str):
        self.conn = conn
        self.resource = resource
        self.model = resolve_resource(resource)
        self.columns = record_columns(self.model)

    # ------------------ Query building ------------------ #

    def column(self, name: str) -> str:
        if name not in self.columns:
            raise InvalidResourceQuery(f"Unknown column '{name}' on resource '{self.resource}'.")
        return quote(name)

    def coerce(self, name: str, value: Any) -> Any:
        self.column(name)
        try:
            return _column_adapter(self.model, name).validate_python(value)
        except ValidationError:
            raise InvalidResourceQuery(f"Invalid value {value!r} for column '{name}'.")

    @property
    def table(self) -> str:
        return quote(self.resource)

    @property
    def select_list(self) -> str:
        return ", ".join(quote(c) for c in self.columns)

    def _null_check(self, f: Filter, col: str) -> str:
        if f.operator == FilterOperator.EQ:
            return f"{col} IS NULL"
        if f.operator == FilterOperator.NEQ:
            return f"{col} IS NOT NULL"
        raise InvalidResourceQuery(f"Filter '{f.field}' with operator '{f.operator.value}' needs a value.")

    def where_clause(self, filters: Sequence[Filter], args: List[Any]) -> str:
        clauses = []
        for f in filters:
            col = self.column(f.field)
            if f.value is None:
                clauses.append(self._null_check(f, col))
            elif f.operator == FilterOperator.CONTAINS:
                args.append(f"%{f.value}%")
                clauses.append(f"{col}::text ILIKE ${len(args)}")
            else:
                args.append(self.coerce(f.field, f.value))
                clauses.append(f"{col} {_OPERATORS[f.operator]} ${len(args)}")
        return f" WHERE {' AND '.join(clauses)}" if clauses else ""

    def order_clause(self, sorters: Sequence[Sort]) -> str:
        if not sorters:
            return ""
        parts = [
            f"{self.column(s.field)} {'ASC' if s.order == SortOrder.ASC else 'DESC'}"
            for s in sorters
        ]
        return f" ORDER BY {', '.join(parts)}"

    def to_record(self, row) -> BaseModel:
        try:
            return self.model.model_validate(dict(row))
        except ValidationError as e:
            logger.error("Malformed %s row from backend: %s", self.resource, e)
            raise BackendUnavailable(f"Malformed {self.resource} row returned by backend.")

    async def run(self, method: str, sql: str, *args):
        try:
            return await getattr(self.conn, method)(sql, *args)
        except (asyncpg.UniqueViolationError, asyncpg.ForeignKeyViolationError,
                asyncpg.DataError, asyncpg.NotNullViolationError) as e:
            logger.warning("%s rejected on %s: %s", method, self.resource, e)
            raise InvalidResourceQuery(str(e))
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error("%s failed on %s: %s", method, self.resource, e)
            raise BackendUnavailable(str(e))

    # ------------------ Retrieval ------------------ #

    async def count(self, filters: Sequence[Filter] = ()) -> int:
        args: List[Any] = []
        sql = f"SELECT count(*) FROM {self.table}{self.where_clause(filters, args)};"
        total = await self.run("fetchval", sql, *args)
        return int(total or 0)

    async def list(self, params: Optional[ListParams] = None) -> ListResult:
        params = params or ListParams()
        total = await self.count(params.filters)

        args: List[Any] = []
        where = self.where_clause(params.filters, args)
        args.append(params.pagination.page_size)
        limit_pos = len(args)
        args.append(params.pagination.offset)
        sql = (
            f"SELECT {self.select_list} FROM {self.table}{where}"
            f"{self.order_clause(params.sorters)}"
            f" LIMIT ${limit_pos} OFFSET ${limit_pos + 1};"
        )
        rows = await self.run("fetch", sql, *args)
        return ListResult(data=[self.to_record(r) for r in rows], total=total)

    async def get_one(self, record_id) -> Optional[BaseModel]:
        if record_id is None:
            raise InvalidResourceQuery("Record id is required.")
        sql = f"SELECT {self.select_list} FROM {self.table} WHERE \"id\" = $1;"
        row = await self.run("fetchrow", sql, self.coerce("id", record_id))
        return self.to_record(row) if row else None

    async def find_in(self, field: str, values: Iterable[Any]) -> List[BaseModel]:
        """Rows whose ``field`` is one of ``values`` (an ``.in()`` lookup)."""
        values = list(dict.fromkeys(v for v in values if v is not None))
        if not values:
            return []
        col = self.column(field)
        coerced = [self.coerce(field, v) for v in values]
        sql = f"SELECT {self.select_list} FROM {self.table} WHERE {col} = ANY($1);"
        rows = await self.run("fetch", sql, coerced)
        return [self.to_record(r) for r in rows]

    # ------------------ Mutation ------------------ #

    def _assignments(self, variables: Dict[str, Any]) -> Tuple[List[str], List[Any]]:
        names, values = [], []
        for name, value in variables.items():
            if name in READ_ONLY_COLUMNS:
                raise InvalidResourceQuery(f"Column '{name}' cannot be written.")
            names.append(self.column(name))
            values.append(value if value is None else self.coerce(name, value))
        return names, values

    async def create(self, variables: Dict[str, Any]) -> BaseModel:
        names, values = self._assignments(variables)
        if names:
            placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
            sql = (f"INSERT INTO {self.table} ({', '.join(names)}) VALUES ({placeholders}) "
                   f"RETURNING {self.select_list};")
        else:
            sql = f"INSERT INTO {self.table} DEFAULT VALUES RETURNING {self.select_list};"
        row = await self.run("fetchrow", sql, *values)
        if not row:
            raise BackendUnavailable(f"Failed to insert into {self.resource}.")
        return self.to_record(row)

    async def update(self, record_id, variables: Dict[str, Any]) -> Optional[BaseModel]:
        if record_id is None:
            raise InvalidResourceQuery("Record id is required.")
        names, values = self._assignments(variables)
        if not names:
            return await self.get_one(record_id)
        sets = ", ".join(f"{n} = ${i}" for i, n in enumerate(names, start=1))
        values.append(self.coerce("id", record_id))
        sql = (f"UPDATE {self.table} SET {sets} WHERE \"id\" = ${len(values)} "
               f"RETURNING {self.select_list};")
        row = await self.run("fetchrow", sql, *values)
        return self.to_record(row) if row else None

    async def delete(self, record_id) -> Optional[Any]:
        if record_id is None:
            raise InvalidResourceQuery("Record id is required.")
        sql = f"DELETE FROM {self.table} WHERE \"id\" = $1 RETURNING \"id\";"
        return await self.run("fetchval", sql, self.coerce("id", record_id))

    # ------------------ Bulk (unsupported) ------------------ #

    async def create_many(self, *args, **kwargs):
        raise UnsupportedOperation("create_many")

    async def update_many(self, *args, **kwargs):
        raise UnsupportedOperation("update_many")

    async def delete_many(self, *args, **kwargs):
        raise UnsupportedOperation("delete_many")

    async def get_many(self, *args, **kwargs):
        raise UnsupportedOperation("get_many")
