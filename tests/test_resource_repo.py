import asyncio
import uuid

import asyncpg
import pytest

from app.core.exceptions import BackendUnavailable, InvalidResourceQuery, UnsupportedOperation
from app.repositories.resource_repo import ResourceRepository, record_columns
from app.schemas.resource_schema import Filter, FilterOperator, ListParams, Pagination, Sort, SortOrder, parse_list_params
from app.schemas.user_schema import UserRecord
from tests.conftest import BASE_TIME, RecordingExecutor


def user_row(name="Alice"):
    return {
        "id": uuid.uuid4(), "email": f"{name.lower()}@example.com", "name": name, "role": "user",
        "isVerified": None, "isCompany": True, "isOwner": False, "isRenter": False,
        "avatar_url": None, "phone": None, "created_at": BASE_TIME, "updated_at": BASE_TIME,
    }


def test_list_requests_range_and_echoes_total():
    """Page 3 of size 10 asks for rows 20..29 and reports the store's count untouched."""
    conn = RecordingExecutor(fetchval=42, fetch=[user_row()])
    repo = ResourceRepository(conn, "users")
    params = ListParams(pagination=Pagination(current=3, page_size=10))

    result = asyncio.run(repo.list(params))

    assert result.total == 42
    assert len(result.data) == 1
    assert isinstance(result.data[0], UserRecord)
    assert result.data[0].is_verified is False
    method, sql, args = conn.calls[-1]
    assert method == "fetch"
    assert "LIMIT $1 OFFSET $2" in sql
    assert args == (10, 20)


def test_filters_and_sorts_are_applied_in_order():
    conn = RecordingExecutor(fetchval=0)
    repo = ResourceRepository(conn, "users")
    params = ListParams(
        filters=[
            Filter(field="isCompany", operator=FilterOperator.EQ, value="true"),
            Filter(field="name", operator=FilterOperator.CONTAINS, value="acme"),
        ],
        sorters=[Sort(field="name", order=SortOrder.ASC), Sort(field="created_at", order=SortOrder.DESC)],
    )

    asyncio.run(repo.list(params))

    _, sql, args = conn.calls[-1]
    assert '"isCompany" = $1 AND "name"::text ILIKE $2' in sql
    assert 'ORDER BY "name" ASC, "created_at" DESC' in sql
    assert args[:2] == (True, "%acme%")


def test_empty_filter_value_is_still_applied():
    """role <> '' must narrow the count, not vanish from the query."""
    conn = RecordingExecutor(fetchval=3)
    repo = ResourceRepository(conn, "users")

    total = asyncio.run(repo.count([Filter(field="role", operator=FilterOperator.NEQ, value="")]))

    assert total == 3
    _, sql, args = conn.calls[0]
    assert 'WHERE "role" <> $1' in sql
    assert args == ("",)


def test_missing_filter_value_means_null_check():
    conn = RecordingExecutor(fetchval=0)
    repo = ResourceRepository(conn, "users")

    asyncio.run(repo.count([
        Filter(field="phone", operator=FilterOperator.EQ, value=None),
        Filter(field="avatar_url", operator=FilterOperator.NEQ, value=None),
    ]))

    _, sql, args = conn.calls[0]
    assert 'WHERE "phone" IS NULL AND "avatar_url" IS NOT NULL' in sql
    assert args == ()
    with pytest.raises(InvalidResourceQuery):
        asyncio.run(repo.count([Filter(field="created_at", operator=FilterOperator.GT, value=None)]))


def test_unknown_resource_and_column_are_rejected():
    with pytest.raises(InvalidResourceQuery):
        ResourceRepository(RecordingExecutor(), "payments")
    with pytest.raises(InvalidResourceQuery):
        ResourceRepository(RecordingExecutor(), "")

    repo = ResourceRepository(RecordingExecutor(), "users")
    with pytest.raises(InvalidResourceQuery):
        asyncio.run(repo.count([Filter(field="password", value="x")]))


def test_get_one_requires_id_and_returns_none_when_missing():
    repo = ResourceRepository(RecordingExecutor(fetchrow=None), "deals")

    assert asyncio.run(repo.get_one(7)) is None
    with pytest.raises(InvalidResourceQuery):
        asyncio.run(repo.get_one(None))


def test_create_rejects_read_only_columns():
    repo = ResourceRepository(RecordingExecutor(), "history")

    with pytest.raises(InvalidResourceQuery):
        asyncio.run(repo.create({"id": 5, "title": "x"}))


def test_update_builds_single_row_write():
    row = user_row("Acme")
    conn = RecordingExecutor(fetchrow=row)
    repo = ResourceRepository(conn, "users")

    record = asyncio.run(repo.update(str(row["id"]), {"name": "Acme", "isVerified": True}))

    assert record.name == "Acme"
    _, sql, args = conn.calls[0]
    assert sql.startswith('UPDATE "users" SET "name" = $1, "isVerified" = $2 WHERE "id" = $3')
    assert args == ("Acme", True, row["id"])


def test_bulk_operations_are_unsupported():
    repo = ResourceRepository(RecordingExecutor(), "vehicles")

    for op in (repo.create_many, repo.update_many, repo.delete_many, repo.get_many):
        with pytest.raises(UnsupportedOperation) as exc:
            asyncio.run(op())
        assert exc.value.status_code == 501


def test_store_failures_become_backend_errors():
    repo = ResourceRepository(RecordingExecutor(error=OSError("connection refused")), "users")
    with pytest.raises(BackendUnavailable) as exc:
        asyncio.run(repo.count())
    assert exc.value.status_code == 502

    repo = ResourceRepository(RecordingExecutor(error=asyncpg.UniqueViolationError("duplicate key")), "users")
    with pytest.raises(InvalidResourceQuery):
        asyncio.run(repo.create({"email": "dup@example.com"}))


def test_malformed_row_is_reported_as_backend_error():
    conn = RecordingExecutor(fetchval=1, fetch=[{"id": "not-a-uuid"}])
    repo = ResourceRepository(conn, "users")

    with pytest.raises(BackendUnavailable):
        asyncio.run(repo.list())


def test_record_columns_use_store_names():
    columns = record_columns(UserRecord)
    assert "isVerified" in columns
    assert "is_verified" not in columns


def test_filter_parse_keeps_equals_in_value():
    f = Filter.parse("notes=contains=a=b")
    assert (f.field, f.operator, f.value) == ("notes", FilterOperator.CONTAINS, "a=b")

    with pytest.raises(InvalidResourceQuery):
        Filter.parse("name=like=x")
    with pytest.raises(InvalidResourceQuery):
        Filter.parse("name")


def test_parse_list_params():
    params = parse_list_params(["role=eq=admin"], ["created_at=desc"], current=2, page_size=25)

    assert params.filters[0].value == "admin"
    assert params.sorters[0].order == SortOrder.DESC
    assert params.pagination.offset == 25
