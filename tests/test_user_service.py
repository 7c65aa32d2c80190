import asyncio

import pytest

from app.core.exceptions import InvalidResourceQuery, RecordNotFound, TransitionNotAllowed
from app.schemas.resource_schema import FilterOperator
from app.schemas.user_schema import CompanyCreate, UserUpdate
from app.services.user_service import COMPANIES_PAGE, USERS_PAGE, UserService, build_list_params
from tests.conftest import FakeUserRepo, make_user


def test_users_page_filters_and_search(user_repo):
    """isCompany=true plus a name search narrows the list to the matching company."""
    svc = UserService(user_repo)

    result = asyncio.run(svc.list_page(USERS_PAGE, search="acme", filters={"isCompany": True}))

    assert result.total == 1
    assert [u.name for u in result.data] == ["Acme Rentals"]


def test_users_page_is_newest_first_and_paged(user_repo):
    svc = UserService(user_repo)

    first = asyncio.run(svc.list_page(USERS_PAGE, page=1, page_size=3))
    second = asyncio.run(svc.list_page(USERS_PAGE, page=2, page_size=3))

    assert first.total == second.total == 4
    assert [u.name for u in first.data] == ["Zoom Cars", "Acme Rentals", "Bob Driver"]
    assert [u.name for u in second.data] == ["Alice Rider"]


def test_companies_page_always_filters_companies(user_repo):
    svc = UserService(user_repo)

    result = asyncio.run(svc.list_page(COMPANIES_PAGE))

    assert result.total == 2
    assert all(u.is_company for u in result.data)
    assert user_repo.list_calls[-1].pagination.page_size == 12


def test_unknown_filter_is_rejected():
    with pytest.raises(InvalidResourceQuery):
        build_list_params(USERS_PAGE, filters={"hashed_password": "x"})
    with pytest.raises(InvalidResourceQuery):
        build_list_params(COMPANIES_PAGE, filters={"role": "admin"})


def test_search_becomes_contains_filter():
    params = build_list_params(USERS_PAGE, search="ali", filters={"role": None})

    assert len(params.filters) == 1
    assert params.filters[0].operator == FilterOperator.CONTAINS
    assert params.filters[0].field == "name"


def test_toggle_verification_reads_back(user_repo, users):
    svc = UserService(user_repo)
    bob = users[1]

    asyncio.run(svc.set_verified(bob.id, True))

    assert asyncio.run(svc.get_user(bob.id)).is_verified is True


def test_unverify_can_be_disabled(user_repo, users):
    svc = UserService(user_repo, allow_unverify=False)
    alice = users[0]

    with pytest.raises(TransitionNotAllowed) as exc:
        asyncio.run(svc.set_verified(alice.id, False))
    assert exc.value.status_code == 409
    assert asyncio.run(svc.get_user(alice.id)).is_verified is True

    with pytest.raises(TransitionNotAllowed):
        asyncio.run(svc.update_user(alice.id, UserUpdate(is_verified=False)))


def test_unverify_allowed_by_default(user_repo, users):
    svc = UserService(user_repo)

    user = asyncio.run(svc.set_verified(users[0].id, False))

    assert user.is_verified is False


def test_update_only_touches_given_fields(user_repo, users):
    svc = UserService(user_repo)
    alice = users[0]

    updated = asyncio.run(svc.update_user(alice.id, UserUpdate(phone="+1 555 0100")))

    assert updated.phone == "+1 555 0100"
    assert updated.name == alice.name
    assert updated.is_verified is True


def test_missing_user_is_not_found(user_repo, users):
    svc = UserService(user_repo)
    missing = users[0].id
    asyncio.run(svc.delete_user(missing))

    with pytest.raises(RecordNotFound):
        asyncio.run(svc.get_user(missing))
    with pytest.raises(RecordNotFound):
        asyncio.run(svc.delete_user(missing))


def test_company_create_and_lookup(user_repo, users):
    svc = UserService(user_repo)

    company = asyncio.run(svc.create_company(CompanyCreate(email="fleet@example.com", name="Fleet Co")))

    assert company.is_company is True
    assert asyncio.run(svc.get_company(company.id)).name == "Fleet Co"
    with pytest.raises(RecordNotFound):
        asyncio.run(svc.get_company(users[0].id))


def test_company_verification_scenario():
    """Verify the only company, then list again and see it verified."""
    company = make_user("Solo Fleet", minutes=1, isCompany=True, isVerified=False)
    person = make_user("Pat Walker", minutes=2, isCompany=False)
    svc = UserService(FakeUserRepo([company, person]))

    before = asyncio.run(svc.list_page(COMPANIES_PAGE))
    assert [u.id for u in before.data] == [company.id]

    asyncio.run(svc.set_verified(company.id, True))

    after = asyncio.run(svc.list_page(COMPANIES_PAGE))
    assert [u.id for u in after.data] == [company.id]
    assert after.data[0].is_verified is True
