import asyncio
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import BackendUnavailable, DashboardUnavailable
from app.schemas.activity_schema import DealRecord, HistoryRecord, RentalActivity, RentalWithOwner
from app.services.dashboard_service import DashboardService, rental_activity
from tests.conftest import BASE_TIME, FakeActivityRepo, FakeCount


def test_stats_counts(user_repo):
    svc = DashboardService(user_repo, FakeCount(7), FakeActivityRepo())

    stats = asyncio.run(svc.get_stats())

    assert (stats.company_users, stats.individual_users, stats.rental_requests) == (2, 2, 7)


def test_one_failing_count_fails_the_stats(user_repo):
    svc = DashboardService(user_repo, FakeCount(error=BackendUnavailable("relation does not exist")),
                           FakeActivityRepo())

    with pytest.raises(DashboardUnavailable) as exc:
        asyncio.run(svc.get_stats())

    assert exc.value.status_code == 503
    assert exc.value.detail["retryable"] is True
    assert exc.value.detail["error"].startswith("Failed to fetch rental requests")


def test_activities_merge_newest_first(user_repo, users):
    renter, owner = users[0], users[2]
    history = [
        HistoryRecord(id=i, title=f"Event {i}", message="m", created_at=BASE_TIME + timedelta(hours=i))
        for i in (1, 3, 5)
    ]
    rentals = [
        RentalWithOwner(id=10, user_id=renter.id, owner_id=owner.id, vehicle_id=4, status="approved",
                        start_date=date(2024, 5, 2), created_at=BASE_TIME + timedelta(hours=4)),
        RentalWithOwner(id=11, user_id=None, vehicle_id=9, status="approved",
                        created_at=BASE_TIME + timedelta(hours=2)),
    ]
    deals = [DealRecord(id=10, title=None, value=Decimal("120.50"), stage="won")]
    svc = DashboardService(user_repo, FakeCount(), FakeActivityRepo(history, rentals, deals))

    activities = asyncio.run(svc.latest_activities())

    assert [a.id for a in activities] == ["5", "10", "3", "11", "1"]
    first_rental = activities[1]
    assert isinstance(first_rental, RentalActivity)
    assert first_rental.title == "Rental #10"
    assert first_rental.message == f"Vehicle #4 rented by {renter.name}"
    assert first_rental.rental.deal.title == "Untitled Deal"
    assert [c.name for c in first_rental.rental.contacts] == [renter.name, owner.name]
    assert first_rental.rental.location == "Not specified"


def test_activities_cap_at_limit(user_repo):
    history = [
        HistoryRecord(id=i, title="t", created_at=BASE_TIME + timedelta(minutes=i)) for i in range(5)
    ]
    svc = DashboardService(user_repo, FakeCount(), FakeActivityRepo(history))

    assert len(asyncio.run(svc.latest_activities(limit=3))) == 3


def test_unknown_contacts_get_placeholders():
    rental = RentalWithOwner(id=3, vehicle_id=None, created_at=BASE_TIME)

    activity = rental_activity(rental, {}, [])

    renter, owner = activity.rental.contacts
    assert renter.name == "Unknown Renter"
    assert owner.name == "Unknown Owner"
    assert renter.phone == "Not provided"
    assert activity.rental.deal is None


def test_contact_lookup_failure_keeps_feed(user_repo, users):
    rentals = [RentalWithOwner(id=1, user_id=users[0].id, vehicle_id=2, status="approved",
                               created_at=BASE_TIME)]
    user_repo.fail = True
    svc = DashboardService(user_repo, FakeCount(), FakeActivityRepo(rentals=rentals))

    activities = asyncio.run(svc.latest_activities())

    assert activities[0].message == "Vehicle #2 rented by Unknown Renter"
