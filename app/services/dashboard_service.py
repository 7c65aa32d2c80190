import asyncio
import logging
from typing import Dict, List, Optional

from fastapi import HTTPException

from app.core.exceptions import DashboardUnavailable
from app.repositories.activity_repo import ActivityRepository
from app.repositories.resource_repo import ResourceRepository
from app.repositories.user_repo import UserRepository
from app.schemas.activity_schema import (
    Activity,
    Contact,
    DealInfo,
    DealRecord,
    HistoryActivity,
    RentalActivity,
    RentalDetails,
    RentalWithOwner,
)
from app.schemas.dashboard_schema import DashboardStats
from app.schemas.resource_schema import Filter, FilterOperator
from app.schemas.user_schema import UserRecord

logger = logging.getLogger(__name__)

RENTAL_REQUESTS = "rental_requests"
ACTIVITY_LIMIT = 10
NOT_SPECIFIED = "Not specified"


def _contact(user: Optional[UserRecord], user_id, role: str, unknown: str) -> Contact:
    return Contact(
        id=user_id,
        name=(user.name if user else None) or unknown,
        email=(user.email if user else None) or "",
        phone=(user.phone if user else None) or "Not provided",
        avatar_url=user.avatar_url if user else None,
        role=role,
    )


def rental_activity(rental: RentalWithOwner, users: Dict, deals: List[DealRecord]) -> RentalActivity:
    renter = _contact(users.get(rental.user_id), rental.user_id, "Renter", "Unknown Renter")
    owner = _contact(users.get(rental.owner_id), rental.owner_id, "Vehicle Owner", "Unknown Owner")

    deal = next((d for d in deals if d.id == rental.id), None)
    deal_info = None
    if deal is not None:
        deal_info = DealInfo(id=deal.id, title=deal.title or "Untitled Deal",
                             value=deal.value, stage=deal.stage, company=deal.company)

    return RentalActivity(
        id=str(rental.id),
        title=f"Rental #{rental.id}",
        message=f"Vehicle #{rental.vehicle_id} rented by {renter.name}",
        user_id=rental.user_id,
        status=rental.status,
        created_at=rental.created_at,
        rental=RentalDetails(
            vehicle_id=rental.vehicle_id,
            start_date=rental.start_date,
            end_date=rental.end_date,
            location=rental.location or NOT_SPECIFIED,
            address=rental.address or NOT_SPECIFIED,
            payment=rental.payment or NOT_SPECIFIED,
            notes=rental.notes or "",
            contacts=[renter, owner],
            deal=deal_info,
        ),
    )


class DashboardService:
    """Summary cards and activity feed. Read only."""

    def __init__(self, user_repo: UserRepository, rentals_repo: ResourceRepository,
                 activity_repo: ActivityRepository):
        self.user_repo = user_repo
        self.rentals_repo = rentals_repo
        self.activity_repo = activity_repo

    async def get_stats(self) -> DashboardStats:
        labels = ("company users", "individual users", "rental requests")
        results = await asyncio.gather(
            self.user_repo.count([Filter(field="isCompany", operator=FilterOperator.EQ, value=True)]),
            self.user_repo.count([Filter(field="isCompany", operator=FilterOperator.EQ, value=False)]),
            self.rentals_repo.count(),
            return_exceptions=True,
        )
        for label, result in zip(labels, results):
            if isinstance(result, HTTPException):
                logger.error("Dashboard count for %s failed: %s", label, result.detail)
                raise DashboardUnavailable(f"Failed to fetch {label}: {result.detail}")
            if isinstance(result, Exception):
                logger.error("Dashboard count for %s failed", label, exc_info=result)
                raise DashboardUnavailable(f"Failed to fetch {label}: {result}")

        company_users, individual_users, rental_requests = results
        return DashboardStats(
            company_users=company_users,
            individual_users=individual_users,
            rental_requests=rental_requests,
        )

    async def _users_by_id(self, rentals: List[RentalWithOwner]) -> Dict:
        ids = [r.user_id for r in rentals] + [r.owner_id for r in rentals]
        try:
            users = await self.user_repo.find_in("id", ids)
        except HTTPException as e:
            logger.warning("Could not load rental contacts: %s", e.detail)
            return {}
        return {u.id: u for u in users}

    async def _deals_for(self, rentals: List[RentalWithOwner]) -> List[DealRecord]:
        try:
            return await self.activity_repo.deals.find_in("id", [r.id for r in rentals])
        except HTTPException as e:
            logger.warning("Could not load related deals: %s", e.detail)
            return []

    async def latest_activities(self, limit: int = ACTIVITY_LIMIT) -> List[Activity]:
        history = await self.activity_repo.recent_history(limit=5)
        rentals = await self.activity_repo.approved_rentals(limit=5)

        users = await self._users_by_id(rentals)
        deals = await self._deals_for(rentals)

        activities: List[Activity] = [
            HistoryActivity(id=str(h.id), title=h.title, message=h.message,
                            user_id=h.user_id, created_at=h.created_at)
            for h in history
        ]
        activities.extend(rental_activity(r, users, deals) for r in rentals)
        activities.sort(key=lambda a: a.created_at, reverse=True)
        return activities[:limit]
