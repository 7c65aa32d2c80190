from pydantic import BaseModel


class DashboardStats(BaseModel):
    company_users: int
    individual_users: int
    rental_requests: int
