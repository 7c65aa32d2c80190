# app/api/v1/routers.py
from fastapi import APIRouter
from app.api.v1.endpoints import auth, companies, dashboard, resources, tasks, users

router = APIRouter()

router.include_router(auth.router)
router.include_router(dashboard.router)
router.include_router(users.router)
router.include_router(companies.router)
router.include_router(tasks.router)
router.include_router(resources.router)
