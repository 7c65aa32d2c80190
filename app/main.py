import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api.v1 import routers
from app.core.config import settings
from app.db.session import BackendClient
from app.middleware.auth_middleware import ApiKeyMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    backend = BackendClient.from_settings(settings)
    await backend.connect()
    app.state.backend = backend
    yield
    await backend.close()


app = FastAPI(
    title="Rental Admin API",
    description="Admin backend for the vehicle-rental marketplace: users, companies, verification board and dashboard",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(ApiKeyMiddleware, api_key=settings.BACKEND_ANON_KEY)
app.include_router(routers.router)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logging.error(f"Internal Server Error on {request.url.path}: {exc}\n{traceback.format_exc()}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        content={"detail": "An unknown error occurred."})


@app.get("/")
async def root():
    return {"message": "Rental Admin API"}
