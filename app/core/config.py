# app/core/config.py

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- Backend (required) ---
    BACKEND_URL: str
    BACKEND_ANON_KEY: str

    # --- JWT Config ---
    SECRET_KEY: Optional[str] = None
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    RESET_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Auth redirects ---
    SITE_URL: str = "http://localhost:5173"
    AUTH_URL: Optional[str] = None

    # --- Pool Config ---
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30

    # --- Dashboard behaviour ---
    SEARCH_DEBOUNCE_SECONDS: float = 0.5
    ALLOW_UNVERIFY: bool = True

    LOG_LEVEL: str = "INFO"

    @field_validator("BACKEND_URL", "BACKEND_ANON_KEY")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Missing backend environment variable. Please check your .env file.")
        return value.strip()

    @property
    def jwt_secret(self) -> str:
        return self.SECRET_KEY or self.BACKEND_ANON_KEY

    @property
    def sqlalchemy_url(self) -> str:
        """DSN for Alembic's sync engine."""
        url = self.BACKEND_URL
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        return url

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
