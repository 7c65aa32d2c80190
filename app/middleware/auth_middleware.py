# app/middleware/auth_middleware.py
import hmac

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

EXEMPT_PATHS = ("/", "/docs", "/redoc", "/openapi.json", "/docs/oauth2-redirect")


def api_key_matches(provided: str | None, expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Rejects HTTP requests that do not carry the anon API key in the ``apikey`` header."""

    def __init__(self, app, api_key: str, exempt_paths=EXEMPT_PATHS):
        super().__init__(app)
        self.api_key = api_key
        self.exempt_paths = set(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or request.url.path in self.exempt_paths:
            return await call_next(request)
        provided = request.headers.get("apikey") or request.query_params.get("apikey")
        if not api_key_matches(provided, self.api_key):
            return JSONResponse(status_code=401, content={"detail": "Invalid API key"})
        return await call_next(request)
