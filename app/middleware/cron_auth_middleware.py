"""Cron authentication middleware: bearer secret on /api/cron/*."""
import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import get_settings
from app.utils.logger import log

CRON_PREFIX = "/api/cron/"


class CronAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(CRON_PREFIX):
            return await call_next(request)

        if not self._check_bearer(request, get_settings().cron_secret):
            client = request.client.host if request.client else "unknown"
            log.warning(f"Unauthorized cron access attempt on {request.url.path} from {client}")
            return JSONResponse(
                status_code=401,
                content={"success": False, "error": "Unauthorized"},
            )

        return await call_next(request)

    @staticmethod
    def _check_bearer(request: Request, cron_secret: str) -> bool:
        # No secret configured means nobody may trigger cron jobs over HTTP
        if not cron_secret:
            return False
        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            return False
        return secrets.compare_digest(auth_header[7:].encode("utf-8"), cron_secret.encode("utf-8"))
