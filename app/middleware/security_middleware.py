"""Security middleware: response hardening headers and cache control."""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Recovery responses carry customer e-mail and cart contents
NO_STORE_PREFIXES = ("/api/cart/", "/api/cron/")


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # --- Cache-Control ---
        path = request.url.path
        if any(path.startswith(p) for p in NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        elif "application/json" in response.headers.get("content-type", ""):
            # Shipping quotes and carrier lists: browser must revalidate each time
            response.headers["Cache-Control"] = "private, no-cache"

        return response
