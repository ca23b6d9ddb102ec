from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Paths where CSP is skipped (Swagger UI needs inline JS/CSS)
_SKIP_CSP_PATHS = {"/docs", "/redoc", "/openapi.json"}

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        for name, value in _SECURITY_HEADERS.items():
            response.headers[name] = value
        # /community/events sends its own no-cache policy; keep it.
        response.headers.setdefault("Cache-Control", "no-store")

        if request.url.path not in _SKIP_CSP_PATHS:
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none'"
            )

        return response
