"""Security headers for every response.

Photos are served from this app's `/media` mount and may be shown by a
front end on another origin, so `/media` responses skip the frame and
CSP restrictions that apply to the API.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from asset_intake.config import settings

API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, media_prefix: str = "/media"):
        super().__init__(app)
        self.media_prefix = media_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if request.url.path.startswith(self.media_prefix):
            response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
            return response

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        # Swagger UI needs inline scripts
        if settings.environment == "production" and not request.url.path.startswith("/docs"):
            response.headers["Content-Security-Policy"] = API_CSP

        return response
