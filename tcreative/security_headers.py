"""
Response hardening for the studio API.

The API serves JSON, CSV exports and OAuth redirects only, so the content
policy denies every resource type. The studio site is the one origin allowed
to frame responses. HSTS is only sent when ENVIRONMENT=production, since local
development runs over plain http.
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import SITE_URL

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"
NO_STORE = "no-store, no-cache, must-revalidate"

# Browser features the API never needs
DISABLED_FEATURES = (
    "camera",
    "microphone",
    "geolocation",
    "payment",
    "usb",
    "accelerometer",
    "gyroscope",
    "magnetometer",
    "interest-cohort",
)


def get_csp_policy() -> str:
    return "; ".join(
        [
            "default-src 'none'",
            f"frame-ancestors 'self' {SITE_URL}",
            "base-uri 'none'",
            "form-action 'self'",
        ]
    )


def get_permissions_policy() -> str:
    return ", ".join(f"{feature}=()" for feature in DISABLED_FEATURES)


def get_security_headers_dict() -> dict:
    headers = {
        "Content-Security-Policy": get_csp_policy(),
        "Permissions-Policy": get_permissions_policy(),
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cross-Origin-Opener-Policy": "same-origin-allow-popups",
        "X-Permitted-Cross-Domain-Policies": "none",
    }
    if IS_PRODUCTION:
        headers["Strict-Transport-Security"] = HSTS_VALUE
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())
        self.headers = get_security_headers_dict()
        logger.info(f"🛡️ Security headers on, skipping {', '.join(self.exclude_paths) or 'nothing'}")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if self.exclude_paths and request.url.path.startswith(self.exclude_paths):
            return response

        response.headers.update(self.headers)
        # Routes that want caching (none today) set their own Cache-Control
        response.headers.setdefault("Cache-Control", NO_STORE)
        return response
