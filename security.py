# security.py
import logging

from starlette.datastructures import MutableHeaders
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse

import config

logger = logging.getLogger(__name__)

# Room for multipart boundaries and form fields around the PDF itself
MULTIPART_OVERHEAD_BYTES = 1024 * 1024


def _set_security_headers(headers: MutableHeaders):
    headers["X-Content-Type-Options"] = "nosniff"
    headers["X-Frame-Options"] = "DENY"
    headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "frame-ancestors 'none'; "
        "base-uri 'self'; "
        "form-action 'self'"
    )
    if config.APP_ENV.lower() == "production":
        headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Reject oversized bodies before they are read
        cl = request.headers.get("content-length")
        if cl and cl.isdigit() and int(cl) > config.MAX_UPLOAD_BYTES + MULTIPART_OVERHEAD_BYTES:
            logger.warning("Rejected %s byte request to %s", cl, request.url.path)
            return PlainTextResponse("Payload too large", status_code=413)

        response = await call_next(request)
        _set_security_headers(response.headers)
        return response
