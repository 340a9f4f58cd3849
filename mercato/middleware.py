"""Custom middleware for the Mercato backend."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable


logger = logging.getLogger("mercato.requests")


class JWTCSRFBypassMiddleware:
    """Skip CSRF enforcement for requests authenticated with a Bearer token.

    The API relies on Authorization headers, not cookies, so CSRF checks only
    stay active for session-based requests (admin, browsable API).
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request):
        authorization = request.META.get("HTTP_AUTHORIZATION", "")
        if authorization.lower().startswith("bearer "):
            request._dont_enforce_csrf_checks = True  # type: ignore[attr-defined]
            request.META.setdefault("CSRF_SKIP_REASON", "jwt-bearer")
        return self.get_response(request)


class RequestLoggingMiddleware:
    """Log one line per API request with a request id and elapsed time."""

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.META.get("HTTP_X_REQUEST_ID") or uuid.uuid4().hex
        request.request_id = request_id
        start = time.time()

        response = self.get_response(request)

        elapsed_ms = (time.time() - start) * 1000
        if request.path.startswith("/api/"):
            logger.info(
                f"{request.method} {request.path} -> {response.status_code} "
                f"in {elapsed_ms:.2f}ms [request_id={request_id}]"
            )
        response["X-Request-ID"] = request_id
        return response
