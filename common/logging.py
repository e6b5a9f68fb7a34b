from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone

# Extras copied onto each JSON line when a log call supplies them.
EXTRA_FIELDS = (
    "request_id",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "remote_addr",
    "user_id",
    "role",
    "audience",
    "entity",
    "entity_id",
    "status",
    "strategy",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line with the structured extras of the repair desk."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _response_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code in (401, 403, 429):
        return logging.WARNING
    return logging.INFO


class RequestLogMiddleware:
    """Attach/propagate the request ID and emit one access log per request.

    Requests from the public site (booking form, Track Repair, contact form)
    are logged with ``audience="public"``; signed-in staff carry their role.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.logger = logging.getLogger("api.request")

    def __call__(self, request):
        started_at = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.request_id = request_id

        response = self.get_response(request)

        duration_ms = round((time.perf_counter() - started_at) * 1000, 2)
        user_id = None
        role = None
        user = getattr(request, "user", None)
        if user is not None and getattr(user, "is_authenticated", False):
            user_id = str(user.id)
            role = "admin" if user.is_superuser else getattr(user, "role", None)

        self.logger.log(
            _response_level(response.status_code),
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.META.get("REMOTE_ADDR"),
                "user_id": user_id,
                "role": role,
                "audience": "staff" if user_id else "public",
            },
        )
        response["X-Request-ID"] = request_id
        return response
