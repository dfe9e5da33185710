from __future__ import annotations
import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("accountservice.http")

REQUEST_ID_HEADER = "x-request-id"


def _caller_id(request: Request) -> Optional[str]:
    # Set by require_identity on guarded routes only.
    identity = getattr(request.state, "user", None)
    return identity.id if identity is not None else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and logs each call with the guarded caller, if any."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        try:
            response: Response = await call_next(request)
        except Exception:
            logger.exception(
                "request.exception",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "user_id": _caller_id(request),
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code in (401, 409) else logging.INFO
        logger.log(
            level,
            "request.end method=%s path=%s status=%s user_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            _caller_id(request) or "-",
            extra={
                "request_id": request_id,
                "user_id": _caller_id(request),
                "status": response.status_code,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return response
