"""
Request logging for the session API
"""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import begin_request, end_request, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Hit constantly by load balancer health checks; kept out of the INFO stream
QUIET_PATHS = {"/health"}


class SessionLoggingMiddleware(BaseHTTPMiddleware):
    """
    Open a session log context per request and log its outcome.

    Credentials are never logged: only whether a host identity token or a
    bearer token came with the request. The request id is echoed back so the
    panel can quote it when a bootstrap fails.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = begin_request(request.headers.get(REQUEST_ID_HEADER))
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        started = time.perf_counter()

        try:
            log(
                "Session request started",
                method=request.method,
                path=request.url.path,
                host_board_id=request.headers.get("x-host-board-id"),
                has_host_token=bool(request.headers.get("x-host-id-token")),
                has_bearer=request.headers.get("authorization", "").startswith("Bearer "),
                remote_addr=request.client.host if request.client else None,
            )

            response = await call_next(request)

            log(
                "Session request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            logger.error(
                "Session request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise

        finally:
            end_request()
