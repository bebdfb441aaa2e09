"""System handlers for health checks."""

from typing import Optional

from dirview.bootstrap.config import SECURITY_HEADERS
from dirview.domain.correlation_id import get_logger
from dirview.domain.http_types import HttpResponse
from dirview.domain.response_builders import healthz_response
from dirview.lifecycle.state import ServerLifecycle

SYSTEM_LOGGER = get_logger("handlers.system")


def handle_healthz(lifecycle: Optional[ServerLifecycle]) -> HttpResponse:
    """Report 200 while serving and 503 once draining has begun."""
    is_draining = lifecycle.is_draining() if lifecycle is not None else False
    SYSTEM_LOGGER.debug(
        "Health check performed",
        extra={"event": "healthz_check", "status_code": 503 if is_draining else 200},
    )
    return healthz_response(is_draining, SECURITY_HEADERS)
