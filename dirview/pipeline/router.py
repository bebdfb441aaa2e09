"""Request routing logic."""

import logging

from dirview.bootstrap.config import SECURITY_HEADERS
from dirview.domain.correlation_id import get_logger
from dirview.domain.http_types import HttpRequest, HttpResponse
from dirview.domain.response_builders import not_found_response
from dirview.handlers.download_handler import download_response
from dirview.handlers.listing_handler import listing_response
from dirview.handlers.system_handlers import handle_healthz
from dirview.security.anti_forgery import (
    session_cookie_header,
    session_id_from_cookies,
)
from dirview.transport.context import WorkerContext

ROUTER_LOGGER = get_logger("pipeline.router")


def _browse(request: HttpRequest, context: WorkerContext) -> HttpResponse:
    session = context.sessions.ensure(
        session_id_from_cookies(request.headers.get("cookie", ""))
    )
    if "dl" in request.query:
        route = "download"
        response = download_response(request, context, session)
    else:
        route = "listing"
        response = listing_response(request, context, session)
    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Route matched", extra={"event": "route_matched", "route": route}
        )
    if session.created:
        response.headers["Set-Cookie"] = session_cookie_header(session)
    return response


def route_request(request: HttpRequest, context: WorkerContext) -> HttpResponse:
    """Route the request to the appropriate handler and return a response."""
    if request.path == "/healthz":
        return handle_healthz(context.lifecycle)

    if request.path == "/":
        return _browse(request, context)

    ROUTER_LOGGER.info(
        "No matching route found",
        extra={
            "event": "route_not_found",
            "route": request.path,
            "method": request.method,
        },
    )
    return not_found_response(request, SECURITY_HEADERS)
