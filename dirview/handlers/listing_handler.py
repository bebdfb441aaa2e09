"""Directory listing handler."""

import logging

from dirview.bootstrap.config import SECURITY_HEADERS
from dirview.domain.correlation_id import get_logger
from dirview.domain.http_types import HttpRequest, HttpResponse
from dirview.domain.listing import build_listing, parse_page
from dirview.domain.response_builders import json_response
from dirview.security.anti_forgery import Session
from dirview.transport.context import WorkerContext

LISTING_LOGGER = get_logger("handlers.listing")


def listing_response(
    request: HttpRequest, context: WorkerContext, session: Session
) -> HttpResponse:
    """Render the requested directory as JSON.

    Bad paths, sort keys and page numbers degrade to safe defaults, so this
    handler always answers 200.
    """
    config = context.browser_config
    show_hidden = request.query.get(config.show_hidden_key) == "1"
    listing = build_listing(
        context.directory,
        config,
        requested_path=request.query.get("p"),
        raw_sort=request.query.get("sort"),
        show_hidden=show_hidden,
        page=parse_page(request.query.get("page")),
        self_exclude_name=context.self_exclude_name,
    )
    if LISTING_LOGGER.logger.isEnabledFor(logging.DEBUG):
        LISTING_LOGGER.debug(
            "Listing rendered",
            extra={
                "event": "listing_rendered",
                "path": listing.path,
                "entries": listing.stats.total,
            },
        )

    payload = listing.to_dict()
    payload["uploads_enabled"] = config.uploads_enabled
    payload["csrf_token"] = session.csrf_token
    return json_response(payload, request, SECURITY_HEADERS)
