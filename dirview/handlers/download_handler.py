"""File download handler."""

from dirview.bootstrap.config import (
    ANTI_FORGERY_FIELD,
    ANTI_FORGERY_HEADER,
    SECURITY_HEADERS,
    STATE_CHANGING_METHODS,
)
from dirview.domain.correlation_id import get_logger
from dirview.domain.download_gate import DownloadRejected, authorize_download
from dirview.domain.http_types import HttpRequest, HttpResponse, should_close
from dirview.domain.response_builders import plain_text_response, status_line
from dirview.domain.sandbox import resolve_requested_path
from dirview.pipeline.io import parse_form
from dirview.security.anti_forgery import Session
from dirview.transport.context import WorkerContext

DOWNLOAD_LOGGER = get_logger("handlers.download")


def provided_token(request: HttpRequest) -> str:
    """Anti-forgery token from the form body, else from the request header."""
    token = parse_form(request).get(ANTI_FORGERY_FIELD)
    if token is None:
        token = request.headers.get(ANTI_FORGERY_HEADER, "")
    return token


def download_response(
    request: HttpRequest, context: WorkerContext, session: Session
) -> HttpResponse:
    """Stream the file named by ``dl`` from the directory named by ``p``."""
    directory = resolve_requested_path(context.directory, request.query.get("p"))
    try:
        grant = authorize_download(
            context.directory,
            directory,
            request.query.get("dl", ""),
            context.browser_config,
            provided_token=provided_token(request),
            expected_token=session.csrf_token,
            state_changing=request.method in STATE_CHANGING_METHODS,
        )
    except DownloadRejected as rejection:
        return plain_text_response(
            rejection.status_code, rejection.message, request, SECURITY_HEADERS
        )

    DOWNLOAD_LOGGER.info(
        "Download started",
        extra={
            "event": "download_started",
            "path": grant.path.as_posix(),
            "mime_type": grant.mime_type,
            "bytes_out": grant.size,
            "method": request.method,
        },
    )
    return HttpResponse(
        status_line(200),
        {**grant.headers(), **SECURITY_HEADERS},
        b"",
        should_close(request.headers),
        body_iter=grant.stream,
    )
