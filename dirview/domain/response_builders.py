"""Pure HTTP response builders."""

import gzip
import json
from typing import Any, Optional, Tuple

from dirview.domain.http_types import HttpRequest, HttpResponse, should_close

REASON_PHRASES = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def status_line(status_code: int) -> str:
    return f"HTTP/1.1 {status_code} {REASON_PHRASES.get(status_code, 'Unknown')}"


def accepts_gzip(headers: dict[str, str]) -> bool:
    """Return True when the Accept-Encoding header includes gzip with q>0."""
    encodings = headers.get("accept-encoding", "")
    for token in encodings.split(","):
        value = token.strip()
        if not value:
            continue
        algorithm, _, params = value.partition(";")
        if algorithm.strip().lower() != "gzip":
            continue
        quality = 1.0
        if params:
            for param in params.split(";"):
                key, _, raw_value = param.strip().partition("=")
                if key.lower() == "q" and raw_value:
                    try:
                        quality = float(raw_value)
                    except ValueError:
                        quality = 0.0
                    break
        if quality > 0:
            return True
    return False


def compress_if_gzip_supported(
    payload: bytes, headers: dict[str, str]
) -> Tuple[bytes, dict[str, str]]:
    """Compress the payload when the request advertises gzip support."""
    if not accepts_gzip(headers):
        return payload, {}
    return gzip.compress(payload), {"Content-Encoding": "gzip"}


def plain_text_response(
    status_code: int,
    message: str,
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
) -> HttpResponse:
    """Return a short ``text/plain`` response such as a rejection notice."""
    headers = {"Content-Type": "text/plain; charset=utf-8", **security_headers}
    return HttpResponse(
        status_line(status_code),
        headers,
        message.encode(),
        should_close(request.headers) if request is not None else True,
    )


def json_response(
    payload: Any,
    request: HttpRequest,
    security_headers: dict[str, str],
    extra_headers: Optional[dict[str, str]] = None,
) -> HttpResponse:
    """Serialize ``payload`` as JSON, compressing when the client allows it."""
    body, encoding_headers = compress_if_gzip_supported(
        json.dumps(payload).encode(), request.headers
    )
    headers = {
        "Content-Type": "application/json",
        "Cache-Control": "no-store",
        **encoding_headers,
        **(extra_headers or {}),
        **security_headers,
    }
    return HttpResponse(status_line(200), headers, body, should_close(request.headers))


def not_found_response(
    request: Optional[HttpRequest], security_headers: dict[str, str]
) -> HttpResponse:
    """Return a 404 response reusing the connection preference."""
    return plain_text_response(404, "Not found", request, security_headers)


def bad_request_response(
    request: Optional[HttpRequest], security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 400 response honoring the caller's connection preference."""
    return plain_text_response(400, "Bad request", request, security_headers)


def entity_too_large_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    return HttpResponse(status_line(413), security_headers.copy(), b"", True)


def draining_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 503 response indicating the server is draining."""
    headers = {"Connection": "close", **security_headers}
    return HttpResponse(status_line(503), headers, b"draining", True)


def healthz_response(
    is_draining: bool, security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a health check response based on server state."""
    if is_draining:
        return draining_response(security_headers)
    return HttpResponse(status_line(200), security_headers.copy(), b"", False)


def method_not_allowed_response(
    request: HttpRequest, security_headers: dict[str, str], allowed_methods
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    headers = {"Allow": ", ".join(sorted(allowed_methods)), **security_headers}
    return HttpResponse(
        status_line(405), headers, b"", should_close(request.headers)
    )
