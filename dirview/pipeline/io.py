"""HTTP Input/Output operations."""

import logging
import socket
import urllib.parse
from typing import Optional, Tuple

from dirview.bootstrap.config import HEADER_DELIMITER
from dirview.domain.correlation_id import (
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from dirview.domain.http_types import HttpRequest, HttpResponse
from dirview.pipeline.validation import RequestEntityTooLarge

IO_LOGGER = get_logger("io")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ": " in line:
            name, value = line.split(": ", 1)
            parsed[name.lower()] = value
    return parsed


def parse_query(raw_query: str) -> dict[str, str]:
    """Decode a query string keeping the first value of each key."""
    parsed: dict[str, str] = {}
    for key, value in urllib.parse.parse_qsl(raw_query, keep_blank_values=True):
        parsed.setdefault(key, value)
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str, dict[str, str]]:
    """Parse the HTTP method, decoded path and query from the request line."""
    try:
        method, target, _ = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc

    parsed_target = urllib.parse.urlsplit(target)
    path = urllib.parse.unquote(parsed_target.path)
    return method, path, parse_query(parsed_target.query)


def parse_form(request: HttpRequest) -> dict[str, str]:
    """Decode an urlencoded request body, or return an empty mapping."""
    content_type = request.headers.get("content-type", "")
    if content_type.split(";", 1)[0].strip().lower() != FORM_CONTENT_TYPE:
        return {}
    try:
        return parse_query(request.body.decode("utf-8"))
    except UnicodeDecodeError:
        return {}


def determine_content_length(
    method: str, headers: dict[str, str], max_body_bytes: int
) -> int:
    """Validate and return the declared Content-Length for the request."""
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > max_body_bytes:
        raise RequestEntityTooLarge(method)
    return content_length


def receive_request(
    client_socket: socket.socket, buffer: bytes, max_body_bytes: int
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available."""
    while HEADER_DELIMITER not in buffer:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        buffer += chunk

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode().split("\r\n")
    method, path, query = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    incoming_correlation_id = headers.get("x-request-id")
    if incoming_correlation_id:
        set_correlation_id(incoming_correlation_id)

    content_length = determine_content_length(method, headers, max_body_bytes)

    while len(remainder) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        remainder += chunk

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    IO_LOGGER.debug("Parsed request", extra={"method": method, "path": path})
    return HttpRequest(method, path, headers, body, query), leftover


def _close_body_iter(response: HttpResponse) -> None:
    close = getattr(response.body_iter, "close", None)
    if callable(close):
        close()


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Serialize and send the HTTP response over the socket.

    A streamed body is always closed afterwards, including when the client
    disconnects halfway through.
    """
    try:
        _write_response(client_socket, response)
    finally:
        _close_body_iter(response)
    IO_LOGGER.debug(
        "Sent response",
        extra={
            "status_code": response.status_code,
            "streamed": response.body_iter is not None,
        },
    )


def _write_response(client_socket: socket.socket, response: HttpResponse) -> None:
    headers = dict(response.headers)

    correlation_id = get_correlation_id()
    if correlation_id:
        headers["X-Request-ID"] = correlation_id

    streaming = response.body_iter is not None
    if not streaming:
        headers["Content-Length"] = str(len(response.body))
    if response.close_connection:
        headers["Connection"] = "close"
    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    header_block = "\r\n".join(header_lines).encode() + b"\r\n\r\n"

    if not streaming:
        client_socket.sendall(header_block + response.body)
        return

    client_socket.sendall(header_block)
    sent = 0
    for chunk in response.body_iter:
        if not chunk:
            continue
        sent += len(chunk)
        client_socket.sendall(chunk)

    declared = headers.get("Content-Length")
    if declared is not None and sent < int(declared):
        # The framing is broken; the connection cannot be reused.
        raise ConnectionError("Streamed body shorter than Content-Length")
