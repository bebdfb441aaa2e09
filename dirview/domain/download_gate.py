"""Download authorization and file streaming."""

import enum
import logging
import mimetypes
import os
import urllib.parse
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from dirview.bootstrap.config import BrowserConfig
from dirview.domain.correlation_id import get_logger
from dirview.domain.entries import extension_of
from dirview.domain.sandbox import confine_path
from dirview.security.anti_forgery import tokens_match

GATE_LOGGER = get_logger("domain.download_gate")

DEFAULT_MIME_TYPE = "application/octet-stream"
CHUNK_SIZE = 65536


class RejectionKind(enum.Enum):
    """Reasons a download is refused."""

    DOWNLOADS_DISABLED = "downloads_disabled"
    ANTI_FORGERY_MISMATCH = "anti_forgery_mismatch"
    MALFORMED_FILENAME = "malformed_filename"
    SYMLINK_BLOCKED = "symlink_blocked"
    PATH_ESCAPE = "path_escape"
    NOT_FOUND = "not_found"
    FORBIDDEN_EXTENSION = "forbidden_extension"


_REJECTION_RESPONSES: dict[RejectionKind, tuple[int, str]] = {
    RejectionKind.DOWNLOADS_DISABLED: (404, "Not found"),
    RejectionKind.ANTI_FORGERY_MISMATCH: (403, "Invalid request"),
    RejectionKind.MALFORMED_FILENAME: (400, "Invalid filename"),
    RejectionKind.SYMLINK_BLOCKED: (404, "File not found"),
    RejectionKind.PATH_ESCAPE: (404, "File not found"),
    RejectionKind.NOT_FOUND: (404, "File not found"),
    RejectionKind.FORBIDDEN_EXTENSION: (403, "File type not allowed"),
}


class DownloadRejected(Exception):
    """Raised when a download request fails one of the gate checks."""

    def __init__(self, kind: RejectionKind) -> None:
        self.kind = kind
        self.status_code, self.message = _REJECTION_RESPONSES[kind]
        super().__init__(self.message)


class FileStream:
    """Iterable over at most ``size`` bytes of an open file.

    The handle is closed when iteration finishes, fails, or when ``close`` is
    called, which also covers a stream that was never started.
    """

    def __init__(self, handle: BinaryIO, size: int, chunk_size: int = CHUNK_SIZE):
        self._handle = handle
        self._size = size
        self._chunk_size = chunk_size

    def __iter__(self) -> Iterator[bytes]:
        remaining = self._size
        try:
            while remaining > 0:
                chunk = self._handle.read(min(self._chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk
        finally:
            self.close()

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


@dataclass
class DownloadGrant:
    """An authorized download, ready to be streamed."""

    path: Path
    filename: str
    mime_type: str
    size: int
    stream: FileStream

    def headers(self) -> dict[str, str]:
        quoted = urllib.parse.quote(self.filename, safe="")
        return {
            "Content-Type": self.mime_type,
            "Content-Length": str(self.size),
            "Content-Disposition": f'attachment; filename="{quoted}"',
            "Cache-Control": "no-cache, must-revalidate",
        }


def resolve_mime_type(path: Path, extension: str, table: dict[str, str]) -> str:
    """Static table first, then the platform type database, then binary."""
    mime_type = table.get(extension)
    if mime_type:
        return mime_type
    guessed, _ = mimetypes.guess_type(path.as_posix(), strict=False)
    return guessed or DEFAULT_MIME_TYPE


def _basename(raw: str) -> str:
    return raw.replace("\\", "/").rsplit("/", 1)[-1]


def _reject(kind: RejectionKind, filename: str) -> DownloadRejected:
    rejection = DownloadRejected(kind)
    GATE_LOGGER.warning(
        "Download rejected",
        extra={
            "event": "download_rejected",
            "rejection": kind.value,
            "filename": filename,
            "status_code": rejection.status_code,
        },
    )
    return rejection


def _open_readonly(path: Path) -> BinaryIO:
    flags = os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0) | getattr(os, "O_BINARY", 0)
    descriptor = os.open(path, flags)
    return os.fdopen(descriptor, "rb")


def authorize_download(
    base: Path,
    directory: Path,
    raw_filename: str,
    config: BrowserConfig,
    provided_token: Optional[str] = None,
    expected_token: Optional[str] = None,
    state_changing: bool = False,
) -> DownloadGrant:
    """Run every download check in order and open the file on success.

    ``directory`` must already be a resolved path under ``base``. The first
    failing check raises ``DownloadRejected``; nothing is opened in that case.
    """
    # pylint: disable=too-many-arguments, too-many-positional-arguments
    if not config.downloads_enabled:
        raise _reject(RejectionKind.DOWNLOADS_DISABLED, raw_filename)

    if state_changing and not tokens_match(provided_token, expected_token):
        raise _reject(RejectionKind.ANTI_FORGERY_MISMATCH, raw_filename)

    filename = _basename(raw_filename)
    if not filename or filename != raw_filename or "\x00" in filename:
        raise _reject(RejectionKind.MALFORMED_FILENAME, raw_filename)

    candidate = directory / filename
    if not config.follow_symlinks and os.path.islink(candidate):
        raise _reject(RejectionKind.SYMLINK_BLOCKED, filename)

    resolved = confine_path(base, candidate)
    if resolved is None:
        kind = (
            RejectionKind.PATH_ESCAPE
            if os.path.lexists(candidate)
            else RejectionKind.NOT_FOUND
        )
        raise _reject(kind, filename)
    if not os.path.isfile(resolved):
        raise _reject(RejectionKind.NOT_FOUND, filename)

    extension = extension_of(filename)
    if config.is_denied(extension):
        raise _reject(RejectionKind.FORBIDDEN_EXTENSION, filename)

    try:
        handle = _open_readonly(resolved)
    except OSError as error:
        GATE_LOGGER.info(
            "File disappeared before it could be opened",
            extra={"event": "download_race", "error_type": type(error).__name__},
        )
        raise _reject(RejectionKind.NOT_FOUND, filename) from error

    try:
        size = os.fstat(handle.fileno()).st_size
    except OSError as error:
        handle.close()
        raise _reject(RejectionKind.NOT_FOUND, filename) from error

    mime_type = resolve_mime_type(resolved, extension, config.mime_types)
    if GATE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        GATE_LOGGER.debug(
            "Download authorized",
            extra={
                "event": "download_authorized",
                "path": resolved.as_posix(),
                "mime_type": mime_type,
                "bytes_out": size,
            },
        )
    return DownloadGrant(resolved, filename, mime_type, size, FileStream(handle, size))
