"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


DISALLOWED_EXTENSIONS = [
    "php",
    "phtml",
    "php3",
    "php4",
    "php5",
    "php7",
    "phps",
    "phar",
    "cgi",
    "pl",
    "sh",
    "bash",
    "bat",
    "cmd",
    "com",
    "exe",
    "ps1",
    "htaccess",
    "htpasswd",
]

MIME_TYPES = {
    "txt": "text/plain",
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "xml": "application/xml",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

DEFAULT_SHOW_HIDDEN_KEY = _env_str("DIRVIEW_SHOW_HIDDEN_KEY", "hidden")
DEFAULT_FOLLOW_SYMLINKS = _env_bool("DIRVIEW_FOLLOW_SYMLINKS", False)
DEFAULT_DOWNLOADS_ENABLED = _env_bool("DIRVIEW_DOWNLOADS_ENABLED", True)
DEFAULT_UPLOADS_ENABLED = _env_bool("DIRVIEW_UPLOADS_ENABLED", True)
DEFAULT_MAX_UPLOAD_SIZE = _env_int("DIRVIEW_MAX_UPLOAD_SIZE", 10 * 1024 * 1024)
DEFAULT_ITEMS_PER_PAGE = _env_int("DIRVIEW_ITEMS_PER_PAGE", 100)
DEFAULT_EXTENSION_DENYLIST = _env_list(
    "DIRVIEW_EXTENSION_DENYLIST", DISALLOWED_EXTENSIONS
)
DEFAULT_SOCKET_TIMEOUT = _env_int("DIRVIEW_SOCKET_TIMEOUT", 60)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("DIRVIEW_SHUTDOWN_GRACE_SECONDS", 30)

HEADER_DELIMITER = b"\r\n\r\n"
ALLOWED_METHODS = {"GET", "POST"}
STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
SESSION_COOKIE_NAME = "dirview_session"
ANTI_FORGERY_FIELD = "csrf_token"
ANTI_FORGERY_HEADER = "x-csrf-token"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Content-Security-Policy": "default-src 'self'",
}


@dataclass
class ServerConfig:
    """Server configuration including timeouts and shutdown settings."""

    socket_timeout: int
    shutdown_grace_seconds: int


@dataclass(frozen=True)
class BrowserConfig:
    """Browse and download policy, fixed for the lifetime of the process."""

    show_hidden_key: str = DEFAULT_SHOW_HIDDEN_KEY
    follow_symlinks: bool = DEFAULT_FOLLOW_SYMLINKS
    downloads_enabled: bool = DEFAULT_DOWNLOADS_ENABLED
    uploads_enabled: bool = DEFAULT_UPLOADS_ENABLED
    max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE
    extension_denylist: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_EXTENSION_DENYLIST)
    )
    mime_types: dict[str, str] = field(default_factory=lambda: dict(MIME_TYPES))

    def is_denied(self, extension: str) -> bool:
        """Return True when files with this extension may never be served."""
        return extension.lower() in self.extension_denylist


def _split_extensions(raw: str) -> frozenset[str]:
    return frozenset(
        item.strip().lstrip(".").lower() for item in raw.split(",") if item.strip()
    )


def build_browser_config(args: argparse.Namespace) -> BrowserConfig:
    """Build the immutable browse policy from parsed CLI arguments."""
    return BrowserConfig(
        show_hidden_key=args.show_hidden_key,
        follow_symlinks=args.follow_symlinks,
        downloads_enabled=args.downloads,
        uploads_enabled=args.uploads,
        max_upload_size=max(0, args.max_upload_size),
        items_per_page=max(1, args.items_per_page),
        extension_denylist=_split_extensions(args.extension_denylist),
    )


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Directory listing server")
    parser.add_argument("--directory", default=".")
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=4221)
    parser.add_argument("--cert", help="Path to TLS certificate file")
    parser.add_argument("--key", help="Path to TLS private key file")
    default_log_level = os.getenv("DIRVIEW_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("DIRVIEW_LOG_DESTINATION", "stdout")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--show-hidden-key",
        default=DEFAULT_SHOW_HIDDEN_KEY,
        help="Query parameter that reveals dot-files when set to 1",
    )
    parser.add_argument(
        "--follow-symlinks",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_FOLLOW_SYMLINKS,
        help="List and serve symbolic links",
    )
    parser.add_argument(
        "--downloads",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_DOWNLOADS_ENABLED,
        help="Allow file downloads",
    )
    parser.add_argument(
        "--uploads",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_UPLOADS_ENABLED,
        help="Advertise uploads to clients (uploads are not served by this process)",
    )
    parser.add_argument(
        "--max-upload-size",
        type=int,
        default=DEFAULT_MAX_UPLOAD_SIZE,
        help="Maximum accepted request body in bytes",
    )
    parser.add_argument(
        "--items-per-page",
        type=int,
        default=DEFAULT_ITEMS_PER_PAGE,
        help="Entries returned per listing page",
    )
    parser.add_argument(
        "--extension-denylist",
        default=",".join(DEFAULT_EXTENSION_DENYLIST),
        help="Comma-separated extensions that are never downloadable",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for request processing",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    return parser.parse_args(argv)
