"""Directory listing server entry point."""

import signal
import sys
from pathlib import Path
from typing import Optional

from dirview.bootstrap.config import (
    ServerConfig,
    build_browser_config,
    parse_cli_args,
)
from dirview.bootstrap.logging_setup import configure_logging
from dirview.domain.correlation_id import get_logger
from dirview.lifecycle.state import ServerLifecycle
from dirview.security.anti_forgery import SessionStore
from dirview.transport.accept_loop import run_server
from dirview.transport.context import WorkerContext

SERVER_LOGGER = get_logger("server")


def self_exclude_name(base: Path, entry_point: Path) -> Optional[str]:
    """Name of this program's own file when it sits directly inside ``base``."""
    entry_point = entry_point.resolve()
    return entry_point.name if entry_point.parent == base else None


def main() -> None:
    """Start the directory server and serve until SIGTERM or SIGINT."""
    args = parse_cli_args(sys.argv[1:])
    configure_logging(args.log_level, args.log_destination)

    try:
        base = Path(args.directory).resolve(strict=True)
    except OSError as error:
        SERVER_LOGGER.critical(
            "Base directory is not accessible",
            extra={
                "event": "startup_failed",
                "directory": args.directory,
                "error_type": type(error).__name__,
            },
        )
        sys.exit(1)
    if not base.is_dir():
        SERVER_LOGGER.critical(
            "Base directory is not a directory",
            extra={"event": "startup_failed", "directory": base.as_posix()},
        )
        sys.exit(1)

    config = ServerConfig(
        socket_timeout=args.socket_timeout,
        shutdown_grace_seconds=args.shutdown_grace_seconds,
    )
    browser_config = build_browser_config(args)
    lifecycle = ServerLifecycle()
    context = WorkerContext(
        directory=base,
        browser_config=browser_config,
        sessions=SessionStore(),
        self_exclude_name=self_exclude_name(base, Path(__file__)),
        lifecycle=lifecycle,
        config=config,
    )

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal", extra={"event": "signal", "signal": signum}
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting directory server",
        extra={
            "event": "server_starting",
            "host": args.host,
            "port": args.port,
            "directory": base.as_posix(),
            "log_destination": args.log_destination,
            "log_level": args.log_level,
            "tls": bool(args.cert and args.key),
            "follow_symlinks": browser_config.follow_symlinks,
            "downloads_enabled": browser_config.downloads_enabled,
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
        },
    )
    run_server(args, config, lifecycle, context)


if __name__ == "__main__":
    main()
