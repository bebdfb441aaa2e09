"""Main connection acceptance loop."""

import argparse
import socket
import threading

from dirview.bootstrap.config import SECURITY_HEADERS, ServerConfig
from dirview.bootstrap.socket_factory import create_server_socket
from dirview.domain.correlation_id import get_logger
from dirview.domain.response_builders import draining_response
from dirview.lifecycle.state import ServerLifecycle
from dirview.pipeline.io import send_response
from dirview.transport.context import WorkerContext
from dirview.transport.worker import handle_client

ACCEPT_LOGGER = get_logger("transport.accept")


def run_server(
    args: argparse.Namespace,
    config: ServerConfig,
    lifecycle: ServerLifecycle,
    handler_context: WorkerContext,
) -> None:
    """Accept connections until draining, one worker thread per client."""
    server_socket = create_server_socket(args)

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": args.host,
            "port": args.port,
            "tls": bool(args.cert and args.key),
        },
    )

    try:
        while True:
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                if lifecycle.should_stop():
                    break
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            if lifecycle.is_draining():
                send_response(client_socket, draining_response(SECURITY_HEADERS))
                client_socket.close()
                continue

            threading.Thread(
                target=handle_client,
                args=(client_socket, client_address, handler_context),
                daemon=False,
            ).start()
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "shutdown_grace_seconds": config.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(config.shutdown_grace_seconds)
        ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})
