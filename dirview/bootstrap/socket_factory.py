"""Socket creation and TLS configuration."""

import argparse
import socket
import ssl
import sys

from dirview.domain.correlation_id import get_logger

SOCKET_LOGGER = get_logger("socket")


def create_server_socket(args: argparse.Namespace) -> socket.socket:
    """Create the listening socket, wrapped in TLS when a cert and key are set."""
    server_socket = socket.create_server((args.host, args.port), reuse_port=True)
    server_socket.settimeout(0.5)
    if not (args.cert and args.key):
        return server_socket
    try:
        tls_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        tls_context.load_cert_chain(args.cert, args.key)
    except (ssl.SSLError, OSError) as error:
        SOCKET_LOGGER.critical(
            "Failed to load TLS certificates",
            extra={"event": "tls_error", "error_type": type(error).__name__},
        )
        server_socket.close()
        sys.exit(1)
    return tls_context.wrap_socket(server_socket, server_side=True)
