"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"


def _populate_tree(directory: Path, outside: Path) -> None:
    """Lay out the files every integration test browses."""
    docs = directory / "docs"
    docs.mkdir()
    (docs / "a.txt").write_bytes(b"x" * 100)
    (docs / "B").mkdir()
    (directory / "shell.php").write_text("<?php echo 'nope';")
    (directory / ".hidden").write_text("dot-file")
    (directory / "report 1.pdf").write_bytes(b"%PDF-1.4 test")
    (outside / "secret.txt").write_text("top secret")
    os.symlink(outside / "secret.txt", directory / "secret-link.txt")


def _launch_server(
    host: str,
    port: int,
    directory: Path,
    extra_args: list[str] | None = None,
    log_file: Path | None = None,
) -> Generator[ServerProcessInfo, None, None]:
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "--directory",
        str(directory),
        "--host",
        host,
        "--port",
        str(port),
    ]
    if log_file:
        args.extend(["--log-destination", str(log_file)])
    if extra_args:
        args.extend(extra_args)

    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            # If startup failed, print stdout/stderr to help debug
            process.terminate()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            raise

        service_url = f"http://{host}:{port}"
        yield {
            "base_url": service_url,
            "host": host,
            "port": port,
            "directory": directory,
            "process": process,
            "log_file": log_file,
        }

        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    directory: Path
    process: subprocess.Popen[str]
    log_file: Path | None


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


def _start(
    tmp_path_factory: "TempPathFactory", extra_args: list[str] | None = None
) -> Generator[ServerProcessInfo, None, None]:
    host = "127.0.0.1"
    port = reserve_port(host)
    directory = tmp_path_factory.mktemp("server-files")
    outside = tmp_path_factory.mktemp("outside")
    log_file = tmp_path_factory.mktemp("logs") / "server.log"
    _populate_tree(directory, outside)
    yield from _launch_server(host, port, directory, extra_args, log_file=log_file)


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the directory server in a background process for integration tests."""

    yield from _start(tmp_path_factory, ["--log-level", "DEBUG"])


@pytest.fixture(name="restricted_server_process")
def _restricted_server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch a server with downloads off, small pages and a custom hidden key."""

    restricted_args = [
        "--no-downloads",
        "--no-uploads",
        "--items-per-page",
        "2",
        "--show-hidden-key",
        "dots",
    ]
    yield from _start(tmp_path_factory, restricted_args)


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]
