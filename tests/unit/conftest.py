"""Shared fixtures for unit tests."""

import logging
from pathlib import Path

import pytest

from dirview.bootstrap.config import BrowserConfig


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("dirview")
    old_propagate = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = old_propagate


@pytest.fixture()
def base_dir(tmp_path: Path) -> Path:
    """A canonical, empty base directory inside the test's tmp_path."""
    base = tmp_path / "base"
    base.mkdir()
    return base.resolve()


@pytest.fixture()
def browser_config() -> BrowserConfig:
    """Default browse policy: no symlinks, downloads on, stock denylist."""
    return BrowserConfig(follow_symlinks=False, downloads_enabled=True)
