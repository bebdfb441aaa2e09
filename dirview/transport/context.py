"""Context object shared across worker threads."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dirview.bootstrap.config import BrowserConfig, ServerConfig
from dirview.lifecycle.state import ServerLifecycle
from dirview.security.anti_forgery import SessionStore


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads.

    ``directory`` is the canonical base directory; it never changes after
    startup. The session store is the only shared mutable state.
    """

    directory: Path
    browser_config: BrowserConfig = field(default_factory=BrowserConfig)
    sessions: SessionStore = field(default_factory=SessionStore)
    self_exclude_name: Optional[str] = None
    lifecycle: Optional[ServerLifecycle] = None
    config: Optional[ServerConfig] = None
