"""Filesystem sandbox utilities for safe path resolution.

Every path a client can influence flows through this module before it
touches the filesystem. Two layers cooperate:

* ``sanitize_path`` rewrites the raw string into a list of plain segments.
  ``..`` and ``.`` segments are deleted rather than resolved, so the result
  never climbs above its starting point textually.
* ``confine_path`` canonicalizes the joined path with the OS (symlinks
  included) and checks that it is still the base directory or one of its
  descendants.

``resolve_path`` is the browse-facing wrapper: any failure falls back to the
base directory. Downloads call ``confine_path`` directly and treat ``None``
as a rejection.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from dirview.domain.correlation_id import get_logger

SANDBOX_LOGGER = get_logger("domain.sandbox")

_SEPARATOR_RUN = re.compile(r"/+")
_DROPPED_SEGMENTS = {"", ".", ".."}


class PathEscape(Exception):
    """Raised when a requested path resolves outside the base directory."""


def sanitize_path(raw: str) -> str:
    """Normalize an untrusted relative path into ``/``-joined segments."""
    path = raw.replace("\x00", "/").replace("\\", "/")
    path = _SEPARATOR_RUN.sub("/", path).strip("/")
    return "/".join(
        segment for segment in path.split("/") if segment not in _DROPPED_SEGMENTS
    )


def is_within(base: Path, target: Path) -> bool:
    """Return True when ``target`` is ``base`` or one of its descendants."""
    return target == base or base in target.parents


def confine_path(base: Path, candidate: Path) -> Optional[Path]:
    """Canonicalize ``candidate`` and return it only if it stays under ``base``."""
    try:
        resolved = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as error:
        if SANDBOX_LOGGER.logger.isEnabledFor(logging.DEBUG):
            SANDBOX_LOGGER.debug(
                "Path could not be canonicalized",
                extra={
                    "event": "path_unresolvable",
                    "path": candidate.as_posix(),
                    "error_type": type(error).__name__,
                },
            )
        return None

    if not is_within(base, resolved):
        SANDBOX_LOGGER.warning(
            "Path escaped the base directory",
            extra={"event": "path_escape", "path": candidate.as_posix()},
        )
        return None
    return resolved


def resolve_path(base: Path, normalized: str) -> Path:
    """Resolve a sanitized path under ``base``, falling back to ``base`` itself."""
    if not normalized:
        return base
    candidate = base.joinpath(*normalized.split("/"))
    resolved = confine_path(base, candidate)
    return base if resolved is None else resolved


def resolve_requested_path(base: Path, raw: Optional[str]) -> Path:
    """Sanitize and resolve a raw client-supplied path in one step."""
    return resolve_path(base, sanitize_path(raw or ""))


def relative_path(base: Path, resolved: Path) -> str:
    """Return the ``/``-joined location of ``resolved`` relative to ``base``."""
    if resolved == base:
        return ""
    if not is_within(base, resolved):
        raise PathEscape(resolved.as_posix())
    return resolved.relative_to(base).as_posix()
