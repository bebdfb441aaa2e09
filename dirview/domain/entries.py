"""Directory enumeration and entry records."""

import enum
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from dirview.bootstrap.config import BrowserConfig
from dirview.domain.correlation_id import get_logger

ENTRIES_LOGGER = get_logger("domain.entries")


class EntryKind(enum.Enum):
    """The two kinds of listed entries."""

    DIRECTORY = "directory"
    FILE = "file"


@dataclass(frozen=True)
class DirectoryEntry:
    """A single child of a listed directory."""

    name: str
    kind: EntryKind
    extension: str
    size: Optional[int]
    modified: int
    permissions: str
    downloadable: bool

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind.value,
            "extension": self.extension,
            "size": self.size,
            "modified": self.modified,
            "permissions": self.permissions,
            "downloadable": self.downloadable,
        }


@dataclass(frozen=True)
class ListingStats:
    """Totals shown alongside a listing."""

    total: int
    folders: int
    files: int
    total_size: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "folders": self.folders,
            "files": self.files,
            "total_size": self.total_size,
        }


def extension_of(name: str) -> str:
    """Return the lowercase text after the last dot, or an empty string."""
    _, dot, suffix = name.rpartition(".")
    return suffix.lower() if dot else ""


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def permission_string(mode: int) -> str:
    """Render the last four octal digits of ``st_mode`` (``0644``, ``0755``)."""
    return format(mode, "o")[-4:].rjust(4, "0")


def _log_skipped(name: str, error: OSError) -> None:
    if ENTRIES_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ENTRIES_LOGGER.debug(
            "Skipping entry that could not be stat'ed",
            extra={
                "event": "entry_skipped",
                "filename": name,
                "error_type": type(error).__name__,
            },
        )


def _skip_symlink(dir_entry: os.DirEntry) -> bool:
    """True for symlinks and for entries whose link status cannot be read."""
    try:
        return dir_entry.is_symlink()
    except OSError as error:
        _log_skipped(dir_entry.name, error)
        return True


def _build_entry(
    dir_entry: os.DirEntry, config: BrowserConfig
) -> Optional[DirectoryEntry]:
    """Stat one scandir entry, returning None when it should be skipped."""
    try:
        info = dir_entry.stat(follow_symlinks=config.follow_symlinks)
    except OSError as error:
        _log_skipped(dir_entry.name, error)
        return None

    if stat.S_ISDIR(info.st_mode):
        return DirectoryEntry(
            name=dir_entry.name,
            kind=EntryKind.DIRECTORY,
            extension="",
            size=None,
            modified=int(info.st_mtime),
            permissions=permission_string(info.st_mode),
            downloadable=False,
        )

    extension = extension_of(dir_entry.name)
    return DirectoryEntry(
        name=dir_entry.name,
        kind=EntryKind.FILE,
        extension=extension,
        size=info.st_size,
        modified=int(info.st_mtime),
        permissions=permission_string(info.st_mode),
        downloadable=config.downloads_enabled and not config.is_denied(extension),
    )


def list_entries(
    base: Path,
    directory: Path,
    show_hidden: bool,
    self_exclude_name: Optional[str],
    config: BrowserConfig,
) -> list[DirectoryEntry]:
    """List the direct children of ``directory`` under the visibility rules.

    Enumeration failures never propagate: they are logged and the directory
    is reported as empty.
    """
    # pylint: disable=too-many-arguments, too-many-positional-arguments
    at_root = directory == base
    entries: list[DirectoryEntry] = []
    try:
        with os.scandir(directory) as iterator:
            for dir_entry in iterator:
                name = dir_entry.name
                if name in (".", ".."):
                    continue
                if not config.follow_symlinks and _skip_symlink(dir_entry):
                    continue
                if at_root and self_exclude_name and name == self_exclude_name:
                    continue
                if not show_hidden and is_hidden(name):
                    continue
                entry = _build_entry(dir_entry, config)
                if entry is not None:
                    entries.append(entry)
    except OSError as error:
        ENTRIES_LOGGER.warning(
            "Directory read error",
            extra={
                "event": "enumeration_failed",
                "directory": directory.as_posix(),
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        return []

    if ENTRIES_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ENTRIES_LOGGER.debug(
            "Directory enumerated",
            extra={
                "event": "enumeration_complete",
                "directory": directory.as_posix(),
                "entries": len(entries),
            },
        )
    return entries


def summarize(entries: Iterable[DirectoryEntry]) -> ListingStats:
    """Count folders and files and total the file sizes."""
    folders = files = total_size = 0
    for entry in entries:
        if entry.is_dir:
            folders += 1
        else:
            files += 1
            total_size += entry.size or 0
    return ListingStats(folders + files, folders, files, total_size)
