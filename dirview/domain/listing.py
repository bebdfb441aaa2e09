"""Browse pipeline: resolve, enumerate, sort and paginate a directory."""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dirview.bootstrap.config import BrowserConfig
from dirview.domain.entries import DirectoryEntry, ListingStats, list_entries, summarize
from dirview.domain.sandbox import relative_path, resolve_requested_path
from dirview.domain.sorting import format_sort_spec, parse_sort_spec, sort_entries


@dataclass(frozen=True)
class DirectoryListing:
    """One page of a sorted directory listing."""

    path: str
    entries: list[DirectoryEntry]
    stats: ListingStats
    sort: str
    page: int
    pages: int
    show_hidden: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "entries": [entry.to_dict() for entry in self.entries],
            "stats": self.stats.to_dict(),
            "sort": self.sort,
            "page": self.page,
            "pages": self.pages,
            "show_hidden": self.show_hidden,
        }


def parse_page(raw: Optional[str]) -> int:
    """Return a 1-based page number; anything unparsable means page 1."""
    try:
        return max(1, int(raw or "1"))
    except ValueError:
        return 1


def build_listing(
    base: Path,
    config: BrowserConfig,
    requested_path: Optional[str] = None,
    raw_sort: Optional[str] = None,
    show_hidden: bool = False,
    page: int = 1,
    self_exclude_name: Optional[str] = None,
) -> DirectoryListing:
    """Produce the listing for a browse request; never raises for bad input."""
    # pylint: disable=too-many-arguments, too-many-positional-arguments
    directory = resolve_requested_path(base, requested_path)
    spec = parse_sort_spec(raw_sort)
    entries = sort_entries(
        list_entries(base, directory, show_hidden, self_exclude_name, config), spec
    )

    pages = max(1, math.ceil(len(entries) / config.items_per_page))
    page = min(max(1, page), pages)
    start = (page - 1) * config.items_per_page
    return DirectoryListing(
        path=relative_path(base, directory),
        entries=entries[start : start + config.items_per_page],
        stats=summarize(entries),
        sort=format_sort_spec(spec),
        page=page,
        pages=pages,
        show_hidden=show_hidden,
    )
