"""Unit tests for the browse pipeline."""

import os
from dataclasses import replace
from pathlib import Path

import pytest

from dirview.bootstrap.config import BrowserConfig
from dirview.domain.listing import build_listing, parse_page


@pytest.fixture()
def docs_tree(base_dir: Path) -> Path:
    docs = base_dir / "docs"
    docs.mkdir()
    (docs / "a.txt").write_bytes(b"x" * 100)
    (docs / "B").mkdir()
    (docs / ".secret").write_text("hidden")
    return base_dir


def test_listing_of_subdirectory(docs_tree: Path, browser_config: BrowserConfig):
    """Directories come first, hidden files are omitted, stats add up."""
    listing = build_listing(docs_tree, browser_config, requested_path="docs")

    assert listing.path == "docs"
    assert [entry.name for entry in listing.entries] == ["B", "a.txt"]
    assert listing.stats.to_dict() == {
        "total": 2,
        "folders": 1,
        "files": 1,
        "total_size": 100,
    }
    assert listing.sort == "type,name"
    assert (listing.page, listing.pages) == (1, 1)


def test_listing_traversal_falls_back_to_root(
    docs_tree: Path, browser_config: BrowserConfig
):
    """Escaping paths silently list the base directory."""
    listing = build_listing(docs_tree, browser_config, requested_path="../../etc")
    assert listing.path == ""
    assert [entry.name for entry in listing.entries] == ["docs"]


def test_listing_show_hidden(docs_tree: Path, browser_config: BrowserConfig):
    """Hidden entries appear when requested."""
    listing = build_listing(
        docs_tree, browser_config, requested_path="docs", show_hidden=True
    )
    assert ".secret" in {entry.name for entry in listing.entries}
    assert listing.show_hidden is True


def test_listing_applies_sort_and_echoes_it(
    docs_tree: Path, browser_config: BrowserConfig
):
    """The canonical sort specification is echoed back."""
    listing = build_listing(
        docs_tree, browser_config, requested_path="docs", raw_sort="-size,bogus"
    )
    assert listing.sort == "-size"
    assert [entry.name for entry in listing.entries] == ["a.txt", "B"]


def test_listing_paginates(base_dir: Path, browser_config: BrowserConfig):
    """Entries are split into pages while stats cover the whole directory."""
    for index in range(1, 6):
        (base_dir / f"file{index}.txt").write_text("x")
    config = replace(browser_config, items_per_page=2)

    second = build_listing(base_dir, config, page=2)
    assert [entry.name for entry in second.entries] == ["file3.txt", "file4.txt"]
    assert second.pages == 3
    assert second.stats.total == 5

    clamped = build_listing(base_dir, config, page=99)
    assert clamped.page == 3
    assert [entry.name for entry in clamped.entries] == ["file5.txt"]


def test_empty_directory_has_one_page(base_dir: Path, browser_config: BrowserConfig):
    """An empty listing still reports page 1 of 1."""
    listing = build_listing(base_dir, browser_config)
    assert listing.entries == []
    assert (listing.page, listing.pages) == (1, 1)


def test_listing_to_dict_shape(docs_tree: Path, browser_config: BrowserConfig):
    """The serialized listing carries entries with their type."""
    payload = build_listing(docs_tree, browser_config, requested_path="docs").to_dict()
    assert set(payload) == {"path", "entries", "stats", "sort", "page", "pages", "show_hidden"}
    directory, text_file = payload["entries"]
    assert directory["type"] == "directory"
    assert directory["size"] is None
    assert text_file["type"] == "file"
    assert text_file["extension"] == "txt"


def test_listing_excludes_entry_point_at_root(
    base_dir: Path, browser_config: BrowserConfig
):
    """The program's own file is hidden from the root listing."""
    (base_dir / "main.py").write_text("")
    (base_dir / "other.py").write_text("")
    listing = build_listing(base_dir, browser_config, self_exclude_name="main.py")
    assert [entry.name for entry in listing.entries] == ["other.py"]


def test_listing_of_unreadable_directory_is_empty(
    base_dir: Path, browser_config: BrowserConfig
):
    """A directory that cannot be read lists as empty rather than failing."""
    locked = base_dir / "locked"
    locked.mkdir()
    (locked / "inner.txt").write_text("x")
    os.chmod(locked, 0)
    try:
        if os.access(locked, os.R_OK):
            pytest.skip("running with privileges that bypass permissions")
        listing = build_listing(base_dir, browser_config, requested_path="locked")
        assert listing.path == "locked"
        assert listing.entries == []
    finally:
        os.chmod(locked, 0o755)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 1), ("", 1), ("3", 3), ("0", 1), ("-4", 1), ("two", 1)],
)
def test_parse_page(raw, expected):
    """Unparsable or non-positive pages mean page 1."""
    assert parse_page(raw) == expected
