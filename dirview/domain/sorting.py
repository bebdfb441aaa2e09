"""Multi-key ordering of directory entries."""

import enum
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from dirview.domain.entries import DirectoryEntry, EntryKind

_DIGIT_RUN = re.compile(r"(\d+)")


class SortKey(enum.Enum):
    """Fields a listing can be ordered by."""

    NAME = "name"
    TYPE = "type"
    SIZE = "size"
    MODIFIED = "modified"
    EXTENSION = "extension"


@dataclass(frozen=True)
class SortField:
    """One key of a sort specification and its direction."""

    key: SortKey
    descending: bool = False

    def __str__(self) -> str:
        return f"-{self.key.value}" if self.descending else self.key.value


SortSpec = tuple[SortField, ...]

DEFAULT_SORT_SPEC: SortSpec = (SortField(SortKey.TYPE), SortField(SortKey.NAME))

_VALID_KEYS = {key.value: key for key in SortKey}


def natural_key(text: str) -> tuple:
    """Case-insensitive natural-order key: ``file2`` sorts before ``file10``.

    Splitting on digit runs always yields text at even positions and numbers
    at odd positions, so two keys are comparable element by element.
    """
    parts = _DIGIT_RUN.split(text.casefold())
    return tuple(int(part) if index % 2 else part for index, part in enumerate(parts))


def parse_sort_spec(raw: Optional[str]) -> SortSpec:
    """Parse ``"type,-size"`` style input, dropping unknown keys."""
    fields = []
    for token in (raw or "").split(","):
        token = token.strip()
        descending = token.startswith("-")
        if descending:
            token = token[1:]
        key = _VALID_KEYS.get(token)
        if key is not None:
            fields.append(SortField(key, descending))
    return tuple(fields) or DEFAULT_SORT_SPEC


def format_sort_spec(spec: SortSpec) -> str:
    return ",".join(str(sort_field) for sort_field in spec)


def _type_rank(entry: DirectoryEntry) -> int:
    return 0 if entry.kind is EntryKind.DIRECTORY else 1


def _size_value(entry: DirectoryEntry) -> int:
    return -1 if entry.size is None else entry.size


_KEY_FUNCTIONS: dict[SortKey, Callable[[DirectoryEntry], Any]] = {
    SortKey.NAME: lambda entry: natural_key(entry.name),
    SortKey.TYPE: _type_rank,
    SortKey.SIZE: _size_value,
    SortKey.MODIFIED: lambda entry: entry.modified,
    SortKey.EXTENSION: lambda entry: natural_key(entry.extension),
}


def sort_entries(
    entries: Iterable[DirectoryEntry], spec: SortSpec = DEFAULT_SORT_SPEC
) -> list[DirectoryEntry]:
    """Order entries by ``spec``, left-most key first.

    Ties on every requested key fall back to ascending natural name order,
    then to the exact name, so the result never depends on the order the
    filesystem returned the entries in.
    """
    ordered = sorted(entries, key=lambda entry: (natural_key(entry.name), entry.name))
    # Stable sorts applied from the least to the most significant key.
    for sort_field in reversed(spec):
        ordered.sort(key=_KEY_FUNCTIONS[sort_field.key], reverse=sort_field.descending)
    return ordered
