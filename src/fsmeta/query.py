"""Select, filter, and order store entries for display."""

from __future__ import annotations

import bisect
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from functools import cmp_to_key
from typing import Any, Iterable, Sequence

from fsmeta.paths import PathError
from fsmeta.store import StoreContext
from fsmeta.store.metadata import MetadataContainer

LOGGER = logging.getLogger(__name__)

SELF_KEY = "!SELF"


class Selection(str, Enum):
    """Which entries a query starts from."""

    ALL = "all"
    STORE = "store"
    PATHS = "paths"


class SortKey(str, Enum):
    """Criteria available for ordering query results (ascending)."""

    NAME = "name"
    DATE = "date"
    CREATED = "created"
    UPDATED = "updated"


DEFAULT_SORT: tuple[SortKey, ...] = (SortKey.NAME,)


@dataclass(frozen=True)
class QueryEntry:
    """A store key paired with the metadata stored for it."""

    key: str
    container: MetadataContainer

    @property
    def title(self) -> str:
        return f"@ {self.key}"


@dataclass
class QueryResult:
    """Outcome of a query.

    Attributes:
        entries: Matching entries in display order.
        not_found: Store keys that were requested but have no entry.
        errors: Paths that could not be resolved and were skipped.
    """

    entries: list[QueryEntry] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    errors: list[PathError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def show_titles(self) -> bool:
        """Keys are only worth printing when more than one entry is shown."""
        return self.total > 1


def passes_filter(
    container: MetadataContainer,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> bool:
    """Return True if every ``include`` tag is present and no ``exclude`` tag is."""
    tags = container.tags
    return all(name in tags for name in include) and not any(name in tags for name in exclude)


def _cmp(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def compare(left: QueryEntry, right: QueryEntry, sort_by: Sequence[SortKey]) -> int:
    """Compare two entries criterion by criterion.

    Later criteria only break ties left by earlier ones. For ``updated``,
    entries that were never updated sort after entries that were.
    """
    for criterion in sort_by:
        if criterion is SortKey.NAME:
            result = _cmp(left.key, right.key)
        elif criterion is SortKey.DATE:
            result = _cmp(left.container.modified, right.container.modified)
        elif criterion is SortKey.CREATED:
            result = _cmp(left.container.created, right.container.created)
        else:
            left_updated = left.container.updated
            right_updated = right.container.updated
            if left_updated is not None and right_updated is not None:
                result = _cmp(left_updated, right_updated)
            elif left_updated is not None:
                result = -1
            elif right_updated is not None:
                result = 1
            else:
                result = 0
        if result:
            return result
    return 0


def sorted_insert(
    results: list[QueryEntry], entry: QueryEntry, sort_by: Sequence[SortKey]
) -> None:
    """Insert ``entry`` after every element that compares equal to it."""
    key = cmp_to_key(lambda left, right: compare(left, right, sort_by))
    bisect.insort_right(results, entry, key=key)


def run_query(
    context: StoreContext,
    *,
    selection: Selection,
    paths: Iterable[str | os.PathLike[str]] = (),
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    sort_by: Sequence[SortKey] = DEFAULT_SORT,
) -> QueryResult:
    """Collect the entries matching a selection and tag filters.

    Args:
        context: Loaded store.
        selection: ``ALL`` lists the store itself and every file entry,
            ``STORE`` only the store, ``PATHS`` the entries for ``paths``.
        paths: User paths, used with ``Selection.PATHS``.
        include: Tags an entry must carry.
        exclude: Tags an entry must not carry.
        sort_by: Ordering criteria, evaluated left to right.

    Returns:
        QueryResult: Ordered entries plus missing keys and path errors. The
        store entry is placed first and every file entry is then inserted
        after all entries that compare equal to it, the store included.
    """
    result = QueryResult()
    store = context.store
    ordered: list[QueryEntry] = []

    if selection in (Selection.ALL, Selection.STORE) and passes_filter(store, include, exclude):
        ordered.append(QueryEntry(SELF_KEY, store))

    if selection is Selection.ALL:
        for key, entry in store.files.items():
            if passes_filter(entry, include, exclude):
                sorted_insert(ordered, QueryEntry(key, entry), sort_by)
    elif selection is Selection.PATHS:
        for resolved in context.resolve_many(paths, errors=result.errors):
            entry = store.get_entry(resolved.key)
            if entry is None:
                LOGGER.info("no entry for %s", resolved.key)
                result.not_found.append(resolved.key)
                continue
            if passes_filter(entry, include, exclude):
                sorted_insert(ordered, QueryEntry(resolved.key, entry), sort_by)

    result.entries = ordered
    return result


__all__ = [
    "DEFAULT_SORT",
    "QueryEntry",
    "QueryResult",
    "SELF_KEY",
    "Selection",
    "SortKey",
    "compare",
    "passes_filter",
    "run_query",
    "sorted_insert",
]
