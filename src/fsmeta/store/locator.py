"""Locate the store that owns a directory."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from .codec import FORMAT_PRIORITY, StoreFormat
from .errors import StoreIOError

DEFAULT_MARKER_DIRNAME = ".fsm"


def probe(path: Path) -> os.stat_result | None:
    """Return ``stat`` for ``path`` or None when nothing exists there.

    Raises:
        StoreIOError: For any failure other than the path being absent.
    """
    try:
        return path.stat()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StoreIOError("io error when probing", path) from exc


def find_store_file(
    start: Path, marker: str = DEFAULT_MARKER_DIRNAME
) -> tuple[Path, StoreFormat] | None:
    """Walk from ``start`` towards the filesystem root looking for a store.

    The nearest ancestor holding a marker directory decides the outcome: its
    first present body file (in format priority order) is returned, and if it
    holds none the search ends without a result rather than moving further up.

    Returns:
        tuple[Path, StoreFormat] | None: Body file and its format, if found.
    """
    for ancestor in [start, *start.parents]:
        marker_dir = ancestor / marker
        marker_stat = probe(marker_dir)
        if marker_stat is None or not stat.S_ISDIR(marker_stat.st_mode):
            continue

        for fmt in FORMAT_PRIORITY:
            candidate = marker_dir / fmt.file_name
            found = probe(candidate)
            if found is not None and stat.S_ISREG(found.st_mode):
                return candidate, fmt
        return None
    return None


def store_root(db_path: Path) -> Path:
    """Return the directory a store body file belongs to."""
    return db_path.parent.parent


__all__ = ["DEFAULT_MARKER_DIRNAME", "find_store_file", "probe", "store_root"]
