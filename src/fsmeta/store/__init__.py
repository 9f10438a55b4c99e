"""Store persistence helpers for the fsmeta CLI."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from fsmeta.paths import PathError, ResolvedPath, Workspace, iter_store_keys, resolve_store_key

from .codec import FORMAT_PRIORITY, StoreFormat, read_store, write_store
from .errors import (
    MissingStoreError,
    StoreDecodeError,
    StoreEncodeError,
    StoreError,
    StoreExistsError,
    StoreIOError,
)
from .locator import DEFAULT_MARKER_DIRNAME, find_store_file, probe, store_root
from .metadata import MetadataContainer
from .models import FileEntry, RenameOutcome, Store

LOGGER = logging.getLogger(__name__)


@dataclass
class StoreContext:
    """A loaded store together with where it lives on disk.

    Attributes:
        store: In-memory store being read or mutated.
        path: Body file the store was loaded from.
        format: Body format, fixed when the store was created.
        workspace: Working directory used to resolve relative paths.
    """

    store: Store
    path: Path
    format: StoreFormat
    workspace: Workspace

    @property
    def root(self) -> Path:
        """Return the directory that contains the marker directory."""
        return store_root(self.path)

    def resolve(self, path: str | os.PathLike[str]) -> ResolvedPath:
        """Resolve a single user path into a store key.

        Raises:
            PathError: If the path cannot be mapped onto this store.
        """
        return resolve_store_key(path, cwd=self.workspace.cwd, root=self.root)

    def resolve_many(
        self,
        paths: Iterable[str | os.PathLike[str]],
        errors: list[PathError] | None = None,
    ) -> Iterator[ResolvedPath]:
        """Resolve several paths, logging and skipping the ones that fail."""
        return iter_store_keys(paths, cwd=self.workspace.cwd, root=self.root, errors=errors)

    def save(self) -> None:
        """Write the in-memory store back to its body file in its current format."""
        write_store(self.path, self.store, self.format)


class StoreRepository:
    """Create, discover, load, persist, and drop stores."""

    def __init__(self, marker_dirname: str = DEFAULT_MARKER_DIRNAME) -> None:
        """Initialize the repository with an optional marker directory name.

        Args:
            marker_dirname: Name of the directory whose presence roots a store.
        """
        self._marker_dirname = marker_dirname

    @property
    def marker_dirname(self) -> str:
        """Return the marker directory name searched for by ``find``."""
        return self._marker_dirname

    def find(self, start: Path) -> tuple[Path, StoreFormat] | None:
        """Return the body file and format of the store owning ``start``."""
        return find_store_file(start, self._marker_dirname)

    def load(self, workspace: Workspace) -> StoreContext:
        """Load the store that owns the workspace directory.

        Raises:
            MissingStoreError: If no store is found.
            StoreIOError: If probing or reading fails.
            StoreDecodeError: If the body cannot be parsed.
        """
        found = self.find(workspace.cwd)
        if found is None:
            raise MissingStoreError(f"no store found from {workspace.cwd}")
        path, fmt = found
        return StoreContext(store=read_store(path, fmt), path=path, format=fmt, workspace=workspace)

    def initialize(self, workspace: Workspace, fmt: StoreFormat = StoreFormat.JSON) -> StoreContext:
        """Create a new empty store rooted at the workspace directory.

        Raises:
            StoreExistsError: If the marker directory already holds a body file.
            StoreError: If the marker or a body file name is taken by another kind
                of filesystem entry.
        """
        marker_dir = workspace.cwd / self._marker_dirname
        marker_stat = probe(marker_dir)
        if marker_stat is not None:
            LOGGER.info("%s entry already exists", self._marker_dirname)
            if not stat.S_ISDIR(marker_stat.st_mode):
                raise StoreError(f"{marker_dir} is not a directory")
            for existing in FORMAT_PRIORITY:
                candidate = marker_dir / existing.file_name
                found = probe(candidate)
                if found is None:
                    continue
                if stat.S_ISREG(found.st_mode):
                    raise StoreExistsError(f"a store file already exists: {candidate}")
                raise StoreError(f"a filesystem entry exists with the name of a store file: {candidate}")
        else:
            LOGGER.info("creating %s", marker_dir)
            try:
                marker_dir.mkdir()
            except OSError as exc:
                raise StoreIOError("failed to create marker directory", marker_dir) from exc

        path = marker_dir / fmt.file_name
        context = StoreContext(store=Store(), path=path, format=fmt, workspace=workspace)
        write_store(path, context.store, fmt, create=True)
        return context

    def save(self, context: StoreContext) -> None:
        """Persist the whole store back to its body file."""
        context.save()

    def drop(self, context: StoreContext) -> None:
        """Remove the body file and its marker directory.

        Raises:
            StoreIOError: If either cannot be removed.
        """
        LOGGER.info("dropping store file: %s", context.path)
        try:
            context.path.unlink()
        except OSError as exc:
            raise StoreIOError("failed to remove store file", context.path) from exc

        marker_dir = context.path.parent
        LOGGER.info("dropping marker directory: %s", marker_dir)
        try:
            marker_dir.rmdir()
        except OSError as exc:
            raise StoreIOError("failed to remove marker directory", marker_dir) from exc


__all__ = [
    "DEFAULT_MARKER_DIRNAME",
    "FileEntry",
    "MetadataContainer",
    "MissingStoreError",
    "RenameOutcome",
    "Store",
    "StoreContext",
    "StoreDecodeError",
    "StoreEncodeError",
    "StoreError",
    "StoreExistsError",
    "StoreFormat",
    "StoreIOError",
    "StoreRepository",
]
