"""Resolve user supplied paths into store keys."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable, Iterator

LOGGER = logging.getLogger(__name__)


class PathError(Exception):
    """Base exception for paths that cannot be mapped to a store key.

    Attributes:
        path: The path as supplied by the caller.
    """

    def __init__(self, message: str, path: str | os.PathLike[str]) -> None:
        super().__init__(message)
        self.path = os.fspath(path)


class InvalidPrefixError(PathError):
    """Raised when a resolved path does not live under the store root."""


class InvalidCharsError(PathError):
    """Raised when the root-relative portion of a path is not valid UTF-8."""


class PathIOError(PathError):
    """Raised when a path cannot be absolutized."""


@dataclass(frozen=True)
class Workspace:
    """Working directory captured once when a command starts.

    Attributes:
        cwd: Absolute working directory used to resolve relative paths.
    """

    cwd: Path

    @classmethod
    def capture(cls) -> "Workspace":
        """Return a workspace bound to the current process working directory.

        Raises:
            PathIOError: If the working directory cannot be read.
        """
        try:
            cwd = os.getcwd()
        except OSError as exc:
            raise PathIOError(f"failed to retrieve current working directory: {exc}", ".") from exc
        return cls(cwd=Path(cwd))


@dataclass(frozen=True)
class ResolvedPath:
    """A user path resolved against a store root.

    Attributes:
        full: Lexically absolute form of the supplied path.
        key: Root-relative store key using ``/`` separators.
    """

    full: Path
    key: str


def absolutize(path: str | os.PathLike[str], cwd: str | os.PathLike[str]) -> Path:
    """Return an absolute path without consulting the filesystem.

    Relative paths are joined onto ``cwd``; ``.`` and ``..`` segments are
    collapsed lexically so that missing targets and symlinks are left alone.

    Raises:
        PathIOError: If the path cannot be joined or normalized.
    """
    try:
        raw = os.fspath(path)
        if not os.path.isabs(raw):
            raw = os.path.join(os.fspath(cwd), raw)
        return Path(os.path.normpath(raw))
    except (TypeError, ValueError) as exc:
        raise PathIOError(f"failed to resolve path: {path}: {exc}", path) from exc


def resolve_store_key(
    path: str | os.PathLike[str],
    *,
    cwd: str | os.PathLike[str],
    root: str | os.PathLike[str],
) -> ResolvedPath:
    """Resolve ``path`` into its store key relative to ``root``.

    Args:
        path: Relative or absolute path supplied by the user.
        cwd: Working directory used for relative paths.
        root: Absolute store root (the parent of the marker directory).

    Returns:
        ResolvedPath: The absolute path and its normalized store key.

    Raises:
        InvalidPrefixError: If the path is outside the store root.
        InvalidCharsError: If the relative path is not valid UTF-8.
        PathIOError: If absolutization fails.
    """
    full = absolutize(path, cwd)
    try:
        relative = PurePath(full).relative_to(PurePath(os.path.normpath(os.fspath(root))))
    except ValueError as exc:
        raise InvalidPrefixError(
            f"file and store do not share a common root: {full}", path
        ) from exc

    key = relative.as_posix()
    if key == ".":
        key = ""
    try:
        key.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidCharsError(f"path contains invalid utf-8 characters: {full!s}", path) from exc

    return ResolvedPath(full=full, key=key)


def iter_store_keys(
    paths: Iterable[str | os.PathLike[str]],
    *,
    cwd: str | os.PathLike[str],
    root: str | os.PathLike[str],
    errors: list[PathError] | None = None,
) -> Iterator[ResolvedPath]:
    """Yield resolved store keys, skipping paths that fail to resolve.

    Failures are logged and, when ``errors`` is given, appended to it so that
    the caller can report them after finishing the rest of the batch.
    """
    for path in paths:
        try:
            yield resolve_store_key(path, cwd=cwd, root=root)
        except PathError as exc:
            LOGGER.warning("skipping %s: %s", exc.path, exc)
            if errors is not None:
                errors.append(exc)


__all__ = [
    "PathError",
    "InvalidPrefixError",
    "InvalidCharsError",
    "PathIOError",
    "Workspace",
    "ResolvedPath",
    "absolutize",
    "resolve_store_key",
    "iter_store_keys",
]
