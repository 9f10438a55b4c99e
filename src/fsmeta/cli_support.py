"""Helpers shared by fsmeta CLI commands."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Sequence

import click
from rich.console import Console
from rich.logging import RichHandler

from fsmeta.config import ConfigError, FsmetaConfig
from fsmeta.paths import PathError, Workspace
from fsmeta.query import QueryEntry, SortKey
from fsmeta.store import StoreContext, StoreError, StoreRepository
from fsmeta.tags import Tag, TagError, TagMap, validate_tag_key

console = Console(soft_wrap=True, highlight=False, emoji=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False, emoji=False)

_LOG_HANDLER: logging.Handler | None = None


@dataclass
class AppState:
    """Per-invocation values threaded from the CLI group to its commands.

    Attributes:
        workspace: Working directory captured when the command started.
        config: Effective configuration.
        repository: Repository bound to the configured marker directory.
    """

    workspace: Workspace
    config: FsmetaConfig
    repository: StoreRepository

    def load(self) -> StoreContext:
        """Load the store owning the working directory.

        Raises:
            click.ClickException: If the store cannot be found or read.
        """
        with store_errors():
            return self.repository.load(self.workspace)


def configure_logging(level: int | str) -> None:
    """Route fsmeta log records to stderr through a single Rich handler."""
    global _LOG_HANDLER

    package_logger = logging.getLogger("fsmeta")
    if _LOG_HANDLER is not None:
        package_logger.removeHandler(_LOG_HANDLER)
    _LOG_HANDLER = RichHandler(
        console=err_console, show_time=False, show_path=False, markup=False
    )
    package_logger.addHandler(_LOG_HANDLER)
    package_logger.setLevel(level)


@contextmanager
def store_errors() -> Iterator[None]:
    """Turn fatal store, path, and config errors into Click errors."""
    try:
        yield
    except (StoreError, PathError, ConfigError) as exc:
        raise click.ClickException(str(exc)) from exc


def emit(message: str) -> None:
    """Print plain text without interpreting Rich markup."""
    console.print(message, markup=False)


def tag_option_callback(
    parser: Callable[[str], Tag],
) -> Callable[[click.Context, click.Parameter, Sequence[str]], list[Tag]]:
    """Build a Click callback that parses every value of a tag option."""

    def _convert(ctx: click.Context, param: click.Parameter, values: Sequence[str]) -> list[Tag]:
        try:
            return [parser(value) for value in values]
        except TagError as exc:
            raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc

    return _convert


def _split_values(values: Sequence[str]) -> list[str]:
    return [part for value in values for part in value.split(",") if part]


def tag_keys_callback(
    ctx: click.Context, param: click.Parameter, values: Sequence[str]
) -> list[str]:
    """Parse repeatable, comma separated tag names."""
    try:
        return [validate_tag_key(name) for name in _split_values(values)]
    except TagError as exc:
        raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc


def sort_keys_callback(
    ctx: click.Context, param: click.Parameter, values: Sequence[str]
) -> list[SortKey] | None:
    """Parse repeatable, comma separated sort criteria."""
    names = _split_values(values)
    if not names:
        return None
    try:
        return [SortKey(name.lower()) for name in names]
    except ValueError as exc:
        choices = ", ".join(key.value for key in SortKey)
        raise click.BadParameter(f"{exc}; expected one of: {choices}", ctx=ctx, param=param) from exc


def render_tags(tags: TagMap) -> None:
    """Print presence-only tags first, then valued tags aligned on the colon."""
    bare = sorted(name for name, value in tags.items() if value is None)
    valued = sorted(name for name, value in tags.items() if value is not None)
    width = max((len(name) for name in valued), default=0)

    for name in bare:
        emit(name)
    for name in valued:
        emit(f"{name:>{width}}: {tags[name]}")


def render_entry(
    entry: QueryEntry, *, show_title: bool, show_tags: bool = True, show_comment: bool = True
) -> None:
    """Print one query result the way ``get`` displays it."""
    container = entry.container
    printed_title = False
    print_timestamp = False

    if show_tags:
        if show_title:
            emit(entry.title)
            printed_title = True
        render_tags(container.tags)
        print_timestamp = True

    if show_comment and container.comment is not None:
        if show_title and not printed_title:
            emit(entry.title)
        emit(f"comment: {container.comment}")
        print_timestamp = True

    if print_timestamp:
        emit(str(container.modified.astimezone()))


__all__ = [
    "AppState",
    "configure_logging",
    "console",
    "emit",
    "err_console",
    "render_entry",
    "render_tags",
    "sort_keys_callback",
    "store_errors",
    "tag_keys_callback",
    "tag_option_callback",
]
