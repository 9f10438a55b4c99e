"""Command line interface for fsmeta."""

from __future__ import annotations

import difflib
import json
import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.pretty import Pretty
from rich.syntax import Syntax

from fsmeta.cli_support import (
    AppState,
    configure_logging,
    console,
    emit,
    render_entry,
    sort_keys_callback,
    store_errors,
    tag_keys_callback,
    tag_option_callback,
)
from fsmeta.config import (
    ConfigError,
    ConfigManager,
    FsmetaConfig,
    assign_nested,
    resolve_with_precedence,
)
from fsmeta.paths import Workspace
from fsmeta.query import Selection, SortKey, run_query
from fsmeta.store import RenameOutcome, StoreContext, StoreFormat, StoreRepository
from fsmeta.store.metadata import MetadataContainer, apply_changes, take_comment, take_tags
from fsmeta.tags import (
    TagUpdate,
    TagValue,
    parse_bool_tag,
    parse_num_tag,
    parse_tag,
    parse_url_tag,
    sort_tags,
)

LOGGER = logging.getLogger(__name__)

FORMAT_CHOICE = click.Choice([fmt.value for fmt in StoreFormat])


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="fsmeta")
@click.option("-V", "--verbose", is_flag=True, help="Log informational messages.")
@click.option("--debug", is_flag=True, help="Log debug messages.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """Attach tags, comments, and collections to files without touching them.

    Args:
        ctx: Click context that receives the shared application state.
        verbose: Enable INFO logging.
        debug: Enable DEBUG logging.
    """
    if verbose and debug:
        raise click.UsageError("--verbose cannot be combined with --debug.")

    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        if ctx.invoked_subcommand != "config":
            raise click.ClickException(str(exc)) from exc
        config = FsmetaConfig()

    if debug:
        configure_logging(logging.DEBUG)
    elif verbose:
        configure_logging(logging.INFO)
    else:
        configure_logging(config.logging.level)

    with store_errors():
        workspace = Workspace.capture()
    ctx.obj = AppState(
        workspace=workspace,
        config=config,
        repository=StoreRepository(config.store.marker_dirname),
    )


# Store management -----------------------------------------------------


@cli.group()
def db() -> None:
    """Create, inspect, and remove the store itself."""


@db.command("init")
@click.option("--format", "fmt", type=FORMAT_CHOICE, help="Body format of the new store.")
@click.pass_obj
def db_init(state: AppState, fmt: str | None) -> None:
    """Initialize a store in the working directory.

    Args:
        state: Shared application state.
        fmt: Body format; defaults to ``store.default_format`` from config.

    Raises:
        click.ClickException: If a store already exists here or cannot be created.
    """
    chosen = StoreFormat(fmt or state.config.store.default_format)
    with store_errors():
        context = state.repository.initialize(state.workspace, chosen)
    emit(f"Initialized empty {chosen.value} store in {context.path}")


@db.command("drop")
@click.pass_obj
def db_drop(state: AppState) -> None:
    """Delete the store file and its marker directory."""
    context = state.load()
    with store_errors():
        state.repository.drop(context)
    emit(f"Dropped store at {context.root}")


@db.command("dump")
@click.option("--json", "as_json", is_flag=True, help="Dump the store as JSON.")
@click.option("--pretty", is_flag=True, help="Pretty print the output.")
@click.pass_obj
def db_dump(state: AppState, as_json: bool, pretty: bool) -> None:
    """Write the whole store to stdout.

    Args:
        state: Shared application state.
        as_json: Emit the JSON body instead of the model representation.
        pretty: Indent JSON or pretty print the model.
    """
    context = state.load()
    if as_json:
        payload = context.store.model_dump(mode="json")
        if pretty:
            click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        else:
            click.echo(json.dumps(payload, separators=(",", ":"), ensure_ascii=False))
    elif pretty:
        console.print(Pretty(context.store))
    else:
        emit(repr(context.store))


# Entries --------------------------------------------------------------


@cli.command()
@click.option("--no-tags", is_flag=True, help="Do not print tags.")
@click.option("--no-comment", is_flag=True, help="Do not print comments.")
@click.option("--all", "all_", is_flag=True, help="List the store and every entry.")
@click.option("--self", "self_", is_flag=True, help="Show the store's own tags and comment.")
@click.option(
    "--sort-by",
    multiple=True,
    callback=sort_keys_callback,
    help="Comma separated criteria: name, date, created, updated (ascending).",
)
@click.option(
    "--includes-tags",
    multiple=True,
    callback=tag_keys_callback,
    help="Only show entries carrying every one of these tags.",
)
@click.option(
    "--excludes-tags",
    multiple=True,
    callback=tag_keys_callback,
    help="Hide entries carrying any of these tags.",
)
@click.argument("paths", nargs=-1, type=click.Path(path_type=str))
@click.pass_obj
def get(
    state: AppState,
    no_tags: bool,
    no_comment: bool,
    all_: bool,
    self_: bool,
    sort_by: list[SortKey] | None,
    includes_tags: list[str],
    excludes_tags: list[str],
    paths: tuple[str, ...],
) -> None:
    """Show tags and comments for PATHS (the working directory by default).

    Args:
        state: Shared application state.
        no_tags: Suppress tag output.
        no_comment: Suppress comment output.
        all_: Select the store and every file entry.
        self_: Select only the store.
        sort_by: Ordering criteria; defaults to ``query.sort_by`` from config.
        includes_tags: Tags an entry must carry.
        excludes_tags: Tags an entry must not carry.
        paths: Paths to look up.
    """
    if no_tags and no_comment:
        raise click.UsageError("--no-tags cannot be combined with --no-comment.")
    if all_ and self_:
        raise click.UsageError("--all cannot be combined with --self.")

    if all_:
        selection = Selection.ALL
    elif self_:
        selection = Selection.STORE
    else:
        selection = Selection.PATHS

    criteria = sort_by or [SortKey(name) for name in state.config.query.sort_by]
    context = state.load()
    result = run_query(
        context,
        selection=selection,
        paths=paths or ("./",),
        include=includes_tags,
        exclude=excludes_tags,
        sort_by=criteria,
    )

    for key in result.not_found:
        emit(f'"{key}" not found')
    for entry in result.entries:
        render_entry(
            entry,
            show_title=result.show_titles,
            show_tags=not no_tags,
            show_comment=not no_comment,
        )
    emit(f"Total: {result.total}")


@cli.command("set")
@click.option(
    "-t", "--tag", "tags", multiple=True, callback=tag_option_callback(parse_tag),
    help="Replace all tags with NAME[:VALUE] (repeatable).",
)
@click.option(
    "--tag-url", multiple=True, callback=tag_option_callback(parse_url_tag),
    help="Like --tag but VALUE must be a URL.",
)
@click.option(
    "--tag-num", multiple=True, callback=tag_option_callback(parse_num_tag),
    help="Like --tag but VALUE must be an integer.",
)
@click.option(
    "--tag-bool", multiple=True, callback=tag_option_callback(parse_bool_tag),
    help="Like --tag but VALUE must be true or false.",
)
@click.option(
    "-a", "--add", multiple=True, callback=tag_option_callback(parse_tag),
    help="Add NAME[:VALUE] to the existing tags (repeatable).",
)
@click.option(
    "--add-url", multiple=True, callback=tag_option_callback(parse_url_tag),
    help="Like --add but VALUE must be a URL.",
)
@click.option(
    "--add-num", multiple=True, callback=tag_option_callback(parse_num_tag),
    help="Like --add but VALUE must be an integer.",
)
@click.option(
    "--add-bool", multiple=True, callback=tag_option_callback(parse_bool_tag),
    help="Like --add but VALUE must be true or false.",
)
@click.option("-d", "--drop", multiple=True, help="Remove a tag by name (repeatable).")
@click.option("--drop-all", is_flag=True, help="Remove every tag.")
@click.option("-c", "--comment", type=str, help="Set the comment.")
@click.option("--drop-comment", is_flag=True, help="Remove the comment.")
@click.option("--self", "self_", is_flag=True, help="Update the store instead of files.")
@click.argument("paths", nargs=-1, type=click.Path(path_type=str))
@click.pass_obj
def set_(
    state: AppState,
    tags: list,
    tag_url: list,
    tag_num: list,
    tag_bool: list,
    add: list,
    add_url: list,
    add_num: list,
    add_bool: list,
    drop: tuple[str, ...],
    drop_all: bool,
    comment: str | None,
    drop_comment: bool,
    self_: bool,
    paths: tuple[str, ...],
) -> None:
    """Update tags and the comment of PATHS (or of the store with --self).

    Entries are created on first use.

    Args:
        state: Shared application state.
        tags: Tags replacing the existing map.
        tag_url: URL tags replacing the existing map.
        tag_num: Integer tags replacing the existing map.
        tag_bool: Boolean tags replacing the existing map.
        add: Tags merged into the existing map.
        add_url: URL tags merged into the existing map.
        add_num: Integer tags merged into the existing map.
        add_bool: Boolean tags merged into the existing map.
        drop: Tag names to remove.
        drop_all: Remove all tags.
        comment: New comment.
        drop_comment: Remove the comment.
        self_: Target the store itself.
        paths: Files to update.
    """
    if comment is not None and drop_comment:
        raise click.UsageError("--comment cannot be combined with --drop-comment.")
    if not self_ and not paths:
        raise click.UsageError("Provide at least one PATH or use --self.")
    if self_ and paths:
        raise click.UsageError("--self cannot be combined with PATHS.")

    try:
        update = TagUpdate(
            replace=[*tags, *tag_url, *tag_num, *tag_bool],
            add=[*add, *add_url, *add_num, *add_bool],
            drop=list(drop),
            drop_all=drop_all,
        )
    except ValidationError as exc:
        message = "; ".join(error["msg"] for error in exc.errors())
        raise click.UsageError(message) from exc

    context = state.load()
    if self_:
        LOGGER.info("updating store")
        apply_changes(context.store, tags=update, comment=comment, drop_comment=drop_comment)
    else:
        keys = dict.fromkeys(resolved.key for resolved in context.resolve_many(paths))
        for key in keys:
            entry, created = context.store.upsert_entry(key)
            LOGGER.info("%s %r", "adding" if created else "updating", key)
            apply_changes(
                entry,
                tags=update,
                comment=comment,
                drop_comment=drop_comment,
                stamp=not created,
            )

    with store_errors():
        context.save()


@cli.command()
@click.option("--exists", is_flag=True, help="Require the new path to exist on disk.")
@click.argument("current", type=click.Path(path_type=str))
@click.argument("renamed", type=click.Path(path_type=str))
@click.pass_obj
def rename(state: AppState, exists: bool, current: str, renamed: str) -> None:
    """Move the entry recorded for CURRENT to RENAMED.

    Args:
        state: Shared application state.
        exists: Refuse when RENAMED does not exist on disk.
        current: Path whose entry is moved.
        renamed: New path for the entry.
    """
    context = state.load()
    with store_errors():
        source = context.resolve(current)
        target = context.resolve(renamed)

    if exists and not target.full.exists():
        emit(f"the renamed path does not exist: {target.full}")
        return

    outcome = context.store.rename_entry(source.key, target.key)
    if outcome is RenameOutcome.SOURCE_MISSING:
        emit(f"current not found in store: {source.full}")
        return
    if outcome is RenameOutcome.TARGET_EXISTS:
        emit(f"renamed already exists in store: {target.key}")
        return

    LOGGER.info("renamed %r to %r", source.key, target.key)
    with store_errors():
        context.save()


def _move_source(context: StoreContext, path: str | None) -> tuple[MetadataContainer, str | None]:
    if path is None:
        return context.store, None
    with store_errors():
        resolved = context.resolve(path)
    entry = context.store.get_entry(resolved.key)
    if entry is None:
        raise click.ClickException(f"source not found in store: {resolved.full}")
    return entry, resolved.key


def _move_target(
    context: StoreContext, path: str | None, check_exists: bool
) -> tuple[MetadataContainer, str | None, bool]:
    if path is None:
        return context.store, None, False
    with store_errors():
        resolved = context.resolve(path)
    if check_exists and not resolved.full.exists():
        raise click.ClickException(f"the destination path does not exist: {resolved.full}")
    entry, created = context.store.upsert_entry(resolved.key)
    return entry, resolved.key, created


@cli.command("mv")
@click.option("--tags", "tags_only", is_flag=True, help="Move only the tags.")
@click.option("--comment", "comment_only", is_flag=True, help="Move only the comment.")
@click.option("-f", "--from", "from_path", type=click.Path(path_type=str), help="Source path.")
@click.option("--from-self", is_flag=True, help="Move data from the store itself.")
@click.option("-t", "--to", "to_path", type=click.Path(path_type=str), help="Destination path.")
@click.option("--to-self", is_flag=True, help="Move data onto the store itself.")
@click.option("--exists", is_flag=True, help="Require the destination to exist on disk.")
@click.pass_obj
def move(
    state: AppState,
    tags_only: bool,
    comment_only: bool,
    from_path: str | None,
    from_self: bool,
    to_path: str | None,
    to_self: bool,
    exists: bool,
) -> None:
    """Move tags and/or the comment from one entry (or the store) to another.

    Moved tags are merged into the destination; a moved comment replaces the
    destination's comment. A source file entry left with no tags and no
    comment is removed.

    Args:
        state: Shared application state.
        tags_only: Move only tags.
        comment_only: Move only the comment.
        from_path: Source path.
        from_self: Use the store as source.
        to_path: Destination path.
        to_self: Use the store as destination.
        exists: Require the destination path to exist.
    """
    if tags_only and comment_only:
        raise click.UsageError("--tags cannot be combined with --comment.")
    if (from_path is None) == (not from_self):
        raise click.UsageError("Provide exactly one of --from or --from-self.")
    if (to_path is None) == (not to_self):
        raise click.UsageError("Provide exactly one of --to or --to-self.")
    if from_self and to_self:
        raise click.UsageError("--from-self cannot be combined with --to-self.")

    context = state.load()
    source, source_key = _move_source(context, from_path)
    if to_path is not None and source_key is not None:
        with store_errors():
            if context.resolve(to_path).key == source_key:
                emit("source and destination are the same entry")
                return
    target, _target_key, created = _move_target(context, to_path, exists)

    moved_tags = take_tags(source) if not comment_only else {}
    moved_comment = take_comment(source) if not tags_only else None

    if moved_tags:
        target.tags = sort_tags({**target.tags, **moved_tags})
    if moved_comment is not None:
        target.comment = moved_comment
    else:
        LOGGER.info("no comment to move")
    if not created:
        target.touch()

    if source_key is not None and not source.tags and source.comment is None:
        LOGGER.info("removing emptied entry %r", source_key)
        context.store.remove_entry(source_key)
    else:
        source.touch()

    with store_errors():
        context.save()


@cli.command("rm")
@click.option("--not-exists", is_flag=True, help="Also remove entries whose file is missing.")
@click.argument("paths", nargs=-1, type=click.Path(path_type=str))
@click.pass_obj
def remove(state: AppState, not_exists: bool, paths: tuple[str, ...]) -> None:
    """Delete the entries recorded for PATHS.

    Args:
        state: Shared application state.
        not_exists: Prune every entry whose file no longer exists.
        paths: Paths whose entries are removed.
    """
    if not paths and not not_exists:
        raise click.UsageError("Provide at least one PATH or use --not-exists.")

    context = state.load()
    if not_exists:
        for key in context.store.prune_missing(context.root):
            LOGGER.info("removed missing %r", key)

    for resolved in context.resolve_many(paths):
        if context.store.remove_entry(resolved.key) is None:
            emit(f'"{resolved.key}" not found')
        else:
            LOGGER.info("removed %r", resolved.key)

    with store_errors():
        context.save()


@cli.command("open")
@click.argument("tag")
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.pass_obj
def open_tag(state: AppState, tag: str, paths: tuple[str, ...]) -> None:
    """Open the URL stored in TAG for each of PATHS.

    Args:
        state: Shared application state.
        tag: Name of a URL tag.
        paths: Paths whose tag is opened.
    """
    context = state.load()
    for resolved in context.resolve_many(paths):
        entry = context.store.get_entry(resolved.key)
        if entry is None:
            emit(f'"{resolved.key}" not found')
            continue
        if tag not in entry.tags:
            emit(f"{resolved.full} {tag} does not exist")
            continue
        value: TagValue | None = entry.tags[tag]
        if value is None:
            emit(f"{resolved.full} {tag} has no value")
            continue
        if value.kind != "Url":
            emit(f"{resolved.full} {tag} is not a valid url")
            continue
        LOGGER.info("opening %s", value.value)
        if click.launch(str(value.value)) != 0:
            emit(f"failed to open {value.value}")


# Collections ----------------------------------------------------------


@cli.group()
def coll() -> None:
    """Manage named collections of entries."""


def _print_members(members: set[str]) -> None:
    for key in sorted(members):
        emit(key)


@coll.command("view")
@click.argument("name", required=False)
@click.option("-f", "--files", is_flag=True, help="List the members of each collection.")
@click.pass_obj
def coll_view(state: AppState, name: str | None, files: bool) -> None:
    """Show one collection, or every collection when NAME is omitted."""
    context = state.load()
    collections = context.store.collections
    if name is not None:
        if name not in collections:
            emit("collection not found")
            return
        selected = {name: collections[name]}
    else:
        selected = {key: collections[key] for key in sorted(collections)}

    for label, members in selected.items():
        emit(f"{label}: {len(members)} files")
        if files:
            _print_members(members)


@coll.command("create")
@click.argument("name")
@click.pass_obj
def coll_create(state: AppState, name: str) -> None:
    """Create an empty collection NAME."""
    context = state.load()
    if not context.store.create_collection(name):
        emit("the specified collection already exists")
        return
    with store_errors():
        context.save()


@coll.command("delete")
@click.argument("name")
@click.option("-f", "--files", is_flag=True, help="Print the members that were removed.")
@click.pass_obj
def coll_delete(state: AppState, name: str, files: bool) -> None:
    """Delete collection NAME. Entries themselves are kept."""
    context = state.load()
    members = context.store.remove_collection(name)
    if members is None:
        emit("collection not found")
        return
    with store_errors():
        context.save()

    if files:
        emit(f"{len(members)} files")
        _print_members(members)


@coll.command("push")
@click.argument("name")
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.pass_obj
def coll_push(state: AppState, name: str, paths: tuple[str, ...]) -> None:
    """Add PATHS to collection NAME."""
    context = state.load()
    if context.store.get_collection(name) is None:
        emit("collection not found")
        return
    keys = [resolved.key for resolved in context.resolve_many(paths)]
    added = context.store.push_to_collection(name, keys)
    LOGGER.info("added %s keys to %r", added, name)
    with store_errors():
        context.save()


@coll.command("pop")
@click.argument("name")
@click.option("--no-exists", is_flag=True, help="Also remove members whose file is missing.")
@click.argument("paths", nargs=-1, type=click.Path(path_type=str))
@click.pass_obj
def coll_pop(state: AppState, name: str, no_exists: bool, paths: tuple[str, ...]) -> None:
    """Remove PATHS from collection NAME."""
    if not paths and not no_exists:
        raise click.UsageError("Provide at least one PATH or use --no-exists.")

    context = state.load()
    if context.store.get_collection(name) is None:
        emit("collection not found")
        return
    if no_exists:
        for key in context.store.prune_collection(name, context.root) or []:
            LOGGER.info("removing missing %r", key)
    keys = [resolved.key for resolved in context.resolve_many(paths)]
    context.store.pop_from_collection(name, keys)
    with store_errors():
        context.save()


@coll.command("update")
@click.argument("name")
@click.argument("paths", nargs=-1, type=click.Path(path_type=str))
@click.pass_obj
def coll_update(state: AppState, name: str, paths: tuple[str, ...]) -> None:
    """Merge PATHS into the existing members of collection NAME."""
    context = state.load()
    if context.store.get_collection(name) is None:
        emit("collection not found")
        return
    keys = [resolved.key for resolved in context.resolve_many(paths)]
    added = context.store.push_to_collection(name, keys)
    LOGGER.info("updated %r with %s new keys", name, added)
    with store_errors():
        context.save()


# Configuration --------------------------------------------------------


@cli.group()
def config() -> None:
    """Inspect and change fsmeta configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    try:
        effective = ConfigManager().load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path such as ``store.default_format``.
        value: YAML literal written at KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'logging.level'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=FsmetaConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    before = _read_lines(manager.config_path)
    manager.save(file_data)
    after = _read_lines(manager.config_path)

    diff = list(
        difflib.unified_diff(
            before, after, fromfile="config.yaml (before)", tofile="config.yaml (after)", lineterm=""
        )
    )
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def _read_lines(path: Path) -> list[str]:
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
