"""CLI integration tests for store and entry commands."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from fsmeta.cli import cli
from fsmeta.paths import Workspace
from fsmeta.store import StoreRepository
from fsmeta.tags import TagValue


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    """Return environment variables pointing HOME to a temp directory.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        dict[str, str]: Environment mapping with HOME set.
    """
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    return env


@pytest.fixture
def store_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an empty directory and make it the working directory."""
    root = tmp_path / "data"
    root.mkdir()
    monkeypatch.chdir(root)
    return root


def _invoke(tmp_path: Path, *args: str) -> Result:
    return CliRunner().invoke(cli, list(args), env=_env_with_home(tmp_path))


def _store(root: Path):
    return StoreRepository().load(Workspace(cwd=root)).store


def test_cli_help_displays_commands() -> None:
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Attach tags, comments, and collections" in result.output
    for command in ("db", "get", "set", "rename", "mv", "rm", "coll", "config"):
        assert command in result.output


def test_verbose_and_debug_are_exclusive(tmp_path: Path, store_dir: Path) -> None:
    result = _invoke(tmp_path, "-V", "--debug", "db", "init")

    assert result.exit_code == 2


def test_db_init_creates_store(tmp_path: Path, store_dir: Path) -> None:
    result = _invoke(tmp_path, "db", "init", "--format", "json-pretty")

    assert result.exit_code == 0
    assert "Initialized empty json-pretty store" in result.stdout
    assert (store_dir / ".fsm" / "db.pretty.json").is_file()


def test_db_init_twice_fails(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    result = _invoke(tmp_path, "db", "init")

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_commands_without_store_fail(tmp_path: Path, store_dir: Path) -> None:
    result = _invoke(tmp_path, "get", "a.txt")

    assert result.exit_code == 1
    assert "no store found" in result.output


def test_set_then_get_round_trips_through_disk(tmp_path: Path, store_dir: Path) -> None:
    """Tags and comments written by ``set`` are read back by ``get``."""
    _invoke(tmp_path, "db", "init", "--format", "json")

    set_result = _invoke(tmp_path, "set", "-t", "color:red", "-c", "test", "a.txt")
    get_result = _invoke(tmp_path, "get", "a.txt")

    assert set_result.exit_code == 0
    assert get_result.exit_code == 0
    assert "color: red" in get_result.stdout
    assert "comment: test" in get_result.stdout
    assert "Total: 1" in get_result.stdout

    entry = _store(store_dir).files["a.txt"]
    assert entry.tags == {"color": TagValue.simple("red")}
    assert entry.updated is None


def test_set_repeated_path_creates_entry_once(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    result = _invoke(tmp_path, "set", "-t", "a", "x.txt", "./x.txt", "sub/../x.txt")

    assert result.exit_code == 0
    entry = _store(store_dir).files["x.txt"]
    assert entry.tags == {"a": None}
    assert entry.updated is None


def test_set_typed_tags_and_add_drop(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init", "--format", "binary")
    _invoke(tmp_path, "set", "--tag-num", "pages:12", "--tag-bool", "done:false", "-t", "draft", "a.txt")

    result = _invoke(tmp_path, "set", "-a", "color:blue", "-d", "draft", "a.txt")

    assert result.exit_code == 0
    entry = _store(store_dir).files["a.txt"]
    assert entry.tags == {
        "color": TagValue.simple("blue"),
        "done": TagValue.boolean(False),
        "pages": TagValue.number(12),
    }
    assert entry.updated is not None


def test_set_rejects_bad_typed_value(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    result = _invoke(tmp_path, "set", "--tag-num", "pages:many", "a.txt")

    assert result.exit_code == 2
    assert "invalid num provided" in result.output
    assert _store(store_dir).files == {}


def test_set_rejects_conflicting_tag_options(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    result = _invoke(tmp_path, "set", "--drop-all", "-a", "x", "a.txt")

    assert result.exit_code == 2
    assert "cannot be combined" in result.output


def test_set_self_updates_store(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    _invoke(tmp_path, "set", "--self", "-t", "project", "-c", "holiday photos")
    result = _invoke(tmp_path, "get", "--self")

    assert "project" in result.stdout
    assert "comment: holiday photos" in result.stdout
    store = _store(store_dir)
    assert store.comment == "holiday photos"
    assert store.files == {}


def test_get_reports_missing_and_skips_outside_paths(
    tmp_path: Path, store_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """A path outside the store is logged while the rest of the batch succeeds."""
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "-t", "a", "a.txt")

    with caplog.at_level(logging.WARNING):
        result = _invoke(tmp_path, "get", "a.txt", "missing.txt", str(tmp_path / "outside.txt"))

    assert result.exit_code == 0
    assert '"missing.txt" not found' in result.stdout
    assert "Total: 1" in result.stdout
    assert "do not share a common root" in caplog.text


def test_get_all_filters_and_titles(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "-t", "a", "-t", "b", "one.txt")
    _invoke(tmp_path, "set", "-t", "a", "two.txt")
    _invoke(tmp_path, "set", "-t", "b", "three.txt")

    result = _invoke(tmp_path, "get", "--all", "--includes-tags", "a", "--excludes-tags", "b")
    everything = _invoke(tmp_path, "get", "--all", "--sort-by", "created,name")

    assert result.exit_code == 0
    assert "Total: 1" in result.stdout
    assert "a" in result.stdout
    assert "@ !SELF" in everything.stdout
    assert "@ three.txt" in everything.stdout
    assert "Total: 4" in everything.stdout


def test_get_rejects_unknown_sort_key(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    result = _invoke(tmp_path, "get", "--all", "--sort-by", "size")

    assert result.exit_code == 2


def test_rename_onto_existing_entry_reports_and_keeps_both(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "-c", "old", "old.txt")
    _invoke(tmp_path, "set", "-c", "new", "new.txt")

    result = _invoke(tmp_path, "rename", "old.txt", "new.txt")

    assert result.exit_code == 0
    assert "already exists" in result.stdout
    files = _store(store_dir).files
    assert files["old.txt"].comment == "old"
    assert files["new.txt"].comment == "new"


def test_rename_moves_entry(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "-c", "note", "old.txt")

    missing = _invoke(tmp_path, "rename", "--exists", "old.txt", "sub/new.txt")
    result = _invoke(tmp_path, "rename", "old.txt", "sub/new.txt")

    assert "does not exist" in missing.stdout
    assert result.exit_code == 0
    assert list(_store(store_dir).files) == ["sub/new.txt"]


def test_mv_moves_tags_and_comment_and_removes_empty_source(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "-t", "color:red", "-c", "hello", "a.txt")
    _invoke(tmp_path, "set", "-t", "size:3", "b.txt")

    result = _invoke(tmp_path, "mv", "--from", "a.txt", "--to", "b.txt")

    assert result.exit_code == 0
    files = _store(store_dir).files
    assert "a.txt" not in files
    assert files["b.txt"].tags == {"color": TagValue.simple("red"), "size": TagValue.number(3)}
    assert files["b.txt"].comment == "hello"


def test_mv_tags_only_keeps_source_comment(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "-t", "color:red", "-c", "hello", "a.txt")

    result = _invoke(tmp_path, "mv", "--tags", "--from", "a.txt", "--to-self")

    assert result.exit_code == 0
    store = _store(store_dir)
    assert store.tags == {"color": TagValue.simple("red")}
    assert store.files["a.txt"].tags == {}
    assert store.files["a.txt"].comment == "hello"


def test_mv_requires_one_source(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    result = _invoke(tmp_path, "mv", "--to", "b.txt")

    assert result.exit_code == 2


def test_rm_removes_entries_and_prunes_missing(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")
    (store_dir / "kept.txt").write_text("x", encoding="utf-8")
    _invoke(tmp_path, "set", "-t", "x", "kept.txt", "gone.txt", "drop.txt")

    first = _invoke(tmp_path, "rm", "drop.txt", "unknown.txt")
    second = _invoke(tmp_path, "rm", "--not-exists")

    assert '"unknown.txt" not found' in first.stdout
    assert second.exit_code == 0
    assert list(_store(store_dir).files) == ["kept.txt"]


def test_open_launches_url_tags(
    tmp_path: Path, store_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    launched: list[str] = []

    def _launch(url: str, **_: object) -> int:
        launched.append(url)
        return 0

    monkeypatch.setattr("fsmeta.cli.click.launch", _launch)
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "--tag-url", "home:https://example.com/a", "-t", "plain:text", "a.txt")

    ok = _invoke(tmp_path, "open", "home", "a.txt")
    not_url = _invoke(tmp_path, "open", "plain", "a.txt")

    assert ok.exit_code == 0
    assert launched == ["https://example.com/a"]
    assert "is not a valid url" in not_url.stdout


def test_db_dump_json(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")
    _invoke(tmp_path, "set", "--tag-num", "n:1", "a.txt")

    result = _invoke(tmp_path, "db", "dump", "--json")

    payload = json.loads(result.stdout)
    assert payload["files"]["a.txt"]["tags"] == {"n": {"Number": 1}}


def test_db_drop_removes_store(tmp_path: Path, store_dir: Path) -> None:
    _invoke(tmp_path, "db", "init")

    result = _invoke(tmp_path, "db", "drop")

    assert result.exit_code == 0
    assert not (store_dir / ".fsm").exists()
