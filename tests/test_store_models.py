"""Store model and metadata container tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from fsmeta.store import FileEntry, MetadataContainer, RenameOutcome, Store
from fsmeta.store.metadata import apply_changes, take_comment, take_tags
from fsmeta.tags import TagUpdate, TagValue


def _entry(comment: str) -> FileEntry:
    return FileEntry(tags={"k": TagValue.simple(comment)}, comment=comment)


def test_store_and_entry_share_container_interface() -> None:
    assert isinstance(Store(), MetadataContainer)
    assert isinstance(FileEntry(), MetadataContainer)


def test_modified_prefers_updated() -> None:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    entry = FileEntry(created=created)

    assert entry.modified == created
    entry.touch()
    assert entry.updated is not None
    assert entry.modified == entry.updated


def test_upsert_entry_creates_once() -> None:
    store = Store()

    first, created = store.upsert_entry("a.txt")
    second, created_again = store.upsert_entry("a.txt")

    assert created is True
    assert created_again is False
    assert first is second


def test_rename_onto_existing_entry_changes_nothing() -> None:
    store = Store(files={"old.txt": _entry("old"), "new.txt": _entry("new")})

    outcome = store.rename_entry("old.txt", "new.txt")

    assert outcome is RenameOutcome.TARGET_EXISTS
    assert store.files["old.txt"].comment == "old"
    assert store.files["new.txt"].comment == "new"


def test_rename_moves_entry() -> None:
    store = Store(files={"old.txt": _entry("old")})

    assert store.rename_entry("missing.txt", "x.txt") is RenameOutcome.SOURCE_MISSING
    assert store.rename_entry("old.txt", "dir/new.txt") is RenameOutcome.RENAMED
    assert list(store.files) == ["dir/new.txt"]
    assert store.files["dir/new.txt"].comment == "old"


def test_prune_missing_removes_entries_without_files(tmp_path: Path) -> None:
    (tmp_path / "kept.txt").write_text("x", encoding="utf-8")
    store = Store(files={"kept.txt": FileEntry(), "gone.txt": FileEntry(), "b/gone.txt": FileEntry()})

    removed = store.prune_missing(tmp_path)

    assert removed == ["b/gone.txt", "gone.txt"]
    assert list(store.files) == ["kept.txt"]


def test_collection_operations(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("x", encoding="utf-8")
    store = Store()

    assert store.push_to_collection("favs", ["a.txt"]) is None
    assert store.create_collection("favs") is True
    assert store.create_collection("favs") is False
    assert store.push_to_collection("favs", ["a.txt", "b.txt", "a.txt"]) == 2
    assert store.pop_from_collection("favs", ["b.txt", "c.txt"]) == 1
    assert store.push_to_collection("favs", ["z.txt"]) == 1
    assert store.prune_collection("favs", tmp_path) == ["z.txt"]
    assert store.get_collection("favs") == {"a.txt"}
    assert store.remove_collection("favs") == {"a.txt"}


def test_serialization_is_sorted() -> None:
    store = Store(
        files={"b": FileEntry(tags={"z": None, "a": None}), "a": FileEntry()},
        collections={"c": {"y", "x"}},
    )

    dumped = store.model_dump(mode="json")

    assert list(dumped["files"]) == ["a", "b"]
    assert list(dumped["files"]["b"]["tags"]) == ["a", "z"]
    assert dumped["collections"] == {"c": ["x", "y"]}


def test_apply_changes_stamps_only_when_requested() -> None:
    fresh = FileEntry()
    existing = FileEntry()
    update = TagUpdate(add=[("color", TagValue.simple("red"))])

    assert apply_changes(fresh, tags=update, comment="hi", stamp=False) is True
    assert apply_changes(existing, tags=update) is True

    assert fresh.updated is None
    assert fresh.tags == {"color": TagValue.simple("red")}
    assert fresh.comment == "hi"
    assert existing.updated is not None


def test_apply_changes_without_request_is_noop() -> None:
    entry = FileEntry(comment="keep")

    assert apply_changes(entry, tags=TagUpdate()) is False
    assert entry.updated is None
    assert entry.comment == "keep"

    assert apply_changes(entry, drop_comment=True) is True
    assert entry.comment is None


def test_take_helpers_empty_the_container() -> None:
    store = Store(tags={"a": None}, comment="note")

    assert take_tags(store) == {"a": None}
    assert take_comment(store) == "note"
    assert store.tags == {}
    assert store.comment is None

    assert store.updated is None
