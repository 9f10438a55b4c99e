"""Persisted data models for a metadata store."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field, field_serializer

from fsmeta.tags import TagMap, TagValue


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class FileEntry(BaseModel):
    """Tags, comment, and timestamps recorded for one store key."""

    tags: Dict[str, Optional[TagValue]] = Field(default_factory=dict)
    comment: Optional[str] = None
    created: datetime = Field(default_factory=utcnow)
    updated: Optional[datetime] = None

    @property
    def modified(self) -> datetime:
        """Return the last update time, falling back to the creation time."""
        return self.updated or self.created

    def touch(self) -> None:
        """Record the current time as the last update."""
        self.updated = utcnow()

    @field_serializer("tags")
    def _sorted_tags(self, tags: TagMap) -> Dict[str, Optional[TagValue]]:
        return {key: tags[key] for key in sorted(tags)}


class RenameOutcome(str, Enum):
    """Result of moving an entry to a new key."""

    RENAMED = "renamed"
    SOURCE_MISSING = "source_missing"
    TARGET_EXISTS = "target_exists"


class Store(BaseModel):
    """Root aggregate persisted inside the marker directory.

    The store carries its own tags, comment, and timestamps so that it can be
    queried and updated exactly like a file entry.

    Attributes:
        files: File entries keyed by root-relative store key.
        collections: Named sets of store keys.
        tags: Store level tags.
        comment: Store level comment.
        created: Creation time of the store.
        updated: Time of the last store level metadata change.
    """

    files: Dict[str, FileEntry] = Field(default_factory=dict)
    collections: Dict[str, Set[str]] = Field(default_factory=dict)
    tags: Dict[str, Optional[TagValue]] = Field(default_factory=dict)
    comment: Optional[str] = None
    created: datetime = Field(default_factory=utcnow)
    updated: Optional[datetime] = None

    @property
    def modified(self) -> datetime:
        """Return the last update time, falling back to the creation time."""
        return self.updated or self.created

    def touch(self) -> None:
        """Record the current time as the last store level update."""
        self.updated = utcnow()

    @field_serializer("files")
    def _sorted_files(self, files: Dict[str, FileEntry]) -> Dict[str, FileEntry]:
        return {key: files[key] for key in sorted(files)}

    @field_serializer("collections")
    def _sorted_collections(self, collections: Dict[str, Set[str]]) -> Dict[str, List[str]]:
        return {name: sorted(collections[name]) for name in sorted(collections)}

    @field_serializer("tags")
    def _sorted_tags(self, tags: TagMap) -> Dict[str, Optional[TagValue]]:
        return {key: tags[key] for key in sorted(tags)}

    # File entries -----------------------------------------------------

    def get_entry(self, key: str) -> FileEntry | None:
        """Return the entry stored under ``key``.

        Args:
            key: Root-relative store key.

        Returns:
            FileEntry | None: The entry, or ``None`` when the key is unknown.
        """
        return self.files.get(key)

    def upsert_entry(self, key: str) -> tuple[FileEntry, bool]:
        """Return the entry for ``key``, creating it when missing.

        Returns:
            tuple[FileEntry, bool]: The entry and whether it was just created.
        """
        existing = self.files.get(key)
        if existing is not None:
            return existing, False
        entry = FileEntry()
        self.files[key] = entry
        return entry, True

    def remove_entry(self, key: str) -> FileEntry | None:
        """Delete the entry stored under ``key``.

        Args:
            key: Root-relative store key.

        Returns:
            FileEntry | None: The removed entry, or ``None`` when there was none.
        """
        return self.files.pop(key, None)

    def rename_entry(self, current: str, renamed: str) -> RenameOutcome:
        """Move the entry stored under ``current`` to ``renamed``.

        Nothing changes unless the source exists and the target does not.
        """
        if current not in self.files:
            return RenameOutcome.SOURCE_MISSING
        if renamed in self.files:
            return RenameOutcome.TARGET_EXISTS
        self.files[renamed] = self.files.pop(current)
        return RenameOutcome.RENAMED

    def prune_missing(self, root: Path) -> list[str]:
        """Drop entries whose file no longer exists under ``root``.

        Returns:
            list[str]: Removed store keys in key order.
        """
        removed = [key for key in sorted(self.files) if not (root / key).exists()]
        for key in removed:
            del self.files[key]
        return removed

    # Collections ------------------------------------------------------

    def get_collection(self, name: str) -> Set[str] | None:
        """Return the member keys of collection ``name``, or ``None`` if it is missing."""
        return self.collections.get(name)

    def create_collection(self, name: str) -> bool:
        """Create an empty collection.

        Args:
            name: Collection name.

        Returns:
            bool: False when a collection with that name already exists.
        """
        if name in self.collections:
            return False
        self.collections[name] = set()
        return True

    def remove_collection(self, name: str) -> Set[str] | None:
        """Delete collection ``name``. Entries themselves are kept.

        Returns:
            Set[str] | None: The former members, or ``None`` when it did not exist.
        """
        return self.collections.pop(name, None)

    def push_to_collection(self, name: str, keys: Iterable[str]) -> int | None:
        """Add keys to a collection.

        Returns:
            int | None: Number of keys that were not already members, or
            ``None`` when the collection does not exist.
        """
        members = self.collections.get(name)
        if members is None:
            return None
        before = len(members)
        members.update(keys)
        return len(members) - before

    def pop_from_collection(self, name: str, keys: Iterable[str]) -> int | None:
        """Remove keys from a collection.

        Args:
            name: Collection name.
            keys: Store keys to remove; keys that are not members are ignored.

        Returns:
            int | None: Number of keys removed, or ``None`` when the
            collection does not exist.
        """
        members = self.collections.get(name)
        if members is None:
            return None
        before = len(members)
        members.difference_update(keys)
        return before - len(members)

    def prune_collection(self, name: str, root: Path) -> list[str] | None:
        """Drop collection members whose file no longer exists under ``root``."""
        members = self.collections.get(name)
        if members is None:
            return None
        removed = sorted(key for key in members if not (root / key).exists())
        members.difference_update(removed)
        return removed


__all__ = ["FileEntry", "RenameOutcome", "Store", "utcnow"]
