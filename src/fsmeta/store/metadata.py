"""Operations shared by every metadata container (the store and its file entries)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from fsmeta.tags import TagMap, TagUpdate


@runtime_checkable
class MetadataContainer(Protocol):
    """Anything that carries tags, a comment, and creation/update timestamps."""

    tags: TagMap
    comment: Optional[str]
    created: datetime
    updated: Optional[datetime]

    @property
    def modified(self) -> datetime: ...

    def touch(self) -> None: ...


def take_tags(container: MetadataContainer) -> TagMap:
    """Remove and return every tag on ``container``."""
    tags = container.tags
    container.tags = {}
    return tags


def take_comment(container: MetadataContainer) -> Optional[str]:
    """Remove and return the comment on ``container``."""
    comment = container.comment
    container.comment = None
    return comment


def apply_changes(
    container: MetadataContainer,
    *,
    tags: TagUpdate | None = None,
    comment: Optional[str] = None,
    drop_comment: bool = False,
    stamp: bool = True,
) -> bool:
    """Apply a tag update and comment change to ``container``.

    Args:
        container: Store or file entry to mutate.
        tags: Tag update policy to apply, if any.
        comment: Replacement comment, ignored when ``drop_comment`` is set.
        drop_comment: Clear the comment.
        stamp: Record the change in ``updated``; new entries pass False so
            they keep only their creation time.

    Returns:
        bool: True when anything was requested.
    """
    changed = False
    if tags is not None and not tags.is_empty:
        container.tags = tags.apply(container.tags)
        changed = True
    if drop_comment:
        container.comment = None
        changed = True
    elif comment is not None:
        container.comment = comment
        changed = True
    if changed and stamp:
        container.touch()
    return changed


__all__ = [
    "MetadataContainer",
    "apply_changes",
    "take_comment",
    "take_tags",
]
