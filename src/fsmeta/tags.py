"""Tag names, typed tag values, and the tag update policy."""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    model_serializer,
    model_validator,
)

INVALID_CHARS = frozenset("\\:,!")
TAG_KINDS = ("Number", "Bool", "Url", "Simple")

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1
_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)

TagKind = Literal["Number", "Bool", "Url", "Simple"]


class TagError(ValueError):
    """Raised when a tag name or tag value cannot be parsed."""


def validate_tag_key(name: str) -> str:
    """Return ``name`` if it is usable as a tag key.

    Raises:
        TagError: If the name is empty or contains control characters,
            whitespace, or one of ``\\ : , !``.
    """
    if not name:
        raise TagError("tag name is empty")
    for ch in name:
        if unicodedata.category(ch) == "Cc" or ch.isspace() or ch in INVALID_CHARS:
            raise TagError(f"the provided tag key contains invalid characters: {name!r}")
    return name


def _parse_int(raw: str) -> int | None:
    if not _INT_PATTERN.fullmatch(raw):
        return None
    value = int(raw)
    if value < _INT_MIN or value > _INT_MAX:
        return None
    return value


def _parse_bool(raw: str) -> bool | None:
    if raw == "true":
        return True
    if raw == "false":
        return False
    return None


def _parse_url(raw: str) -> str | None:
    try:
        return str(_URL_ADAPTER.validate_python(raw))
    except ValidationError:
        return None


class TagValue(BaseModel):
    """Typed payload attached to a tag.

    Serialized externally tagged, e.g. ``{"Number": 3}`` or ``{"Url": "..."}``.
    """

    model_config = ConfigDict(frozen=True)

    kind: TagKind
    value: StrictBool | StrictInt | StrictStr

    @model_validator(mode="before")
    @classmethod
    def _unwrap_tagged(cls, data: Any) -> Any:
        if isinstance(data, dict) and len(data) == 1:
            ((kind, value),) = data.items()
            if kind in TAG_KINDS:
                return {"kind": kind, "value": value}
        return data

    @model_validator(mode="after")
    def _check_kind(self) -> "TagValue":
        expected = {"Number": int, "Bool": bool, "Url": str, "Simple": str}[self.kind]
        if type(self.value) is not expected:
            raise ValueError(f"{self.kind} tag cannot hold {type(self.value).__name__}")
        return self

    @model_serializer
    def _serialize(self) -> Dict[str, Any]:
        return {self.kind: self.value}

    @classmethod
    def number(cls, value: int) -> "TagValue":
        return cls(kind="Number", value=value)

    @classmethod
    def boolean(cls, value: bool) -> "TagValue":
        return cls(kind="Bool", value=value)

    @classmethod
    def url(cls, raw: str) -> "TagValue":
        """Return a URL tag value.

        Raises:
            TagError: If ``raw`` is not an absolute URL.
        """
        parsed = _parse_url(raw)
        if parsed is None:
            raise TagError(f"invalid url provided: {raw!r}")
        return cls(kind="Url", value=parsed)

    @classmethod
    def simple(cls, value: str) -> "TagValue":
        return cls(kind="Simple", value=value)

    @classmethod
    def sniff(cls, raw: str) -> "TagValue":
        """Infer a value type from raw text: integer, boolean, URL, then string."""
        as_int = _parse_int(raw)
        if as_int is not None:
            return cls.number(as_int)
        as_bool = _parse_bool(raw)
        if as_bool is not None:
            return cls.boolean(as_bool)
        as_url = _parse_url(raw)
        if as_url is not None:
            return cls(kind="Url", value=as_url)
        return cls.simple(raw)

    def __str__(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


Tag = Tuple[str, Optional[TagValue]]
TagMap = Dict[str, Optional[TagValue]]


def sort_tags(tags: TagMap) -> TagMap:
    """Return a copy of ``tags`` ordered by tag name."""
    return {key: tags[key] for key in sorted(tags)}


def parse_tag(arg: str) -> Tag:
    """Parse ``name[:value]`` into a tag, sniffing the value type.

    ``name`` and ``name:`` both produce a presence-only tag.
    """
    if ":" in arg:
        name, value = arg.split(":", 1)
        if not name:
            raise TagError(f"tag name is empty: {arg!r}")
        validate_tag_key(name)
        return (name, TagValue.sniff(value) if value else None)
    if not arg:
        raise TagError("tag is empty")
    return (validate_tag_key(arg), None)


def _name_value(arg: str, kind: str) -> tuple[str, str]:
    if ":" not in arg:
        raise TagError(f"missing tag value: {arg!r}")
    name, value = arg.split(":", 1)
    if not name:
        raise TagError(f"tag name is empty: {arg!r}")
    if not value:
        raise TagError(f"missing {kind} data: {arg!r}")
    return validate_tag_key(name), value


def parse_url_tag(arg: str) -> Tag:
    name, value = _name_value(arg, "url")
    return (name, TagValue.url(value))


def parse_num_tag(arg: str) -> Tag:
    name, value = _name_value(arg, "num")
    parsed = _parse_int(value)
    if parsed is None:
        raise TagError(f"invalid num provided: {value!r}")
    return (name, TagValue.number(parsed))


def parse_bool_tag(arg: str) -> Tag:
    name, value = _name_value(arg, "bool")
    parsed = _parse_bool(value)
    if parsed is None:
        raise TagError(f"invalid bool provided: {value!r}")
    return (name, TagValue.boolean(parsed))


class TagUpdate(BaseModel):
    """Tag changes requested by a single command.

    Attributes:
        replace: Tags that replace the whole map.
        add: Tags merged into the existing map.
        drop: Tag names removed before ``add`` is merged.
        drop_all: Clear every tag.
    """

    model_config = ConfigDict(frozen=True)

    replace: List[Tag] = Field(default_factory=list)
    add: List[Tag] = Field(default_factory=list)
    drop: List[str] = Field(default_factory=list)
    drop_all: bool = False

    @model_validator(mode="after")
    def _check_conflicts(self) -> "TagUpdate":
        if self.drop_all and (self.replace or self.add or self.drop):
            raise ValueError("dropping all tags cannot be combined with other tag changes")
        if self.replace and (self.add or self.drop):
            raise ValueError("setting tags cannot be combined with adding or dropping tags")
        return self

    @property
    def is_empty(self) -> bool:
        return not (self.drop_all or self.replace or self.add or self.drop)

    def apply(self, tags: TagMap) -> TagMap:
        """Return the tag map that results from applying this update to ``tags``."""
        if self.drop_all:
            return {}
        if self.replace:
            return sort_tags(dict(self.replace))
        if self.add or self.drop:
            updated = dict(tags)
            for name in self.drop:
                updated.pop(name, None)
            updated.update(self.add)
            return sort_tags(updated)
        return tags


__all__ = [
    "INVALID_CHARS",
    "Tag",
    "TagError",
    "TagKind",
    "TagMap",
    "TagUpdate",
    "TagValue",
    "parse_bool_tag",
    "parse_num_tag",
    "parse_tag",
    "parse_url_tag",
    "sort_tags",
    "validate_tag_key",
]
