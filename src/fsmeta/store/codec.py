"""Serialization of the store body in its three interchangeable formats."""

from __future__ import annotations

import json
import logging
import time
from enum import Enum
from pathlib import Path

import msgpack

from .errors import StoreDecodeError, StoreEncodeError, StoreIOError
from .models import Store

LOGGER = logging.getLogger(__name__)


class StoreFormat(str, Enum):
    """On-disk body formats, listed in lookup priority order."""

    JSON_PRETTY = "json-pretty"
    JSON = "json"
    BINARY = "binary"

    @property
    def file_name(self) -> str:
        """Return the body file name written inside the marker directory."""
        return _FILE_NAMES[self]


_FILE_NAMES = {
    StoreFormat.JSON_PRETTY: "db.pretty.json",
    StoreFormat.JSON: "db.json",
    StoreFormat.BINARY: "db.msgpack",
}

FORMAT_PRIORITY: tuple[StoreFormat, ...] = (
    StoreFormat.JSON_PRETTY,
    StoreFormat.JSON,
    StoreFormat.BINARY,
)


def encode(store: Store, fmt: StoreFormat) -> bytes:
    """Serialize ``store`` into bytes for ``fmt``."""
    payload = store.model_dump(mode="json")
    if fmt is StoreFormat.JSON_PRETTY:
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
    if fmt is StoreFormat.JSON:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return msgpack.packb(payload, use_bin_type=True)


def decode(raw: bytes, fmt: StoreFormat) -> Store:
    """Deserialize a store body produced by :func:`encode`."""
    if fmt is StoreFormat.BINARY:
        data = msgpack.unpackb(raw, raw=False)
    else:
        data = json.loads(raw.decode("utf-8"))
    return Store.model_validate(data)


def read_store(path: Path, fmt: StoreFormat) -> Store:
    """Load the store body at ``path``.

    Raises:
        StoreIOError: If the file cannot be read.
        StoreDecodeError: If the contents are not a valid store body.
    """
    LOGGER.info("reading %s", path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise StoreIOError("failed reading store", path) from exc

    start = time.perf_counter()
    try:
        store = decode(raw, fmt)
    except (ValueError, msgpack.UnpackException) as exc:
        raise StoreDecodeError(f"failed deserializing store {fmt.value} ({exc})", path) from exc
    LOGGER.info("store parse time: %.3fms", (time.perf_counter() - start) * 1000)
    return store


def write_store(path: Path, store: Store, fmt: StoreFormat, *, create: bool = False) -> None:
    """Persist ``store`` to ``path``.

    The existing file is truncated and rewritten in place, so a process that
    dies mid-write leaves a truncated body behind. With ``create`` the file
    must not exist yet; without it the file must already exist.

    Raises:
        StoreEncodeError: If the store cannot be serialized.
        StoreIOError: If the file cannot be opened or written.
    """
    LOGGER.info("%s %s", "creating" if create else "writing", path)
    start = time.perf_counter()
    try:
        body = encode(store, fmt)
    except (TypeError, ValueError) as exc:
        raise StoreEncodeError(f"failed serializing store {fmt.value} ({exc})", path) from exc

    try:
        with path.open("xb" if create else "r+b") as handle:
            handle.truncate(0)
            handle.write(body)
    except OSError as exc:
        raise StoreIOError("failed to write store file", path) from exc
    LOGGER.info("store save time: %.3fms", (time.perf_counter() - start) * 1000)


__all__ = [
    "FORMAT_PRIORITY",
    "StoreFormat",
    "decode",
    "encode",
    "read_store",
    "write_store",
]
