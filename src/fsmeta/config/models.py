"""Configuration models describing fsmeta settings."""

from __future__ import annotations

import logging
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FsmetaBaseModel(BaseModel):
    """Shared configuration for fsmeta settings models."""

    model_config = ConfigDict(extra="forbid")


class StoreSettings(FsmetaBaseModel):
    """Defaults applied when creating and locating stores.

    Attributes:
        default_format: Body format used by ``db init`` without ``--format``.
        marker_dirname: Name of the directory that marks a store root.
    """

    default_format: Literal["json-pretty", "json", "binary"] = "json"
    marker_dirname: str = ".fsm"

    @field_validator("marker_dirname")
    @classmethod
    def _single_component(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError("marker_dirname must be a single directory name")
        return value


class QuerySettings(FsmetaBaseModel):
    """Defaults for ``get``.

    Attributes:
        sort_by: Sort criteria applied when ``--sort-by`` is not given.
    """

    sort_by: List[Literal["name", "date", "created", "updated"]] = Field(
        default_factory=lambda: ["name"]
    )


class LoggingSettings(FsmetaBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity used when neither ``--verbose`` nor ``--debug``
            is passed.
    """

    level: str = "WARNING"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        normalized = value.upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"unknown logging level: {value}")
        return normalized


class FsmetaConfig(FsmetaBaseModel):
    """Top-level configuration for fsmeta.

    Attributes:
        store: Store creation and discovery settings.
        query: Query defaults.
        logging: Logging configuration.
    """

    store: StoreSettings = Field(default_factory=StoreSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "FsmetaBaseModel",
    "FsmetaConfig",
    "LoggingSettings",
    "QuerySettings",
    "StoreSettings",
]
