"""Configuration management for fsmeta."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import FsmetaConfig
from .resolver import ENV_PREFIX, assign_nested, flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.fsmeta/config.yaml")
_CONFIG_HEADER = "# fsmeta configuration file\n# Manage with `fsm config set KEY --value VALUE`.\n"


class ConfigManager:
    """Read and write the user configuration file."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the path of the YAML configuration file."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
    ) -> FsmetaConfig:
        """Return the effective configuration.

        A missing file simply contributes no overrides; nothing is written.

        Raises:
            ConfigError: If the file or an override is invalid.
        """
        return resolve_with_precedence(
            defaults=FsmetaConfig(),
            file_overrides=self._read_file(),
            env_overrides=self._extract_env(self._env) if include_env else None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored on disk."""
        return self._read_file()

    def save(self, data: FsmetaConfig | Mapping[str, Any]) -> None:
        """Write ``data`` to the configuration file, creating it if needed."""
        if isinstance(data, FsmetaConfig):
            data = data.model_dump(mode="python")
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        self._config_path.write_text(_CONFIG_HEADER + serialized, encoding="utf-8")

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
            if not path:
                continue
            try:
                parsed: Any = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                parsed = raw_value
            assign_nested(overrides, path, parsed, source_name="environment")
        return overrides


__all__ = [
    "ConfigError",
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "FsmetaConfig",
    "assign_nested",
    "flatten_for_env",
    "resolve_with_precedence",
]
