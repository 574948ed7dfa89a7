"""
Synchronizer configuration.

Settings can be given in code, as a plain dict, or in a YAML file holding a
``sync`` mapping:

```yaml
sync:
  scheduler: asyncio
  debounce_seconds: 0.1
  remove_empty_registry: false
  correlate_by_id: true
```
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .constants import DEFAULT_DEBOUNCE_SECONDS, SYNC_ORIGIN
from .errors import ConfigError

SCHEDULERS = ("immediate", "manual", "asyncio")


@dataclass(frozen=True)
class SyncConfig:
    """Settings for a Synchronizer.

    Attributes:
        scheduler: Scheduler kind: "immediate", "manual" or "asyncio"
        debounce_seconds: Quiet period for the asyncio scheduler
        remove_empty_registry: Remove the registry once no reference remains
        correlate_by_id: Match entries to markers by stable id before number
        origin: Origin tag stamped on the synchronizer's own edits
    """

    scheduler: str = "immediate"
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    remove_empty_registry: bool = True
    correlate_by_id: bool = True
    origin: str = SYNC_ORIGIN

    def __post_init__(self) -> None:
        errors = _validate(self)
        if errors:
            raise ConfigError("Invalid sync configuration", errors=errors)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SyncConfig:
        """Build a configuration from a mapping.

        Raises:
            ConfigError: If the mapping has unknown keys or invalid values
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Sync configuration must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                "Unknown sync configuration keys",
                errors=[f"unknown key '{key}'" for key in unknown],
            )
        return cls(**data)


def _validate(config: SyncConfig) -> list[str]:
    errors = []
    if config.scheduler not in SCHEDULERS:
        choices = ", ".join(SCHEDULERS)
        errors.append(f"scheduler must be one of {choices}, got {config.scheduler!r}")
    if (
        isinstance(config.debounce_seconds, bool)
        or not isinstance(config.debounce_seconds, int | float)
        or config.debounce_seconds < 0
    ):
        errors.append(f"debounce_seconds must be a number >= 0, got {config.debounce_seconds!r}")
    for name in ("remove_empty_registry", "correlate_by_id"):
        if not isinstance(getattr(config, name), bool):
            errors.append(f"{name} must be a boolean, got {getattr(config, name)!r}")
    if not isinstance(config.origin, str) or not config.origin:
        errors.append("origin must be a non-empty string")
    return errors


def load_config(path: str | Path) -> SyncConfig:
    """Load a configuration from the ``sync`` mapping of a YAML file.

    A file without a ``sync`` key yields the defaults.

    Raises:
        ConfigError: If the file cannot be parsed or has invalid settings
        FileNotFoundError: If file does not exist
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(file_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML file: {e}") from e

    if data is None:
        return SyncConfig()
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")
    return SyncConfig.from_dict(data.get("sync"))
