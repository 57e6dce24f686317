"""Configuration and context resolution for recyclebin.

The storage root is resolved once and bundled with the effective config into a
`RecycleBinContext`, which every component receives at construction.

Root resolution order (first wins):
1) explicit root passed by the caller (CLI ``--root``)
2) ``RECYCLE_BIN_DIR`` environment variable
3) ``~/.recycle_bin``

The config file is plain ``KEY=VALUE`` text:

    MAX_SIZE_MB=1024
    RETENTION_DAYS=30
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

ROOT_ENV_VAR = "RECYCLE_BIN_DIR"
DEFAULT_ROOT = Path.home() / ".recycle_bin"

FILES_DIR_NAME = "files"
METADATA_FILE_NAME = "metadata.db"
CONFIG_FILE_NAME = "config"
LOG_FILE_NAME = "recyclebin.log"
LOCK_FILE_NAME = ".lock"

# config file key -> model field
CONFIG_KEYS: Dict[str, str] = {
    "MAX_SIZE_MB": "quota_mb",
    "RETENTION_DAYS": "retention_days",
}
# `config set` aliases
KEY_ALIASES: Dict[str, str] = {
    "quota": "MAX_SIZE_MB",
    "retention": "RETENTION_DAYS",
}


class RecycleBinConfig(BaseModel):
    """Effective quota and retention settings."""

    quota_mb: int = Field(default=1024, description="Advisory cap, never enforced")
    retention_days: int = Field(default=30, description="Age after which items are swept")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("quota_mb", "retention_days", mode="before")
    @classmethod
    def _positive_integer(cls, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError("must be a positive integer")
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                raise ValueError("must be a positive integer")
            value = int(value)
        if not isinstance(value, int) or value < 1:
            raise ValueError("must be a positive integer")
        return value

    @property
    def quota_bytes(self) -> int:
        return self.quota_mb * 1024 * 1024


class RecycleBinContext(BaseModel):
    """Resolved storage root, derived paths and effective config."""

    root: Path = Field(..., description="e.g., ~/.recycle_bin")
    config: RecycleBinConfig = Field(default_factory=RecycleBinConfig)

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def files_dir(self) -> Path:
        return self.root / FILES_DIR_NAME

    @property
    def metadata_file(self) -> Path:
        return self.root / METADATA_FILE_NAME

    @property
    def config_file(self) -> Path:
        return self.root / CONFIG_FILE_NAME

    @property
    def log_file(self) -> Path:
        return self.root / LOG_FILE_NAME

    @property
    def lock_file(self) -> Path:
        return self.root / LOCK_FILE_NAME


def _build_config(values: Dict[str, Any], source: str) -> RecycleBinConfig:
    try:
        return RecycleBinConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{err['loc'][0] if err['loc'] else 'config'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration in {source}: {problems}") from None


class ConfigLoader:
    """Load, resolve and update recycle bin configuration."""

    @staticmethod
    def resolve_root(root: Optional[Path] = None) -> Path:
        if root is not None:
            return Path(root).expanduser().absolute()
        env_root = (os.environ.get(ROOT_ENV_VAR) or "").strip()
        if env_root:
            return Path(env_root).expanduser().absolute()
        return DEFAULT_ROOT

    @staticmethod
    def read_raw(path: Path) -> Dict[str, str]:
        """Parse a KEY=VALUE file; return {} if missing."""
        if not path.exists():
            return {}
        raw: Dict[str, str] = {}
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read config from {path}: {e}")
        for line_no, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if "=" not in stripped:
                logger.debug(f"Ignoring config line {line_no} without '=': {stripped!r}")
                continue
            key, value = stripped.split("=", 1)
            raw[key.strip()] = value.strip()
        return raw

    @staticmethod
    def load(path: Path) -> RecycleBinConfig:
        """Load the effective config; absent keys fall back to defaults."""
        values: Dict[str, Any] = {}
        for key, value in ConfigLoader.read_raw(path).items():
            field = CONFIG_KEYS.get(key)
            if field is None:
                logger.debug(f"Ignoring unknown config key {key} in {path}")
                continue
            values[field] = value
        return _build_config(values, str(path))

    @staticmethod
    def from_root(root: Optional[Path] = None) -> RecycleBinContext:
        resolved = ConfigLoader.resolve_root(root)
        config = ConfigLoader.load(resolved / CONFIG_FILE_NAME)
        return RecycleBinContext(root=resolved, config=config)

    @staticmethod
    def write(path: Path, config: RecycleBinConfig) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            f"MAX_SIZE_MB={config.quota_mb}",
            f"RETENTION_DAYS={config.retention_days}",
        ]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    @staticmethod
    def set_value(path: Path, key: str, value: str) -> RecycleBinConfig:
        """Validate and persist one setting; the file is untouched on error.

        Args:
            path: Config file path
            key: ``quota``/``retention`` or ``MAX_SIZE_MB``/``RETENTION_DAYS``
            value: New value (positive integer)

        Returns:
            The updated effective config

        Raises:
            ConfigError: Unknown key or invalid value
        """
        file_key = KEY_ALIASES.get(key.strip().lower(), key.strip().upper())
        field = CONFIG_KEYS.get(file_key)
        if field is None:
            known = ", ".join(sorted(KEY_ALIASES))
            raise ConfigError(f"Unknown config key '{key}' (expected one of: {known})")

        current = ConfigLoader.load(path)
        merged = current.model_dump()
        merged[field] = value
        updated = _build_config(merged, f"{file_key}={value}")
        ConfigLoader.write(path, updated)
        logger.info(f"Updated {file_key} to {getattr(updated, field)} in {path}")
        return updated
