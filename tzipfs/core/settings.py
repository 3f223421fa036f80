"""
Backup settings.

Settings come from defaults, an optional YAML file, and command-line
overrides, in increasing priority.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

OBJKT_ENDPOINT = "https://data.objkt.com/v3/graphql"


class BackupSettings(BaseModel):
    """Configuration for discovery, backup and verification runs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Storage
    backup_dir: Path = Field(default=Path("IPFS"), description="Backup root directory")
    manifest_name: str = Field(default="index.yaml", description="Manifest file name")
    cid_list_name: str = Field(default="cids.txt", description="CID list file name")

    # Discovery
    endpoint: str = Field(default=OBJKT_ENDPOINT, description="objkt GraphQL endpoint")
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    # External tools
    fetch_tool: str = Field(default="ipget", description="Content fetch executable")
    hash_tool: str = Field(default="ipfs", description="IPFS CLI executable")
    fetch_timeout: float | None = Field(
        default=None, gt=0, description="Per-object fetch timeout in seconds"
    )

    # Execution
    workers: int = Field(default=1, ge=1, description="Parallel fetch/hash workers")
    fetch_attempts: int = Field(default=1, ge=1, description="Attempts per object fetch")
    retry_initial_delay: float = Field(
        default=1.0, ge=0, description="Delay before the first fetch retry"
    )

    @property
    def manifest_path(self) -> Path:
        """Location of the persisted manifest."""
        return self.backup_dir / self.manifest_name

    @property
    def cid_list_path(self) -> Path:
        """Location of the exported CID list."""
        return self.backup_dir / self.cid_list_name

    def with_overrides(self, **overrides: Any) -> BackupSettings:
        """
        Return a copy with non-None overrides applied.

        Overrides are validated like any other input.
        """
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        data = self.model_dump()
        data.update(updates)
        return BackupSettings.model_validate(data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> BackupSettings:
        """
        Load settings from a YAML file.

        Expected format:
        ```yaml
        backup_dir: /srv/backups/IPFS
        workers: 4
        fetch_attempts: 3
        ```

        Raises:
            ValueError: If the file is not a mapping or fails validation.
        """
        content = Path(path).read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing settings {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid settings in {path}: {e}") from e


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> BackupSettings:
    """
    Resolve settings from an optional YAML file plus overrides.

    Args:
        config_path: Optional YAML settings file.
        **overrides: Values that take precedence; None values are ignored.

    Returns:
        Resolved BackupSettings.
    """
    settings = BackupSettings.from_yaml(config_path) if config_path else BackupSettings()
    return settings.with_overrides(**overrides)
