"""
Backup manifest schema.

The manifest is the durable record of a discovery run: one entry per token,
in discovery order, with the content references found on it. It is written
as a YAML list compatible with the ``index.yaml`` files of earlier backups.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tzipfs.core.content_ref import FIELD_ROLES, ContentRef, FieldRole, parse_content_uri
from tzipfs.core.errors import ManifestError

# Plain and single-quoted YAML scalars fold these into spaces on load.
_UNICODE_LINE_BREAKS = ("\x85", "\u2028", "\u2029")


class _ManifestDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if any(ch in data for ch in _UNICODE_LINE_BREAKS):
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style='"')
    return dumper.represent_str(data)


_ManifestDumper.add_representer(str, _represent_str)


class ManifestEntry(BaseModel):
    """A discovered token and its content references."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="Token display name")
    category: str | None = Field(default=None, description="Contract (collection) name")
    fields: dict[FieldRole, ContentRef] = Field(
        default_factory=dict,
        description="Content references by field role, in role order",
    )

    @property
    def refs(self) -> list[ContentRef]:
        """Content references in field-role order."""
        return [self.fields[role] for role in FIELD_ROLES if role in self.fields]

    @property
    def label(self) -> str:
        """Human-readable ``name [category]`` label."""
        return f"{self.name} [{self.category}]"

    def to_document(self) -> dict[str, Any]:
        """Convert to the persisted mapping."""
        doc: dict[str, Any] = {"name": self.name, "type": self.category}
        for ref in self.refs:
            doc[ref.role.value] = ref.uri
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> ManifestEntry:
        """
        Create an entry from a persisted mapping.

        Unknown keys are ignored so newer documents stay loadable.

        Raises:
            ManifestError: If a field-role value is not a content URI, or the
                name or type is not a string.
        """
        if not isinstance(data, dict):
            raise ManifestError(f"Manifest entry must be a mapping, got {type(data).__name__}")

        fields: dict[FieldRole, ContentRef] = {}
        for role in FIELD_ROLES:
            value = data.get(role.value)
            if value is None:
                continue
            ref = parse_content_uri(value, role) if isinstance(value, str) else None
            if ref is None:
                raise ManifestError(
                    f"Entry {data.get('name')!r}: {role.value} is not an ipfs URI: {value!r}"
                )
            fields[role] = ref

        try:
            return cls(name=data.get("name"), category=data.get("type"), fields=fields)
        except ValidationError as e:
            raise ManifestError(f"Entry {data.get('name')!r}: {e}") from e


class Manifest(BaseModel):
    """
    Ordered, immutable sequence of manifest entries.

    Entries keep discovery order. Duplicate tokens and shared addresses are
    preserved here; addresses are deduplicated only when consumed.
    """

    model_config = ConfigDict(frozen=True)

    entries: tuple[ManifestEntry, ...] = Field(
        default_factory=tuple, description="Entries in discovery order"
    )

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def ref_count(self) -> int:
        """Total number of content references across entries."""
        return sum(len(entry.fields) for entry in self.entries)

    def to_document(self) -> list[dict[str, Any]]:
        """Convert to the persisted list of mappings."""
        return [entry.to_document() for entry in self.entries]

    @classmethod
    def from_document(cls, data: Any) -> Manifest:
        """Create a manifest from a persisted list of mappings."""
        if data is None:
            data = []
        if not isinstance(data, list):
            raise ManifestError(f"Manifest must be a list, got {type(data).__name__}")
        return cls(entries=tuple(ManifestEntry.from_document(item) for item in data))

    def to_yaml(self) -> str:
        """Serialize to YAML, preserving entry and field order."""
        return yaml.dump(
            self.to_document(),
            Dumper=_ManifestDumper,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )

    @classmethod
    def from_yaml(cls, text: str) -> Manifest:
        """Parse a manifest from YAML text."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ManifestError(f"Error parsing manifest: {e}") from e
        return cls.from_document(data)

    def save(self, path: Path) -> None:
        """Save manifest to file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_yaml(), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> Manifest:
        """Load manifest from file."""
        path = Path(path)
        if not path.exists():
            raise ManifestError(f"Manifest not found: {path}")
        return cls.from_yaml(path.read_text(encoding="utf-8"))
