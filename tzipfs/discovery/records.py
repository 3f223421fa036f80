"""
Token records returned by the discovery service.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tzipfs.core.content_ref import FieldRole


class TokenFilter(str, Enum):
    """How an address selects tokens."""

    CREATOR = "creator"
    HOLDER = "holder"


class RawRecord(BaseModel):
    """A token as reported by the indexer. Read-only."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str | None = Field(default=None, description="Token display name")
    category: str | None = Field(default=None, description="Contract (collection) name")
    artifact_uri: str | None = Field(default=None, description="Main asset URI")
    display_uri: str | None = Field(default=None, description="Display image URI")
    thumbnail_uri: str | None = Field(default=None, description="Thumbnail URI")
    metadata: str | None = Field(default=None, description="Metadata document URI")
    pk: int = Field(default=0, description="Indexer primary key, used as cursor")

    def field_value(self, role: FieldRole) -> str | None:
        """Get the raw value of a URI field."""
        return getattr(self, role.value)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RawRecord:
        """
        Create a record from an objkt GraphQL ``token`` object.

        The contract name is nested as ``fa.name``.
        """
        fa = data.get("fa") or {}
        return cls(
            name=data.get("name"),
            category=fa.get("name"),
            artifact_uri=data.get("artifact_uri"),
            display_uri=data.get("display_uri"),
            thumbnail_uri=data.get("thumbnail_uri"),
            metadata=data.get("metadata"),
            pk=int(data.get("pk") or 0),
        )
