"""
Content-address extraction.

Pulls IPFS references out of a token record's URI fields. Only the
``ipfs:`` scheme is recognised; every other URI is dropped silently.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from tzipfs.discovery.records import RawRecord

logger = logging.getLogger(__name__)

# Case-sensitive scheme token. No other content-addressing schemes are inferred.
CONTENT_SCHEME = "ipfs:"


class FieldRole(str, Enum):
    """Token fields that may carry a content address, in extraction order."""

    ARTIFACT = "artifact_uri"
    DISPLAY = "display_uri"
    THUMBNAIL = "thumbnail_uri"
    METADATA = "metadata"


FIELD_ROLES: tuple[FieldRole, ...] = tuple(FieldRole)


class ContentRef(BaseModel):
    """A parsed ``ipfs://`` URI bound to the field it came from."""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(description="Original URI, kept verbatim")
    address: str = Field(description="Content address (URI authority)")
    role: FieldRole = Field(description="Field the URI was read from")


def is_content_uri(value: Any) -> bool:
    """
    Check whether a value uses the content-addressing scheme.

    This is a plain prefix match on ``ipfs:``. ``IPFS://`` and gateway URLs
    such as ``https://ipfs.io/ipfs/...`` are not content URIs.

    Examples:
        >>> is_content_uri("ipfs://QmHash")
        True
        >>> is_content_uri("https://ipfs.io/ipfs/QmHash")
        False
    """
    return isinstance(value, str) and value.startswith(CONTENT_SCHEME)


def parse_content_uri(uri: str, role: FieldRole) -> ContentRef | None:
    """
    Parse an ``ipfs://<address>[/path][?query][#fragment]`` URI.

    Args:
        uri: Candidate URI.
        role: Field the URI was read from.

    Returns:
        ContentRef, or None if the URI is not a well-formed content URI.
    """
    if not is_content_uri(uri):
        return None

    rest = uri[len(CONTENT_SCHEME):]
    if not rest.startswith("//"):
        return None

    authority = rest[2:]
    for sep in ("/", "?", "#"):
        authority = authority.split(sep, 1)[0]

    if not authority:
        return None

    return ContentRef(uri=uri, address=authority, role=role)


def extract_content_refs(record: RawRecord) -> dict[FieldRole, ContentRef]:
    """
    Extract content references from a record.

    Roles appear in :data:`FIELD_ROLES` order. Absent fields, non-content
    URIs and malformed content URIs are omitted without error.

    Args:
        record: Token record.

    Returns:
        Mapping from field role to content reference.
    """
    refs: dict[FieldRole, ContentRef] = {}
    for role in FIELD_ROLES:
        value = record.field_value(role)
        if value is None:
            continue
        ref = parse_content_uri(value, role)
        if ref is None:
            logger.debug("Skipping %s of %r: %r", role.value, record.name, value)
            continue
        refs[role] = ref
    return refs
