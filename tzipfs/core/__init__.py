"""Core utilities: content references, errors, settings, serialization."""

from tzipfs.core.content_ref import (
    ContentRef,
    FieldRole,
    extract_content_refs,
    is_content_uri,
    parse_content_uri,
)
from tzipfs.core.errors import (
    DiscoveryError,
    FetchError,
    HashError,
    ManifestError,
    MismatchError,
    MissingObjectError,
    NoResultsError,
    ToolUnavailableError,
    TzIpfsError,
)

__all__ = [
    "ContentRef",
    "FieldRole",
    "extract_content_refs",
    "is_content_uri",
    "parse_content_uri",
    "DiscoveryError",
    "FetchError",
    "HashError",
    "ManifestError",
    "MismatchError",
    "MissingObjectError",
    "NoResultsError",
    "ToolUnavailableError",
    "TzIpfsError",
]
