"""Wrappers around the external ipget and ipfs executables."""

from tzipfs.tools.ipfs import (
    ContentHasher,
    IpfsHasher,
    IpgetFetcher,
    ObjectFetcher,
    parse_root_address,
    require_tool,
)

__all__ = [
    "ContentHasher",
    "IpfsHasher",
    "IpgetFetcher",
    "ObjectFetcher",
    "parse_root_address",
    "require_tool",
]
