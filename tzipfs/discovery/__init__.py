"""Token discovery against the objkt indexer."""

from tzipfs.discovery.records import RawRecord, TokenFilter
from tzipfs.discovery.client import ObjktClient, build_token_query, discover_records

__all__ = [
    "RawRecord",
    "TokenFilter",
    "ObjktClient",
    "build_token_query",
    "discover_records",
]
