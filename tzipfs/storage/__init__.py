"""Local content-addressed object storage."""

from tzipfs.storage.store import ObjectStore
from tzipfs.storage.fs_store import FilesystemObjectStore

__all__ = ["ObjectStore", "FilesystemObjectStore"]
