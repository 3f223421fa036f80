"""
Local filesystem object store.

Objects live directly under the backup root, named by address, exactly
where ``ipget <address>`` run inside the root would place them.
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from tzipfs.storage.store import ObjectStore

logger = logging.getLogger(__name__)


class FilesystemObjectStore(ObjectStore):
    """
    Filesystem-based object store.

    Structure:
        root/
            index.yaml           # Manifest (not an object)
            cids.txt             # CID list (not an object)
            .partial/            # Staging area, same filesystem as root
                {address}.{nonce}
            {address}            # File or directory per object
    """

    PARTIAL_DIR = ".partial"
    # Staged names add a 9-byte ".{nonce}" suffix to the address.
    MAX_NAME_BYTES = 255 - 9

    def __init__(
        self,
        root: Path,
        reserved_names: Iterable[str] = ("index.yaml", "cids.txt"),
    ):
        """
        Initialize the store, creating the root if needed.

        Args:
            root: Backup root directory.
            reserved_names: Files in the root that are not objects.
        """
        self.root = Path(root)
        self.reserved_names = frozenset(reserved_names)
        self.partial_dir = self.root / self.PARTIAL_DIR
        self.root.mkdir(parents=True, exist_ok=True)

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, address: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(address)
            if lock is None:
                lock = self._locks[address] = threading.Lock()
            return lock

    def path_for(self, address: str) -> Path:
        """Get object path, rejecting addresses that would escape the root."""
        if (
            not address
            or address.startswith(".")
            or "/" in address
            or "\\" in address
        ):
            raise ValueError(f"Invalid content address: {address!r}")
        if len(address.encode("utf-8")) > self.MAX_NAME_BYTES:
            raise ValueError(f"Content address too long for a file name: {address[:32]}...")
        return self.root / address

    def exists(self, address: str) -> bool:
        return self.path_for(address).exists()

    @contextmanager
    def staging(self, address: str) -> Iterator[Path]:
        """
        Stage an object and publish it with an atomic rename.

        Writers of the same address are serialized. If the object appeared
        while staging, the staged copy is discarded.
        """
        target = self.path_for(address)
        with self._lock_for(address):
            self.partial_dir.mkdir(parents=True, exist_ok=True)
            staged = self.partial_dir / f"{address}.{uuid.uuid4().hex[:8]}"
            try:
                yield staged
                if not staged.exists():
                    raise FileNotFoundError(f"Nothing was staged for {address}")
                if target.exists():
                    logger.debug("Object %s appeared while staging; keeping existing", address)
                else:
                    os.replace(staged, target)
            finally:
                _remove(staged)

    def list_addresses(self) -> list[str]:
        return sorted(
            path.name
            for path in self.root.iterdir()
            if not path.name.startswith(".")
            and path.name not in self.reserved_names
        )


def _remove(path: Path) -> None:
    """Remove a file or directory tree if it exists."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists() or path.is_symlink():
        path.unlink()
