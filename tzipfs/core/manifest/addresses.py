"""
Address deduplication and CID list export.

Manifests keep every reference; consumers deduplicate on the fly with a
run-scoped :class:`UniqueAddressSet`.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from tzipfs.core.content_ref import ContentRef
    from tzipfs.core.manifest.manifest import Manifest, ManifestEntry


@dataclass(frozen=True)
class AddressRef:
    """A content reference located within a manifest."""

    entry_index: int
    entry: ManifestEntry
    ref: ContentRef

    @property
    def address(self) -> str:
        return self.ref.address


class UniqueAddressSet:
    """
    First-seen ordered set of content addresses.

    ``claim`` is atomic so that worker threads sharing one set process each
    address at most once.
    """

    def __init__(self) -> None:
        self._seen: dict[str, None] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, address: object) -> bool:
        return address in self._seen

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._seen))

    def claim(self, address: str) -> bool:
        """
        Mark an address as seen.

        Returns:
            True if this call added the address, False if already seen.
        """
        with self._lock:
            if address in self._seen:
                return False
            self._seen[address] = None
            return True

    def as_list(self) -> list[str]:
        """Addresses in first-seen order."""
        with self._lock:
            return list(self._seen)


def iter_address_refs(manifest: Manifest) -> Iterator[AddressRef]:
    """Yield every content reference in entry order, then field-role order."""
    for index, entry in enumerate(manifest.entries):
        for ref in entry.refs:
            yield AddressRef(entry_index=index, entry=entry, ref=ref)


def unique_addresses(manifest: Manifest) -> UniqueAddressSet:
    """Collect the distinct addresses of a manifest in one streaming pass."""
    seen = UniqueAddressSet()
    for item in iter_address_refs(manifest):
        seen.claim(item.address)
    return seen


def export_cids(manifest: Manifest) -> list[str]:
    """
    Project a manifest onto its unique content addresses.

    Args:
        manifest: Source manifest.

    Returns:
        Addresses in first-seen order, each exactly once.

    Example:
        References ``[A, B, A, C]`` across entries export as ``[A, B, C]``.
    """
    return unique_addresses(manifest).as_list()


def write_cid_list(addresses: list[str], path: Path) -> None:
    """Write addresses as newline-delimited text, one per line."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = "".join(f"{address}\n" for address in addresses)
    path.write_text(content, encoding="utf-8")
