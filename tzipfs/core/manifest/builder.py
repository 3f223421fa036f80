"""
Manifest construction from token records.
"""

from __future__ import annotations

import logging
from typing import Iterable

from tzipfs.core.content_ref import extract_content_refs
from tzipfs.core.manifest.manifest import Manifest, ManifestEntry
from tzipfs.discovery.records import RawRecord

logger = logging.getLogger(__name__)


class ManifestBuilder:
    """
    Append-only manifest accumulator.

    Every record becomes exactly one entry, including records without any
    content reference. Records are never merged.
    """

    def __init__(self) -> None:
        self._entries: list[ManifestEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, record: RawRecord) -> ManifestEntry:
        """
        Append an entry for a record.

        Args:
            record: Token record.

        Returns:
            The appended entry.
        """
        entry = ManifestEntry(
            name=record.name,
            category=record.category,
            fields=extract_content_refs(record),
        )
        self._entries.append(entry)
        return entry

    def extend(self, records: Iterable[RawRecord]) -> None:
        """Append entries for records in order."""
        for record in records:
            self.add(record)

    def build(self) -> Manifest:
        """Freeze the accumulated entries into a manifest."""
        manifest = Manifest(entries=tuple(self._entries))
        logger.debug(
            "Built manifest with %d entries and %d references",
            len(manifest),
            manifest.ref_count,
        )
        return manifest


def build_manifest(records: Iterable[RawRecord]) -> Manifest:
    """
    Build a manifest from records in input order.

    Args:
        records: Token records.

    Returns:
        New Manifest.
    """
    builder = ManifestBuilder()
    builder.extend(records)
    return builder.build()
