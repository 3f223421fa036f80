"""Manifest system: entries, construction, deduplication, export."""

from tzipfs.core.manifest.manifest import Manifest, ManifestEntry
from tzipfs.core.manifest.builder import ManifestBuilder, build_manifest
from tzipfs.core.manifest.addresses import (
    AddressRef,
    UniqueAddressSet,
    export_cids,
    iter_address_refs,
    unique_addresses,
    write_cid_list,
)
from tzipfs.core.manifest.hash import compute_manifest_hash

__all__ = [
    "Manifest",
    "ManifestEntry",
    "ManifestBuilder",
    "build_manifest",
    "AddressRef",
    "UniqueAddressSet",
    "export_cids",
    "iter_address_refs",
    "unique_addresses",
    "write_cid_list",
    "compute_manifest_hash",
]
