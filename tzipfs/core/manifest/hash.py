"""
Manifest fingerprinting.

Reports record the fingerprint of the manifest they were produced from.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import xxhash

from tzipfs.core.json_canonical import canonical_json_bytes

if TYPE_CHECKING:
    from tzipfs.core.manifest.manifest import Manifest


def compute_manifest_hash(manifest: Manifest) -> str:
    """
    Compute a stable hash of a manifest's persisted content.

    Entry order is significant: the same tokens discovered in another
    order hash differently.

    Args:
        manifest: The manifest to hash.

    Returns:
        Hex-encoded xxh64 digest.
    """
    # List order survives canonicalisation; only mapping keys are sorted.
    json_bytes = canonical_json_bytes(manifest.to_document())
    return xxhash.xxh64(json_bytes).hexdigest()
