"""
Backup verification.

Trust in a backup comes only from the bytes on disk: each object's address
is recomputed locally and compared with the address recorded at discovery.
No remote service is consulted.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator

from tzipfs.core.content_ref import FieldRole
from tzipfs.core.errors import AddressError, HashError, MismatchError, MissingObjectError
from tzipfs.core.json_canonical import canonical_json_dumps
from tzipfs.core.manifest.addresses import iter_address_refs, unique_addresses
from tzipfs.core.manifest.hash import compute_manifest_hash
from tzipfs.core.manifest.manifest import Manifest, ManifestEntry
from tzipfs.storage.fs_store import FilesystemObjectStore
from tzipfs.storage.store import ObjectStore
from tzipfs.tools.ipfs import ContentHasher

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    """Integrity status of one address."""

    OK = "ok"
    MISSING = "missing"
    MISMATCH = "mismatch"

    @property
    def mark(self) -> str:
        return "✅" if self is VerificationStatus.OK else "❌"


@dataclass(frozen=True)
class AddressCheck:
    """Verification outcome for one unique address."""

    address: str
    status: VerificationStatus
    actual: str | None = None
    error: str | None = None

    def to_error(
        self,
        entry_name: str | None = None,
        role: str | None = None,
    ) -> AddressError | None:
        """The failure as an error value, for reporting."""
        if self.status == VerificationStatus.MISSING:
            return MissingObjectError(
                self.address,
                self.error or "no local object",
                entry_name=entry_name,
                role=role,
            )
        if self.status == VerificationStatus.MISMATCH:
            return MismatchError(self.address, self.actual, entry_name=entry_name, role=role)
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "status": self.status.value,
            "actual": self.actual,
            "error": self.error,
        }


@dataclass(frozen=True)
class RefStatus:
    """Status of one (entry, field-role) reference."""

    entry_index: int
    entry: ManifestEntry
    role: FieldRole
    address: str
    status: VerificationStatus


class StatusCache:
    """
    Run-scoped memo of address checks.

    Concurrent requests for the same address wait for the first one
    instead of recomputing.
    """

    def __init__(self) -> None:
        self._checks: dict[str, AddressCheck] = {}
        self._inflight: dict[str, threading.Event] = {}
        self._lock = threading.Lock()
        self.computed = 0

    def __contains__(self, address: object) -> bool:
        return address in self._checks

    def get(self, address: str) -> AddressCheck | None:
        return self._checks.get(address)

    def get_or_compute(
        self,
        address: str,
        compute: Callable[[str], AddressCheck],
    ) -> AddressCheck:
        """
        Get the memoized check for an address, computing it at most once.

        Args:
            address: Content address.
            compute: Function producing the check on a miss.

        Returns:
            The address check.
        """
        with self._lock:
            check = self._checks.get(address)
            if check is not None:
                return check
            event = self._inflight.get(address)
            owner = event is None
            if owner:
                event = self._inflight[address] = threading.Event()

        if not owner:
            event.wait()
            return self.get_or_compute(address, compute)

        try:
            check = compute(address)
            with self._lock:
                self._checks[address] = check
                self.computed += 1
            return check
        finally:
            with self._lock:
                self._inflight.pop(address, None)
            event.set()


@dataclass
class VerificationReport:
    """
    Result of a verification run.

    ``checks`` holds one result per unique address in first-seen order;
    :meth:`iter_ref_statuses` expands it back to every manifest reference.
    ``untracked`` lists stored objects no manifest reference points to; they
    do not affect :attr:`ok`.
    """

    manifest: Manifest
    manifest_hash: str
    checks: dict[str, AddressCheck] = field(default_factory=dict)
    untracked: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None

    @property
    def statuses(self) -> dict[str, VerificationStatus]:
        """Mapping of address to status."""
        return {address: check.status for address, check in self.checks.items()}

    def status_of(self, address: str) -> VerificationStatus:
        return self.checks[address].status

    def iter_ref_statuses(self) -> Iterator[RefStatus]:
        """Yield the status of every reference, per entry and field role."""
        for item in iter_address_refs(self.manifest):
            yield RefStatus(
                entry_index=item.entry_index,
                entry=item.entry,
                role=item.ref.role,
                address=item.address,
                status=self.checks[item.address].status,
            )

    def counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in VerificationStatus}
        for check in self.checks.values():
            counts[check.status.value] += 1
        return counts

    @property
    def ok(self) -> bool:
        return all(c.status == VerificationStatus.OK for c in self.checks.values())

    def failures(self) -> list[AddressError]:
        """
        Failed addresses as error values.

        Each failure names the first entry and role referencing the address.
        """
        failures: list[AddressError] = []
        reported: set[str] = set()
        for ref in self.iter_ref_statuses():
            if ref.address in reported:
                continue
            error = self.checks[ref.address].to_error(ref.entry.name, ref.role.value)
            if error is not None:
                reported.add(ref.address)
                failures.append(error)
        return failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "manifest_hash": self.manifest_hash,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "counts": self.counts(),
            "checks": [check.to_dict() for check in self.checks.values()],
            "untracked": self.untracked,
            "references": [
                {
                    "entry_index": ref.entry_index,
                    "name": ref.entry.name,
                    "role": ref.role.value,
                    "address": ref.address,
                    "status": ref.status.value,
                }
                for ref in self.iter_ref_statuses()
            ],
        }

    def to_json(self, indent: bool = True) -> str:
        """Serialize to canonical JSON."""
        return canonical_json_dumps(self.to_dict(), indent=indent)

    def save(self, path: Path) -> None:
        """Save report to file."""
        Path(path).write_text(self.to_json(indent=True))


class VerificationEngine:
    """
    Recomputes and compares the address of every backed-up object.

    Each unique address is hashed at most once per :meth:`verify` call,
    however many entries reference it.
    """

    def __init__(
        self,
        store: ObjectStore,
        hasher: ContentHasher,
        workers: int = 1,
    ):
        """
        Initialize engine.

        Args:
            store: Local object store.
            hasher: Hash tool wrapper.
            workers: Number of concurrent hash computations.
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self.store = store
        self.hasher = hasher
        self.workers = workers

    def verify(self, manifest: Manifest) -> VerificationReport:
        """
        Verify every address referenced by a manifest.

        Args:
            manifest: Manifest recorded at discovery time.

        Returns:
            VerificationReport.
        """
        report = VerificationReport(
            manifest=manifest,
            manifest_hash=compute_manifest_hash(manifest),
        )
        cache = StatusCache()
        order = unique_addresses(manifest).as_list()

        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                list(executor.map(lambda a: cache.get_or_compute(a, self.check), order))

        for entry in manifest.entries:
            logger.info("%s", entry.label)
            for ref in entry.refs:
                check = cache.get_or_compute(ref.address, self.check)
                logger.info("  %s %s: %s", check.status.mark, ref.role.value, ref.address)

        report.checks = {address: cache.get(address) for address in order}
        referenced = set(order)
        report.untracked = [a for a in self.store.list_addresses() if a not in referenced]
        if report.untracked:
            logger.info(
                "%d stored objects are not referenced by the manifest", len(report.untracked)
            )
        report.completed_at = datetime.utcnow()

        counts = report.counts()
        logger.info(
            "Verification complete: %d ok, %d missing, %d mismatch",
            counts[VerificationStatus.OK.value],
            counts[VerificationStatus.MISSING.value],
            counts[VerificationStatus.MISMATCH.value],
        )
        return report

    def check(self, address: str) -> AddressCheck:
        """
        Check a single address against local storage.

        Args:
            address: Expected content address.

        Returns:
            AddressCheck; never raises for per-address failures.
        """
        try:
            present = self.store.exists(address)
        except (ValueError, OSError) as e:
            return AddressCheck(address, VerificationStatus.MISSING, error=str(e))

        if not present:
            return AddressCheck(address, VerificationStatus.MISSING)

        try:
            actual = self.hasher.compute_address(self.store.path_for(address), address)
        except HashError as e:
            logger.warning("Could not hash %s: %s", address, e.reason)
            return AddressCheck(address, VerificationStatus.MISMATCH, error=e.reason)

        if actual != address:
            logger.warning("Address mismatch: expected %s, recomputed %s", address, actual)
            return AddressCheck(address, VerificationStatus.MISMATCH, actual=actual)

        return AddressCheck(address, VerificationStatus.OK, actual=actual)


def verify(
    manifest: Manifest,
    storage_root: Path,
    hasher: ContentHasher,
    workers: int = 1,
) -> VerificationReport:
    """
    Verify a backup directory against a manifest.

    Args:
        manifest: Manifest recorded at discovery time.
        storage_root: Backup root.
        hasher: Hash tool wrapper.
        workers: Number of concurrent hash computations.

    Returns:
        VerificationReport.
    """
    store = FilesystemObjectStore(Path(storage_root))
    return VerificationEngine(store, hasher, workers).verify(manifest)
