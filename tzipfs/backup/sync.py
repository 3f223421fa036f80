"""
Backup synchronization.

Mirrors every unique address of a manifest into local storage. Each address
is handled at most once per run; objects already present are never
refetched, and a failed fetch never stops the remaining ones.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from tzipfs.backup.retry import RetryPolicy, run_with_retry
from tzipfs.core.content_ref import FieldRole
from tzipfs.core.errors import FetchError
from tzipfs.core.json_canonical import canonical_json_dumps
from tzipfs.core.manifest.addresses import AddressRef, UniqueAddressSet
from tzipfs.core.manifest.hash import compute_manifest_hash
from tzipfs.core.manifest.manifest import Manifest
from tzipfs.storage.fs_store import FilesystemObjectStore
from tzipfs.storage.store import ObjectStore
from tzipfs.tools.ipfs import ObjectFetcher

logger = logging.getLogger(__name__)


class FetchStatus(str, Enum):
    """Outcome of backing up one address."""

    FETCHED = "fetched"
    ALREADY_PRESENT = "already_present"
    FAILED = "failed"


@dataclass
class FetchResult:
    """Backup outcome for one unique address."""

    address: str
    status: FetchStatus
    entry_name: str | None = None
    role: FieldRole | None = None
    attempts: int = 0
    error: str | None = None

    def to_error(self) -> FetchError | None:
        """The failure as an error value, for reporting."""
        if self.status != FetchStatus.FAILED:
            return None
        return FetchError(
            self.address,
            self.error or "unknown error",
            entry_name=self.entry_name,
            role=self.role.value if self.role else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "status": self.status.value,
            "entry_name": self.entry_name,
            "role": self.role.value if self.role else None,
            "attempts": self.attempts,
            "error": self.error,
        }


@dataclass
class SyncReport:
    """
    Result of a backup run.

    Results are keyed by address in first-seen manifest order, independent
    of the order in which fetches completed.
    """

    manifest_hash: str
    results: dict[str, FetchResult] = field(default_factory=dict)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None

    def _with_status(self, status: FetchStatus) -> list[str]:
        return [a for a, r in self.results.items() if r.status == status]

    @property
    def fetched(self) -> list[str]:
        return self._with_status(FetchStatus.FETCHED)

    @property
    def already_present(self) -> list[str]:
        return self._with_status(FetchStatus.ALREADY_PRESENT)

    @property
    def failed(self) -> list[str]:
        return self._with_status(FetchStatus.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed

    def errors(self) -> list[FetchError]:
        """Failures as error values, in manifest order."""
        errors = [r.to_error() for r in self.results.values()]
        return [e for e in errors if e is not None]

    def counts(self) -> dict[str, int]:
        return {status.value: len(self._with_status(status)) for status in FetchStatus}

    def to_dict(self) -> dict[str, Any]:
        return {
            "manifest_hash": self.manifest_hash,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "counts": self.counts(),
            "results": [r.to_dict() for r in self.results.values()],
        }

    def to_json(self, indent: bool = True) -> str:
        """Serialize to canonical JSON."""
        return canonical_json_dumps(self.to_dict(), indent=indent)

    def save(self, path: Path) -> None:
        """Save report to file."""
        Path(path).write_text(self.to_json(indent=True))


class BackupSynchronizer:
    """
    Fetches the objects a manifest references into an object store.

    With ``workers > 1`` fetches for distinct addresses run on a thread
    pool. The run-scoped :class:`UniqueAddressSet` still admits each
    address exactly once.
    """

    def __init__(
        self,
        store: ObjectStore,
        fetcher: ObjectFetcher,
        retry_policy: RetryPolicy | None = None,
        workers: int = 1,
    ):
        """
        Initialize synchronizer.

        Args:
            store: Local object store.
            fetcher: Fetch tool wrapper.
            retry_policy: Retry policy per address.
            workers: Number of concurrent fetches.
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self.store = store
        self.fetcher = fetcher
        self.retry_policy = retry_policy or RetryPolicy()
        self.workers = workers

    def sync(self, manifest: Manifest) -> SyncReport:
        """
        Back up every unique address of a manifest.

        Args:
            manifest: Manifest to back up.

        Returns:
            SyncReport with one result per unique address.
        """
        report = SyncReport(manifest_hash=compute_manifest_hash(manifest))
        seen = UniqueAddressSet()
        results: dict[str, FetchResult] = {}
        pending: dict[str, Future[FetchResult]] = {}

        executor = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else None
        try:
            for index, entry in enumerate(manifest.entries):
                logger.info("%s", entry.label)
                for ref in entry.refs:
                    if not seen.claim(ref.address):
                        continue
                    item = AddressRef(entry_index=index, entry=entry, ref=ref)
                    if executor is None:
                        results[ref.address] = self._process(item)
                    else:
                        pending[ref.address] = executor.submit(self._process, item)

            for address, future in pending.items():
                results[address] = future.result()
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        report.results = {address: results[address] for address in seen.as_list()}
        report.completed_at = datetime.utcnow()

        counts = report.counts()
        logger.info(
            "Backup complete: %d fetched, %d already present, %d failed",
            counts[FetchStatus.FETCHED.value],
            counts[FetchStatus.ALREADY_PRESENT.value],
            counts[FetchStatus.FAILED.value],
        )
        return report

    def _process(self, item: AddressRef) -> FetchResult:
        address = item.address
        result = FetchResult(
            address=address,
            status=FetchStatus.FAILED,
            entry_name=item.entry.name,
            role=item.ref.role,
        )

        try:
            present = self.store.exists(address)
        except (ValueError, OSError) as e:
            result.error = str(e)
            logger.warning("Skipping %s", result.to_error())
            return result

        if present:
            logger.debug("  %s already present", address)
            result.status = FetchStatus.ALREADY_PRESENT
            return result

        logger.info("  %s", address)

        def attempt() -> None:
            with self.store.staging(address) as staged:
                self.fetcher.fetch(address, staged)

        _, outcome = run_with_retry(attempt, self.retry_policy, label=address)
        result.attempts = outcome.attempts

        if outcome.success:
            result.status = FetchStatus.FETCHED
        else:
            error = outcome.error
            result.error = error.reason if isinstance(error, FetchError) else str(error)
            logger.warning("Fetch failed for %s", result.to_error())

        return result


def sync(
    manifest: Manifest,
    storage_root: Path,
    fetcher: ObjectFetcher,
    retry_policy: RetryPolicy | None = None,
    workers: int = 1,
) -> SyncReport:
    """
    Back up a manifest into a directory.

    Args:
        manifest: Manifest to back up.
        storage_root: Backup root, created if missing.
        fetcher: Fetch tool wrapper.
        retry_policy: Optional retry policy.
        workers: Number of concurrent fetches.

    Returns:
        SyncReport.
    """
    store = FilesystemObjectStore(Path(storage_root))
    synchronizer = BackupSynchronizer(store, fetcher, retry_policy, workers)
    return synchronizer.sync(manifest)
