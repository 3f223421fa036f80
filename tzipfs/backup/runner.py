"""
Top-level operations.

Each operation returns an :class:`OperationResult` instead of terminating
the process; fatal errors are captured on the result and the caller
decides how to exit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

from tzipfs.backup.retry import RetryPolicy
from tzipfs.backup.sync import BackupSynchronizer, SyncReport
from tzipfs.backup.verify import VerificationEngine, VerificationReport
from tzipfs.core.errors import TzIpfsError
from tzipfs.core.manifest.addresses import export_cids, write_cid_list
from tzipfs.core.manifest.builder import build_manifest
from tzipfs.core.manifest.hash import compute_manifest_hash
from tzipfs.core.manifest.manifest import Manifest
from tzipfs.core.settings import BackupSettings
from tzipfs.discovery.client import ObjktClient, discover_records
from tzipfs.storage.fs_store import FilesystemObjectStore
from tzipfs.tools.ipfs import ContentHasher, IpfsHasher, IpgetFetcher, ObjectFetcher

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a top-level operation."""

    operation: str
    manifest: Manifest | None = None
    report: SyncReport | VerificationReport | None = None
    cids: list[str] = field(default_factory=list)
    error: TzIpfsError | None = None

    @property
    def ok(self) -> bool:
        """True when no fatal error occurred and the report has no failures."""
        if self.error is not None:
            return False
        return self.report is None or self.report.ok

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


@dataclass
class BackupRunner:
    """
    Wires settings, discovery, storage and tools into operations.

    Collaborators default to the real objkt client and IPFS tools and can
    be replaced for tests.
    """

    settings: BackupSettings = field(default_factory=BackupSettings)
    fetcher: ObjectFetcher | None = None
    hasher: ContentHasher | None = None
    client_factory: Callable[[], ObjktClient] | None = None

    def __post_init__(self) -> None:
        if self.fetcher is None:
            self.fetcher = IpgetFetcher(self.settings.fetch_tool, self.settings.fetch_timeout)
        if self.hasher is None:
            self.hasher = IpfsHasher(self.settings.hash_tool)
        if self.client_factory is None:
            self.client_factory = lambda: ObjktClient(
                endpoint=self.settings.endpoint,
                timeout=self.settings.request_timeout,
            )

    def _store(self) -> FilesystemObjectStore:
        return FilesystemObjectStore(
            self.settings.backup_dir,
            reserved_names=(self.settings.manifest_name, self.settings.cid_list_name),
        )

    def _retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.settings.fetch_attempts,
            initial_delay_seconds=self.settings.retry_initial_delay,
        )

    def discover(self, creators: Sequence[str] = (), holders: Sequence[str] = ()) -> Manifest:
        """
        Query the indexer, build the manifest and persist it.

        Raises:
            DiscoveryError: If a query fails.
            NoResultsError: If nothing was selected.
        """
        logger.info("Getting tokens data...")
        with self.client_factory() as client:
            records = discover_records(client, creators=creators, holders=holders)

        manifest = build_manifest(records)
        manifest.save(self.settings.manifest_path)
        logger.info(
            "Saved manifest with %d entries to %s (hash %s)",
            len(manifest),
            self.settings.manifest_path,
            compute_manifest_hash(manifest),
        )
        return manifest

    def load_manifest(self) -> Manifest:
        """Load the persisted manifest from the backup root."""
        return Manifest.load(self.settings.manifest_path)

    def _sync(self, manifest: Manifest) -> SyncReport:
        synchronizer = BackupSynchronizer(
            self._store(),
            self.fetcher,
            retry_policy=self._retry_policy(),
            workers=self.settings.workers,
        )
        return synchronizer.sync(manifest)

    def run_discovery(
        self,
        creators: Sequence[str] = (),
        holders: Sequence[str] = (),
    ) -> OperationResult:
        """Discover tokens and persist the manifest, without fetching."""
        result = OperationResult(operation="discover")
        try:
            result.manifest = self.discover(creators, holders)
        except TzIpfsError as e:
            result.error = e
        return result

    def run_backup(
        self,
        creators: Sequence[str] = (),
        holders: Sequence[str] = (),
    ) -> OperationResult:
        """Check the fetch tool, discover tokens, then back up every object."""
        result = OperationResult(operation="backup")
        try:
            self.fetcher.ensure_available()
            result.manifest = self.discover(creators, holders)
            result.report = self._sync(result.manifest)
        except TzIpfsError as e:
            result.error = e
        return result

    def run_sync(self) -> OperationResult:
        """Back up the objects of the persisted manifest."""
        result = OperationResult(operation="sync")
        try:
            self.fetcher.ensure_available()
            result.manifest = self.load_manifest()
            result.report = self._sync(result.manifest)
        except TzIpfsError as e:
            result.error = e
        return result

    def run_check(self) -> OperationResult:
        """Verify the backup against the persisted manifest."""
        result = OperationResult(operation="check")
        try:
            self.hasher.ensure_available()
            result.manifest = self.load_manifest()
            engine = VerificationEngine(self._store(), self.hasher, workers=self.settings.workers)
            result.report = engine.verify(result.manifest)
        except TzIpfsError as e:
            result.error = e
        return result

    def run_export(self, destination: Path | None = None) -> OperationResult:
        """
        Write the unique addresses of the persisted manifest to a CID list.

        Args:
            destination: Output file; defaults to the CID list in the backup root.
        """
        destination = Path(destination) if destination else self.settings.cid_list_path
        result = OperationResult(operation="export")
        try:
            result.manifest = self.load_manifest()
            result.cids = export_cids(result.manifest)
            write_cid_list(result.cids, destination)
            logger.info("Wrote %d addresses to %s", len(result.cids), destination)
        except TzIpfsError as e:
            result.error = e
        return result


def create_runner(settings: BackupSettings | None = None, **collaborators: Any) -> BackupRunner:
    """
    Create a backup runner.

    Args:
        settings: Optional settings; defaults apply otherwise.
        **collaborators: Optional ``fetcher``, ``hasher`` or ``client_factory``.

    Returns:
        Configured BackupRunner.
    """
    return BackupRunner(settings=settings or BackupSettings(), **collaborators)
