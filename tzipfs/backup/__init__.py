"""Backup synchronization, verification and top-level operations."""

from tzipfs.backup.retry import RetryPolicy, run_with_retry
from tzipfs.backup.sync import BackupSynchronizer, FetchResult, FetchStatus, SyncReport, sync
from tzipfs.backup.verify import (
    AddressCheck,
    StatusCache,
    VerificationEngine,
    VerificationReport,
    VerificationStatus,
    verify,
)
from tzipfs.backup.runner import BackupRunner, OperationResult, create_runner

__all__ = [
    "RetryPolicy",
    "run_with_retry",
    "BackupSynchronizer",
    "FetchResult",
    "FetchStatus",
    "SyncReport",
    "sync",
    "AddressCheck",
    "StatusCache",
    "VerificationEngine",
    "VerificationReport",
    "VerificationStatus",
    "verify",
    "BackupRunner",
    "OperationResult",
    "create_runner",
]
