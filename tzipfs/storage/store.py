"""
Object store interface.

Local storage for content-addressed objects, keyed by address.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from pathlib import Path


class ObjectStore(ABC):
    """
    Abstract local object store.

    Objects become visible atomically: an object is either fully present
    at :meth:`path_for` or absent.
    """

    @abstractmethod
    def path_for(self, address: str) -> Path:
        """
        Get the final location of an object.

        Args:
            address: Content address.

        Returns:
            Path the object is (or will be) stored at.
        """
        ...

    @abstractmethod
    def exists(self, address: str) -> bool:
        """
        Check whether an object is present.

        Args:
            address: Content address.

        Returns:
            True if present, False otherwise.
        """
        ...

    @abstractmethod
    def staging(self, address: str) -> AbstractContextManager[Path]:
        """
        Reserve a private staging path for writing an object.

        The object written there is published to :meth:`path_for` when the
        context exits cleanly, and discarded when it raises.

        Args:
            address: Content address.

        Returns:
            Context manager yielding the staging path.
        """
        ...

    @abstractmethod
    def list_addresses(self) -> list[str]:
        """
        List addresses of all published objects.

        Returns:
            Sorted list of addresses.
        """
        ...
