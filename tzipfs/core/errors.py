"""
Error taxonomy.

Fatal errors abort a top-level operation. Recoverable errors are collected
into the operation's report so the user can retry a single address.
"""

from __future__ import annotations


class TzIpfsError(Exception):
    """Base class for all tzipfs errors."""

    fatal: bool = True


class DiscoveryError(TzIpfsError):
    """The remote token query failed or returned a non-success response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NoResultsError(TzIpfsError):
    """A token filter matched nothing."""

    def __init__(self, addresses: list[str]):
        self.addresses = list(addresses)
        super().__init__(f"No tokens found for {', '.join(self.addresses)}")


class ManifestError(TzIpfsError):
    """The persisted manifest could not be read or parsed."""


class ToolUnavailableError(TzIpfsError):
    """A required external tool is not installed."""

    def __init__(self, tool: str, hint: str | None = None):
        self.tool = tool
        self.hint = hint
        message = f"{tool} command not found."
        if hint:
            message += f" {hint}"
        super().__init__(message)


class AddressError(TzIpfsError):
    """Base class for failures tied to a single content address."""

    fatal = False

    def __init__(
        self,
        address: str,
        reason: str,
        entry_name: str | None = None,
        role: str | None = None,
    ):
        self.address = address
        self.reason = reason
        self.entry_name = entry_name
        self.role = role
        super().__init__(self._format())

    def _format(self) -> str:
        where = ""
        if self.entry_name is not None:
            where = f" (entry '{self.entry_name}'"
            where += f", {self.role})" if self.role else ")"
        return f"{self.address}{where}: {self.reason}"


class FetchError(AddressError):
    """Retrieving an object into local storage failed."""


class HashError(AddressError):
    """The hash tool could not recompute an address for a local object."""


class MissingObjectError(AddressError):
    """No local object exists for an address."""


class MismatchError(AddressError):
    """The recomputed address disagrees with the declared one."""

    def __init__(
        self,
        address: str,
        actual: str | None,
        entry_name: str | None = None,
        role: str | None = None,
    ):
        self.actual = actual
        reason = f"recomputed {actual}" if actual else "could not recompute address"
        super().__init__(address, reason, entry_name=entry_name, role=role)
