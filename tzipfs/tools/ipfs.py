"""
External IPFS tooling.

Objects are fetched with ``ipget`` and re-hashed with ``ipfs add --only-hash``.
Both run as subprocesses; the core only depends on the two protocols below.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from tzipfs.core.errors import FetchError, HashError, ToolUnavailableError

logger = logging.getLogger(__name__)

IPGET_HINT = "Please install ipget (see https://dist.ipfs.tech/#ipget)"
IPFS_HINT = "Please install kubo (see https://dist.ipfs.tech/#kubo)"

_ADDED_LINE = re.compile(r"^added (\S+) (.+)$")


class ObjectFetcher(Protocol):
    """Retrieves an object's bytes into a local path."""

    def ensure_available(self) -> None:
        """Raise ToolUnavailableError if the tool cannot run."""
        ...

    def fetch(self, address: str, destination: Path) -> None:
        """Write the object for ``address`` at ``destination`` or raise FetchError."""
        ...


class ContentHasher(Protocol):
    """Recomputes the content address of local bytes."""

    def ensure_available(self) -> None:
        """Raise ToolUnavailableError if the tool cannot run."""
        ...

    def compute_address(self, path: Path, expected: str) -> str | None:
        """Return the recomputed address, or raise HashError."""
        ...


def require_tool(name: str, hint: str | None = None) -> str:
    """
    Resolve an executable on PATH.

    Args:
        name: Executable name or path.
        hint: Installation hint for the error message.

    Returns:
        Absolute path of the executable.

    Raises:
        ToolUnavailableError: If the executable cannot be found.
    """
    resolved = shutil.which(name)
    if resolved is None:
        raise ToolUnavailableError(name, hint)
    return resolved


class IpgetFetcher:
    """Fetch objects with ``ipget -o <destination> <address>``."""

    def __init__(self, binary: str = "ipget", timeout: float | None = None):
        self.binary = binary
        self.timeout = timeout

    def ensure_available(self) -> None:
        """Fail fast when ipget is not installed."""
        require_tool(self.binary, IPGET_HINT)

    def fetch(self, address: str, destination: Path) -> None:
        cmd = [self.binary, "-o", str(destination), address]
        logger.debug("Running %s", " ".join(cmd))
        try:
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip() or f"exit status {e.returncode}"
            raise FetchError(address, f"ipget failed: {detail}") from e
        except subprocess.TimeoutExpired as e:
            raise FetchError(address, f"ipget timed out after {e.timeout}s") from e
        except OSError as e:
            raise FetchError(address, f"ipget could not run: {e}") from e


class IpfsHasher:
    """
    Recompute addresses with ``ipfs add -r --only-hash``.

    The node is not contacted and nothing is added to a repository.
    CIDv1 addresses are recomputed with ``--cid-version=1``.
    """

    def __init__(self, binary: str = "ipfs", timeout: float | None = None):
        self.binary = binary
        self.timeout = timeout

    def ensure_available(self) -> None:
        """Fail fast when the ipfs CLI is not installed."""
        require_tool(self.binary, IPFS_HINT)

    def build_command(self, path: Path, expected: str) -> list[str]:
        cmd = [self.binary, "add", "-r", "--only-hash", "--progress=false"]
        if not expected.startswith("Qm"):
            cmd.append("--cid-version=1")
        cmd.append(str(path))
        return cmd

    def compute_address(self, path: Path, expected: str) -> str | None:
        cmd = self.build_command(path, expected)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or f"exit status {e.returncode}"
            raise HashError(expected, f"ipfs add failed: {detail}") from e
        except subprocess.TimeoutExpired as e:
            raise HashError(expected, f"ipfs add timed out after {e.timeout}s") from e
        except OSError as e:
            raise HashError(expected, f"ipfs could not run: {e}") from e

        return parse_root_address(result.stdout, Path(path).name)


def parse_root_address(output: str, root_name: str) -> str | None:
    """
    Find the address reported for the top-level object.

    ``ipfs add -r`` prints ``added <cid> <name>`` for every file and
    directory; the top-level object is the line named ``root_name``.

    Examples:
        >>> parse_root_address("added QmA dir/a\\nadded QmB dir\\n", "dir")
        'QmB'
    """
    for line in output.splitlines():
        match = _ADDED_LINE.match(line.strip())
        if match and match.group(2) == root_name:
            return match.group(1)
    return None
