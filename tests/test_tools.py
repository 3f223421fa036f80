"""Tests for the ipget and ipfs subprocess wrappers."""

import subprocess

import pytest

from fakes import BAFY_D, QM_A
from tzipfs.core.errors import FetchError, HashError, ToolUnavailableError
from tzipfs.tools import ipfs
from tzipfs.tools.ipfs import IpfsHasher, IpgetFetcher, parse_root_address, require_tool


class RecordingRun:
    """Stands in for subprocess.run and remembers the commands."""

    def __init__(self, stdout="", error=None):
        self.stdout = stdout
        self.error = error
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr="")


class TestRequireTool:
    """Tests for executable lookup."""

    def test_missing_tool(self, monkeypatch):
        """An absent executable raises with the install hint."""
        monkeypatch.setattr(ipfs.shutil, "which", lambda name: None)
        with pytest.raises(ToolUnavailableError) as exc_info:
            require_tool("ipget", ipfs.IPGET_HINT)
        assert str(exc_info.value).startswith("ipget command not found.")
        assert "install ipget" in str(exc_info.value)

    def test_found_tool(self, monkeypatch):
        """The resolved path is returned."""
        monkeypatch.setattr(ipfs.shutil, "which", lambda name: f"/usr/local/bin/{name}")
        assert require_tool("ipfs") == "/usr/local/bin/ipfs"

    def test_fetcher_checks_binary(self, monkeypatch):
        """ensure_available looks up the configured binary."""
        looked_up = []
        monkeypatch.setattr(ipfs.shutil, "which", lambda name: looked_up.append(name))
        with pytest.raises(ToolUnavailableError):
            IpgetFetcher(binary="/opt/ipget").ensure_available()
        assert looked_up == ["/opt/ipget"]


class TestIpgetFetcher:
    """Tests for IpgetFetcher."""

    def test_command(self, monkeypatch, tmp_path):
        """ipget writes to the staging path."""
        run = RecordingRun()
        monkeypatch.setattr(ipfs.subprocess, "run", run)

        IpgetFetcher().fetch(QM_A, tmp_path / "staged")

        assert run.commands == [["ipget", "-o", str(tmp_path / "staged"), QM_A]]

    def test_nonzero_exit(self, monkeypatch, tmp_path):
        """A failing ipget becomes a FetchError with its stderr."""
        error = subprocess.CalledProcessError(1, ["ipget"], stderr="no link named\n")
        monkeypatch.setattr(ipfs.subprocess, "run", RecordingRun(error=error))

        with pytest.raises(FetchError) as exc_info:
            IpgetFetcher().fetch(QM_A, tmp_path / "staged")
        assert exc_info.value.address == QM_A
        assert "no link named" in exc_info.value.reason

    def test_timeout(self, monkeypatch, tmp_path):
        """A stalled fetch becomes a FetchError."""
        error = subprocess.TimeoutExpired(["ipget"], 30)
        monkeypatch.setattr(ipfs.subprocess, "run", RecordingRun(error=error))

        with pytest.raises(FetchError, match="timed out"):
            IpgetFetcher(timeout=30).fetch(QM_A, tmp_path / "staged")


class TestIpfsHasher:
    """Tests for IpfsHasher."""

    def test_cid_v0_command(self, tmp_path):
        """Qm addresses are recomputed with the default CID version."""
        cmd = IpfsHasher().build_command(tmp_path / QM_A, QM_A)
        assert cmd == ["ipfs", "add", "-r", "--only-hash", "--progress=false", str(tmp_path / QM_A)]

    def test_cid_v1_command(self, tmp_path):
        """Other addresses are recomputed as CIDv1."""
        cmd = IpfsHasher().build_command(tmp_path / BAFY_D, BAFY_D)
        assert "--cid-version=1" in cmd
        assert cmd[-1] == str(tmp_path / BAFY_D)

    def test_root_address_from_output(self, monkeypatch, tmp_path):
        """The address of the top-level object is returned."""
        stdout = f"added QmChild {QM_A}/index.html\nadded {QM_A} {QM_A}\n"
        monkeypatch.setattr(ipfs.subprocess, "run", RecordingRun(stdout=stdout))

        assert IpfsHasher().compute_address(tmp_path / QM_A, QM_A) == QM_A

    def test_tool_failure(self, monkeypatch, tmp_path):
        """A failing ipfs add becomes a HashError."""
        error = subprocess.CalledProcessError(1, ["ipfs"], stderr="Error: unknown flag\n")
        monkeypatch.setattr(ipfs.subprocess, "run", RecordingRun(error=error))

        with pytest.raises(HashError, match="unknown flag"):
            IpfsHasher().compute_address(tmp_path / QM_A, QM_A)

    def test_missing_binary_at_run_time(self, monkeypatch, tmp_path):
        """OSError from the exec is reported, not raised raw."""
        monkeypatch.setattr(ipfs.subprocess, "run", RecordingRun(error=FileNotFoundError("ipfs")))

        with pytest.raises(HashError):
            IpfsHasher().compute_address(tmp_path / QM_A, QM_A)


class TestParseRootAddress:
    """Tests for parse_root_address."""

    def test_single_file(self):
        """A file produces a single added line."""
        assert parse_root_address(f"added {QM_A} {QM_A}\n", QM_A) == QM_A

    def test_directory(self):
        """The directory line wins over its children."""
        output = "added QmX dir/a.png\nadded QmY dir/sub\nadded QmZ dir\n"
        assert parse_root_address(output, "dir") == "QmZ"

    def test_no_match(self):
        """Unrelated output yields None."""
        assert parse_root_address("Error: something\n", "dir") is None
        assert parse_root_address("", "dir") is None
