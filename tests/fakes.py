"""Fake IPFS tools and sample content addresses for tests."""

from __future__ import annotations

import json
import threading
from collections import Counter
from pathlib import Path

import httpx

from tzipfs.core.errors import FetchError, ToolUnavailableError
from tzipfs.discovery.client import ObjktClient

QM_A = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdA"
QM_B = "QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff5o"
QM_C = "QmZ4tDuvesekSs4qM5ZBKpXiZGun7S2CYtEZRB3DYXkjGx"
BAFY_D = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"


class FakeFetcher:
    """Writes ``object <address>`` for each fetch; fails for chosen addresses."""

    def __init__(self, fail: set[str] | None = None, flaky: dict[str, int] | None = None):
        self.fail = set(fail or ())
        self.flaky = dict(flaky or {})
        self.calls: Counter[str] = Counter()
        self.available = True
        self._lock = threading.Lock()

    def ensure_available(self) -> None:
        if not self.available:
            raise ToolUnavailableError("ipget")

    def fetch(self, address: str, destination: Path) -> None:
        with self._lock:
            self.calls[address] += 1
            attempt = self.calls[address]
        if address in self.fail:
            raise FetchError(address, "no providers found")
        if attempt <= self.flaky.get(address, 0):
            raise FetchError(address, "context deadline exceeded")
        Path(destination).write_text(f"object {address}")


class FakeHasher:
    """Recovers the address from ``object <address>`` content; anything else hashes elsewhere."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.available = True
        self._lock = threading.Lock()

    def ensure_available(self) -> None:
        if not self.available:
            raise ToolUnavailableError("ipfs")

    def compute_address(self, path: Path, expected: str) -> str | None:
        with self._lock:
            self.calls[expected] += 1
        content = Path(path).read_text()
        if content.startswith("object "):
            return content[len("object "):]
        return f"QmRecomputed{len(content)}"


def api_token(pk: int, name: str, artifact: str | None = None, contract: str = "OBJKT") -> dict:
    """An objkt ``token`` object as returned by the GraphQL API."""
    return {
        "pk": pk,
        "name": name,
        "fa": {"name": contract},
        "artifact_uri": artifact,
        "display_uri": None,
        "thumbnail_uri": None,
        "metadata": f"ipfs://{QM_B}",
    }


class FakeIndexer:
    """httpx handler serving token pages per address, honouring the pk cursor."""

    def __init__(self, tokens_by_address: dict[str, list[dict]], page_size: int = 2):
        self.tokens_by_address = tokens_by_address
        self.page_size = page_size
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        variables = body["variables"]
        tokens = [
            t for t in self.tokens_by_address.get(variables["address"], [])
            if t["pk"] > variables["pk"]
        ]
        return httpx.Response(200, json={"data": {"token": tokens[: self.page_size]}})

    def client(self, endpoint: str = "https://indexer.test/v3/graphql") -> ObjktClient:
        http = httpx.Client(transport=httpx.MockTransport(self))
        return ObjktClient(endpoint=endpoint, http_client=http)
