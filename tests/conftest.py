"""Shared fixtures: fake IPFS tools and token records."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from fakes import FakeFetcher, FakeHasher
from tzipfs.discovery.records import RawRecord


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def hasher() -> FakeHasher:
    return FakeHasher()


@pytest.fixture
def make_record() -> Callable[..., RawRecord]:
    """Factory for token records."""

    def _make(name: str = "Token", category: str = "Collection", **uris: Any) -> RawRecord:
        return RawRecord(name=name, category=category, **uris)

    return _make
