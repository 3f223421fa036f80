"""Tests for token discovery against a mocked objkt endpoint."""

import httpx
import pytest

from fakes import QM_A, FakeIndexer, api_token as token
from tzipfs.core.errors import DiscoveryError, NoResultsError
from tzipfs.discovery.client import ObjktClient, build_token_query, discover_records
from tzipfs.discovery.records import RawRecord, TokenFilter

ENDPOINT = "https://indexer.test/v3/graphql"
CREATOR = "tz1creatorAAAAAAAAAAAAAAAAAAAAAAAAA"
HOLDER = "tz1holderBBBBBBBBBBBBBBBBBBBBBBBBBB"


def make_client(handler):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return ObjktClient(endpoint=ENDPOINT, http_client=http)


class TestTokenQuery:
    """Tests for query construction."""

    def test_creator_filter(self):
        """Creator queries filter on the creator address."""
        query = build_token_query(TokenFilter.CREATOR)
        assert "creator_address" in query
        assert "$pk: bigint!" in query
        assert "order_by: { pk: asc }" in query

    def test_holder_filter(self):
        """Holder queries require a positive quantity."""
        query = build_token_query(TokenFilter.HOLDER)
        assert "holder_address" in query
        assert 'quantity: { _gt: "0" }' in query


class TestRawRecord:
    """Tests for indexer record parsing."""

    def test_from_api(self):
        """Contract name becomes the category."""
        record = RawRecord.from_api(token(7, "Seven", artifact=f"ipfs://{QM_A}", contract="HEN"))
        assert record.category == "HEN"
        assert record.pk == 7
        assert record.artifact_uri == f"ipfs://{QM_A}"

    def test_missing_contract(self):
        """Tokens without a contract have no category."""
        record = RawRecord.from_api({"pk": 1, "name": "x", "fa": None})
        assert record.category is None


class TestObjktClient:
    """Tests for ObjktClient pagination and error handling."""

    def test_pages_until_empty(self):
        """All pages are read in pk order using the last pk as cursor."""
        indexer = FakeIndexer({CREATOR: [token(pk, f"t{pk}") for pk in (3, 5, 8, 13, 21)]})
        with make_client(indexer) as client:
            records = list(client.iter_records(CREATOR))

        assert [r.pk for r in records] == [3, 5, 8, 13, 21]
        assert [r["variables"]["pk"] for r in indexer.requests] == [0, 5, 13, 21]

    def test_non_200_is_error(self):
        """HTTP failures abort discovery."""
        client = make_client(lambda request: httpx.Response(503, text="unavailable"))
        with pytest.raises(DiscoveryError) as exc_info:
            client.fetch_page(CREATOR, TokenFilter.CREATOR, 0)
        assert exc_info.value.status_code == 503

    def test_graphql_errors(self):
        """GraphQL error payloads are failures even with HTTP 200."""
        client = make_client(
            lambda request: httpx.Response(
                200, json={"errors": [{"message": "field 'token' not found"}]}
            )
        )
        with pytest.raises(DiscoveryError, match="field 'token' not found"):
            client.fetch_page(CREATOR, TokenFilter.CREATOR, 0)

    def test_missing_data(self):
        """Responses without token data are failures."""
        client = make_client(lambda request: httpx.Response(200, json={"data": None}))
        with pytest.raises(DiscoveryError):
            client.fetch_page(CREATOR, TokenFilter.CREATOR, 0)

    def test_invalid_json(self):
        """Non-JSON bodies are failures."""
        client = make_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(DiscoveryError, match="invalid JSON"):
            client.fetch_page(CREATOR, TokenFilter.CREATOR, 0)

    def test_transport_error(self):
        """Connection failures are wrapped."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DiscoveryError, match="connection refused"):
            make_client(handler).fetch_page(CREATOR, TokenFilter.CREATOR, 0)

    def test_caller_client_not_closed(self):
        """A client passed in by the caller stays open."""
        http = httpx.Client(transport=httpx.MockTransport(FakeIndexer({})))
        with ObjktClient(endpoint=ENDPOINT, http_client=http):
            pass
        assert not http.is_closed


class TestDiscoverRecords:
    """Tests for multi-address discovery."""

    def test_creators_then_holders(self):
        """Records are grouped by address in the order given."""
        indexer = FakeIndexer(
            {
                CREATOR: [token(1, "made")],
                HOLDER: [token(2, "held"), token(4, "also held")],
            }
        )
        with make_client(indexer) as client:
            records = discover_records(client, creators=[CREATOR], holders=[HOLDER])

        assert [r.name for r in records] == ["made", "held", "also held"]
        assert "creator_address" in indexer.requests[0]["query"]
        assert "holder_address" in indexer.requests[-1]["query"]

    def test_empty_address_warns(self, caplog):
        """An address without tokens is skipped with a warning."""
        indexer = FakeIndexer({CREATOR: [token(1, "made")]})
        with make_client(indexer) as client:
            records = discover_records(client, creators=["tz1empty", CREATOR])

        assert [r.name for r in records] == ["made"]
        assert "No tokens found for tz1empty" in caplog.text

    def test_nothing_found(self):
        """No tokens for any address is fatal."""
        with make_client(FakeIndexer({})) as client:
            with pytest.raises(NoResultsError) as exc_info:
                discover_records(client, creators=["tz1a"], holders=["tz1b"])
        assert exc_info.value.addresses == ["tz1a", "tz1b"]

    def test_query_failure_propagates(self):
        """A failing query aborts the whole discovery."""
        client = make_client(lambda request: httpx.Response(500))
        with pytest.raises(DiscoveryError):
            discover_records(client, creators=[CREATOR])
