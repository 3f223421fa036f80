"""
objkt GraphQL discovery client.

Pages through the tokens selected by a creator or holder address, ordered
by primary key, until the indexer returns an empty page.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Sequence

import httpx

from tzipfs.core.errors import DiscoveryError, NoResultsError
from tzipfs.core.settings import OBJKT_ENDPOINT
from tzipfs.discovery.records import RawRecord, TokenFilter

logger = logging.getLogger(__name__)

_TOKEN_FIELDS = """
    name
    fa { name }
    artifact_uri
    display_uri
    thumbnail_uri
    metadata
    pk
"""

_WHERE_CLAUSES = {
    TokenFilter.CREATOR: "creators: { creator_address: { _eq: $address } }",
    TokenFilter.HOLDER: (
        'holders: { holder_address: { _eq: $address }, quantity: { _gt: "0" } }'
    ),
}


def build_token_query(token_filter: TokenFilter) -> str:
    """Build the paginated token query for a filter kind."""
    return f"""
query GetTokens($address: String!, $pk: bigint!) {{
  token(
    where: {{
      {_WHERE_CLAUSES[token_filter]},
      pk: {{ _gt: $pk }}
    }}
    order_by: {{ pk: asc }}
  ) {{{_TOKEN_FIELDS}  }}
}}"""


class ObjktClient:
    """
    Thin GraphQL client for the objkt indexer.

    Any transport error, non-200 status or GraphQL error payload raises
    :class:`DiscoveryError`; there is no partial discovery.
    """

    def __init__(
        self,
        endpoint: str = OBJKT_ENDPOINT,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: GraphQL endpoint URL.
            timeout: Request timeout in seconds.
            http_client: Optional preconfigured httpx client (owned by caller).
        """
        self.endpoint = endpoint
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> ObjktClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._http.close()

    def fetch_page(
        self,
        address: str,
        token_filter: TokenFilter,
        cursor: int,
    ) -> list[RawRecord]:
        """
        Fetch the tokens after ``cursor`` for one address.

        Args:
            address: Tezos address to filter on.
            token_filter: Whether the address is a creator or a holder.
            cursor: Only tokens with ``pk`` greater than this are returned.

        Returns:
            Records in ascending ``pk`` order; empty when exhausted.
        """
        payload = {
            "query": build_token_query(token_filter),
            "variables": {"address": address, "pk": cursor},
        }
        try:
            response = self._http.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            raise DiscoveryError(f"Token query for {address} failed: {e}") from e

        if response.status_code != 200:
            raise DiscoveryError(
                f"Token query for {address} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise DiscoveryError(f"Token query for {address} returned invalid JSON") from e

        if body.get("errors"):
            messages = "; ".join(str(err.get("message", err)) for err in body["errors"])
            raise DiscoveryError(f"Token query for {address} failed: {messages}")

        tokens = (body.get("data") or {}).get("token")
        if tokens is None:
            raise DiscoveryError(f"Token query for {address} returned no token data")

        return [RawRecord.from_api(token) for token in tokens]

    def iter_records(
        self,
        address: str,
        token_filter: TokenFilter = TokenFilter.CREATOR,
    ) -> Iterator[RawRecord]:
        """Yield every token selected by an address, page by page."""
        cursor = 0
        while True:
            page = self.fetch_page(address, token_filter, cursor)
            if not page:
                return
            logger.debug("Fetched %d tokens for %s after pk %d", len(page), address, cursor)
            yield from page
            cursor = page[-1].pk


def discover_records(
    client: ObjktClient,
    creators: Sequence[str] = (),
    holders: Sequence[str] = (),
) -> list[RawRecord]:
    """
    Collect token records for every selected address.

    An address without tokens only logs a warning; an empty aggregate is
    an error.

    Args:
        client: Discovery client.
        creators: Creator addresses.
        holders: Holder addresses.

    Returns:
        Records grouped by address, in the order addresses were given.

    Raises:
        DiscoveryError: If any query fails.
        NoResultsError: If no address selected any token.
    """
    selections = [(TokenFilter.CREATOR, a) for a in creators]
    selections += [(TokenFilter.HOLDER, a) for a in holders]

    records: list[RawRecord] = []
    for token_filter, address in selections:
        found = list(client.iter_records(address, token_filter))
        if not found:
            logger.warning("Warning: %s", NoResultsError([address]))
            continue
        logger.info("Found %d tokens for %s %s", len(found), token_filter.value, address)
        records.extend(found)

    if not records:
        raise NoResultsError([address for _, address in selections])

    return records
