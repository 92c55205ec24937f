"""
Esplora REST API address data source.

Works against any Esplora-compatible server such as mempool.space or
blockstream.info. Endpoints used:

- GET /address/:address                          address stats
- GET /address/:address/txs                      first page (mempool + 25 confirmed)
- GET /address/:address/txs/chain/:last_txid     next 25 confirmed transactions

Reference: https://github.com/Blockstream/esplora/blob/master/API.md
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from address_tracker.backends.base import AddressDataSource
from address_tracker.models import (
    Address,
    AddressResolutionError,
    NetworkType,
    Transaction,
    TransactionFetchError,
)

# Raised by httpx for a failed request; InvalidURL and StreamError are not HTTPError subclasses
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError)

DEFAULT_API_URLS: dict[NetworkType, str] = {
    NetworkType.MAINNET: "https://mempool.space/api",
    NetworkType.TESTNET: "https://mempool.space/testnet/api",
    NetworkType.SIGNET: "https://mempool.space/signet/api",
    NetworkType.REGTEST: "http://127.0.0.1:3002/api",
}


def default_api_url(network: NetworkType | str) -> str:
    """Get the default Esplora API URL for a network."""
    return DEFAULT_API_URLS[NetworkType(network)]


class EsploraBackend(AddressDataSource):
    """
    Address data source backed by an Esplora HTTP API.
    """

    def __init__(
        self,
        api_url: str = "https://mempool.space/api",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Esplora backend.

        Args:
            api_url: Base URL of the Esplora API (including /api)
            timeout: Request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _api_get(self, endpoint: str) -> Any:
        url = f"{self.api_url}/{endpoint}"
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            return response.json()
        except _REQUEST_ERRORS as e:
            logger.error(f"Esplora API call failed: {endpoint} - {e}")
            raise

    async def resolve_address(self, address_id: str) -> Address:
        if not address_id:
            raise ValueError("address_id must not be empty")

        try:
            data = await self._api_get(f"address/{address_id}")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (400, 404):
                raise AddressResolutionError(f"Invalid or unknown address: {address_id}") from e
            raise AddressResolutionError(f"Address lookup failed with HTTP {status}") from e
        except (*_REQUEST_ERRORS, ValueError) as e:
            raise AddressResolutionError(f"Address lookup failed: {e}") from e

        try:
            return Address.model_validate(data)
        except ValidationError as e:
            raise AddressResolutionError(f"Malformed address response: {e}") from e

    async def get_address_transactions(
        self, address_id: str, after_txid: str | None = None
    ) -> list[Transaction]:
        if not address_id:
            raise ValueError("address_id must not be empty")

        endpoint = f"address/{address_id}/txs"
        if after_txid:
            endpoint += f"/chain/{after_txid}"

        try:
            data = await self._api_get(endpoint)
        except (*_REQUEST_ERRORS, ValueError) as e:
            raise TransactionFetchError(f"Transaction fetch failed: {e}") from e

        if not isinstance(data, list):
            raise TransactionFetchError("Malformed transaction page: expected a list")

        try:
            txs = [Transaction.model_validate(item) for item in data]
        except ValidationError as e:
            raise TransactionFetchError(f"Malformed transaction in page: {e}") from e

        logger.debug(f"Fetched {len(txs)} transactions for {address_id}")
        return txs

    async def close(self) -> None:
        await self.client.aclose()
