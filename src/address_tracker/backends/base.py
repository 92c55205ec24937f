"""
Base address data source interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from address_tracker.models import Address, Transaction


class AddressDataSource(ABC):
    """
    Abstract source of address metadata and transaction history.

    Implementations translate their transport failures into
    AddressResolutionError / TransactionFetchError so callers only have to
    handle the tracker's own error types.
    """

    @abstractmethod
    async def resolve_address(self, address_id: str) -> Address:
        """Get the current snapshot for an address"""

    @abstractmethod
    async def get_address_transactions(
        self, address_id: str, after_txid: str | None = None
    ) -> list[Transaction]:
        """
        Get one page of transactions for an address, newest first.

        Args:
            address_id: Address to query, must not be empty
            after_txid: Last txid of the previous page for continuation
        """

    async def close(self) -> None:
        """Close backend connection"""
        pass
