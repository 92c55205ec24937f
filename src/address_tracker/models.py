"""
Core data models using Pydantic for validation and serialization.

Shapes follow the Esplora REST API (mempool.space, blockstream.info) so
backend responses can be validated directly into these models.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AddressTrackerError(Exception):
    """Base class for recoverable address tracker errors."""


class AddressResolutionError(AddressTrackerError):
    """Raised when an address lookup fails (network, not found, malformed id)."""


class TransactionFetchError(AddressTrackerError):
    """Raised when a transaction page cannot be fetched."""


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


class TransactionType(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class AddressStats(BaseModel):
    funded_txo_count: int = 0
    funded_txo_sum: int = 0
    spent_txo_count: int = 0
    spent_txo_sum: int = 0
    tx_count: int = 0

    model_config = ConfigDict(frozen=True)


class Address(BaseModel):
    """Snapshot of an address as returned by a single lookup."""

    address: str = Field(..., min_length=1)
    chain_stats: AddressStats = Field(default_factory=AddressStats)
    mempool_stats: AddressStats = Field(default_factory=AddressStats)

    model_config = ConfigDict(frozen=True)


class TxOutput(BaseModel):
    scriptpubkey: str = ""
    # Absent for OP_RETURN and non-standard scripts
    scriptpubkey_address: str | None = None
    value: int = 0


class TxInput(BaseModel):
    txid: str = ""
    vout: int = 0
    # Coinbase inputs have no previous output
    prevout: TxOutput | None = None
    is_coinbase: bool = False


class TxStatus(BaseModel):
    confirmed: bool = False
    block_height: int | None = None
    block_hash: str | None = None
    block_time: int | None = None


class Transaction(BaseModel):
    txid: str = Field(..., min_length=1)
    vin: list[TxInput] = Field(default_factory=list)
    vout: list[TxOutput] = Field(default_factory=list)
    status: TxStatus | None = None
    fee: int | None = None


class EnrichedTransaction(Transaction):
    """
    Transaction annotated relative to a tracked address.

    ``value`` and ``type`` are both None when the transaction does not
    touch the tracked address directly; that is distinct from a zero value.
    """

    value: int | None = None
    is_confirmed: bool = False
    block_time: int | None = None
    type: TransactionType | None = None

    @property
    def is_sent(self) -> bool:
        return self.type == TransactionType.SENT

    @property
    def is_received(self) -> bool:
        return self.type == TransactionType.RECEIVED
