"""
Pytest configuration and fixtures for address tracker tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from address_tracker.backends.base import AddressDataSource
from address_tracker.models import (
    Address,
    AddressResolutionError,
    Transaction,
    TransactionFetchError,
)

ADDRESS_A = "bc1qaddressaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
ADDRESS_B = "bc1qaddressbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
OTHER = "bc1qotherxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx"


def make_tx(
    txid: str,
    inputs: list[tuple[str | None, int]] | None = None,
    outputs: list[tuple[str | None, int]] | None = None,
    confirmed: bool | None = True,
    block_time: int | None = 1700000000,
) -> Transaction:
    """Build an Esplora-shaped transaction from (address, value) pairs.

    confirmed=None omits the status block entirely.
    """
    data: dict[str, Any] = {
        "txid": txid,
        "vin": [
            {
                "txid": f"{i:064x}",
                "vout": 0,
                "prevout": {"scriptpubkey_address": addr, "value": value},
            }
            for i, (addr, value) in enumerate(inputs or [])
        ],
        "vout": [
            {"scriptpubkey_address": addr, "value": value} for addr, value in (outputs or [])
        ],
    }
    if confirmed is not None:
        data["status"] = {"confirmed": confirmed}
        if confirmed and block_time is not None:
            data["status"]["block_time"] = block_time
    return Transaction.model_validate(data)


def make_address(
    address: str,
    chain: tuple[int, int] = (0, 0),
    mempool: tuple[int, int] = (0, 0),
) -> Address:
    return Address.model_validate(
        {
            "address": address,
            "chain_stats": {"funded_txo_sum": chain[0], "spent_txo_sum": chain[1]},
            "mempool_stats": {"funded_txo_sum": mempool[0], "spent_txo_sum": mempool[1]},
        }
    )


class ControlledBackend(AddressDataSource):
    """
    In-memory data source whose responses can be held back.

    Calls for ids listed in ``hold`` block until release() is called,
    which lets tests interleave navigation with in-flight fetches.
    """

    def __init__(self) -> None:
        self.addresses: dict[str, Address] = {}
        self.pages: dict[tuple[str, str | None], list[Transaction]] = {}
        self.failing_addresses: set[str] = set()
        self.failing_pages: set[tuple[str, str | None]] = set()
        self.resolve_calls: list[str] = []
        self.page_calls: list[tuple[str, str | None]] = []
        self._gates: dict[str, asyncio.Event] = {}
        self.closed = False

    def hold(self, address_id: str) -> None:
        self._gates[address_id] = asyncio.Event()

    def release(self, address_id: str) -> None:
        self._gates.pop(address_id).set()

    async def _wait(self, address_id: str) -> None:
        gate = self._gates.get(address_id)
        if gate is not None:
            await gate.wait()

    async def resolve_address(self, address_id: str) -> Address:
        self.resolve_calls.append(address_id)
        await self._wait(address_id)
        if address_id in self.failing_addresses or address_id not in self.addresses:
            raise AddressResolutionError(f"Invalid or unknown address: {address_id}")
        return self.addresses[address_id]

    async def get_address_transactions(
        self, address_id: str, after_txid: str | None = None
    ) -> list[Transaction]:
        if not address_id:
            raise ValueError("address_id must not be empty")
        self.page_calls.append((address_id, after_txid))
        await self._wait(address_id)
        if (address_id, after_txid) in self.failing_pages:
            raise TransactionFetchError("Transaction fetch failed: HTTP 500")
        return list(self.pages.get((address_id, after_txid), []))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> ControlledBackend:
    backend = ControlledBackend()
    backend.addresses[ADDRESS_A] = make_address(ADDRESS_A, chain=(5000, 2000), mempool=(300, 0))
    backend.addresses[ADDRESS_B] = make_address(ADDRESS_B, chain=(1000, 0))
    backend.pages[(ADDRESS_A, None)] = [
        make_tx("a2", outputs=[(ADDRESS_A, 300)], confirmed=False),
        make_tx("a1", outputs=[(ADDRESS_A, 5000)]),
    ]
    backend.pages[(ADDRESS_B, None)] = [make_tx("b1", outputs=[(ADDRESS_B, 1000)])]
    return backend


@pytest.fixture
def tx_factory() -> Callable[..., Transaction]:
    return make_tx


@pytest.fixture
def esplora_address_json() -> dict[str, Any]:
    return {
        "address": ADDRESS_A,
        "chain_stats": {
            "funded_txo_count": 2,
            "funded_txo_sum": 5000,
            "spent_txo_count": 1,
            "spent_txo_sum": 2000,
            "tx_count": 3,
        },
        "mempool_stats": {
            "funded_txo_count": 1,
            "funded_txo_sum": 300,
            "spent_txo_count": 0,
            "spent_txo_sum": 0,
            "tx_count": 1,
        },
    }


@pytest.fixture
def esplora_tx_json() -> dict[str, Any]:
    return {
        "txid": "f" * 64,
        "version": 2,
        "locktime": 0,
        "vin": [
            {
                "txid": "e" * 64,
                "vout": 1,
                "prevout": {
                    "scriptpubkey": "0014" + "00" * 20,
                    "scriptpubkey_asm": "OP_0 OP_PUSHBYTES_20 " + "00" * 20,
                    "scriptpubkey_type": "v0_p2wpkh",
                    "scriptpubkey_address": ADDRESS_A,
                    "value": 500,
                },
                "scriptsig": "",
                "witness": ["30", "02"],
                "is_coinbase": False,
                "sequence": 4294967293,
            }
        ],
        "vout": [
            {
                "scriptpubkey": "0014" + "11" * 20,
                "scriptpubkey_type": "v0_p2wpkh",
                "scriptpubkey_address": OTHER,
                "value": 150,
            },
            {
                "scriptpubkey": "0014" + "00" * 20,
                "scriptpubkey_type": "v0_p2wpkh",
                "scriptpubkey_address": ADDRESS_A,
                "value": 200,
            },
        ],
        "size": 222,
        "weight": 561,
        "fee": 150,
        "status": {
            "confirmed": True,
            "block_height": 800000,
            "block_hash": "0" * 64,
            "block_time": 1690000000,
        },
    }
