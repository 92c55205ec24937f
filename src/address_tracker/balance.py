"""
Balance derivation from address funded/spent totals.

Results are not clamped: inconsistent upstream stats surface as negative
balances.
"""

from __future__ import annotations

from address_tracker.models import Address, AddressStats


def _net(stats: AddressStats) -> int:
    return stats.funded_txo_sum - stats.spent_txo_sum


def confirmed_balance(address: Address | None) -> int | None:
    """Confirmed balance in satoshis, or None if no address is loaded."""
    if address is None:
        return None
    return _net(address.chain_stats)


def pending_balance(address: Address | None) -> int | None:
    """Net mempool balance change in satoshis, or None if no address is loaded."""
    if address is None:
        return None
    return _net(address.mempool_stats)


def total_balance(address: Address | None) -> int | None:
    if address is None:
        return None
    return _net(address.chain_stats) + _net(address.mempool_stats)
