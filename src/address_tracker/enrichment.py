"""
Transaction enrichment relative to a tracked address.
"""

from __future__ import annotations

from collections.abc import Iterable

from address_tracker.models import EnrichedTransaction, Transaction, TransactionType

_RAW_FIELDS = set(Transaction.model_fields)


def enrich_transaction(tx: Transaction, tracked_address: str) -> EnrichedTransaction:
    """
    Annotate a transaction with direction and net value for an address.

    Any input spending from the tracked address makes the transaction a send,
    even when outputs pay back to the same address (change). The sent value
    is netted against those outputs and never goes below zero. Transactions
    that touch the address nowhere keep ``type`` and ``value`` unset.

    Derived fields are always recomputed from the raw fields, so enriching
    an already enriched transaction gives the same result.

    Args:
        tx: Raw (or previously enriched) transaction
        tracked_address: Address the annotation is relative to

    Returns:
        New EnrichedTransaction; the input is not modified
    """
    total_received = sum(
        out.value for out in tx.vout if out.scriptpubkey_address == tracked_address
    )
    spent_prevouts = [
        vin.prevout
        for vin in tx.vin
        if vin.prevout is not None and vin.prevout.scriptpubkey_address == tracked_address
    ]
    total_sent = sum(prevout.value for prevout in spent_prevouts)
    sent = bool(spent_prevouts)
    received = any(out.scriptpubkey_address == tracked_address for out in tx.vout)

    tx_type: TransactionType | None = None
    value: int | None = None
    if sent:
        tx_type = TransactionType.SENT
        value = max(0, total_sent - total_received)
    elif received:
        tx_type = TransactionType.RECEIVED
        value = total_received

    status = tx.status
    raw = tx.model_dump(include=_RAW_FIELDS)
    return EnrichedTransaction(
        **raw,
        type=tx_type,
        value=value,
        is_confirmed=status is not None and bool(status.confirmed),
        block_time=status.block_time if status is not None else None,
    )


def enrich_transactions(
    txs: Iterable[Transaction], tracked_address: str
) -> list[EnrichedTransaction]:
    """Enrich a page of transactions, preserving order."""
    return [enrich_transaction(tx, tracked_address) for tx in txs]
