"""
address_tracker - Track balance and transaction history of a single address

Provides transaction enrichment, balance derivation and a session that
loads address data incrementally while discarding superseded results.
"""

__version__ = "0.1.0"

from address_tracker.balance import confirmed_balance, pending_balance, total_balance
from address_tracker.enrichment import enrich_transaction, enrich_transactions
from address_tracker.events import EventStream, InterestRegistry, Subscription, SubscriptionError
from address_tracker.lifecycle import AddressTracker
from address_tracker.models import (
    Address,
    AddressResolutionError,
    AddressStats,
    AddressTrackerError,
    EnrichedTransaction,
    NetworkType,
    Transaction,
    TransactionFetchError,
    TransactionType,
)
from address_tracker.session import AddressSession, SessionState, SessionStatus

__all__ = [
    "Address",
    "AddressResolutionError",
    "AddressSession",
    "AddressStats",
    "AddressTracker",
    "AddressTrackerError",
    "EnrichedTransaction",
    "EventStream",
    "InterestRegistry",
    "NetworkType",
    "SessionState",
    "SessionStatus",
    "Subscription",
    "SubscriptionError",
    "Transaction",
    "TransactionFetchError",
    "TransactionType",
    "confirmed_balance",
    "enrich_transaction",
    "enrich_transactions",
    "pending_balance",
    "total_balance",
]
