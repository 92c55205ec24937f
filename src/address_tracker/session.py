"""
Address session controller.

Owns the state for the currently tracked address: resolves the address,
loads transaction pages through the enricher and discards results that
belong to an address the session has already navigated away from.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from loguru import logger

from address_tracker.backends.base import AddressDataSource
from address_tracker.balance import confirmed_balance, pending_balance
from address_tracker.enrichment import enrich_transactions
from address_tracker.events import EventStream
from address_tracker.models import (
    Address,
    AddressResolutionError,
    AddressTrackerError,
    EnrichedTransaction,
    TransactionFetchError,
)


class SessionStatus(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class SessionState:
    address_id: str | None = None
    address: Address | None = None
    transactions: list[EnrichedTransaction] = field(default_factory=list)
    is_loading: bool = False
    error: Exception | None = None
    status: SessionStatus = SessionStatus.IDLE


class AddressSession:
    """
    Tracks a single address at a time.

    Every call to set_address_id() starts a new generation. Fetch results
    are applied only if their generation is still the current one, so a
    slow lookup for a previous address can never overwrite newer state.

    Must be driven from a running event loop.
    """

    def __init__(self, backend: AddressDataSource) -> None:
        self.backend = backend
        self.state_changed: EventStream[SessionState] = EventStream("state_changed")
        self._state = SessionState()
        self._generation = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False
        # Page loads of one generation run one at a time
        self._page_lock = asyncio.Lock()
        self._pending_pages = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def address_id(self) -> str | None:
        return self._state.address_id

    @property
    def address(self) -> Address | None:
        return self._state.address

    @property
    def transactions(self) -> list[EnrichedTransaction]:
        return list(self._state.transactions)

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> Exception | None:
        return self._state.error

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def confirmed_balance(self) -> int | None:
        return confirmed_balance(self._state.address)

    @property
    def pending_balance(self) -> int | None:
        return pending_balance(self._state.address)

    @property
    def closed(self) -> bool:
        return self._closed

    def set_address_id(self, address_id: str | None) -> None:
        """
        Switch the session to a new address.

        State is cleared synchronously before anything is fetched. An empty
        or missing id leaves the session idle without issuing any request.
        """
        if self._closed:
            raise AddressTrackerError("Session is closed")

        self._generation += 1
        self._cancel_pending()
        self._page_lock = asyncio.Lock()
        self._pending_pages = 0

        if not address_id:
            self._state = SessionState()
            logger.debug("No address selected, session idle")
            self._notify()
            return

        self._state = SessionState(
            address_id=address_id,
            is_loading=True,
            status=SessionStatus.RESOLVING,
        )
        logger.debug(f"Tracking address {address_id} (generation {self._generation})")
        self._notify()
        self._spawn(self._resolve(self._generation, address_id))

    async def load_transactions(self, after_txid: str | None = None) -> None:
        """
        Load a page of transactions for the tracked address.

        The first page (no after_txid) replaces the list; continuation pages
        are appended. Does nothing until the address has been resolved.

        Loads are applied in the order they were requested. A continuation
        whose after_txid is no longer in the list when its turn comes (a
        first page replaced it) is dropped.
        """
        if self._state.address is None:
            logger.debug("Address not resolved, skipping transaction load")
            return
        await self._load_page(self._generation, after_txid)

    async def load_more(self) -> None:
        """Load the page following the last loaded transaction."""
        if not self._state.transactions:
            await self.load_transactions()
            return
        await self.load_transactions(after_txid=self._state.transactions[-1].txid)

    async def wait_idle(self) -> None:
        """Wait until every scheduled fetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self._cancel_pending()
        await self.wait_idle()
        logger.debug("Address session closed")

    async def _resolve(self, generation: int, address_id: str) -> None:
        try:
            address = await self.backend.resolve_address(address_id)
        except AddressResolutionError as e:
            if self._is_stale(generation):
                return
            logger.warning(f"Failed to resolve address {address_id}: {e}")
            self._fail(e)
            return
        except Exception as e:
            # Commit the failure before the task error is logged
            if not self._is_stale(generation):
                self._fail(e)
            raise

        if self._is_stale(generation):
            return

        self._state.address = address
        self._state.status = SessionStatus.LOADED
        logger.info(
            f"Resolved {address_id}: confirmed={self.confirmed_balance} "
            f"pending={self.pending_balance}"
        )
        self._notify()
        await self._load_page(generation, None)

    async def _load_page(self, generation: int, after_txid: str | None) -> None:
        address_id = self._state.address_id
        if not address_id:
            return

        lock = self._page_lock
        self._pending_pages += 1
        self._state.is_loading = True
        self._notify()

        try:
            async with lock:
                if self._is_stale(generation):
                    return
                await self._fetch_page(generation, address_id, after_txid)
        finally:
            if generation == self._generation:
                self._pending_pages -= 1
                self._state.is_loading = self._pending_pages > 0
                self._notify()

    async def _fetch_page(self, generation: int, address_id: str, after_txid: str | None) -> None:
        if after_txid and all(tx.txid != after_txid for tx in self._state.transactions):
            logger.debug(f"Dropping continuation after {after_txid}: no longer in the list")
            return

        try:
            txs = await self.backend.get_address_transactions(address_id, after_txid)
        except TransactionFetchError as e:
            if self._is_stale(generation):
                return
            logger.warning(f"Failed to load transactions for {address_id}: {e}")
            self._state.error = e
            return
        except Exception as e:
            if not self._is_stale(generation):
                self._state.error = e
                self._state.status = SessionStatus.FAILED
            raise

        if self._is_stale(generation):
            return

        enriched = enrich_transactions(txs, address_id)
        if after_txid:
            self._state.transactions = [*self._state.transactions, *enriched]
        else:
            self._state.transactions = enriched
        logger.debug(
            f"Loaded {len(enriched)} transactions for {address_id} "
            f"({len(self._state.transactions)} total)"
        )

    def _fail(self, error: Exception) -> None:
        self._state.error = error
        self._state.is_loading = False
        self._state.status = SessionStatus.FAILED
        self._notify()

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding result from superseded generation {generation}")
            return True
        return False

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(f"Unexpected error in address session: {exc}")

    def _cancel_pending(self) -> None:
        for task in self._tasks:
            task.cancel()

    def _notify(self) -> None:
        # Observers get a snapshot; later commits do not change it
        self.state_changed.emit(
            replace(self._state, transactions=list(self._state.transactions))
        )
