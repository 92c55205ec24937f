"""
Lifecycle wiring between external event sources and an address session.
"""

from __future__ import annotations

from collections.abc import Iterable
from types import TracebackType

from loguru import logger

from address_tracker.events import EventStream, InterestRegistry, Subscription, SubscriptionError
from address_tracker.session import AddressSession

DEFAULT_TOPICS: frozenset[str] = frozenset({"blocks"})


class AddressTracker:
    """
    Connects route, network and push-topic sources to an AddressSession.

    Every subscription taken in start() is collected under one parent
    handle and released exactly once by stop(), whether the tracker ends
    normally or start() fails halfway. A tracker is single use.

    Block notifications are only registered as interest here; reacting to
    new blocks is left to whoever consumes the registry.
    """

    def __init__(
        self,
        session: AddressSession,
        route_changes: EventStream[str | None],
        network_changes: EventStream[str],
        interest: InterestRegistry,
        topics: Iterable[str] = DEFAULT_TOPICS,
        network: str = "",
    ) -> None:
        self.session = session
        self.route_changes = route_changes
        self.network_changes = network_changes
        self.interest = interest
        self.topics = frozenset(topics)
        self.network = network
        self._subscriptions: Subscription | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._subscriptions is not None and not self._stopped

    def start(self) -> None:
        if self._subscriptions is not None or self._stopped:
            raise SubscriptionError("Tracker can only be started once")

        subscriptions = Subscription()
        try:
            subscriptions.add(self.interest.register_interest(self.topics))
            subscriptions.add(self.network_changes.subscribe(self._on_network_changed))
            subscriptions.add(self.route_changes.subscribe(self.session.set_address_id))
        except Exception:
            subscriptions.unsubscribe()
            raise

        self._subscriptions = subscriptions
        logger.info(f"Address tracker started (topics: {sorted(self.topics)})")

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True

        if self._subscriptions is not None:
            self._subscriptions.unsubscribe()
        await self.session.close()
        logger.info("Address tracker stopped")

    def _on_network_changed(self, network: str) -> None:
        if network != self.network:
            logger.info(f"Network changed: {self.network or '-'} -> {network}")
        self.network = network

    async def __aenter__(self) -> AddressTracker:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
