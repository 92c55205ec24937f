"""
Event streams and subscription handles.

Route changes, network changes and push-topic interest all flow through
these primitives. Every subscribe call returns a Subscription whose
teardown runs at most once.
"""

from __future__ import annotations

import itertools
from collections import Counter
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class SubscriptionError(Exception):
    """Raised on invalid subscription lifecycle operations."""


class Subscription:
    """
    Handle for a registered observer or any other releasable resource.

    Child subscriptions and teardown callables can be attached with add();
    they are released together with the parent. Adding to an already closed
    subscription releases the child immediately.
    """

    def __init__(self, teardown: Callable[[], None] | None = None) -> None:
        self._teardown = teardown
        self._children: list[Subscription] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def add(self, child: Subscription | Callable[[], None]) -> Subscription:
        if not isinstance(child, Subscription):
            child = Subscription(child)
        if self._closed:
            child.unsubscribe()
        else:
            self._children.append(child)
        return child

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True

        teardown, self._teardown = self._teardown, None
        children, self._children = self._children, []

        if teardown is not None:
            try:
                teardown()
            except Exception as e:
                logger.warning(f"Subscription teardown failed: {e}")
        for child in children:
            child.unsubscribe()


class EventStream(Generic[T]):
    """Synchronous multicast stream of values."""

    def __init__(self, name: str = "stream") -> None:
        self.name = name
        self._observers: dict[int, Callable[[T], None]] = {}
        self._ids = itertools.count()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        observer_id = next(self._ids)
        self._observers[observer_id] = callback
        logger.debug(f"{self.name}: observer {observer_id} subscribed")

        def _remove() -> None:
            self._observers.pop(observer_id, None)
            logger.debug(f"{self.name}: observer {observer_id} unsubscribed")

        return Subscription(_remove)

    def emit(self, value: T) -> None:
        """Deliver a value to every observer; a failing observer does not stop the rest."""
        # Copy so observers may unsubscribe while being notified
        for callback in list(self._observers.values()):
            try:
                callback(value)
            except Exception as e:
                logger.opt(exception=e).error(f"{self.name}: observer failed: {e}")


class InterestRegistry:
    """
    Tracks which push-notification topics the process currently wants.

    Registrations are reference counted, so two sessions wanting "blocks"
    keep the topic alive until both release it.
    """

    def __init__(self) -> None:
        self._interest: Counter[str] = Counter()

    @property
    def topics(self) -> set[str]:
        return {topic for topic, count in self._interest.items() if count > 0}

    def interest_count(self, topic: str) -> int:
        return self._interest[topic]

    def register_interest(self, topics: Iterable[str]) -> Subscription:
        wanted = sorted(set(topics))
        if not wanted:
            raise SubscriptionError("At least one topic is required")
        self._interest.update(wanted)
        logger.debug(f"Registered interest in {wanted}")

        def _release() -> None:
            self._interest.subtract(wanted)
            for topic in wanted:
                if self._interest[topic] <= 0:
                    del self._interest[topic]
            logger.debug(f"Released interest in {wanted}")

        return Subscription(_release)
