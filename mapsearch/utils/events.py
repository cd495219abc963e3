"""Minimal push-style event channel with a current value."""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from mapsearch.logging import logger

T = TypeVar("T")
Subscriber = Callable[[T], None]


class Publisher(Generic[T]):
    """Holds the latest value and pushes every new one to subscribers.

    Subscribers are called synchronously in subscription order. A failing
    subscriber is logged and does not stop delivery to the others.
    """

    def __init__(self, initial: T, *, name: str = "publisher") -> None:
        self._value = initial
        self._name = name
        self._subscribers: list[Subscriber[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Subscriber[T]) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""

        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("subscriber_failed", publisher=self._name)


__all__ = ["Publisher", "Subscriber"]
