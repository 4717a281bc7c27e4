"""
relay_auth.feeds

Push-based value feeds used at every boundary of the coordinator.

Responsibilities:
- `Feed`: hot multicast stream; subscribers only see values pushed after they subscribe.
- `ValueFeed`: holds a current value and replays it to each new subscriber.
- `Subscription`: cancellation handle returned by `subscribe`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class Subscription:
    """
    Handle for one subscriber. `unsubscribe()` is idempotent.
    """

    __slots__ = ("_teardown", "closed")

    def __init__(self, teardown: Callable[[], None] | None = None) -> None:
        self._teardown = teardown
        self.closed = teardown is None

    def unsubscribe(self) -> None:
        if self.closed:
            return
        self.closed = True
        teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()


class _Observer(Generic[T]):
    __slots__ = ("on_next", "on_complete", "active")

    def __init__(
        self,
        on_next: Callable[[T], None],
        on_complete: Callable[[], None] | None,
    ) -> None:
        self.on_next = on_next
        self.on_complete = on_complete
        self.active = True


class Feed(Generic[T]):
    def __init__(self) -> None:
        self._observers: list[_Observer[T]] = []
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def subscribe(
        self,
        on_next: Callable[[T], None],
        on_complete: Callable[[], None] | None = None,
    ) -> Subscription:
        if self._completed:
            # Late subscribers observe shutdown instead of silence.
            if on_complete is not None:
                on_complete()
            return Subscription()

        observer = _Observer(on_next, on_complete)
        self._observers.append(observer)
        self._on_subscribe(observer)
        return Subscription(lambda: self._remove(observer))

    def push(self, value: T) -> None:
        if self._completed:
            raise RuntimeError("cannot push to a completed feed")
        self._deliver(value)

    def complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        observers, self._observers = self._observers, []
        for observer in observers:
            if observer.active and observer.on_complete is not None:
                observer.active = False
                observer.on_complete()

    def _on_subscribe(self, observer: _Observer[T]) -> None:
        pass

    def _deliver(self, value: T) -> None:
        # Iterate a snapshot: callbacks may subscribe/unsubscribe while we deliver.
        for observer in tuple(self._observers):
            if observer.active:
                observer.on_next(value)

    def _remove(self, observer: _Observer[T]) -> None:
        observer.active = False
        if observer in self._observers:
            self._observers.remove(observer)


class ValueFeed(Feed[T]):
    """
    Feed with a current value (a relay's connectivity, the active signer, a state snapshot).
    """

    def __init__(self, value: T) -> None:
        super().__init__()
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    def push(self, value: T) -> None:
        if self._completed:
            raise RuntimeError("cannot push to a completed feed")
        self._value = value
        self._deliver(value)

    def _on_subscribe(self, observer: _Observer[T]) -> None:
        observer.on_next(self._value)


# --- Module Notes -----------------------------------------------------------
# Delivery is synchronous: a push returns only after every subscriber ran. The coordinator
# relies on this for per-relay ordering (each transition sees the previous one's result).
