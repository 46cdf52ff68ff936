from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class Subscription:
    def __init__(self, channel: StateChannel, token: int) -> None:
        self._channel = channel
        self._token = token
        self.closed = False

    def unsubscribe(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._channel._remove(self._token)


class StateChannel(Generic[T]):
    """Holds the latest value and pushes replacements to subscribers.

    Delivery is synchronous and in subscription order. Values are expected to
    be immutable: a state change is always a new value passed to ``next``.
    A ``next`` issued from inside a subscriber is queued until the current
    delivery round has reached every subscriber.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: dict[int, Callable[[T], None]] = {}
        self._next_token = 1
        self._queue: deque[T] = deque()
        self._delivering = False

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        callback(self._value)
        return Subscription(self, token)

    def next(self, value: T) -> None:
        self._queue.append(value)
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._queue:
                self._value = self._queue.popleft()
                for token in sorted(self._subscribers):
                    callback = self._subscribers.get(token)
                    if callback is not None:
                        callback(self._value)
        finally:
            self._delivering = False
            self._queue.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _remove(self, token: int) -> None:
        self._subscribers.pop(token, None)
