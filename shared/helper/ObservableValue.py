"""Current-value stream with replay of the latest value to new subscribers."""

from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class Subscription:
    """Handle returned by :meth:`ObservableValue.subscribe`."""

    def __init__(self, detach: Callable[[], None]) -> None:
        self._detach = detach
        self.closed = False

    def unsubscribe(self) -> None:
        if not self.closed:
            self.closed = True
            self._detach()


class ObservableValue(Generic[T]):
    """Holds one value and pushes every change to its subscribers.

    A new subscriber is called immediately with the current value, then once per
    :meth:`publish`. Callbacks run synchronously, in subscription order.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._callbacks: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        self._callbacks.append(callback)
        callback(self._value)
        return Subscription(lambda: self._callbacks.remove(callback))

    def publish(self, value: T) -> None:
        self._value = value
        # copy: a callback may unsubscribe itself
        for callback in list(self._callbacks):
            callback(value)
