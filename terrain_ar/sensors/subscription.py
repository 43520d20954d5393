"""
Subscriber bookkeeping and isolated fan-out for the sensor services.

Every sensor service keeps one SubscriberList. The list:
    - calls ``on_first`` when it goes from empty to non-empty (attach the
      platform listener) and ``on_empty`` when it becomes empty again
      (detach it), so the platform listener is reference counted;
    - hands out Subscription tokens, each holding its own disposal closure;
    - delivers every value to the callbacks in registration order, catching
      and recording each callback's outcome so one failure never skips or
      aborts delivery to the others.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DeliveryReport:
    """Outcome of one fan-out: how many callbacks ran and which ones raised."""

    delivered: int = 0
    failures: List[Tuple[int, Exception]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class Subscription:
    """
    Token for one callback registration.

    ``dispose()`` removes exactly this registration and is idempotent. The
    token is also a context manager, disposing on exit.
    """

    def __init__(self, dispose: Callable[[], None]) -> None:
        self._dispose = dispose
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def dispose(self) -> None:
        if not self._active:
            return
        self._active = False
        self._dispose()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()


class SubscriberList(Generic[T]):
    """Ordered callbacks with reference-counted attach/detach hooks."""

    def __init__(
        self,
        name: str,
        on_first: Optional[Callable[[], None]] = None,
        on_empty: Optional[Callable[[], None]] = None,
    ) -> None:
        self.name = name
        self._callbacks: List[Callable[[T], None]] = []
        self._on_first = on_first
        self._on_empty = on_empty

    def __len__(self) -> int:
        return len(self._callbacks)

    def __contains__(self, callback: object) -> bool:
        return callback in self._callbacks

    def add(self, callback: Callable[[T], None]) -> Subscription:
        self._callbacks.append(callback)
        if len(self._callbacks) == 1 and self._on_first is not None:
            self._on_first()
        return Subscription(lambda: self.remove(callback))

    def remove(self, callback: Callable[[T], None]) -> bool:
        """Remove one registration of ``callback``; returns False if absent."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            return False
        if not self._callbacks and self._on_empty is not None:
            self._on_empty()
        return True

    def clear(self) -> None:
        had_callbacks = bool(self._callbacks)
        self._callbacks.clear()
        if had_callbacks and self._on_empty is not None:
            self._on_empty()

    def publish(self, value: T) -> DeliveryReport:
        """
        Deliver ``value`` to every callback registered at call time.

        Callbacks added or removed during the fan-out take effect from the
        next value on.

        Returns:
            DeliveryReport listing the (index, exception) of each failure.
        """
        report = DeliveryReport()
        for index, callback in enumerate(list(self._callbacks)):
            try:
                callback(value)
            except Exception as exc:
                logger.exception("%s callback %d failed", self.name, index + 1)
                report.failures.append((index, exc))
            else:
                report.delivered += 1
        return report
