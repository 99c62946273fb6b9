"""
Publish/subscribe primitives used for cache invalidation.

- Observable: keeps weak references to its observers and notifies them
  synchronously, depth-first.
- Observer: keeps strong references to what it registered with.
- Handle: relinkable, observable indirection to a shared object.
"""
from __future__ import annotations

import logging
import weakref
from typing import Any, Generic, Optional, Set, TypeVar

from .errors import EmptyHandleError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable:
    def __init__(self):
        super().__init__()
        self._observers: "weakref.WeakSet[Observer]" = weakref.WeakSet()
        self._notifying = False

    def observers(self) -> list:
        return list(self._observers)

    def notify_observers(self) -> None:
        """
        Call update() on every live observer.

        An observable already inside its own notification (a cycle in the
        graph) skips the re-entrant call.
        """
        if self._notifying:
            logger.debug("Skipping re-entrant notification of %r", self)
            return

        self._notifying = True
        try:
            for observer in list(self._observers):
                observer.update()
        finally:
            self._notifying = False


class Observer:
    def __init__(self):
        super().__init__()
        self._observables: Set[Observable] = set()

    def register_with(self, observable: Optional[Observable]) -> None:
        if observable is None:
            return
        observable._observers.add(self)
        self._observables.add(observable)

    def unregister_with(self, observable: Optional[Observable]) -> None:
        if observable is None:
            return
        observable._observers.discard(self)
        self._observables.discard(observable)

    def unregister_with_all(self) -> None:
        for observable in list(self._observables):
            self.unregister_with(observable)

    def update(self) -> None:
        raise NotImplementedError


class Handle(Observable, Observer, Generic[T]):
    """
    Shared, relinkable reference to an underlying object.

    Every holder of the same Handle sees the same pointee. Observers of the
    handle are notified when the pointee changes and when the handle is
    relinked.
    """

    def __init__(self, obj: Optional[T] = None, register_as_observer: bool = True):
        super().__init__()
        self._link: Optional[T] = None
        self._is_observer = False
        self._relink(obj, register_as_observer)

    def _relink(self, obj: Optional[T], register_as_observer: bool) -> None:
        if self._link is not None and self._is_observer:
            self.unregister_with(self._link)
        self._link = obj
        self._is_observer = register_as_observer
        if obj is not None and register_as_observer:
            self.register_with(obj)

    def link_to(self, obj: Optional[T], register_as_observer: bool = True) -> None:
        """Re-point the handle and notify its observers once."""
        self._relink(obj, register_as_observer)
        self.notify_observers()

    def empty(self) -> bool:
        return self._link is None

    def current_link(self) -> T:
        if self._link is None:
            raise EmptyHandleError("empty Handle cannot be dereferenced")
        return self._link

    def update(self) -> None:
        self.notify_observers()

    def __repr__(self) -> str:
        return f"Handle({self._link!r})"


def as_handle(value: Any) -> Handle:
    """Wrap a plain object into a Handle; Handles pass through unchanged."""
    if isinstance(value, Handle):
        return value
    return Handle(value)
