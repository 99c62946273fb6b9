from __future__ import annotations

from typing import Optional

from .observable import Handle, Observable


class Quote(Observable):
    """Observable market value."""

    def value(self) -> float:
        raise NotImplementedError

    def is_valid(self) -> bool:
        raise NotImplementedError


class SimpleQuote(Quote):
    def __init__(self, value: Optional[float] = None):
        super().__init__()
        self._value = None if value is None else float(value)

    def value(self) -> float:
        if self._value is None:
            raise ValueError("invalid SimpleQuote")
        return self._value

    def is_valid(self) -> bool:
        return self._value is not None

    def set_value(self, value: Optional[float]) -> float:
        """Set a new value; observers are notified only if it changed."""
        new = None if value is None else float(value)
        diff = 0.0
        if new is not None and self._value is not None:
            diff = new - self._value
        if new != self._value:
            self._value = new
            self.notify_observers()
        return diff

    def reset(self) -> None:
        self.set_value(None)

    def __repr__(self) -> str:
        return f"SimpleQuote({self._value!r})"


def quote_handle(value) -> Handle:
    """Accept a float, a Quote or a Handle and return a quote Handle."""
    if isinstance(value, Handle):
        return value
    if isinstance(value, Quote):
        return Handle(value)
    return Handle(SimpleQuote(value))
