"""
Curves derived from an upstream curve held through a Handle.

None of them copies the upstream data: relinking the handle, or any change
the upstream curve or the spread quote notifies, reaches them and their
observers through the notification graph.
"""
from __future__ import annotations

import math
import numbers
from typing import Optional

import pandas as pd

from .curves import YieldTermStructure
from .errors import InvalidDateError
from .observable import Handle, as_handle
from .quotes import quote_handle


class _DerivedTermStructure(YieldTermStructure):
    def __init__(self, curve_handle, reference_date: Optional[pd.Timestamp] = None):
        super().__init__(reference_date=reference_date)
        self._curve: Handle = as_handle(curve_handle)
        self.register_with(self._curve)

    def upstream(self) -> YieldTermStructure:
        return self._curve.current_link()

    @property
    def day_count(self) -> str:
        return self.upstream().day_count

    @property
    def max_date(self) -> Optional[pd.Timestamp]:
        return self.upstream().max_date


class ImpliedTermStructure(_DerivedTermStructure):
    """
    Upstream curve re-anchored at a later reference date R:

        D(t) = D_up(t + tau(R_up, R)) / D_up(R)

    Date queries go to the upstream curve as dates, so the ratio holds
    under day counts that are not additive (30/360).
    """

    def __init__(self, curve_handle, reference_date: pd.Timestamp):
        super().__init__(curve_handle, reference_date=reference_date)

    def _offset(self) -> float:
        up = self.upstream()
        ref = self.reference_date
        if ref < up.reference_date:
            raise InvalidDateError(
                f"implied reference date ({ref.date()}) before upstream reference date ({up.reference_date.date()})"
            )
        return up.time_from_reference(ref)

    def discount(self, x) -> float:
        if isinstance(x, numbers.Real):
            return super().discount(x)
        if self._time(x) == 0.0:
            return 1.0
        up = self.upstream()
        return up.discount(x) / up.discount(self.reference_date)

    def zero_yield(self, x) -> float:
        if isinstance(x, numbers.Real):
            return super().zero_yield(x)
        t = self._time(x)
        if t == 0.0:
            return super().zero_yield(0.0)
        return -math.log(self.discount(x)) / t

    def instantaneous_forward(self, x) -> float:
        if isinstance(x, numbers.Real):
            return super().instantaneous_forward(x)
        self._time(x)
        return self.upstream().instantaneous_forward(x)

    def _discount_impl(self, t: float) -> float:
        up = self.upstream()
        return up.discount(t + self._offset()) / up.discount(self.reference_date)

    def _forward_impl(self, t: float) -> float:
        return self.upstream().instantaneous_forward(t + self._offset())


class _SpreadedTermStructure(_DerivedTermStructure):
    def __init__(self, curve_handle, spread):
        super().__init__(curve_handle)
        self._spread: Handle = quote_handle(spread)
        self.register_with(self._spread)

    @property
    def reference_date(self) -> pd.Timestamp:
        return self.upstream().reference_date

    def spread(self) -> float:
        return self._spread.current_link().value()


class ForwardSpreadedTermStructure(_SpreadedTermStructure):
    """Instantaneous forwards shifted by a constant spread."""

    def _discount_impl(self, t: float) -> float:
        return self.upstream().discount(t) * math.exp(-self.spread() * t)

    def _zero_yield_impl(self, t: float) -> float:
        return self.upstream().zero_yield(t) + self.spread()

    def _forward_impl(self, t: float) -> float:
        return self.upstream().instantaneous_forward(t) + self.spread()


class ZeroSpreadedTermStructure(_SpreadedTermStructure):
    """Continuously compounded zero yields shifted by a constant spread."""

    def _discount_impl(self, t: float) -> float:
        return math.exp(-self._zero_yield_impl(t) * t)

    def _zero_yield_impl(self, t: float) -> float:
        return self.upstream().zero_yield(t) + self.spread()

    def _forward_impl(self, t: float) -> float:
        return self.upstream().instantaneous_forward(t) + self.spread()
