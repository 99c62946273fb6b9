from __future__ import annotations

import math
import numbers
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import ConfigurationError, InvalidDateError
from .observable import Observable, Observer
from .quotes import quote_handle
from .settings import EvaluationContext
from .utils import settlement_date, to_timestamp, yearfrac

# time step of the finite-difference forward and of the t=0 zero yield
FORWARD_STEP = 1.0e-4


class YieldTermStructure(Observable, Observer):
    """
    Base class of discount curves.

    Queries accept either a date or a time in years from the reference date.
    Subclasses implement _discount_impl(t) and may override the zero and
    forward implementations when a closed form exists.

    The reference date is either fixed, moves with an EvaluationContext
    (settlement_days business days after the evaluation date), or is
    supplied by a subclass overriding the property.

    Discount factors are cached per query; update() clears the cache and
    forwards the notification, recomputation happens on the next query.
    """

    def __init__(
        self,
        day_count: str = "ACT/365",
        reference_date: Optional[pd.Timestamp] = None,
        context: Optional[EvaluationContext] = None,
        settlement_days: int = 0,
        calendar: Optional[str] = None,
        allow_extrapolation: bool = False,
    ):
        super().__init__()
        self._day_count = day_count
        self._fixed_reference = None if reference_date is None else to_timestamp(reference_date)
        self._context = context
        self.settlement_days = int(settlement_days)
        self.calendar = calendar
        self._moving_reference: Optional[pd.Timestamp] = None
        self.allow_extrapolation = allow_extrapolation
        self._cache: Dict[object, float] = {}

        if self._fixed_reference is None and context is not None:
            self.register_with(context)

    # ---- dates and times ----

    @property
    def day_count(self) -> str:
        return self._day_count

    @property
    def reference_date(self) -> pd.Timestamp:
        if self._fixed_reference is not None:
            return self._fixed_reference
        if self._context is None:
            raise ConfigurationError("term structure has neither a reference date nor an evaluation context")
        if self._moving_reference is None:
            self._moving_reference = settlement_date(
                self._context.evaluation_date, self.settlement_days, self.calendar
            )
        return self._moving_reference

    @property
    def max_date(self) -> Optional[pd.Timestamp]:
        """Last date the curve can be queried at; None means unbounded."""
        return None

    def max_time(self) -> float:
        max_date = self.max_date
        if max_date is None:
            return math.inf
        return self.time_from_reference(max_date)

    def time_from_reference(self, date) -> float:
        return yearfrac(self.reference_date, to_timestamp(date), self.day_count)

    def enable_extrapolation(self) -> None:
        self.allow_extrapolation = True

    def disable_extrapolation(self) -> None:
        self.allow_extrapolation = False

    def _time(self, x) -> float:
        if isinstance(x, numbers.Real):
            t = float(x)
            if t < 0.0:
                raise InvalidDateError(f"negative time ({t}) given")
            if not self.allow_extrapolation and t > self.max_time():
                raise InvalidDateError(f"time ({t}) is past max curve time ({self.max_time()})")
            return t

        date = to_timestamp(x)
        ref = self.reference_date
        if date < ref:
            raise InvalidDateError(f"date ({date.date()}) before reference date ({ref.date()})")
        max_date = self.max_date
        if not self.allow_extrapolation and max_date is not None and date > max_date:
            raise InvalidDateError(f"date ({date.date()}) is past max curve date ({max_date.date()})")
        return self.time_from_reference(date)

    @staticmethod
    def _cache_key(x):
        if isinstance(x, numbers.Real):
            return float(x)
        return to_timestamp(x)

    # ---- public queries ----

    def discount(self, x) -> float:
        t = self._time(x)
        if t == 0.0:
            return 1.0
        key = self._cache_key(x)
        value = self._cache.get(key)
        if value is None:
            value = float(self._discount_impl(t))
            self._cache[key] = value
        return value

    def zero_yield(self, x) -> float:
        """Continuously compounded zero yield."""
        t = self._time(x)
        if t == 0.0:
            t = FORWARD_STEP
        return float(self._zero_yield_impl(t))

    def instantaneous_forward(self, x) -> float:
        t = self._time(x)
        return float(self._forward_impl(t))

    # ---- implementation hooks ----

    def _discount_impl(self, t: float) -> float:
        raise NotImplementedError

    def _discount_at(self, t: float) -> float:
        return 1.0 if t == 0.0 else self._discount_impl(t)

    def _zero_yield_impl(self, t: float) -> float:
        return -math.log(self._discount_at(t)) / t

    def _forward_impl(self, t: float) -> float:
        t1 = max(t - FORWARD_STEP / 2.0, 0.0)
        t2 = t1 + FORWARD_STEP
        return -(math.log(self._discount_at(t2)) - math.log(self._discount_at(t1))) / FORWARD_STEP

    # ---- observer ----

    def update(self) -> None:
        self._moving_reference = None
        self._cache.clear()
        self.notify_observers()


class FlatForward(YieldTermStructure):
    """Constant continuously compounded forward; rate may be a float, Quote or Handle."""

    def __init__(
        self,
        rate,
        day_count: str = "ACT/365",
        reference_date: Optional[pd.Timestamp] = None,
        context: Optional[EvaluationContext] = None,
        settlement_days: int = 0,
        calendar: Optional[str] = None,
    ):
        super().__init__(day_count, reference_date, context, settlement_days, calendar)
        self._rate = quote_handle(rate)
        self.register_with(self._rate)

    def rate(self) -> float:
        return self._rate.current_link().value()

    def _discount_impl(self, t: float) -> float:
        return math.exp(-self.rate() * t)

    def _zero_yield_impl(self, t: float) -> float:
        return self.rate()

    def _forward_impl(self, t: float) -> float:
        return self.rate()


class DiscountCurve(YieldTermStructure):
    """
    Discount curve on node discount factors, interpolated linearly in log
    discount factor space, i.e. flat forwards between nodes.

    - First node: reference date with DF = 1.
    - Long-end extrapolation (last forward held flat) only when enabled.
    """

    def __init__(
        self,
        dates: Iterable[pd.Timestamp],
        discounts: Iterable[float],
        day_count: str = "ACT/365",
        allow_extrapolation: bool = False,
    ):
        dates = [to_timestamp(d) for d in dates]
        discounts = np.asarray(list(discounts), dtype=float)

        if len(dates) < 2:
            raise ConfigurationError("DiscountCurve needs at least two nodes.")
        if len(dates) != len(discounts):
            raise ConfigurationError("dates and discounts must have the same length")

        super().__init__(day_count, reference_date=dates[0], allow_extrapolation=allow_extrapolation)

        if any(dates[i] >= dates[i + 1] for i in range(len(dates) - 1)):
            raise ConfigurationError("Node dates must be strictly increasing.")
        if discounts[0] != 1.0:
            raise ConfigurationError("The first node must have DF = 1.")
        if np.any(discounts <= 0.0):
            raise ConfigurationError("All discount factors must be positive.")

        self._dates: List[pd.Timestamp] = dates
        self._times = np.array([self.time_from_reference(d) for d in dates], dtype=float)
        if np.any(np.diff(self._times) <= 0.0):
            raise ConfigurationError(f"Node times are not strictly increasing under {day_count}.")

        self._log_dfs = np.log(discounts)
        self._forwards = -np.diff(self._log_dfs) / np.diff(self._times)

    @property
    def max_date(self) -> pd.Timestamp:
        return self._dates[-1]

    def dates(self) -> List[pd.Timestamp]:
        return list(self._dates)

    def times(self) -> np.ndarray:
        return self._times.copy()

    def discounts(self) -> np.ndarray:
        return np.exp(self._log_dfs)

    def forwards(self) -> np.ndarray:
        """Forward of each segment (t[i-1], t[i]]."""
        return self._forwards.copy()

    def nodes(self) -> List[Tuple[pd.Timestamp, float]]:
        return list(zip(self._dates, self.discounts().tolist()))

    def _set_last_discount(self, df: float) -> None:
        """Overwrite the last node in place; used while bootstrapping."""
        self._log_dfs[-1] = math.log(df)
        self._forwards[-1] = -(self._log_dfs[-1] - self._log_dfs[-2]) / (self._times[-1] - self._times[-2])
        self._cache.clear()

    def _discount_impl(self, t: float) -> float:
        if t > self._times[-1]:
            return math.exp(self._log_dfs[-1] - self._forwards[-1] * (t - self._times[-1]))
        return math.exp(float(np.interp(t, self._times, self._log_dfs)))

    def _zero_yield_impl(self, t: float) -> float:
        return -math.log(self._discount_impl(t)) / t

    def _forward_impl(self, t: float) -> float:
        i = int(np.searchsorted(self._times, t, side="left"))
        i = min(max(i, 1), len(self._times) - 1)
        return float(self._forwards[i - 1])

    def __repr__(self):
        lines = ["DiscountCurve:"]
        for d, df in self.nodes():
            lines.append(f"  {d.date()} -> DF={df:.8f}")
        return "\n".join(lines)


def nodes_report(curve: DiscountCurve) -> pd.DataFrame:
    """Per-node QC table: time, DF, zero, segment forward and sanity flags."""
    dates = curve.dates()
    times = curve.times()
    dfs = curve.discounts()
    fwds = curve.forwards()

    # zero at the reference node is the limit t -> 0, i.e. the first forward
    zeros = np.empty_like(dfs)
    zeros[0] = fwds[0]
    zeros[1:] = -np.log(dfs[1:]) / times[1:]

    return pd.DataFrame(
        {
            "date": pd.to_datetime(dates),
            "time": times,
            "df": dfs,
            "zero_cc": zeros,
            "forward_cc": np.r_[fwds[0], fwds],
            "df_positive": dfs > 0,
            "df_monotone": np.r_[True, np.diff(dfs) <= 1e-10],
        }
    )
