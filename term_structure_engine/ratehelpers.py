from __future__ import annotations

import pandas as pd
from typing import List, Optional

from .observable import Handle, Observable, Observer
from .quotes import quote_handle
from .settings import EvaluationContext
from .utils import adjust, advance, schedule_dates, settlement_date, yearfrac


class RateHelper(Observable, Observer):
    """
    One market instrument as seen by the bootstrapper.

    The helper observes its quote and the evaluation context. Its dates are
    recomputed on every notification, which is then forwarded to the curves
    built on it.
    """

    def __init__(self, rate, context: Optional[EvaluationContext] = None):
        super().__init__()
        self._quote: Handle = quote_handle(rate)
        self._context = context if context is not None else EvaluationContext()
        self.earliest_date: Optional[pd.Timestamp] = None
        self.maturity_date: Optional[pd.Timestamp] = None
        self.register_with(self._quote)
        self.register_with(self._context)

    def quote(self) -> float:
        return self._quote.current_link().value()

    def implied_quote(self, curve) -> float:
        """Quote the instrument would have if priced on the given curve."""
        raise NotImplementedError

    def quote_error(self, curve) -> float:
        return self.implied_quote(curve) - self.quote()

    def _initialize_dates(self) -> None:
        raise NotImplementedError

    def update(self) -> None:
        self._initialize_dates()
        self.notify_observers()

    def __repr__(self) -> str:
        try:
            q = f"{self.quote() * 100:.4f}%"
        except ValueError:
            q = "n/a"
        return f"{type(self).__name__}(maturity={self.maturity_date.date()}, quote={q})"


class DepositRateHelper(RateHelper):
    """Money-market deposit quoted as a simple rate."""

    def __init__(
        self,
        rate,
        n: int,
        unit: str = "M",
        settlement_days: int = 2,
        calendar: Optional[str] = None,
        convention: str = "MODIFIEDFOLLOWING",
        day_count: str = "ACT/360",
        context: Optional[EvaluationContext] = None,
    ):
        super().__init__(rate, context)
        self.n = int(n)
        self.unit = unit
        self.settlement_days = int(settlement_days)
        self.calendar = calendar
        self.convention = convention
        self.day_count = day_count
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        self.earliest_date = settlement_date(self._context.evaluation_date, self.settlement_days, self.calendar)
        self.maturity_date = advance(self.earliest_date, self.n, self.unit, self.calendar, self.convention)

    def implied_quote(self, curve) -> float:
        tau = yearfrac(self.earliest_date, self.maturity_date, self.day_count)
        return (curve.discount(self.earliest_date) / curve.discount(self.maturity_date) - 1.0) / tau


class FraRateHelper(RateHelper):
    """Forward rate agreement on [start, end] months after settlement."""

    def __init__(
        self,
        rate,
        months_to_start: int,
        months_to_end: int,
        settlement_days: int = 2,
        calendar: Optional[str] = None,
        convention: str = "MODIFIEDFOLLOWING",
        day_count: str = "ACT/360",
        context: Optional[EvaluationContext] = None,
    ):
        if months_to_end <= months_to_start:
            raise ValueError(
                f"months to end ({months_to_end}) must be greater than months to start ({months_to_start})"
            )
        super().__init__(rate, context)
        self.months_to_start = int(months_to_start)
        self.months_to_end = int(months_to_end)
        self.settlement_days = int(settlement_days)
        self.calendar = calendar
        self.convention = convention
        self.day_count = day_count
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        settlement = settlement_date(self._context.evaluation_date, self.settlement_days, self.calendar)
        self.earliest_date = advance(settlement, self.months_to_start, "M", self.calendar, self.convention)
        self.maturity_date = advance(
            self.earliest_date, self.months_to_end - self.months_to_start, "M", self.calendar, self.convention
        )

    def implied_quote(self, curve) -> float:
        tau = yearfrac(self.earliest_date, self.maturity_date, self.day_count)
        return (curve.discount(self.earliest_date) / curve.discount(self.maturity_date) - 1.0) / tau


class SwapRateHelper(RateHelper):
    """
    Par rate of a fixed-vs-floating swap on a single curve.

    The floating leg is worth D(start) - D(end); the fixed leg pays the
    rate on its own schedule and day count.
    """

    def __init__(
        self,
        rate,
        n: int,
        unit: str = "Y",
        settlement_days: int = 2,
        calendar: Optional[str] = None,
        fixed_frequency: int = 1,
        fixed_convention: str = "UNADJUSTED",
        fixed_day_count: str = "30/360",
        float_convention: str = "MODIFIEDFOLLOWING",
        context: Optional[EvaluationContext] = None,
    ):
        if fixed_frequency not in (1, 2, 4, 12):
            raise ValueError("Supported fixed frequencies: 1, 2, 4, 12.")
        super().__init__(rate, context)
        self.n = int(n)
        self.unit = unit
        self.settlement_days = int(settlement_days)
        self.calendar = calendar
        self.fixed_frequency = int(fixed_frequency)
        self.fixed_convention = fixed_convention
        self.fixed_day_count = fixed_day_count
        self.float_convention = float_convention
        self.fixed_dates: List[pd.Timestamp] = []
        self.float_end: Optional[pd.Timestamp] = None
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        start = settlement_date(self._context.evaluation_date, self.settlement_days, self.calendar)
        end = advance(start, self.n, self.unit, self.calendar, "UNADJUSTED")

        self.fixed_dates = schedule_dates(
            start, end, 12 // self.fixed_frequency, self.calendar, self.fixed_convention
        )
        self.float_end = adjust(end, self.float_convention, self.calendar)
        self.earliest_date = start
        self.maturity_date = max(self.fixed_dates[-1], self.float_end)

    def fixed_leg_bps(self, curve) -> float:
        """Annuity: PV of the fixed leg per unit rate."""
        dates = self.fixed_dates
        return sum(
            yearfrac(d0, d1, self.fixed_day_count) * curve.discount(d1)
            for d0, d1 in zip(dates[:-1], dates[1:])
        )

    def implied_quote(self, curve) -> float:
        floating = curve.discount(self.earliest_date) - curve.discount(self.float_end)
        return floating / self.fixed_leg_bps(curve)
