from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from .config import BootstrapConfig
from .curves import DiscountCurve, YieldTermStructure
from .errors import BootstrapError, ConfigurationError, SolverError
from .ratehelpers import RateHelper
from .settings import EvaluationContext

logger = logging.getLogger(__name__)

# relative bump of the finite-difference derivative handed to Newton
DERIVATIVE_BUMP = 1.0e-6


class _NodeObjective:
    """Quote error of one helper as a function of the last node's discount factor."""

    def __init__(self, trial: DiscountCurve, helper: RateHelper, quote: float):
        self.trial = trial
        self.helper = helper
        self.quote = quote

    def __call__(self, df: float) -> float:
        self.trial._set_last_discount(df)
        return self.helper.implied_quote(self.trial) - self.quote

    def derivative(self, df: float) -> float:
        h = DERIVATIVE_BUMP * df
        up = self(df + h)
        down = self(df - h)
        self.trial._set_last_discount(df)
        return (up - down) / (2.0 * h)


class PiecewiseFlatForward(YieldTermStructure):
    """
    Discount curve bootstrapped from rate helpers, flat forwards between nodes.

    One node per helper, at its maturity, solved in increasing maturity
    order so that the helper reprices its quote. Earlier nodes are never
    revisited.

    The curve observes its helpers: a quote or evaluation date change drops
    the fitted nodes and the next query bootstraps again.
    """

    def __init__(
        self,
        helpers: Iterable[RateHelper],
        day_count: str = "ACT/365",
        reference_date: Optional[pd.Timestamp] = None,
        context: Optional[EvaluationContext] = None,
        settlement_days: int = 0,
        calendar: Optional[str] = None,
        config: Optional[BootstrapConfig] = None,
        allow_extrapolation: bool = False,
    ):
        super().__init__(day_count, reference_date, context, settlement_days, calendar, allow_extrapolation)
        self._helpers: List[RateHelper] = list(helpers)
        self.config = config if config is not None else BootstrapConfig()
        for helper in self._helpers:
            self.register_with(helper)
        self._curve: Optional[DiscountCurve] = self._bootstrap()

    def helpers(self) -> List[RateHelper]:
        return list(self._helpers)

    def discount_curve(self) -> DiscountCurve:
        """Fitted node curve, bootstrapping first if inputs changed."""
        if self._curve is None:
            self._curve = self._bootstrap()
        return self._curve

    def nodes(self) -> List[Tuple[pd.Timestamp, float]]:
        return self.discount_curve().nodes()

    @property
    def max_date(self) -> pd.Timestamp:
        return self.discount_curve().max_date

    def _validate(self, reference: pd.Timestamp) -> None:
        if not self._helpers:
            raise ConfigurationError("No rate helpers given.")

        previous = None
        for i, helper in enumerate(self._helpers):
            maturity = helper.maturity_date
            if helper.earliest_date < reference:
                raise ConfigurationError(
                    f"helper {i} starts on {helper.earliest_date.date()}, before reference date {reference.date()}"
                )
            if maturity <= reference:
                raise ConfigurationError(
                    f"helper {i} matures on {maturity.date()}, not after reference date {reference.date()}"
                )
            if previous is not None and maturity <= previous:
                raise ConfigurationError(
                    f"helper {i} maturity ({maturity.date()}) not after helper {i - 1} maturity ({previous.date()})"
                )
            previous = maturity

    def _bootstrap(self) -> DiscountCurve:
        reference = self.reference_date
        self._validate(reference)

        cfg = self.config
        dates = [reference]
        discounts = [1.0]
        curve = None

        for i, helper in enumerate(self._helpers):
            maturity = helper.maturity_date
            quote = helper.quote()
            previous_df = discounts[-1]

            trial = DiscountCurve(dates + [maturity], discounts + [previous_df], self.day_count, allow_extrapolation=True)
            times = trial.times()
            dt = times[-1] - times[-2]

            x_min = previous_df * math.exp(-cfg.max_forward * dt)
            x_max = previous_df * math.exp(-cfg.min_forward * dt)
            solver = cfg.make_solver(lower_bound=x_min, upper_bound=x_max)

            try:
                df = solver.solve(_NodeObjective(trial, helper, quote), cfg.accuracy, x_min=x_min, x_max=x_max)
            except SolverError as exc:
                raise BootstrapError(i, maturity, str(exc)) from exc

            trial._set_last_discount(df)
            dates.append(maturity)
            discounts.append(df)
            curve = trial
            logger.debug("node %d: %s DF=%.12f (%s)", i, maturity.date(), df, type(helper).__name__)

        logger.info("Bootstrapped %d nodes from %s to %s", len(self._helpers), reference.date(), dates[-1].date())
        return curve

    def _discount_impl(self, t: float) -> float:
        return self.discount_curve()._discount_impl(t)

    def _zero_yield_impl(self, t: float) -> float:
        return self.discount_curve()._zero_yield_impl(t)

    def _forward_impl(self, t: float) -> float:
        return self.discount_curve()._forward_impl(t)

    def update(self) -> None:
        self._curve = None
        super().update()
