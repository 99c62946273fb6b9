import math

import numpy as np
import pandas as pd
import pytest

from term_structure_engine.bootstrap import PiecewiseFlatForward
from term_structure_engine.curves import DiscountCurve, FlatForward, YieldTermStructure, nodes_report
from term_structure_engine.derived import (
    ForwardSpreadedTermStructure,
    ImpliedTermStructure,
    ZeroSpreadedTermStructure,
)
from term_structure_engine.errors import ConfigurationError, EmptyHandleError, InvalidDateError
from term_structure_engine.observable import Handle, Observer
from term_structure_engine.quotes import SimpleQuote
from term_structure_engine.ratehelpers import DepositRateHelper, SwapRateHelper
from term_structure_engine.settings import EvaluationContext
from term_structure_engine.utils import advance

CALENDAR = "WEEKENDS"
SETTLEMENT_DAYS = 2


class Flag(Observer):
    def __init__(self):
        super().__init__()
        self.count = 0

    def update(self):
        self.count += 1


@pytest.fixture(scope="module")
def today():
    return pd.Timestamp("2026-02-13")


@pytest.fixture(scope="module")
def context(today):
    return EvaluationContext(today)


@pytest.fixture(scope="module")
def term_structure(context):
    deposits = [(1, 4.581), (2, 4.573), (3, 4.557), (6, 4.496), (9, 4.490)]
    swaps = [(1, 4.54), (5, 4.99), (10, 5.47), (20, 5.89), (30, 5.96)]

    helpers = [
        DepositRateHelper(rate / 100, n, "M", SETTLEMENT_DAYS, CALENDAR, context=context)
        for n, rate in deposits
    ] + [
        SwapRateHelper(rate / 100, n, "Y", SETTLEMENT_DAYS, CALENDAR, context=context)
        for n, rate in swaps
    ]
    settlement = advance(context.evaluation_date, SETTLEMENT_DAYS, "D", CALENDAR)
    return PiecewiseFlatForward(helpers, "ACT/360", reference_date=settlement)


def test_discount_at_reference_date_is_one(term_structure):
    me = SimpleQuote(0.01)
    new_settlement = term_structure.reference_date + pd.DateOffset(years=3)
    curves = [
        term_structure,
        FlatForward(0.03, "ACT/360", reference_date=term_structure.reference_date),
        ImpliedTermStructure(Handle(term_structure), new_settlement),
        ForwardSpreadedTermStructure(Handle(term_structure), me),
        ZeroSpreadedTermStructure(Handle(term_structure), me),
    ]
    for curve in curves:
        assert curve.discount(curve.reference_date) == 1.0
        assert curve.discount(0.0) == 1.0


def test_reference_date_change():
    context = EvaluationContext(pd.Timestamp("2026-02-13"))
    curve = FlatForward(0.03, "ACT/360", context=context, settlement_days=SETTLEMENT_DAYS)
    today = context.evaluation_date
    days = [10, 30, 60, 120, 360, 720]

    expected = [curve.discount(today + pd.Timedelta(days=d)) for d in days]
    context.evaluation_date = today + pd.Timedelta(days=30)
    calculated = [curve.discount(today + pd.Timedelta(days=30 + d)) for d in days]

    assert curve.reference_date == today + pd.Timedelta(days=32)
    np.testing.assert_allclose(calculated, expected, rtol=0.0, atol=1e-12)


def test_implied(term_structure, today):
    tolerance = 1.0e-10
    new_today = today + pd.DateOffset(years=3)
    new_settlement = advance(new_today, SETTLEMENT_DAYS, "D", CALENDAR)
    test_date = new_settlement + pd.DateOffset(years=5)

    implied = ImpliedTermStructure(Handle(term_structure), new_settlement)
    base_discount = term_structure.discount(new_settlement)
    discount = term_structure.discount(test_date)
    implied_discount = implied.discount(test_date)

    assert abs(discount - base_discount * implied_discount) <= tolerance, (
        f"unable to reproduce discount from implied curve: "
        f"calculated {base_discount * implied_discount:.10f}, expected {discount:.10f}"
    )
    assert implied.reference_date == new_settlement
    assert implied.instantaneous_forward(test_date) == pytest.approx(
        term_structure.instantaneous_forward(test_date), abs=1e-12
    )


def test_implied_composition_under_30_360():
    base = FlatForward(0.05, "30/360", reference_date=pd.Timestamp("2026-01-15"))
    new_reference = pd.Timestamp("2026-01-31")
    implied = ImpliedTermStructure(Handle(base), new_reference)

    for test_date in (pd.Timestamp("2026-02-28"), pd.Timestamp("2026-03-31"), pd.Timestamp("2031-01-31")):
        composed = base.discount(new_reference) * implied.discount(test_date)
        assert abs(base.discount(test_date) - composed) <= 1.0e-10, f"composition fails on {test_date.date()}"

        t = implied.time_from_reference(test_date)
        assert implied.zero_yield(test_date) == pytest.approx(-math.log(implied.discount(test_date)) / t, abs=1e-14)
        assert implied.instantaneous_forward(test_date) == pytest.approx(0.05, abs=1e-14)


def test_implied_observability(term_structure, today):
    new_settlement = advance(today + pd.DateOffset(years=3), SETTLEMENT_DAYS, "D", CALENDAR)
    h = Handle()
    implied = ImpliedTermStructure(h, new_settlement)
    flag = Flag()
    flag.register_with(implied)

    h.link_to(term_structure)
    assert flag.count == 1, "Observer was not notified of term structure change"


def test_forward_spreaded(term_structure):
    tolerance = 1.0e-10
    me = SimpleQuote(0.01)
    spreaded = ForwardSpreadedTermStructure(Handle(term_structure), Handle(me))
    test_date = term_structure.reference_date + pd.DateOffset(years=5)

    forward = term_structure.instantaneous_forward(test_date)
    spreaded_forward = spreaded.instantaneous_forward(test_date)
    assert abs(forward - (spreaded_forward - me.value())) <= tolerance

    zero = term_structure.zero_yield(test_date)
    assert abs(zero - (spreaded.zero_yield(test_date) - me.value())) <= tolerance


def test_forward_spreaded_observability(term_structure):
    me = SimpleQuote(0.01)
    h = Handle()
    spreaded = ForwardSpreadedTermStructure(h, Handle(me))
    flag = Flag()
    flag.register_with(spreaded)

    h.link_to(term_structure)
    assert flag.count == 1, "Observer was not notified of term structure change"

    flag.count = 0
    me.set_value(0.005)
    assert flag.count == 1, "Observer was not notified of spread change"


def test_zero_spreaded(term_structure):
    tolerance = 1.0e-10
    me = SimpleQuote(0.01)
    spreaded = ZeroSpreadedTermStructure(Handle(term_structure), Handle(me))
    test_date = term_structure.reference_date + pd.DateOffset(years=5)

    zero = term_structure.zero_yield(test_date)
    spreaded_zero = spreaded.zero_yield(test_date)
    assert abs(zero - (spreaded_zero - me.value())) <= tolerance

    t = term_structure.time_from_reference(test_date)
    assert spreaded.discount(test_date) == pytest.approx(math.exp(-spreaded_zero * t), abs=1e-14)


def test_zero_spreaded_observability(term_structure):
    me = SimpleQuote(0.01)
    h = Handle()
    spreaded = ZeroSpreadedTermStructure(h, me)
    flag = Flag()
    flag.register_with(spreaded)

    h.link_to(term_structure)
    assert flag.count == 1, "Observer was not notified of term structure change"

    flag.count = 0
    me.set_value(0.005)
    assert flag.count == 1, "Observer was not notified of spread change"


def test_spread_change_reaches_values(term_structure):
    me = SimpleQuote(0.01)
    spreaded = ZeroSpreadedTermStructure(Handle(term_structure), me)
    test_date = term_structure.reference_date + pd.DateOffset(years=2)

    before = spreaded.discount(test_date)
    me.set_value(0.02)
    after = spreaded.discount(test_date)

    t = term_structure.time_from_reference(test_date)
    assert after == pytest.approx(before * math.exp(-0.01 * t), rel=1e-12)


def test_relinking_reaches_derived_values():
    ref = pd.Timestamp("2026-02-17")
    h = Handle(FlatForward(0.03, "ACT/365", reference_date=ref))
    spreaded = ForwardSpreadedTermStructure(h, 0.01)
    test_date = ref + pd.DateOffset(years=4)

    assert spreaded.zero_yield(test_date) == pytest.approx(0.04, abs=1e-12)
    h.link_to(FlatForward(0.05, "ACT/365", reference_date=ref))
    assert spreaded.zero_yield(test_date) == pytest.approx(0.06, abs=1e-12)


def test_chained_derived_curves_propagate(term_structure):
    me = SimpleQuote(0.01)
    base = Handle()
    spreaded = ZeroSpreadedTermStructure(base, me)
    implied = ImpliedTermStructure(spreaded, term_structure.reference_date + pd.DateOffset(years=1))
    flag = Flag()
    flag.register_with(implied)

    base.link_to(term_structure)
    me.set_value(0.02)
    assert flag.count == 2


def test_empty_handle_query_raises():
    spreaded = ForwardSpreadedTermStructure(Handle(), 0.01)
    with pytest.raises(EmptyHandleError):
        spreaded.discount(1.0)


def test_quote_change_clears_cache():
    ref = pd.Timestamp("2026-02-17")
    rate = SimpleQuote(0.03)
    curve = FlatForward(rate, "ACT/365", reference_date=ref)
    test_date = ref + pd.Timedelta(days=365)

    assert curve.discount(test_date) == pytest.approx(math.exp(-0.03), abs=1e-15)
    rate.set_value(0.04)
    assert curve.discount(test_date) == pytest.approx(math.exp(-0.04), abs=1e-15)


def test_dates_outside_range_raise(term_structure):
    with pytest.raises(InvalidDateError):
        term_structure.discount(term_structure.reference_date - pd.Timedelta(days=1))
    with pytest.raises(InvalidDateError):
        term_structure.zero_yield(term_structure.max_date + pd.Timedelta(days=1))
    with pytest.raises(InvalidDateError):
        term_structure.instantaneous_forward(-0.5)


def test_extrapolation_flag():
    ref = pd.Timestamp("2026-02-17")
    curve = DiscountCurve([ref, ref + pd.Timedelta(days=365)], [1.0, math.exp(-0.05)], "ACT/365")
    beyond = ref + pd.Timedelta(days=730)

    with pytest.raises(InvalidDateError):
        curve.discount(beyond)
    curve.enable_extrapolation()
    assert curve.discount(beyond) == pytest.approx(math.exp(-0.10), rel=1e-12)


def test_discount_curve_is_flat_forward_between_nodes():
    ref = pd.Timestamp("2026-02-17")
    dates = [ref, ref + pd.Timedelta(days=365), ref + pd.Timedelta(days=730)]
    curve = DiscountCurve(dates, [1.0, math.exp(-0.02), math.exp(-0.05)], "ACT/365")

    assert curve.instantaneous_forward(0.5) == pytest.approx(0.02, abs=1e-12)
    assert curve.instantaneous_forward(1.5) == pytest.approx(0.03, abs=1e-12)
    assert curve.discount(1.5) == pytest.approx(math.exp(-0.02 - 0.03 * 0.5), rel=1e-12)
    assert curve.zero_yield(2.0) == pytest.approx(0.025, abs=1e-12)


def test_discount_curve_rejects_bad_nodes():
    ref = pd.Timestamp("2026-02-17")
    with pytest.raises(ConfigurationError):
        DiscountCurve([ref], [1.0])
    with pytest.raises(ConfigurationError):
        DiscountCurve([ref, ref], [1.0, 0.99])
    with pytest.raises(ConfigurationError):
        DiscountCurve([ref, ref + pd.Timedelta(days=10)], [0.99, 0.98])
    with pytest.raises(ConfigurationError):
        DiscountCurve([ref, ref + pd.Timedelta(days=10)], [1.0, -0.5])


def test_finite_difference_forward_matches_closed_form():
    class ExponentialCurve(YieldTermStructure):
        def _discount_impl(self, t):
            return math.exp(-0.04 * t - 0.001 * t * t)

    curve = ExponentialCurve("ACT/365", reference_date=pd.Timestamp("2026-02-17"))
    for t in (0.0, 1.0, 7.5):
        assert curve.instantaneous_forward(t) == pytest.approx(0.04 + 0.002 * t, abs=1e-6)
    assert curve.zero_yield(2.0) == pytest.approx(0.04 + 0.002, abs=1e-12)


def test_nodes_report_flags(term_structure):
    qc = nodes_report(term_structure.discount_curve())
    assert len(qc) == len(term_structure.helpers()) + 1
    assert qc["df_positive"].all()
    assert qc["df_monotone"].all()
    assert np.isfinite(qc["zero_cc"]).all()
    assert qc["time"].iloc[0] == 0.0
