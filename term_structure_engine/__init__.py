"""
Term Structure Engine

Modules:
- observable: Observable/Observer notification graph + relinkable Handle
- quotes: observable market values
- settings: explicit evaluation-date context
- solvers: 1-D root finders (bisection, Brent, secant, Newton, ...)
- curves: term structure base, flat-forward and node discount curves
- derived: implied, forward-spreaded and zero-spreaded curves
- ratehelpers: deposit/FRA/swap helpers quoting against a trial curve
- bootstrap: piecewise flat-forward bootstrapping
- config: bootstrap settings (YAML loadable)
- errors: exception hierarchy
- utils: day count, calendar and schedule helpers
"""
from .bootstrap import PiecewiseFlatForward
from .config import BootstrapConfig, load_bootstrap_config
from .curves import DiscountCurve, FlatForward, YieldTermStructure, nodes_report
from .derived import ForwardSpreadedTermStructure, ImpliedTermStructure, ZeroSpreadedTermStructure
from .errors import (
    BootstrapError,
    ConfigurationError,
    CurveEngineError,
    EmptyHandleError,
    InvalidDateError,
    SolverError,
)
from .observable import Handle, Observable, Observer
from .quotes import Quote, SimpleQuote
from .ratehelpers import DepositRateHelper, FraRateHelper, RateHelper, SwapRateHelper
from .settings import EvaluationContext
from .solvers import Bisection, Brent, FalsePosition, Newton, Ridder, Secant, Solver1D, make_solver
