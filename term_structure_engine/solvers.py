"""
1-D root finders sharing one contract.

Solver1D.solve handles bracketing (explicit or searched from a guess), the
evaluation budget and the bound checks. Each algorithm only supplies the
per-iteration update over a _SolverState.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type

from scipy.optimize import brentq

from .errors import SolverError

logger = logging.getLogger(__name__)

DEFAULT_ACCURACY = 1.0e-12
DEFAULT_MAX_EVALUATIONS = 100
GROWTH_FACTOR = 1.6

Objective = Callable[[float], float]


@dataclass
class _SolverState:
    x_min: float
    x_max: float
    fx_min: float
    fx_max: float
    root: float
    evaluations: int
    max_evaluations: int


def _sign(a: float, b: float) -> float:
    return abs(a) if b >= 0.0 else -abs(a)


class Solver1D:
    name = "solver"

    def __init__(
        self,
        max_evaluations: int = DEFAULT_MAX_EVALUATIONS,
        lower_bound: Optional[float] = None,
        upper_bound: Optional[float] = None,
    ):
        if int(max_evaluations) <= 0:
            raise ValueError("max_evaluations must be positive")
        if lower_bound is not None and upper_bound is not None and lower_bound > upper_bound:
            raise ValueError(f"lower bound ({lower_bound}) > upper bound ({upper_bound})")
        self.max_evaluations = int(max_evaluations)
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound

    def _enforce_bounds(self, x: float) -> float:
        if self.lower_bound is not None and x < self.lower_bound:
            return self.lower_bound
        if self.upper_bound is not None and x > self.upper_bound:
            return self.upper_bound
        return x

    def solve(
        self,
        f: Objective,
        accuracy: float,
        guess: Optional[float] = None,
        step: Optional[float] = None,
        x_min: Optional[float] = None,
        x_max: Optional[float] = None,
    ) -> float:
        """
        Find x with f(x) = 0 to within accuracy on x.

        Either pass the bracket (x_min, x_max), optionally with a guess inside
        it, or a guess and a step from which a bracket is searched.

        Raises
        ------
        SolverError
            No bracket, or more than max_evaluations evaluations of f.
        """
        if not accuracy > 0.0:
            raise ValueError(f"accuracy ({accuracy}) must be positive")
        # below machine epsilon the stopping rules can never trigger
        accuracy = max(accuracy, 2.2e-16)

        if x_min is not None or x_max is not None:
            if x_min is None or x_max is None:
                raise ValueError("both x_min and x_max are required for a bracketed solve")
            return self._solve_bracketed(f, accuracy, guess, float(x_min), float(x_max))

        if guess is None or step is None:
            raise ValueError("either a bracket or both guess and step are required")
        return self._solve_from_guess(f, accuracy, float(guess), float(step))

    def _solve_bracketed(self, f, accuracy, guess, x_min, x_max) -> float:
        if not x_min < x_max:
            raise ValueError(f"invalid range: x_min ({x_min}) >= x_max ({x_max})")
        if self.lower_bound is not None and x_min < self.lower_bound:
            raise ValueError(f"x_min ({x_min}) < enforced low bound ({self.lower_bound})")
        if self.upper_bound is not None and x_max > self.upper_bound:
            raise ValueError(f"x_max ({x_max}) > enforced hi bound ({self.upper_bound})")

        state = _SolverState(x_min, x_max, 0.0, 0.0, x_min, 0, self.max_evaluations)
        state.fx_min = self._evaluate(f, x_min, state)
        if state.fx_min == 0.0:
            return x_min
        state.fx_max = self._evaluate(f, x_max, state)
        if state.fx_max == 0.0:
            return x_max

        if state.fx_min * state.fx_max > 0.0:
            raise SolverError(
                f"root not bracketed: f[{x_min}, {x_max}] -> [{state.fx_min}, {state.fx_max}]"
            )

        if guess is None:
            guess = 0.5 * (x_min + x_max)
        if not x_min <= guess <= x_max:
            raise ValueError(f"guess ({guess}) not in [{x_min}, {x_max}]")

        state.root = float(guess)
        return self._solve_impl(f, accuracy, state)

    def _solve_from_guess(self, f, accuracy, guess, step) -> float:
        root = guess
        fx_max = f(root)
        evaluations = 1
        if fx_max == 0.0:
            return root

        x_min, fx_min, x_max = root, fx_max, root
        if evaluations < self.max_evaluations:
            if fx_max > 0.0:
                x_min = self._enforce_bounds(root - step)
                fx_min = f(x_min)
            else:
                x_max = self._enforce_bounds(root + step)
                fx_max = f(x_max)
            evaluations += 1

            while True:
                if fx_min * fx_max <= 0.0:
                    if fx_min == 0.0:
                        return x_min
                    if fx_max == 0.0:
                        return x_max
                    logger.debug(
                        "%s bracketed root in [%g, %g] after %d evaluations", self.name, x_min, x_max, evaluations
                    )
                    state = _SolverState(
                        x_min, x_max, fx_min, fx_max, 0.5 * (x_min + x_max), evaluations, self.max_evaluations
                    )
                    return self._solve_impl(f, accuracy, state)

                if evaluations >= self.max_evaluations:
                    break
                if abs(fx_min) < abs(fx_max):
                    x_min = self._enforce_bounds(x_min + GROWTH_FACTOR * (x_min - x_max))
                    fx_min = f(x_min)
                else:
                    x_max = self._enforce_bounds(x_max + GROWTH_FACTOR * (x_max - x_min))
                    fx_max = f(x_max)
                evaluations += 1

        raise SolverError(
            f"unable to bracket root in {self.max_evaluations} function evaluations "
            f"(last bracket attempt: f[{x_min}, {x_max}] -> [{fx_min}, {fx_max}])",
            self.max_evaluations,
        )

    def _solve_impl(self, f: Objective, accuracy: float, state: _SolverState) -> float:
        raise NotImplementedError

    def _evaluate(self, f: Objective, x: float, state: _SolverState) -> float:
        """f(x), counted against the budget; raises before the call that would exceed it."""
        if state.evaluations >= state.max_evaluations:
            raise self._budget_exceeded(state)
        state.evaluations += 1
        return f(x)

    @staticmethod
    def _update_bracket(state: _SolverState, x: float, fx: float) -> None:
        if (fx < 0.0) == (state.fx_min < 0.0):
            state.x_min, state.fx_min = x, fx
        else:
            state.x_max, state.fx_max = x, fx

    @staticmethod
    def _budget_exceeded(state: _SolverState) -> SolverError:
        return SolverError(
            f"maximum number of function evaluations ({state.max_evaluations}) exceeded",
            state.max_evaluations,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(max_evaluations={self.max_evaluations})"


class Bisection(Solver1D):
    name = "bisection"

    def _solve_impl(self, f, accuracy, state):
        # orient the search so that f > 0 lies at root + dx
        if state.fx_min < 0.0:
            dx = state.x_max - state.x_min
            root = state.x_min
        else:
            dx = state.x_min - state.x_max
            root = state.x_max

        while True:
            dx /= 2.0
            x_mid = root + dx
            f_mid = self._evaluate(f, x_mid, state)
            if f_mid <= 0.0:
                root = x_mid
            if abs(dx) < accuracy or f_mid == 0.0:
                return root


class Secant(Solver1D):
    """
    Secant iteration kept inside the bracket: a step that would leave the
    current bracket is replaced by its midpoint.
    """

    name = "secant"

    def _solve_impl(self, f, accuracy, state):
        # start from the endpoint with the smaller residual
        if abs(state.fx_min) < abs(state.fx_max):
            root, froot = state.x_min, state.fx_min
            xl, fl = state.x_max, state.fx_max
        else:
            root, froot = state.x_max, state.fx_max
            xl, fl = state.x_min, state.fx_min

        while True:
            lo, hi = sorted((state.x_min, state.x_max))
            x_new = None
            if froot != fl:
                x_new = root + (xl - root) * froot / (froot - fl)
            if x_new is None or not lo < x_new < hi:
                x_new = 0.5 * (lo + hi)

            dx = x_new - root
            xl, fl = root, froot
            root = x_new
            froot = self._evaluate(f, root, state)
            if abs(dx) < accuracy or froot == 0.0:
                return root
            self._update_bracket(state, root, froot)


class FalsePosition(Solver1D):
    """Regula falsi with the Illinois modification against one-sided stalling."""

    name = "false_position"

    def _solve_impl(self, f, accuracy, state):
        if state.fx_min < 0.0:
            xl, fl = state.x_min, state.fx_min
            xh, fh = state.x_max, state.fx_max
        else:
            xl, fl = state.x_max, state.fx_max
            xh, fh = state.x_min, state.fx_min

        previous = None
        side = 0
        while True:
            root = xl + (xh - xl) * fl / (fl - fh)
            froot = self._evaluate(f, root, state)
            if froot == 0.0:
                return root
            if previous is not None and abs(root - previous) < accuracy:
                return root
            previous = root

            if froot < 0.0:
                xl, fl = root, froot
                if side == -1:
                    fh /= 2.0
                side = -1
            else:
                xh, fh = root, froot
                if side == 1:
                    fl /= 2.0
                side = 1


class Ridder(Solver1D):
    name = "ridder"

    def _solve_impl(self, f, accuracy, state):
        # Ridder tends to deliver less than the requested accuracy
        x_accuracy = accuracy / 100.0
        root = -math.inf

        while True:
            x_mid = 0.5 * (state.x_min + state.x_max)
            fx_mid = self._evaluate(f, x_mid, state)
            s = math.sqrt(fx_mid * fx_mid - state.fx_min * state.fx_max)
            if s == 0.0:
                return root
            direction = 1.0 if state.fx_min >= state.fx_max else -1.0
            next_root = x_mid + (x_mid - state.x_min) * direction * fx_mid / s
            if abs(next_root - root) <= x_accuracy:
                return root

            root = next_root
            froot = self._evaluate(f, root, state)
            if froot == 0.0:
                return root

            if _sign(fx_mid, froot) != fx_mid:
                state.x_min, state.fx_min = x_mid, fx_mid
                state.x_max, state.fx_max = root, froot
            elif _sign(state.fx_min, froot) != state.fx_min:
                state.x_max, state.fx_max = root, froot
            elif _sign(state.fx_max, froot) != state.fx_max:
                state.x_min, state.fx_min = root, froot
            else:
                raise SolverError("Ridder lost the bracket")

            if abs(state.x_max - state.x_min) <= x_accuracy:
                return root


class Newton(Solver1D):
    """
    Newton-Raphson; the objective must expose derivative(x).

    A step that leaves the current bracket, or that does not shrink fast
    enough, is replaced by a bisection step.
    """

    name = "newton"

    def _solve_impl(self, f, accuracy, state):
        derivative = getattr(f, "derivative", None)
        if derivative is None:
            raise SolverError("Newton solver requires an objective with a derivative(x) method")

        # orient so that f(xl) < 0
        if state.fx_min < 0.0:
            xl, xh = state.x_min, state.x_max
        else:
            xl, xh = state.x_max, state.x_min

        root = state.root
        froot = self._evaluate(f, root, state)
        dfroot = derivative(root)
        dx_old = dx = abs(state.x_max - state.x_min)

        while True:
            newton_ok = (
                dfroot != 0.0
                and ((root - xh) * dfroot - froot) * ((root - xl) * dfroot - froot) < 0.0
                and abs(2.0 * froot) <= abs(dx_old * dfroot)
            )
            dx_old = dx
            if newton_ok:
                dx = froot / dfroot
                root -= dx
            else:
                dx = 0.5 * (xh - xl)
                root = xl + dx
            if abs(dx) < accuracy:
                return root

            froot = self._evaluate(f, root, state)
            if froot == 0.0:
                return root
            dfroot = derivative(root)
            if froot < 0.0:
                xl = root
            else:
                xh = root


class Brent(Solver1D):
    """Brent's method through scipy.optimize.brentq on the current bracket."""

    name = "brent"

    def _solve_impl(self, f, accuracy, state):
        # brentq evaluates both endpoints again before iterating
        max_iterations = state.max_evaluations - state.evaluations - 2
        if max_iterations < 1:
            raise self._budget_exceeded(state)

        root, result = brentq(
            f,
            state.x_min,
            state.x_max,
            xtol=accuracy,
            maxiter=max_iterations,
            full_output=True,
            disp=False,
        )
        state.evaluations += result.function_calls
        if not result.converged:
            raise self._budget_exceeded(state)
        return float(root)


SOLVERS: Dict[str, Type[Solver1D]] = {
    cls.name: cls for cls in (Bisection, Brent, Secant, Newton, FalsePosition, Ridder)
}


def make_solver(name: str, **kwargs) -> Solver1D:
    """Instantiate a solver by name, e.g. make_solver("bisection", max_evaluations=50)."""
    key = name.lower().replace("-", "_").replace(" ", "_")
    if key not in SOLVERS:
        raise ValueError(f"Unknown solver '{name}'. Available: {sorted(SOLVERS)}")
    return SOLVERS[key](**kwargs)
