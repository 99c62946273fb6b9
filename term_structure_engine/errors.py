from __future__ import annotations

from typing import Optional

import pandas as pd


class CurveEngineError(Exception):
    """Base class for errors raised by the engine."""


class SolverError(CurveEngineError, RuntimeError):
    """Root finding failed: budget exhausted, no bracket, or divergence."""

    def __init__(self, message: str, max_evaluations: Optional[int] = None):
        super().__init__(message)
        self.max_evaluations = max_evaluations


class BootstrapError(CurveEngineError, RuntimeError):
    """The node of one rate helper could not be solved."""

    def __init__(self, index: int, maturity: pd.Timestamp, reason: str):
        super().__init__(
            f"Bootstrap failed at helper {index} (maturity {pd.Timestamp(maturity).date()}): {reason}"
        )
        self.index = index
        self.maturity = pd.Timestamp(maturity)


class ConfigurationError(CurveEngineError, ValueError):
    pass


class InvalidDateError(CurveEngineError, ValueError):
    pass


class EmptyHandleError(CurveEngineError, ValueError):
    pass
