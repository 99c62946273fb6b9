from __future__ import annotations

import pandas as pd
from typing import Optional

from .observable import Observable
from .utils import to_timestamp


class EvaluationContext(Observable):
    """
    Explicit "today" for curve construction and instrument settlement.

    Curves and rate helpers that move with the evaluation date register with
    the context they are given; changing the date notifies them.
    """

    def __init__(self, evaluation_date: Optional[pd.Timestamp] = None):
        super().__init__()
        if evaluation_date is None:
            evaluation_date = pd.Timestamp.today()
        self._evaluation_date = to_timestamp(evaluation_date)

    @property
    def evaluation_date(self) -> pd.Timestamp:
        return self._evaluation_date

    @evaluation_date.setter
    def evaluation_date(self, d) -> None:
        d = to_timestamp(d)
        if d != self._evaluation_date:
            self._evaluation_date = d
            self.notify_observers()

    def __repr__(self) -> str:
        return f"EvaluationContext({self._evaluation_date.date()})"
