from __future__ import annotations

import pathlib
from dataclasses import dataclass, fields
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .solvers import DEFAULT_ACCURACY, DEFAULT_MAX_EVALUATIONS, SOLVERS, Solver1D, make_solver


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Numerical knobs of the piecewise bootstrap.

    Parameters
    ----------
    accuracy : float
        Target accuracy on each solved discount factor (default 1e-12).
    max_evaluations : int
        Objective evaluations allowed per node (default 100).
    solver : str
        Root finder name, see solvers.SOLVERS (default "brent").
    min_forward, max_forward : float
        Continuously compounded forward range spanned by the search bracket
        of each node.
    """
    accuracy: float = DEFAULT_ACCURACY
    max_evaluations: int = DEFAULT_MAX_EVALUATIONS
    solver: str = "brent"
    min_forward: float = -0.5
    max_forward: float = 2.0

    def __post_init__(self):
        # YAML reads "1e-12" as a string
        try:
            for name in ("accuracy", "min_forward", "max_forward"):
                object.__setattr__(self, name, float(getattr(self, name)))
            object.__setattr__(self, "max_evaluations", int(self.max_evaluations))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid bootstrap setting: {exc}") from exc

        if not self.accuracy > 0.0:
            raise ConfigurationError(f"accuracy must be positive, got {self.accuracy}")
        if int(self.max_evaluations) <= 0:
            raise ConfigurationError(f"max_evaluations must be positive, got {self.max_evaluations}")
        if self.solver.lower().replace("-", "_").replace(" ", "_") not in SOLVERS:
            raise ConfigurationError(f"Unknown solver '{self.solver}'. Available: {sorted(SOLVERS)}")
        if not self.min_forward < self.max_forward:
            raise ConfigurationError("min_forward must be below max_forward")

    def make_solver(self, lower_bound=None, upper_bound=None) -> Solver1D:
        return make_solver(
            self.solver,
            max_evaluations=int(self.max_evaluations),
            lower_bound=lower_bound,
            upper_bound=upper_bound,
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "BootstrapConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise ConfigurationError(f"Unknown bootstrap settings: {sorted(unknown)}")
        return cls(**dict(mapping))


def load_bootstrap_config(path: str | pathlib.Path) -> BootstrapConfig:
    """
    Read a BootstrapConfig from YAML. Settings may sit at the top level or
    under a 'bootstrap' key. Raises FileNotFoundError if the file is absent.
    """
    p = pathlib.Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, Mapping):
        raise ConfigurationError(f"Expected a mapping in {p}")
    if "bootstrap" in cfg:
        cfg = cfg["bootstrap"] or {}
    return BootstrapConfig.from_mapping(cfg)
