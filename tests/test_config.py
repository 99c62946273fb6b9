import pytest

from term_structure_engine.config import BootstrapConfig, load_bootstrap_config
from term_structure_engine.errors import ConfigurationError
from term_structure_engine.solvers import Bisection, Brent


def test_defaults():
    cfg = BootstrapConfig()
    assert cfg.accuracy == 1e-12
    assert cfg.max_evaluations == 100
    solver = cfg.make_solver()
    assert isinstance(solver, Brent)
    assert solver.max_evaluations == 100


def test_invalid_values_raise():
    with pytest.raises(ConfigurationError):
        BootstrapConfig(accuracy=0.0)
    with pytest.raises(ConfigurationError):
        BootstrapConfig(max_evaluations=0)
    with pytest.raises(ConfigurationError):
        BootstrapConfig(solver="simplex")
    with pytest.raises(ConfigurationError):
        BootstrapConfig(min_forward=0.1, max_forward=0.1)


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigurationError):
        BootstrapConfig.from_mapping({"accuracy": 1e-10, "tolerance": 1e-8})


def test_load_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("bootstrap:\n  solver: bisection\n  accuracy: 1.0e-10\n  max_evaluations: 60\n", encoding="utf-8")

    cfg = load_bootstrap_config(path)
    assert cfg.solver == "bisection"
    assert cfg.accuracy == 1e-10
    solver = cfg.make_solver()
    assert isinstance(solver, Bisection)
    assert solver.max_evaluations == 60


def test_load_flat_yaml(tmp_path):
    path = tmp_path / "bootstrap.yaml"
    path.write_text("max_forward: 1.5\n", encoding="utf-8")
    assert load_bootstrap_config(path).max_forward == 1.5


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_bootstrap_config(tmp_path / "absent.yaml")
