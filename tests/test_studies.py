import json
import sys
from pathlib import Path
from typing import Any, Dict, List

sys.path.insert(0, 'src')

import numpy as np
import pandas as pd
import pytest

from stickslip_simulator.studies import get_by_path, parse_floats_csv, set_by_path
from stickslip_simulator.studies.convergence import run_convergence_study
from stickslip_simulator.studies.sweep import run_parameter_sweep


def _fake_run(n: int, slider_nm: float) -> pd.DataFrame:
    df = pd.DataFrame(
        {
            "Mode": ["static"] * (n - 1) + ["kinetic"],
            "Slider_Position_m": np.linspace(0.0, slider_nm * 1e-9, n),
            "Piezo_Position_m": np.zeros(n),
            "Piezo_Velocity_m_s": np.zeros(n),
            "Slider_Velocity_m_s": np.full(n, 1e-6),
            "Relative_Velocity_m_s": np.full(n, 1e-6),
            "E_shadow_J": np.full(n, 2.0),
        }
    )
    df.attrs["saturated"] = False
    return df


# ----------------------------------------------------------------------
# Path helpers
# ----------------------------------------------------------------------


def test_set_by_path_creates_nested_dicts_and_copies() -> None:
    cfg: Dict[str, Any] = {"actuator": {"preset_id": "reference"}}
    out = set_by_path(cfg, "actuator.mu_k", 0.3)
    assert out == {"actuator": {"preset_id": "reference", "mu_k": 0.3}}
    assert cfg == {"actuator": {"preset_id": "reference"}}

    out = set_by_path({}, "run.dt_s", 1e-7)
    assert out == {"run": {"dt_s": 1e-7}}


def test_set_and_get_by_list_index() -> None:
    cfg = {"tags": ["a", "b"]}
    out = set_by_path(cfg, "tags[1]", "c")
    assert get_by_path(out, "tags[1]") == "c"
    with pytest.raises(IndexError):
        set_by_path(cfg, "tags[5]", "x")


def test_bad_paths() -> None:
    with pytest.raises(ValueError):
        set_by_path({}, "actuator..mu_k", 1.0)
    with pytest.raises(KeyError):
        get_by_path({"run": {}}, "run.dt_s")


def test_parse_floats_csv() -> None:
    assert parse_floats_csv("1e-5, 1e-4 1e-3") == [1e-5, 1e-4, 1e-3]
    assert parse_floats_csv("") == []


# ----------------------------------------------------------------------
# Sweep
# ----------------------------------------------------------------------


def test_parameter_sweep_runs_full_product(tmp_path: Path) -> None:
    seen: List[Dict[str, Any]] = []

    def fake_simulation(cfg: Dict[str, Any]) -> pd.DataFrame:
        seen.append(cfg)
        return _fake_run(10, 100.0 * cfg["actuator"]["mu_k"])

    axes = {"actuator.mu_k": [0.3, 0.4], "actuator.gravity": ["up", "down"]}
    summary = run_parameter_sweep(
        {"run": {"n_steps": 10}}, axes, out_dir=tmp_path, simulate_func=fake_simulation
    )

    assert len(summary) == 4
    assert len(seen) == 4
    assert all(cfg["run"] == {"n_steps": 10} for cfg in seen)
    assert list(summary.columns[:2]) == ["actuator.mu_k", "actuator.gravity"]
    np.testing.assert_allclose(summary["final_slider_position_nm"], [30.0, 30.0, 40.0, 40.0])
    assert summary["kinetic_fraction"].iloc[0] == pytest.approx(0.1)

    assert (tmp_path / "sweep_summary.csv").is_file()
    assert (tmp_path / "config_overrides.yml").is_file()
    meta = json.loads((tmp_path / "run_metadata.json").read_text(encoding="utf-8"))
    assert meta["study_type"] == "parameter_sweep"
    assert meta["n_runs"] == 4


def test_parameter_sweep_requires_axes() -> None:
    with pytest.raises(ValueError):
        run_parameter_sweep({}, {}, simulate_func=lambda cfg: _fake_run(2, 0.0))
    with pytest.raises(ValueError):
        run_parameter_sweep({}, {"actuator.mu_k": []}, simulate_func=lambda cfg: _fake_run(2, 0.0))


# ----------------------------------------------------------------------
# Convergence
# ----------------------------------------------------------------------


def test_convergence_study_scales_steps_with_dt(tmp_path: Path) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_simulation(cfg: Dict[str, Any]) -> pd.DataFrame:
        calls.append(cfg)
        dt = cfg["run"]["dt_s"]
        return _fake_run(cfg["run"]["n_steps"], 100.0 + 1e8 * dt)

    summary = run_convergence_study(
        {}, [5e-7, 1e-6], duration_s=1e-4, out_dir=tmp_path, simulate_func=fake_simulation
    )

    assert list(summary["dt_s"]) == [1e-6, 5e-7]
    assert list(summary["n_steps"]) == [100, 200]
    assert [c["run"]["n_steps"] for c in calls] == [100, 200]
    assert calls[0]["actuator"] == {"preset_id": "reference"}

    assert pd.isna(summary["relative_change_slider_pct"].iloc[0])
    assert summary["relative_change_slider_pct"].iloc[1] == pytest.approx(100.0 * 50.0 / 200.0)
    assert summary["shadow_energy_J_final"].iloc[0] == 2.0
    assert (tmp_path / "convergence_summary.csv").is_file()


def test_convergence_duration_defaults_to_config_span() -> None:
    calls: List[Dict[str, Any]] = []

    def fake_simulation(cfg: Dict[str, Any]) -> pd.DataFrame:
        calls.append(cfg)
        return _fake_run(cfg["run"]["n_steps"], 1.0)

    run_convergence_study({"run": {"n_steps": 300}}, [2e-6], simulate_func=fake_simulation)
    assert calls[0]["run"]["n_steps"] == 150


def test_convergence_rejects_bad_dt() -> None:
    with pytest.raises(ValueError):
        run_convergence_study({}, [], simulate_func=lambda cfg: _fake_run(2, 0.0))
    with pytest.raises(ValueError):
        run_convergence_study({}, [0.0], simulate_func=lambda cfg: _fake_run(2, 0.0))
