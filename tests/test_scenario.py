"""
End-to-end runs of the reference actuator driven by one stick-slip pulse.
"""

import sys
sys.path.insert(0, 'src')

import numpy as np
import pandas as pd
import pytest

from stickslip_simulator.config.waveforms import constant
from stickslip_simulator.core.engine import (
    SimulationParams,
    StickSlipSimulator,
    get_default_simulation_params,
    run_simulation,
    summarize_run,
)
from stickslip_simulator.core.state import ActuatorParams, SimulationState


@pytest.fixture(scope="module")
def reference_run() -> pd.DataFrame:
    return run_simulation()


def test_default_params_describe_reference_pulse() -> None:
    cfg = get_default_simulation_params()
    assert cfg["actuator"] == {"preset_id": "reference"}
    assert cfg["waveform"] == {"preset_id": "stick_slip_480us"}
    assert cfg["run"]["n_steps"] == 1000


def test_reference_run_shape_and_attrs(reference_run: pd.DataFrame) -> None:
    df = reference_run
    assert len(df) == 1000
    assert df["Step"].iloc[0] == 1
    assert df["Step"].iloc[-1] == 1000
    assert df["Time_s"].iloc[0] == pytest.approx(1e-6)
    assert df.attrs["n_steps"] == 1000
    assert df.attrs["dt"] == pytest.approx(1e-6)
    assert df.attrs["saturated"] is False
    assert set(df["Mode"].unique()) <= {"static", "kinetic"}
    assert np.isfinite(df.select_dtypes("number").to_numpy()).all()


def test_reference_waveform_peaks_and_returns(reference_run: pd.DataFrame) -> None:
    df = reference_run.set_index("Step")
    assert df.loc[480, "Voltage_V"] == pytest.approx(850.0, rel=1e-9)
    assert df["Voltage_V"].max() == pytest.approx(850.0, rel=1e-9)
    assert (df.loc[600:, "Voltage_V"] == 0.0).all()


def test_slow_rise_is_static_and_rigid(reference_run: pd.DataFrame) -> None:
    rise = reference_run[reference_run["Step"] <= 480]
    assert (rise["Mode"] == "static").all()
    np.testing.assert_allclose(
        rise["Slider_Position_m"].to_numpy(), rise["Piezo_Position_m"].to_numpy(), rtol=1e-9, atol=1e-18
    )
    # piezo tracks the 408 nm target at the top of the rise
    x_p_nm = rise["Piezo_Position_m"].iloc[-1] * 1e9
    assert abs(x_p_nm - 408.0) < 5.0


def test_static_steps_leave_no_relative_velocity(reference_run: pd.DataFrame) -> None:
    static = reference_run[reference_run["Mode"] == "static"]
    assert len(static) > 0
    assert np.all(np.abs(static["Relative_Velocity_m_s"].to_numpy()) <= 1e-12)


def test_fast_fall_breaks_static_friction(reference_run: pd.DataFrame) -> None:
    fall = reference_run[(reference_run["Step"] > 480) & (reference_run["Step"] <= 600)]
    assert (fall["Mode"] == "kinetic").any()
    assert reference_run.attrs["n_kinetic"] == int((reference_run["Mode"] == "kinetic").sum())


def test_reference_run_is_deterministic(reference_run: pd.DataFrame) -> None:
    pd.testing.assert_frame_equal(run_simulation(), reference_run)


def test_summary_metrics(reference_run: pd.DataFrame) -> None:
    summary = summarize_run(reference_run)
    assert summary["final_slider_position_nm"] == pytest.approx(
        reference_run["Slider_Position_m"].iloc[-1] * 1e9
    )
    assert 0.0 < summary["kinetic_fraction"] < 1.0
    assert summary["saturated"] is False


def test_summarize_empty_frame_raises() -> None:
    with pytest.raises(ValueError):
        summarize_run(pd.DataFrame())


def test_reference_pulse_final_state(reference_run: pd.DataFrame) -> None:
    summary = summarize_run(reference_run)
    assert summary["final_piezo_position_nm"] == pytest.approx(1.0, abs=0.2)
    assert summary["final_slider_position_nm"] == pytest.approx(231.8, abs=0.5)
    assert summary["final_piezo_velocity_um_s"] == pytest.approx(598.2, abs=2.0)


def test_run_simulation_accepts_overrides() -> None:
    df = run_simulation({"actuator": {"mu_k": 0.3}, "run": {"n_steps": 50}})
    assert len(df) == 50


# ----------------------------------------------------------------------
# Driver features
# ----------------------------------------------------------------------


def _actuator(**overrides) -> ActuatorParams:
    base = dict(
        piezo_mass=3.06e-3,
        slider_mass=8.94e-3,
        piezo_stiffness=1.47e9,
        quality_factor=1000.0,
        piezo_constant=4.8e-10,
        normal_force=2.22,
        mu_s=0.5,
        mu_k=0.4,
        kinetic_velocity_threshold=100e-6,
    )
    base.update(overrides)
    return ActuatorParams(**base)


def test_slew_rate_limit_clamps_voltage_steps() -> None:
    params = SimulationParams(
        actuator=_actuator(max_slew_rate=1e6),
        waveform=constant(100.0),
        n_steps=150,
    )
    df = StickSlipSimulator(params).run()
    voltage = df["Voltage_V"].to_numpy()
    np.testing.assert_allclose(voltage[:3], [1.0, 2.0, 3.0])
    assert voltage[-1] == pytest.approx(100.0)
    assert np.all(np.diff(voltage) <= 1.0 + 1e-9)


def test_divergence_bound_stops_run_and_flags_saturation() -> None:
    params = SimulationParams(
        actuator=_actuator(normal_force=0.0),
        waveform=constant(0.0),
        n_steps=1000,
        divergence_bound=1e-5,
        initial_state=SimulationState(slider_velocity=1.0),
    )
    df = StickSlipSimulator(params).run()
    assert df.attrs["saturated"] is True
    assert len(df) < 1000
    assert abs(df["Slider_Position_m"].iloc[-1]) > 1e-5


def test_initial_state_is_not_mutated() -> None:
    initial = SimulationState(slider_velocity=1e-3)
    params = SimulationParams(actuator=_actuator(), waveform=constant(0.0), n_steps=20, initial_state=initial)
    StickSlipSimulator(params).run()
    assert initial == SimulationState(slider_velocity=1e-3)


@pytest.mark.parametrize(
    "kwargs, exc",
    [
        ({"dt": 0.0}, ValueError),
        ({"n_steps": 0}, ValueError),
        ({"divergence_bound": -1.0}, ValueError),
        ({"waveform": 5.0}, TypeError),
    ],
)
def test_simulation_params_validation(kwargs, exc) -> None:
    base = {"actuator": _actuator(), "waveform": constant(0.0)}
    base.update(kwargs)
    with pytest.raises(exc):
        SimulationParams(**base)
