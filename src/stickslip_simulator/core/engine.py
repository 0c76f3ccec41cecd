"""Run driver for the stick-slip engine.

This module is UI-agnostic: it feeds a voltage waveform into the
per-step integrator, records the trajectory and returns it as a
``pandas.DataFrame``.

Use from CLI, studies or tests as:

    from stickslip_simulator.core.engine import run_simulation

    df = run_simulation({"actuator": {"mu_k": 0.3}})

Time is indexed from 1: step ``i`` uses the voltage at ``t = i * dt``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import numpy as np
import pandas as pd

from .energy import mechanical_energy, shadow_energy
from .integrator import SemiImplicitEulerIntegrator
from .state import ActuatorParams, FrictionMode, SimulationState

logger = logging.getLogger(__name__)


# ====================================================================
# SIMULATION CONSTANTS
# ====================================================================

class SimulationConstants:
    """Unit conversions and defaults shared by the driver, trace and studies."""

    DEFAULT_DT = 1e-6  # s
    DEFAULT_STEPS = 1000

    M_TO_NM = 1e9
    M_S_TO_UM_S = 1e6
    S_TO_US = 1e6


# ====================================================================
# CONFIGURATION & DATA CLASSES
# ====================================================================

@dataclass
class SimulationParams:
    """Container for one run: actuator, drive waveform and time grid."""
    actuator: ActuatorParams
    waveform: Callable[[float], float]
    dt: float = SimulationConstants.DEFAULT_DT
    n_steps: int = SimulationConstants.DEFAULT_STEPS

    # Stop once |slider position| exceeds this bound (m); None = never
    divergence_bound: Optional[float] = None

    # Start from this state instead of rest (copied, never mutated)
    initial_state: Optional[SimulationState] = None

    case_name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.actuator, ActuatorParams):
            raise TypeError(
                f"SimulationParams.actuator must be ActuatorParams, got {type(self.actuator).__name__}"
            )
        if not callable(self.waveform):
            raise TypeError("SimulationParams.waveform must be callable t -> voltage")
        if not self.dt > 0.0:
            raise ValueError(f"SimulationParams.dt must be > 0, got {self.dt!r}")
        if int(self.n_steps) < 1:
            raise ValueError(f"SimulationParams.n_steps must be >= 1, got {self.n_steps!r}")
        self.n_steps = int(self.n_steps)
        if self.divergence_bound is not None and not self.divergence_bound > 0.0:
            raise ValueError(
                f"SimulationParams.divergence_bound must be > 0 when given, got {self.divergence_bound!r}"
            )


# ====================================================================
# SIMULATOR
# ====================================================================

class StickSlipSimulator:
    """Drive the integrator with a waveform and record the trajectory."""

    def __init__(self, params: SimulationParams):
        self.params = params
        self.integrator = SemiImplicitEulerIntegrator(params.actuator)
        self.state = self._initial_state()
        self.saturated = False

    def _initial_state(self) -> SimulationState:
        if self.params.initial_state is not None:
            return self.params.initial_state.copy()
        return self.integrator.create()

    def limit_voltage(self, requested: float, previous: float) -> float:
        """Clamp the per-step voltage change to the amplifier slew rate."""
        max_slew_rate = self.params.actuator.max_slew_rate
        if max_slew_rate is None:
            return requested
        max_change = max_slew_rate * self.params.dt
        return float(np.clip(requested, previous - max_change, previous + max_change))

    def run(self) -> pd.DataFrame:
        p = self.params
        actuator = p.actuator
        dt = p.dt
        n = p.n_steps

        stability = self.integrator.get_stability_info(dt)
        if not stability["is_stable"]:
            logger.warning(
                "omega*dt = %.3f >= 2: semi-implicit Euler is unstable for this piezo resonance.",
                stability["omega_dt"],
            )
        logger.info(
            "Starting stick-slip run%s: %d steps of %.3e s",
            f" '{p.case_name}'" if p.case_name else "",
            n,
            dt,
        )

        step_idx = np.zeros(n, dtype=int)
        time_s = np.zeros(n)
        voltage = np.zeros(n)
        x_p = np.zeros(n)
        x_s = np.zeros(n)
        v_p = np.zeros(n)
        v_s = np.zeros(n)
        modes = np.empty(n, dtype=object)
        e_mech = np.zeros(n)
        e_shadow = np.zeros(n)

        state = self.state
        recorded = 0
        for i in range(1, n + 1):
            t = i * dt
            requested = float(p.waveform(t))
            applied = self.limit_voltage(requested, state.control_voltage)

            mode = self.integrator.step(state, applied, dt)

            k = i - 1
            step_idx[k] = i
            time_s[k] = t
            voltage[k] = state.control_voltage
            x_p[k] = state.piezo_position
            x_s[k] = state.slider_position
            v_p[k] = state.piezo_velocity
            v_s[k] = state.slider_velocity
            modes[k] = mode.value
            e_mech[k] = mechanical_energy(state, actuator)
            e_shadow[k] = shadow_energy(state, actuator, dt)
            recorded = i

            if p.divergence_bound is not None and abs(state.slider_position) > p.divergence_bound:
                self.saturated = True
                logger.warning(
                    "Slider left the +/-%.3e m window at step %d (x_s = %.3e m); stopping run.",
                    p.divergence_bound,
                    i,
                    state.slider_position,
                )
                break

        df = self._build_results_dataframe(
            recorded, step_idx, time_s, voltage, x_p, x_s, v_p, v_s, modes, e_mech, e_shadow
        )
        logger.info(
            "Finished stick-slip run: %d steps, %d kinetic, x_s = %.3f nm",
            self.integrator.n_steps,
            self.integrator.n_kinetic,
            state.slider_position * SimulationConstants.M_TO_NM,
        )
        return df

    def _build_results_dataframe(
        self,
        recorded: int,
        step_idx: np.ndarray,
        time_s: np.ndarray,
        voltage: np.ndarray,
        x_p: np.ndarray,
        x_s: np.ndarray,
        v_p: np.ndarray,
        v_s: np.ndarray,
        modes: np.ndarray,
        e_mech: np.ndarray,
        e_shadow: np.ndarray,
    ) -> pd.DataFrame:
        r = slice(0, recorded)
        df = pd.DataFrame(
            {
                "Step": step_idx[r],
                "Time_s": time_s[r],
                "Time_us": time_s[r] * SimulationConstants.S_TO_US,
                "Voltage_V": voltage[r],
                "Piezo_Position_m": x_p[r],
                "Slider_Position_m": x_s[r],
                "Piezo_Velocity_m_s": v_p[r],
                "Slider_Velocity_m_s": v_s[r],
                "Relative_Velocity_m_s": v_s[r] - v_p[r],
                "Mode": modes[r].astype(str),
                "E_mech_J": e_mech[r],
                "E_shadow_J": e_shadow[r],
            }
        )
        df.attrs["dt"] = self.params.dt
        df.attrs["n_steps"] = self.integrator.n_steps
        df.attrs["n_kinetic"] = self.integrator.n_kinetic
        df.attrs["saturated"] = self.saturated
        if self.params.case_name:
            df.attrs["case_name"] = self.params.case_name
        return df


# ====================================================================
# CONVENIENCE WRAPPERS
# ====================================================================

def get_default_simulation_params() -> dict:
    """Default run configuration as a plain dict (see ``config.loader``)."""
    from ..config.loader import get_default_config

    return get_default_config()


def run_simulation(params: SimulationParams | Dict[str, Any] | None = None) -> pd.DataFrame:
    """
    High-level convenience wrapper.

    - A ``SimulationParams`` instance is run as is.
    - A dict may contain only overrides; it is merged over
      :func:`get_default_simulation_params`, presets are resolved and the
      result is validated before running.
    """
    if not isinstance(params, SimulationParams):
        from ..config.loader import build_simulation_params, merge_with_defaults, normalize_config_dict

        merged = merge_with_defaults(params or {})
        config = normalize_config_dict(merged, filename="<run_simulation>")
        params = build_simulation_params(config)

    simulator = StickSlipSimulator(params)
    return simulator.run()


def summarize_run(df: pd.DataFrame) -> Dict[str, float]:
    """Scalar metrics of one run used by the studies and the CLI."""
    if df.empty:
        raise ValueError("summarize_run: empty result DataFrame")
    kinetic = (df["Mode"] == FrictionMode.KINETIC.value).to_numpy()
    return {
        "final_slider_position_nm": float(df["Slider_Position_m"].iloc[-1] * SimulationConstants.M_TO_NM),
        "final_piezo_position_nm": float(df["Piezo_Position_m"].iloc[-1] * SimulationConstants.M_TO_NM),
        "final_piezo_velocity_um_s": float(df["Piezo_Velocity_m_s"].iloc[-1] * SimulationConstants.M_S_TO_UM_S),
        "final_slider_velocity_um_s": float(df["Slider_Velocity_m_s"].iloc[-1] * SimulationConstants.M_S_TO_UM_S),
        "kinetic_fraction": float(np.mean(kinetic)),
        "max_relative_speed_um_s": float(
            np.max(np.abs(df["Relative_Velocity_m_s"].to_numpy())) * SimulationConstants.M_S_TO_UM_S
        ),
        "saturated": bool(df.attrs.get("saturated", False)),
    }
