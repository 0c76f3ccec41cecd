"""State and parameter containers for the stick-slip engine.

``ActuatorParams`` holds the immutable physical constants of one actuator
(piezo stack, slider, friction interface). ``SimulationState`` is the single
mutable record advanced in place by :func:`stickslip_simulator.core.step`.

The friction mode is not part of the state: it is derived from the state
on every step and returned to the caller.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, replace
from enum import Enum


class FrictionMode(str, Enum):
    """Regime of the piezo/slider interface for one step."""

    STATIC = "static"
    KINETIC = "kinetic"


class GravityCoupling(str, Enum):
    """How the gravity term enters the step.

    - ``INDEPENDENT``: plain acceleration added to both bodies.
    - ``STATIC_BALANCE``: as above, and the slider weight also loads the
      static-friction force test.
    """

    INDEPENDENT = "independent"
    STATIC_BALANCE = "static_balance"


class StaticForceShare(str, Enum):
    """Which body's share of the piezo force is tested against ``mu_s * N``."""

    PIEZO = "piezo"
    SLIDER = "slider"


@dataclass(frozen=True)
class ActuatorParams:
    """Physical constants of a piezo stick-slip actuator (SI units).

    Parameters
    ----------
    piezo_mass : float
        Moving mass of the piezo stack (kg).
    slider_mass : float
        Mass of the slider riding on the piezo (kg).
    piezo_stiffness : float
        Axial stiffness of the piezo stack (N/m).
    quality_factor : float
        Mechanical quality factor Q of the piezo resonance.
    piezo_constant : float
        Voltage-to-displacement gain (m/V).
    normal_force : float
        Clamping force pressing the slider onto the piezo (N).
    mu_s, mu_k : float
        Static and kinetic friction coefficients. ``mu_k > mu_s`` is
        accepted; it is a modelling choice.
    kinetic_velocity_threshold : float
        Relative speed (m/s) above which the interface is always kinetic.
    gravity_acceleration : float
        Signed acceleration along the travel axis (m/s²).
    max_slew_rate : float, optional
        Amplifier slew-rate limit (V/s) applied by the run driver.
    snap_on_lock : bool
        Snap the slider velocity onto the piezo velocity on static steps.
    gravity_coupling : GravityCoupling
    static_force_share : StaticForceShare
    """

    piezo_mass: float
    slider_mass: float
    piezo_stiffness: float
    quality_factor: float
    piezo_constant: float
    normal_force: float
    mu_s: float
    mu_k: float
    kinetic_velocity_threshold: float
    gravity_acceleration: float = 0.0
    max_slew_rate: float | None = None
    snap_on_lock: bool = True
    gravity_coupling: GravityCoupling = GravityCoupling.INDEPENDENT
    static_force_share: StaticForceShare = StaticForceShare.PIEZO

    def __post_init__(self) -> None:
        positive = ("piezo_mass", "slider_mass", "piezo_stiffness", "quality_factor")
        non_negative = ("normal_force", "mu_s", "mu_k", "kinetic_velocity_threshold")

        for name in positive + non_negative + ("piezo_constant", "gravity_acceleration"):
            value = getattr(self, name)
            is_number = isinstance(value, numbers.Real) and not isinstance(value, bool)
            if not is_number or not math.isfinite(value):
                raise ValueError(f"ActuatorParams.{name} must be a finite number, got {value!r}")
        for name in positive:
            if getattr(self, name) <= 0.0:
                raise ValueError(f"ActuatorParams.{name} must be > 0, got {getattr(self, name)!r}")
        for name in non_negative:
            if getattr(self, name) < 0.0:
                raise ValueError(f"ActuatorParams.{name} must be >= 0, got {getattr(self, name)!r}")
        if self.max_slew_rate is not None and not self.max_slew_rate > 0.0:
            raise ValueError(
                f"ActuatorParams.max_slew_rate must be > 0 when given, got {self.max_slew_rate!r}"
            )

        # Accept plain strings coming from YAML
        object.__setattr__(self, "gravity_coupling", GravityCoupling(self.gravity_coupling))
        object.__setattr__(self, "static_force_share", StaticForceShare(self.static_force_share))

    @property
    def total_mass(self) -> float:
        return self.piezo_mass + self.slider_mass

    @property
    def static_force_limit(self) -> float:
        """Largest force the interface holds in static mode (N)."""
        return self.normal_force * self.mu_s

    @property
    def kinetic_force_magnitude(self) -> float:
        """Constant Coulomb force while sliding (N)."""
        return self.normal_force * self.mu_k

    @property
    def natural_frequency(self) -> float:
        """Angular resonance of the unloaded piezo (rad/s)."""
        return math.sqrt(self.piezo_stiffness / self.piezo_mass)

    def with_overrides(self, **changes) -> "ActuatorParams":
        return replace(self, **changes)


@dataclass
class SimulationState:
    """Mutable state of piezo and slider, owned by the calling loop."""

    control_voltage: float = 0.0
    piezo_position: float = 0.0
    piezo_velocity: float = 0.0
    slider_position: float = 0.0
    slider_velocity: float = 0.0

    @property
    def relative_velocity(self) -> float:
        """Slider velocity minus piezo velocity (m/s)."""
        return self.slider_velocity - self.piezo_velocity

    def copy(self) -> "SimulationState":
        return replace(self)
