"""Coulomb friction at the piezo/slider interface.

This module contains the two pieces of the interface law:

- the **mode classifier**, deciding per step whether the interface sticks
  (static) or slides (kinetic);
- the **kinetic resolver**, returning the Coulomb force for a sliding step
  with a crossing correction so that one explicit step never drives the
  relative velocity through zero.
"""

from __future__ import annotations

from .forces import PiezoForceModel
from .state import (
    ActuatorParams,
    FrictionMode,
    GravityCoupling,
    SimulationState,
    StaticForceShare,
)


class CoulombFriction:
    """Static/kinetic Coulomb friction with a two-tier mode test.

    Examples
    --------
    >>> mode = CoulombFriction.classify(state, params)
    >>> if mode is FrictionMode.KINETIC:
    ...     f = CoulombFriction.resolve(state.piezo_velocity,
    ...                                 state.slider_velocity, params, dt)
    """

    @staticmethod
    def static_surface_force(state: SimulationState, params: ActuatorParams) -> float:
        """Force the interface would have to carry if this step were static (N)."""
        force = PiezoForceModel.piezo_force(state, params, FrictionMode.STATIC)
        if params.static_force_share is StaticForceShare.SLIDER:
            share = params.slider_mass / params.total_mass
        else:
            share = params.piezo_mass / params.total_mass
        surface_force = force * share
        if params.gravity_coupling is GravityCoupling.STATIC_BALANCE:
            surface_force += params.slider_mass * params.gravity_acceleration
        return surface_force

    @staticmethod
    def classify(state: SimulationState, params: ActuatorParams) -> FrictionMode:
        """Classify the interface regime from the current state.

        1. ``|v_s - v_p| > threshold`` -> kinetic.
        2. Otherwise kinetic only if the static surface force exceeds
           ``mu_s * N``. Equality stays static.
        """
        velocity_delta = state.slider_velocity - state.piezo_velocity
        if abs(velocity_delta) > params.kinetic_velocity_threshold:
            return FrictionMode.KINETIC

        surface_force = CoulombFriction.static_surface_force(state, params)
        if abs(surface_force) > params.static_force_limit:
            return FrictionMode.KINETIC
        return FrictionMode.STATIC

    @staticmethod
    def kinetic_force(piezo_velocity: float, slider_velocity: float, magnitude: float) -> float:
        """Coulomb force on the piezo; the slider receives the negative.

        A slider moving faster than the piezo drags the piezo forward and
        vice versa. Equal velocities give zero force.
        """
        if piezo_velocity < slider_velocity:
            return magnitude
        if piezo_velocity > slider_velocity:
            return -magnitude
        return 0.0

    @staticmethod
    def crossing_scale(delta_before: float, delta_after: float) -> float:
        """Fraction of a full-step impulse that brings the relative velocity to zero.

        Returns 1.0 unless the two deltas have strictly opposite signs.
        """
        if delta_before * delta_after >= 0.0:
            return 1.0
        progress_before = abs(delta_before)
        progress_after = abs(delta_after)
        denominator = progress_before + progress_after
        if denominator == 0.0:
            return 1.0
        return progress_before / denominator

    @staticmethod
    def resolve(
        piezo_velocity: float,
        slider_velocity: float,
        params: ActuatorParams,
        dt: float,
    ) -> float:
        """Crossing-corrected kinetic friction force on the piezo (N).

        The full-step impulse is tried first. If it would flip the sign of
        ``v_s - v_p`` the force is scaled by the linear-interpolation estimate
        ``|d_before| / (|d_before| + |d_after|)``, which lands the relative
        velocity at (approximately) zero instead.
        """
        force = CoulombFriction.kinetic_force(
            piezo_velocity, slider_velocity, params.kinetic_force_magnitude
        )

        delta_before = slider_velocity - piezo_velocity
        piezo_trial = piezo_velocity + dt * force / params.piezo_mass
        slider_trial = slider_velocity - dt * force / params.slider_mass
        delta_after = slider_trial - piezo_trial

        return force * CoulombFriction.crossing_scale(delta_before, delta_after)
