"""Energy bookkeeping for stick-slip runs.

``mechanical_energy`` is the textbook sum of kinetic energy and spring
potential measured from the voltage-commanded target position.

Semi-implicit Euler does not conserve that quantity exactly; it conserves
(for an undamped spring with a fixed target) the modified quadratic form

    H = 1/2 m_p v_p^2 + 1/2 m_s v_s^2 + 1/2 k e^2 - 1/2 dt k e v_p

with ``e = x_p - d * V``. ``shadow_energy`` returns ``H``. With zero
friction, zero gravity and a constant voltage, damping can only lower it,
which makes it the right quantity for checking that a run does not create
energy.
"""

from __future__ import annotations

from .state import ActuatorParams, SimulationState


def spring_extension(state: SimulationState, params: ActuatorParams) -> float:
    """Piezo position minus the voltage-commanded target (m)."""
    return state.piezo_position - params.piezo_constant * state.control_voltage


def kinetic_energy(state: SimulationState, params: ActuatorParams) -> float:
    return 0.5 * params.piezo_mass * state.piezo_velocity**2 + 0.5 * params.slider_mass * state.slider_velocity**2


def mechanical_energy(state: SimulationState, params: ActuatorParams) -> float:
    extension = spring_extension(state, params)
    return kinetic_energy(state, params) + 0.5 * params.piezo_stiffness * extension**2


def shadow_energy(state: SimulationState, params: ActuatorParams, dt: float) -> float:
    extension = spring_extension(state, params)
    cross = 0.5 * dt * params.piezo_stiffness * extension * state.piezo_velocity
    return mechanical_energy(state, params) - cross
