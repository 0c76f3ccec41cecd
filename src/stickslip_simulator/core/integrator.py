"""Fixed-step semi-implicit Euler integration of the stick-slip system.

One call to :func:`step` advances a :class:`SimulationState` in place, in
this order (the order matters and is not configurable):

1. classify the friction mode from the current state;
2. static mode: snap the slider velocity onto the piezo velocity;
3. apply the mode-dependent drive/damping forces, ``v += dt * F / m``;
4. apply the gravity term to both velocities, if any;
5. kinetic mode: apply the crossing-corrected Coulomb force;
6. update positions with the *new* velocities.
"""

from __future__ import annotations

from .forces import PiezoForceModel
from .friction import CoulombFriction
from .state import ActuatorParams, FrictionMode, SimulationState


def create(params: ActuatorParams) -> SimulationState:
    """Return a zero-initialised state for ``params``."""
    if not isinstance(params, ActuatorParams):
        raise TypeError(f"create() expects ActuatorParams, got {type(params).__name__}")
    return SimulationState()


def step(
    state: SimulationState,
    params: ActuatorParams,
    control_voltage: float,
    dt: float,
) -> FrictionMode:
    """Advance ``state`` by one time step and return the mode used."""
    if not dt > 0.0:
        raise ValueError(f"dt must be > 0, got {dt!r}")

    state.control_voltage = float(control_voltage)

    mode = CoulombFriction.classify(state, params)
    if mode is FrictionMode.STATIC and params.snap_on_lock:
        state.slider_velocity = state.piezo_velocity

    force_on_piezo, force_on_slider = PiezoForceModel.control_forces(state, params, mode)
    state.piezo_velocity += dt * force_on_piezo / params.piezo_mass
    state.slider_velocity += dt * force_on_slider / params.slider_mass

    if params.gravity_acceleration != 0.0:
        state.piezo_velocity += dt * params.gravity_acceleration
        state.slider_velocity += dt * params.gravity_acceleration

    if mode is FrictionMode.KINETIC:
        friction = CoulombFriction.resolve(
            state.piezo_velocity, state.slider_velocity, params, dt
        )
        state.piezo_velocity += dt * friction / params.piezo_mass
        state.slider_velocity -= dt * friction / params.slider_mass

    state.piezo_position += dt * state.piezo_velocity
    state.slider_position += dt * state.slider_velocity
    return mode


class SemiImplicitEulerIntegrator:
    """Stateful wrapper around :func:`step` that keeps run counters.

    Attributes
    ----------
    params : ActuatorParams
    n_steps : int
        Steps taken since construction or :meth:`reset_counters`.
    n_kinetic : int
        How many of those steps were kinetic.
    """

    def __init__(self, params: ActuatorParams):
        self.params = params
        self.n_steps: int = 0
        self.n_kinetic: int = 0

    def create(self) -> SimulationState:
        return create(self.params)

    def step(self, state: SimulationState, control_voltage: float, dt: float) -> FrictionMode:
        mode = step(state, self.params, control_voltage, dt)
        self.n_steps += 1
        if mode is FrictionMode.KINETIC:
            self.n_kinetic += 1
        return mode

    def reset_counters(self) -> None:
        self.n_steps = 0
        self.n_kinetic = 0

    def get_stability_info(self, dt: float) -> dict:
        """Report ``omega * dt`` for the piezo resonance.

        Semi-implicit Euler on an undamped oscillator is stable for
        ``omega * dt < 2``.
        """
        omega_dt = self.params.natural_frequency * dt
        return {
            "omega_rad_s": self.params.natural_frequency,
            "omega_dt": omega_dt,
            "is_stable": omega_dt < 2.0,
        }
