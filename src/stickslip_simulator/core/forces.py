"""Piezo drive and damping forces.

The piezo stack is modelled as a linear spring pulling the piezo mass towards
the displacement commanded by the control voltage, plus viscous damping
expressed through the quality factor:

    F_drive = k * (d * V - x_p)
    F_damp  = -(1/Q) * sqrt(k * m_engaged) * v_p

In static mode piezo and slider move as one body (``m_engaged = m_p + m_s``)
and the combined force is split by mass fraction so that both bodies get the
same acceleration. In kinetic mode only the piezo mass is engaged and the
slider feels nothing but the Coulomb term from :mod:`.friction`.
"""

from __future__ import annotations

import math
from typing import Tuple

from .state import ActuatorParams, FrictionMode, SimulationState


class PiezoForceModel:
    """Collection of the elastic/damping force terms acting on the piezo."""

    @staticmethod
    def control_voltage_force(state: SimulationState, params: ActuatorParams) -> float:
        """Spring force towards the voltage-commanded target position (N)."""
        target = params.piezo_constant * state.control_voltage
        return params.piezo_stiffness * (target - state.piezo_position)

    @staticmethod
    def damping_force(
        state: SimulationState, params: ActuatorParams, engaged_mass: float
    ) -> float:
        """Viscous damping on the piezo velocity only (N)."""
        coefficient = math.sqrt(params.piezo_stiffness * engaged_mass) / params.quality_factor
        return -coefficient * state.piezo_velocity

    @staticmethod
    def engaged_mass(params: ActuatorParams, mode: FrictionMode) -> float:
        if mode is FrictionMode.STATIC:
            return params.total_mass
        return params.piezo_mass

    @staticmethod
    def piezo_force(
        state: SimulationState, params: ActuatorParams, mode: FrictionMode
    ) -> float:
        """Total drive + damping force for the given mode, before splitting."""
        engaged = PiezoForceModel.engaged_mass(params, mode)
        return PiezoForceModel.control_voltage_force(state, params) + PiezoForceModel.damping_force(
            state, params, engaged
        )

    @staticmethod
    def control_forces(
        state: SimulationState, params: ActuatorParams, mode: FrictionMode
    ) -> Tuple[float, float]:
        """Return ``(force_on_piezo, force_on_slider)`` for one step.

        Static: each body gets its own mass fraction of the combined force.
        Kinetic: the piezo gets everything, the slider nothing.
        """
        force = PiezoForceModel.piezo_force(state, params, mode)
        if mode is FrictionMode.STATIC:
            total = params.total_mass
            return force * (params.piezo_mass / total), force * (params.slider_mass / total)
        return force, 0.0
