"""Hybrid static/kinetic stick-slip engine."""

from .state import (
    ActuatorParams,
    FrictionMode,
    GravityCoupling,
    SimulationState,
    StaticForceShare,
)
from .integrator import SemiImplicitEulerIntegrator, create, step

__all__ = [
    "ActuatorParams",
    "FrictionMode",
    "GravityCoupling",
    "SimulationState",
    "StaticForceShare",
    "SemiImplicitEulerIntegrator",
    "create",
    "step",
]
