"""Transient simulation of the cooling plant node network.

Provides the basic (uncoupled) and extended (flow-coupled, optional
room node) integrators and the dispatcher that selects between them.
"""

from .state import (
    ThermalState,
    Sample,
    DivergenceDiagnostic,
    SimulationResult,
)
from .integrators import (
    Integrator,
    BasicIntegrator,
    BasicCoefficients,
    ExtendedIntegrator,
    ExtendedCoefficients,
)
from .dispatcher import run_model, select_integrator

__all__ = [
    'ThermalState',
    'Sample',
    'DivergenceDiagnostic',
    'SimulationResult',
    'Integrator',
    'BasicIntegrator',
    'BasicCoefficients',
    'ExtendedIntegrator',
    'ExtendedCoefficients',
    'run_model',
    'select_integrator',
]
