"""Hybrid Cooling Plant Transient Simulator.

Lumped-node thermal model of a data center cooling plant in which the IT
load splits between a liquid-cooling loop and an air-cooling loop that
share a buffer/manifold node coupled to the ambient through exposed
piping, with an optional room-air node on the air side.
"""

__version__ = "0.1.0"

from hybrid_cooling_sim.plant_config import (
    PlantInputs,
    SimulationParameters,
    ExtendedParameters,
    REFERENCE_PLANT_INPUTS,
    map_inputs,
    check_inputs,
)
from hybrid_cooling_sim.thermal import pipe_environment_ua
from hybrid_cooling_sim.simulation import (
    Sample,
    SimulationResult,
    DivergenceDiagnostic,
    BasicIntegrator,
    ExtendedIntegrator,
    run_model,
)

__all__ = [
    "PlantInputs",
    "SimulationParameters",
    "ExtendedParameters",
    "REFERENCE_PLANT_INPUTS",
    "map_inputs",
    "check_inputs",
    "pipe_environment_ua",
    "Sample",
    "SimulationResult",
    "DivergenceDiagnostic",
    "BasicIntegrator",
    "ExtendedIntegrator",
    "run_model",
]
