"""Thermal property and conductance models for the cooling plant.

Provides:
- Material specific heats and lumped assembly heat capacities
- Exposed-pipe insulation/convection UA for environment coupling
"""

from hybrid_cooling_sim.thermal.materials import (
    SpecificHeats,
    LumpedAssembly,
    lump_assembly,
    room_air_capacity,
    kj_to_j,
    lpm_to_kgps,
    LEGACY_CP_WATER,
)
from hybrid_cooling_sim.thermal.pipe_insulation import (
    InsulatedPipe,
    pipe_environment_ua,
)

__all__ = [
    "SpecificHeats",
    "LumpedAssembly",
    "lump_assembly",
    "room_air_capacity",
    "kj_to_j",
    "lpm_to_kgps",
    "LEGACY_CP_WATER",
    "InsulatedPipe",
    "pipe_environment_ua",
]
