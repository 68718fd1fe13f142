"""Material properties and lumped heat-capacity aggregation.

Coil and CDU assemblies are modelled as a single lumped node whose heat
capacity is the mass-weighted sum of the materials they are built from:

    C = m_water*c_p,water + m_copper*c_p,copper + m_aluminium*c_p,aluminium

The equivalent water mass C / c_p,water is kept for diagnostics and for
the legacy lumped-mass model.
"""

from dataclasses import dataclass


# Specific heats in kJ/(kg*K), the unit used on equipment data sheets
CP_WATER_KJ = 4.18
CP_COPPER_KJ = 0.39
CP_ALUMINIUM_KJ = 0.91

# Room air at ~25C
AIR_SPECIFIC_HEAT = 1005.0   # J/(kg*K)
AIR_DENSITY = 1.2            # kg/m^3

# Water specific heat assumed by the lumped-mass (basic) model
LEGACY_CP_WATER = 4186.0     # J/(kg*K)

# Water density used for all volume -> mass conversions
WATER_DENSITY_KG_PER_L = 1.0


def kj_to_j(cp_kj: float) -> float:
    """Convert a specific heat from kJ/(kg*K) to J/(kg*K)."""
    return cp_kj * 1000.0


def lpm_to_kgps(flow_lpm: float) -> float:
    """Convert a water volumetric flow in L/min to a mass flow in kg/s."""
    return flow_lpm * WATER_DENSITY_KG_PER_L / 60.0


@dataclass
class SpecificHeats:
    """Specific heats (J/(kg*K)) and air density used by the plant model."""
    water: float = kj_to_j(CP_WATER_KJ)
    copper: float = kj_to_j(CP_COPPER_KJ)
    aluminium: float = kj_to_j(CP_ALUMINIUM_KJ)
    air: float = AIR_SPECIFIC_HEAT
    air_density: float = AIR_DENSITY


@dataclass
class LumpedAssembly:
    """Heat capacity of a multi-material assembly (all units combined)."""
    heat_capacity: float      # J/K
    water_equivalent: float   # kg


def lump_assembly(mass_water: float,
                  mass_copper: float,
                  mass_aluminium: float,
                  cp: SpecificHeats) -> LumpedAssembly:
    """Aggregate material masses into one lumped heat capacity.

    Args:
        mass_water: Water mass (kg)
        mass_copper: Copper mass (kg)
        mass_aluminium: Aluminium mass (kg)
        cp: Specific heats

    Returns:
        LumpedAssembly with C in J/K and its water-equivalent mass
    """
    C = (mass_water * cp.water
         + mass_copper * cp.copper
         + mass_aluminium * cp.aluminium)
    m_eq = C / cp.water if cp.water > 0 else 0.0
    return LumpedAssembly(heat_capacity=C, water_equivalent=m_eq)


def room_air_capacity(volume_m3: float, cp: SpecificHeats) -> float:
    """Heat capacity (J/K) of the room air volume; zero when disabled."""
    if volume_m3 <= 0:
        return 0.0
    return cp.air_density * volume_m3 * cp.air
