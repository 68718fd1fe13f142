"""Cooling Plant Configuration and Parameter Mapping.

Converts the raw engineering inputs of a hybrid liquid/air cooling plant
into the SI parameter bundle consumed by the transient integrators:

    Raw inputs (kW, %, L/min, kJ/(kg*K), per-unit UA, pipe geometry)
        →  PlantInputs        (validated, every field defaulted)
        →  SimulationParameters (core scalars + ExtendedParameters)

Plant topology:

    IT load ──┬── liquid share ──→ CDU / TCS loop ──┐
              │                                      ├──→ buffer ←→ environment
              └── air share ──→ room air ──→ FWU coil ┘     (exposed piping)

Mapping never fails: a missing, empty or non-numeric raw value resolves
to the documented default of its field.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from hybrid_cooling_sim.thermal.materials import (
    CP_ALUMINIUM_KJ,
    CP_COPPER_KJ,
    CP_WATER_KJ,
    WATER_DENSITY_KG_PER_L,
    SpecificHeats,
    kj_to_j,
    lpm_to_kgps,
    lump_assembly,
)
from hybrid_cooling_sim.thermal.pipe_insulation import (
    DEFAULT_ENVIRONMENT_FACTOR,
    DEFAULT_EXTERNAL_HTC,
    DEFAULT_INSULATION_CONDUCTIVITY,
    pipe_environment_ua,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Raw Inputs
# =============================================================================

class PlantInputs(BaseModel):
    """Raw engineering inputs of the cooling plant.

    Field names follow the plant input sheet. Units are the ones used on
    the sheet, not SI: loads in kW, ratio in %, flows in L/min, specific
    heats in kJ/(kg*K), volumes in L, room volume in m^3.
    """
    model_config = ConfigDict(extra="ignore")

    # General
    Q_total: float = 0.0          # IT heat load (kW)
    T_sup: float = 17.0           # Supply / initial water temperature (C)
    T_env: float = 35.0           # Ambient temperature (C)
    ratio_liquid: float = 60.0    # Share of IT load on the liquid loop (%)

    # Unit counts
    FWU_Units: float = 1.0
    CDU_Units: float = 1.0

    # Loop flows (L/min, whole plant)
    flowA_LPM: float = 0.0
    flowL_LPM: float = 0.0
    flowA_ref_LPM: Optional[float] = None   # defaults to flowA_LPM
    n_w_A: float = 0.7                      # air-side UA flow exponent

    # Legacy lumped masses (kg water-equivalent)
    m_liquid: float = 120.0
    m_air: float = 100.0
    m_pipe: float = 60.0

    # Per-unit UA (W/K)
    UA_L_input: float = 0.0
    UA_A_ref: float = 0.0

    # Exposed pipe / insulation
    L_pipe: float = 0.0                                   # m
    D_pipe: float = 0.0                                   # m
    t_ins: float = 0.0                                    # m
    k_ins: float = DEFAULT_INSULATION_CONDUCTIVITY        # W/(m*K)
    h_ext: float = DEFAULT_EXTERNAL_HTC                   # W/(m^2*K)
    f_env: float = DEFAULT_ENVIRONMENT_FACTOR
    A_pipe: float = 0.0                                   # m^2

    # Specific heats (kJ/(kg*K))
    Cp_H2O: float = CP_WATER_KJ
    Cp_Cu: float = CP_COPPER_KJ
    Cp_Al: float = CP_ALUMINIUM_KJ

    # Per-unit assembly masses (kg)
    M_Cu_coil: float = 0.0
    M_Al_coil: float = 0.0
    M_H2O_coil: float = 0.0
    M_Cu_TCS: float = 0.0
    M_Al_TCS: float = 0.0
    M_H2O_TCS: float = 0.0

    # Buffer water volumes (L)
    V_tank: float = 0.0
    V_evaporation: float = 0.0
    V_pipe_internal: float = 0.0
    V_pipe_external: float = 0.0

    # Room air
    T_room_init: float = 17.0     # C
    V_room_m3: float = 0.0        # 0 disables the room node
    UA_room: float = 0.0          # W/K, room to environment

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_numeric(cls, value: Any, info: ValidationInfo) -> Any:
        """Resolve missing or non-numeric values to the field default."""
        default = cls.model_fields[info.field_name].default
        if value is None:
            return default
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        if not math.isfinite(number):
            return default
        return number


# Reference plant: 3.85 MW hall, 4 CDUs, 8 FWUs, 1318 m^3 white space
REFERENCE_PLANT_INPUTS: Dict[str, float] = {
    'Q_total': 3850.0,
    'T_sup': 17.0,
    'T_env': 46.0,
    'ratio_liquid': 80.0,
    'FWU_Units': 8,
    'CDU_Units': 4,
    'flowA_LPM': 324.0,
    'flowL_LPM': 1200.0,
    'flowA_ref_LPM': 324.0,
    'n_w_A': 0.7,
    'm_liquid': 120.0,
    'm_air': 100.0,
    'm_pipe': 60.0,
    'UA_L_input': 32000.0,
    'UA_A_ref': 26000.0,
    'L_pipe': 30.0,
    'D_pipe': 0.1,
    't_ins': 0.05,
    'k_ins': 0.035,
    'h_ext': 5.0,
    'f_env': 1.0,
    'A_pipe': 5.0,
    'Cp_H2O': 4.18,
    'Cp_Cu': 0.39,
    'Cp_Al': 0.91,
    'M_Cu_coil': 83.0,
    'M_Al_coil': 66.0,
    'M_H2O_coil': 78.0,
    'M_Cu_TCS': 200.0,
    'M_Al_TCS': 200.0,
    'M_H2O_TCS': 200.0,
    'V_tank': 3200.0,
    'V_evaporation': 0.0,
    'V_pipe_internal': 5000.0,
    'V_pipe_external': 1000.0,
    'T_room_init': 25.0,
    'V_room_m3': 1317.84,
    'UA_room': 0.0,
}


# =============================================================================
# Derived Parameter Bundle
# =============================================================================

@dataclass
class UnitCounts:
    """Installed unit counts (always >= 1)."""
    fwu: float = 1.0
    cdu: float = 1.0


@dataclass
class NodeHeatCapacities:
    """Detailed node heat capacities (J/K); zero means not specified."""
    fwu: float = 0.0
    tcs: float = 0.0
    buffer: float = 0.0


@dataclass
class WaterEquivalents:
    """Equivalent water masses of the detailed capacities (kg)."""
    fwu: float = 0.0
    tcs: float = 0.0
    buffer: float = 0.0


@dataclass
class BufferVolumes:
    """Buffer water volumes by source (L)."""
    tank: float = 0.0
    evaporation: float = 0.0
    pipe_internal: float = 0.0
    pipe_external: float = 0.0

    @property
    def total(self) -> float:
        return self.tank + self.evaporation + self.pipe_internal + self.pipe_external


@dataclass
class LoopFlows:
    """Loop water flows in L/min and kg/s."""
    air_lpm: float = 0.0
    liquid_lpm: float = 0.0
    air_kgps: float = 0.0
    liquid_kgps: float = 0.0


@dataclass
class AirFlowScaling:
    """Air-side coil UA scaling: UA ~ (flow / reference_kgps)^exponent."""
    reference_kgps: float = 0.0
    exponent: float = 0.7


@dataclass
class UATotals:
    """Plant-level UA values (W/K)."""
    liquid: float = 0.0
    air: float = 0.0
    pipe: float = 0.0


@dataclass
class RoomAir:
    """Optional room-air node."""
    T_init: float = 17.0
    volume_m3: float = 0.0
    UA_room: float = 0.0

    @property
    def active(self) -> bool:
        return self.volume_m3 > 0


@dataclass
class ExtendedParameters:
    """Detailed parameter bundle used by the extended model and reporting."""
    cp: SpecificHeats = field(default_factory=SpecificHeats)
    counts: UnitCounts = field(default_factory=UnitCounts)
    heat_caps: NodeHeatCapacities = field(default_factory=NodeHeatCapacities)
    water_equivalents: WaterEquivalents = field(default_factory=WaterEquivalents)
    volumes: BufferVolumes = field(default_factory=BufferVolumes)
    flows: LoopFlows = field(default_factory=LoopFlows)
    flow_scaling: AirFlowScaling = field(default_factory=AirFlowScaling)
    ua_totals: UATotals = field(default_factory=UATotals)
    pipe_area_m2: float = 0.0
    room: RoomAir = field(default_factory=RoomAir)
    raw_input: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SimulationParameters:
    """Complete simulation parameter set.

    Attributes:
        T_sup: Supply / initial water temperature (C)
        T_env: Ambient temperature (C)
        Q_load: Total IT heat load (W)
        ratio_liquid: Fraction of the load on the liquid loop (0-1)
        m_liquid: Liquid-side lumped water-equivalent mass (kg)
        m_air_side: Air-side coil lumped water-equivalent mass (kg)
        m_pipe: Buffer lumped water-equivalent mass (kg)
        UA_L: Liquid-side UA (W/K)
        UA_A: Air-side UA at reference flow (W/K)
        UA_P: Buffer-to-environment UA (W/K)
        timestep: Integration timestep (s)
        horizon: Simulated duration (s)
        use_extended_model: Select the flow-coupled model
        ext: Detailed parameter bundle
    """
    T_sup: float = 17.0
    T_env: float = 35.0
    Q_load: float = 0.0
    ratio_liquid: float = 0.6
    m_liquid: float = 120.0
    m_air_side: float = 100.0
    m_pipe: float = 60.0
    UA_L: float = 0.0
    UA_A: float = 0.0
    UA_P: float = 0.0
    timestep: float = 1.0
    horizon: float = 180.0
    use_extended_model: bool = False
    ext: Optional[ExtendedParameters] = None

    @property
    def num_steps(self) -> int:
        """Number of integration steps covering the horizon."""
        if self.horizon <= 0:
            return 0
        return math.ceil(self.horizon / self.timestep)

    def with_run_settings(self,
                          timestep: float = 1.0,
                          horizon: float = 180.0,
                          use_extended_model: bool = False
                          ) -> 'SimulationParameters':
        """Return a copy with the run settings attached.

        Raises:
            ValueError: If timestep is not positive or horizon is negative
        """
        if not math.isfinite(timestep) or timestep <= 0:
            raise ValueError(f"timestep must be positive, got {timestep}")
        if not math.isfinite(horizon) or horizon < 0:
            raise ValueError(f"horizon must be non-negative, got {horizon}")
        return replace(self,
                       timestep=float(timestep),
                       horizon=float(horizon),
                       use_extended_model=bool(use_extended_model))


# =============================================================================
# Mapping
# =============================================================================

RawInputs = Union[PlantInputs, Mapping[str, Any], None]


def _non_negative(value: float) -> float:
    return max(value, 0.0)


def map_inputs(raw: RawInputs = None) -> SimulationParameters:
    """Map raw plant inputs to simulation parameters.

    Args:
        raw: Flat mapping of input-sheet fields, or a PlantInputs

    Returns:
        SimulationParameters with default run settings
        (call with_run_settings to change them)
    """
    if isinstance(raw, PlantInputs):
        raw_dict = raw.model_dump()
        inputs = raw
    else:
        raw_dict = dict(raw) if raw is not None else {}
        inputs = PlantInputs.model_validate(raw_dict)

    cp = SpecificHeats(
        water=kj_to_j(_non_negative(inputs.Cp_H2O)),
        copper=kj_to_j(_non_negative(inputs.Cp_Cu)),
        aluminium=kj_to_j(_non_negative(inputs.Cp_Al)),
    )

    counts = UnitCounts(
        fwu=max(1.0, inputs.FWU_Units),
        cdu=max(1.0, inputs.CDU_Units),
    )

    # Per-unit masses times unit count
    fwu = lump_assembly(
        mass_water=_non_negative(inputs.M_H2O_coil) * counts.fwu,
        mass_copper=_non_negative(inputs.M_Cu_coil) * counts.fwu,
        mass_aluminium=_non_negative(inputs.M_Al_coil) * counts.fwu,
        cp=cp,
    )
    tcs = lump_assembly(
        mass_water=_non_negative(inputs.M_H2O_TCS) * counts.cdu,
        mass_copper=_non_negative(inputs.M_Cu_TCS) * counts.cdu,
        mass_aluminium=_non_negative(inputs.M_Al_TCS) * counts.cdu,
        cp=cp,
    )

    volumes = BufferVolumes(
        tank=_non_negative(inputs.V_tank),
        evaporation=_non_negative(inputs.V_evaporation),
        pipe_internal=_non_negative(inputs.V_pipe_internal),
        pipe_external=_non_negative(inputs.V_pipe_external),
    )
    buffer_water_kg = volumes.total * WATER_DENSITY_KG_PER_L
    C_buffer = buffer_water_kg * cp.water

    # Legacy lumped masses apply where no detailed capacity is given
    m_liquid = tcs.water_equivalent if tcs.heat_capacity > 0 else _non_negative(inputs.m_liquid)
    m_air_side = fwu.water_equivalent if fwu.heat_capacity > 0 else _non_negative(inputs.m_air)
    m_pipe = volumes.pipe_external if volumes.pipe_external > 0 else _non_negative(inputs.m_pipe)
    logger.debug(
        f"Capacities: TCS {'detailed' if tcs.heat_capacity > 0 else 'lumped'}, "
        f"FWU {'detailed' if fwu.heat_capacity > 0 else 'lumped'}, "
        f"buffer {buffer_water_kg:.0f} kg water"
    )

    ua = UATotals(
        liquid=_non_negative(inputs.UA_L_input) * counts.cdu,
        air=_non_negative(inputs.UA_A_ref) * counts.fwu,
        pipe=pipe_environment_ua(
            length=inputs.L_pipe,
            outer_diameter=inputs.D_pipe,
            insulation_thickness=inputs.t_ins,
            k_insulation=inputs.k_ins,
            h_external=inputs.h_ext,
            env_factor=inputs.f_env,
            exposed_area=inputs.A_pipe,
        ),
    )

    ratio = min(max(inputs.ratio_liquid / 100.0, 0.0), 1.0)

    flow_air_lpm = _non_negative(inputs.flowA_LPM)
    flow_liquid_lpm = _non_negative(inputs.flowL_LPM)
    flow_ref_lpm = (_non_negative(inputs.flowA_ref_LPM)
                    if inputs.flowA_ref_LPM is not None else flow_air_lpm)

    ext = ExtendedParameters(
        cp=cp,
        counts=counts,
        heat_caps=NodeHeatCapacities(
            fwu=fwu.heat_capacity,
            tcs=tcs.heat_capacity,
            buffer=C_buffer,
        ),
        water_equivalents=WaterEquivalents(
            fwu=fwu.water_equivalent,
            tcs=tcs.water_equivalent,
            buffer=buffer_water_kg,
        ),
        volumes=volumes,
        flows=LoopFlows(
            air_lpm=flow_air_lpm,
            liquid_lpm=flow_liquid_lpm,
            air_kgps=lpm_to_kgps(flow_air_lpm),
            liquid_kgps=lpm_to_kgps(flow_liquid_lpm),
        ),
        flow_scaling=AirFlowScaling(
            reference_kgps=lpm_to_kgps(flow_ref_lpm),
            exponent=inputs.n_w_A,
        ),
        ua_totals=ua,
        pipe_area_m2=_non_negative(inputs.A_pipe),
        room=RoomAir(
            T_init=inputs.T_room_init,
            volume_m3=_non_negative(inputs.V_room_m3),
            UA_room=_non_negative(inputs.UA_room),
        ),
        raw_input=raw_dict,
    )

    return SimulationParameters(
        T_sup=inputs.T_sup,
        T_env=inputs.T_env,
        Q_load=_non_negative(inputs.Q_total) * 1000.0,
        ratio_liquid=ratio,
        m_liquid=m_liquid,
        m_air_side=m_air_side,
        m_pipe=m_pipe,
        UA_L=ua.liquid,
        UA_A=ua.air,
        UA_P=ua.pipe,
        ext=ext,
    )


def check_inputs(raw: RawInputs = None) -> List[str]:
    """Check raw inputs for values the mapper would silently correct.

    Args:
        raw: Flat mapping of input-sheet fields, or a PlantInputs

    Returns:
        List of human-readable messages (empty when nothing to report)
    """
    if isinstance(raw, PlantInputs):
        inputs = raw
        supplied = set(raw.model_fields_set)
    else:
        raw_dict = dict(raw) if raw is not None else {}
        inputs = PlantInputs.model_validate(raw_dict)
        supplied = set(raw_dict)

    messages = []
    if inputs.Q_total <= 0:
        messages.append("Q_total must be > 0 kW")
    if not 0.0 <= inputs.ratio_liquid <= 100.0:
        messages.append(
            f"ratio_liquid must be within 0-100 %, got {inputs.ratio_liquid:g}")
    for name in ('FWU_Units', 'CDU_Units'):
        if getattr(inputs, name) < 1:
            messages.append(f"{name} below 1 is raised to 1")
    if 'V_room_m3' in supplied and inputs.V_room_m3 <= 0:
        messages.append("V_room_m3 is not positive; room-air node disabled")
    return messages
