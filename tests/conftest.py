"""
Pytest configuration and shared fixtures for the cooling plant simulator tests.
"""

import sys
import os
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from hybrid_cooling_sim.plant_config import (
    REFERENCE_PLANT_INPUTS,
    ExtendedParameters,
    LoopFlows,
    NodeHeatCapacities,
    RoomAir,
    SimulationParameters,
    UATotals,
    map_inputs,
)
from hybrid_cooling_sim.thermal.materials import SpecificHeats


@pytest.fixture
def reference_inputs():
    """Reference plant input sheet (3.85 MW, 8 FWU, 4 CDU, room enabled)"""
    return dict(REFERENCE_PLANT_INPUTS)


@pytest.fixture
def reference_params(reference_inputs):
    """Reference plant mapped for a 300 s extended run at 1 s"""
    return map_inputs(reference_inputs).with_run_settings(
        timestep=1.0, horizon=300.0, use_extended_model=True)


def make_network(T_sup=20.0, T_env=40.0, Q_load=0.0, ratio_liquid=1.0,
                 C_liquid=1.0e6, C_air=1.0e6, C_buffer=1.0e5,
                 m_pipe=0.0, flow_liquid=0.0, flow_air=0.0,
                 UA_air=0.0, UA_pipe=0.0, room_volume=0.0, room_T_init=25.0,
                 UA_room=0.0, cp_water=4000.0, timestep=1.0, horizon=300.0):
    """Hand-built extended-model parameters with round numbers"""
    ext = ExtendedParameters(
        cp=SpecificHeats(water=cp_water),
        heat_caps=NodeHeatCapacities(fwu=C_air, tcs=C_liquid, buffer=C_buffer),
        flows=LoopFlows(air_kgps=flow_air, liquid_kgps=flow_liquid),
        ua_totals=UATotals(air=UA_air, pipe=UA_pipe),
        room=RoomAir(T_init=room_T_init, volume_m3=room_volume, UA_room=UA_room),
    )
    return SimulationParameters(
        T_sup=T_sup,
        T_env=T_env,
        Q_load=Q_load,
        ratio_liquid=ratio_liquid,
        m_liquid=0.0,
        m_air_side=0.0,
        m_pipe=m_pipe,
        UA_A=UA_air,
        UA_P=UA_pipe,
        timestep=timestep,
        horizon=horizon,
        use_extended_model=True,
        ext=ext,
    )


@pytest.fixture
def network():
    """Factory for hand-built extended-model parameters"""
    return make_network
