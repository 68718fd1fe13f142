"""Post-processing of simulated temperature series.

Turns a sample sequence into the quantities the plant dashboards show:

- a pandas DataFrame of node temperatures
- a summary of initial/final temperatures and run length
- instantaneous heat flows along each coupling path (kW)
- node storage rates C*dT/dt (kW) and stored energy totals (kWh)

Heat-flow sign convention: positive in the direction of the name, e.g.
Q_liquid_to_buffer > 0 when the liquid loop delivers heat to the buffer.
"""

import math
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from hybrid_cooling_sim.plant_config import SimulationParameters
from hybrid_cooling_sim.simulation.integrators import ExtendedIntegrator
from hybrid_cooling_sim.simulation.state import Sample


TEMPERATURE_COLUMNS = ['T_liquid', 'T_air', 'T_buffer']
J_PER_KWH = 3.6e6


def _has_room(samples: Sequence[Sample]) -> bool:
    return len(samples) > 0 and samples[0].T_room is not None


def samples_to_frame(samples: Iterable[Sample]) -> pd.DataFrame:
    """Convert samples to a DataFrame.

    Columns: time, T_liquid, T_air, T_buffer and T_room when the series
    carries a room node.
    """
    samples = list(samples)
    columns = ['time'] + TEMPERATURE_COLUMNS
    if _has_room(samples):
        columns.append('T_room')
    records = [[getattr(s, name) for name in columns] for s in samples]
    return pd.DataFrame(records, columns=columns, dtype=float)


def _is_clean(sample: Sample) -> bool:
    values = [sample.time, sample.T_liquid, sample.T_air, sample.T_buffer]
    if sample.T_room is not None:
        values.append(sample.T_room)
    return all(isinstance(v, (int, float)) and math.isfinite(v) for v in values)


def sanitize_series(samples: Iterable[Sample]) -> Tuple[List[Sample], int]:
    """Drop samples holding a non-finite value.

    Returns:
        (clean samples, number of samples dropped)
    """
    samples = list(samples)
    clean = [s for s in samples if _is_clean(s)]
    return clean, len(samples) - len(clean)


def build_summary(samples: Sequence[Sample]) -> Dict[str, float]:
    """Summarise a series.

    Args:
        samples: Finite samples (see sanitize_series)

    Returns:
        Dict of initial/final node temperatures (C), final loop-to-supply
        differences (K), timestep and duration (s). Empty for no samples.
    """
    if not samples:
        return {}
    first, last = samples[0], samples[-1]

    summary = {
        'T_buffer_initial': first.T_buffer,
        'T_buffer_final': last.T_buffer,
        'T_liquid_initial': first.T_liquid,
        'T_liquid_final': last.T_liquid,
        'dT_liquid_buffer': last.T_liquid - last.T_buffer,
        'T_air_initial': first.T_air,
        'T_air_final': last.T_air,
        'dT_air_buffer': last.T_air - last.T_buffer,
    }
    if last.T_room is not None and first.T_room is not None:
        summary['T_room_initial'] = first.T_room
        summary['T_room_final'] = last.T_room
    if len(samples) > 1:
        summary['timestep'] = samples[1].time - samples[0].time
    summary['duration'] = last.time
    return summary


def heat_flow_frame(samples: Sequence[Sample],
                    params: SimulationParameters) -> pd.DataFrame:
    """Instantaneous heat flows and storage rates along the series (kW).

    Conductances and capacities are those of the extended model; for the
    room-to-coil path a missing room temperature is taken equal to the
    air-side temperature, which makes that flow zero.

    Returns:
        DataFrame with time, Q_liquid_to_buffer, Q_air_to_buffer,
        Q_room_to_air, Q_env_to_buffer, S_liquid, S_air, S_buffer, S_room
    """
    frame = samples_to_frame(samples)
    if frame.empty:
        return pd.DataFrame(columns=[
            'time', 'Q_liquid_to_buffer', 'Q_air_to_buffer', 'Q_room_to_air',
            'Q_env_to_buffer', 'S_liquid', 'S_air', 'S_buffer', 'S_room'])

    c = ExtendedIntegrator().coefficients(params)
    t = frame['time'].to_numpy()
    T_L = frame['T_liquid'].to_numpy()
    T_A = frame['T_air'].to_numpy()
    T_b = frame['T_buffer'].to_numpy()
    T_R = frame['T_room'].to_numpy() if 'T_room' in frame else T_A

    # First point has no previous sample: zero rate, unit step
    dt = np.diff(t, prepend=t[0])
    dt[0] = 1.0

    def rate(T: np.ndarray) -> np.ndarray:
        return np.diff(T, prepend=T[0]) / dt

    S_room = c.C_room * rate(T_R) if 'T_room' in frame else np.zeros_like(t)

    return pd.DataFrame({
        'time': t,
        'Q_liquid_to_buffer': c.G_liquid * (T_L - T_b) / 1000.0,
        'Q_air_to_buffer': c.G_air * (T_A - T_b) / 1000.0,
        'Q_room_to_air': c.UA_air_room * (T_R - T_A) / 1000.0,
        'Q_env_to_buffer': c.UA_pipe * (c.T_env - T_b) / 1000.0,
        'S_liquid': c.C_liquid * rate(T_L) / 1000.0,
        'S_air': c.C_air * rate(T_A) / 1000.0,
        'S_buffer': c.C_buffer * rate(T_b) / 1000.0,
        'S_room': S_room / 1000.0,
    })


def energy_totals(samples: Sequence[Sample],
                  params: SimulationParameters) -> Dict[str, Dict[str, float]]:
    """Stored energy per node over the run and storage power at the end.

    Returns:
        {'stored_kwh': {node: kWh}, 'final_power_kw': {node: kW}} for
        nodes liquid, air, buffer, room
    """
    nodes = ('liquid', 'air', 'buffer', 'room')
    if not samples:
        zeros = {n: 0.0 for n in nodes}
        return {'stored_kwh': dict(zeros), 'final_power_kw': dict(zeros)}

    c = ExtendedIntegrator().coefficients(params)
    capacities = {
        'liquid': c.C_liquid,
        'air': c.C_air,
        'buffer': c.C_buffer,
        'room': c.C_room,
    }
    first, last = samples[0], samples[-1]
    prev = samples[-2] if len(samples) > 1 else first
    dt = (last.time - prev.time) or 1.0

    def temps(s: Sample) -> Dict[str, float]:
        room = s.T_room if s.T_room is not None else first.T_room
        return {
            'liquid': s.T_liquid,
            'air': s.T_air,
            'buffer': s.T_buffer,
            'room': room if room is not None else 0.0,
        }

    T_first, T_prev, T_last = temps(first), temps(prev), temps(last)
    stored = {n: capacities[n] * (T_last[n] - T_first[n]) / J_PER_KWH for n in nodes}
    power = {n: capacities[n] * (T_last[n] - T_prev[n]) / dt / 1000.0 for n in nodes}
    return {'stored_kwh': stored, 'final_power_kw': power}
