"""Transient integrators for the cooling plant node network.

Two model fidelities share one stepping loop:

BasicIntegrator (3 nodes, uncoupled, explicit Euler)
    C_L dT_L/dt = Q*r     - UA_L (T_L - T_sup)
    C_A dT_A/dt = Q*(1-r) - UA_A (T_A - T_sup)
    C_P dT_P/dt = UA_P (T_env - T_P)

ExtendedIntegrator (3 or 4 nodes, flow-coupled through the buffer)
    C_L dT_L/dt = Q*r + G_L (T_b - T_L)
    C_A dT_A/dt = G_A (T_b - T_A) + UA_AR (T_R - T_A)
    C_R dT_R/dt = Q*(1-r) - UA_AR (T_R - T_A) + UA_R (T_env - T_R)
    C_b dT_b/dt = G_L (T_L - T_b) + G_A (T_A - T_b) + UA_P (T_env - T_b)

    with G = m_dot * c_p,water and UA_AR = UA_A * (m_dot_A / m_dot_A,ref)^n.

The buffer sees both high-flow loops, so its explicit update is unstable
once G*dt approaches C_b. It is advanced with backward Euler from the
explicitly predicted loop temperatures, written as a linear system in
the implicit node temperatures.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np
from scipy import linalg

from hybrid_cooling_sim.plant_config import ExtendedParameters, SimulationParameters
from hybrid_cooling_sim.simulation.state import (
    DivergenceDiagnostic,
    Sample,
    SimulationResult,
    ThermalState,
)
from hybrid_cooling_sim.thermal.materials import (
    LEGACY_CP_WATER,
    SpecificHeats,
    room_air_capacity,
)

logger = logging.getLogger(__name__)


def explicit_update(T: float, net_power: float, capacity: float, dt: float) -> float:
    """Forward-Euler temperature update; a node without capacity holds."""
    if capacity == 0:
        return T
    return T + net_power * dt / capacity


def solve_linear_system(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve A x = b for the implicit node temperatures.

    A singular system has no physical solution; the result is NaN so the
    finite-value guard stops the run at this step.
    """
    try:
        return linalg.solve(A, b, check_finite=False)
    except linalg.LinAlgError:
        logger.debug(f"Singular implicit system A={A.tolist()}")
        return np.full(b.shape, np.nan)


class Integrator(ABC):
    """Fixed-step integrator over ceil(horizon / dt) steps.

    Subclasses provide the per-run coefficients, the initial state and
    one step; the loop, the recording of samples and the finite-value
    guard are shared.
    """

    name = "integrator"

    @abstractmethod
    def coefficients(self, params: SimulationParameters) -> Any:
        """Derive per-run constants from the parameter bundle."""

    @abstractmethod
    def initial_state(self, params: SimulationParameters, coeffs: Any) -> ThermalState:
        """Build the state at t=0."""

    @abstractmethod
    def step(self, state: ThermalState, coeffs: Any, dt: float) -> ThermalState:
        """Advance the state by one timestep."""

    def room_active(self, coeffs: Any) -> bool:
        return False

    def run(self, params: SimulationParameters) -> SimulationResult:
        """Integrate over the configured horizon.

        Args:
            params: Parameter bundle with run settings attached

        Returns:
            SimulationResult whose samples start at t=0; shorter than
            nominal_steps + 1 if the run diverged, and only the t=0
            sample if the timestep or horizon is unusable
        """
        coeffs = self.coefficients(params)
        room = self.room_active(coeffs)
        dt = params.timestep
        state = self.initial_state(params, coeffs)
        t = 0.0

        # Settings changed after with_run_settings: no step count exists
        if not (math.isfinite(dt) and dt > 0 and math.isfinite(params.horizon)):
            result = SimulationResult(model=self.name)
            result.samples.append(self._sample(t, state, room))
            result.diagnostic = DivergenceDiagnostic(
                step=0, time=t, phase='settings', state=state.as_dict(room))
            logger.warning(f"{self.name}: unusable run settings "
                           f"timestep={dt}, horizon={params.horizon}; not run")
            return result

        steps = params.num_steps
        result = SimulationResult(model=self.name, nominal_steps=steps)
        result.samples.append(self._sample(t, state, room))
        logger.debug(f"{self.name}: {steps} steps of {dt:g}s, room node {'on' if room else 'off'}")

        for i in range(steps):
            if not state.is_finite(room):
                result.diagnostic = self._abort(i, t, 'before_step', state, room)
                break

            state = self.step(state, coeffs, dt)
            t += dt

            if not state.is_finite(room):
                result.diagnostic = self._abort(i, t, 'after_step', state, room)
                break

            result.samples.append(self._sample(t, state, room))

        logger.debug(f"{self.name}: recorded {len(result.samples)} samples")
        return result

    @staticmethod
    def _sample(t: float, state: ThermalState, room: bool) -> Sample:
        return Sample(
            time=t,
            T_liquid=state.liquid,
            T_air=state.air,
            T_buffer=state.buffer,
            T_room=state.room if room else None,
        )

    def _abort(self, step: int, t: float, phase: str,
               state: ThermalState, room: bool) -> DivergenceDiagnostic:
        diagnostic = DivergenceDiagnostic(
            step=step, time=t, phase=phase, state=state.as_dict(room))
        logger.warning(f"{self.name}: {diagnostic}; run truncated")
        return diagnostic


# =============================================================================
# Basic model
# =============================================================================

@dataclass
class BasicCoefficients:
    """Constants of the uncoupled 3-node model."""
    C_liquid: float     # J/K
    C_air: float        # J/K
    C_buffer: float     # J/K
    Q_liquid: float     # W
    Q_air: float        # W
    UA_L: float         # W/K
    UA_A: float         # W/K
    UA_P: float         # W/K
    T_sup: float        # C
    T_env: float        # C


class BasicIntegrator(Integrator):
    """Reduced baseline: each node exchanges only with a fixed reference.

    The buffer is driven by the environment alone; it has no loss path to
    the liquid or air nodes.
    """

    name = "basic"

    def coefficients(self, params: SimulationParameters) -> BasicCoefficients:
        return BasicCoefficients(
            C_liquid=params.m_liquid * LEGACY_CP_WATER,
            C_air=params.m_air_side * LEGACY_CP_WATER,
            C_buffer=params.m_pipe * LEGACY_CP_WATER,
            Q_liquid=params.Q_load * params.ratio_liquid,
            Q_air=params.Q_load * (1.0 - params.ratio_liquid),
            UA_L=params.UA_L,
            UA_A=params.UA_A,
            UA_P=params.UA_P,
            T_sup=params.T_sup,
            T_env=params.T_env,
        )

    def initial_state(self, params: SimulationParameters,
                      coeffs: BasicCoefficients) -> ThermalState:
        T0 = params.T_sup
        return ThermalState(liquid=T0, air=T0, buffer=T0, room=T0)

    def step(self, state: ThermalState, coeffs: BasicCoefficients,
             dt: float) -> ThermalState:
        c = coeffs
        Q_L = c.UA_L * (state.liquid - c.T_sup)
        Q_A = c.UA_A * (state.air - c.T_sup)
        Q_P = c.UA_P * (c.T_env - state.buffer)

        return ThermalState(
            liquid=explicit_update(state.liquid, c.Q_liquid - Q_L, c.C_liquid, dt),
            air=explicit_update(state.air, c.Q_air - Q_A, c.C_air, dt),
            buffer=explicit_update(state.buffer, Q_P, c.C_buffer, dt),
            room=state.room,
        )


# =============================================================================
# Extended model
# =============================================================================

@dataclass
class ExtendedCoefficients:
    """Constants of the flow-coupled model."""
    C_liquid: float       # J/K
    C_air: float          # J/K
    C_buffer: float       # J/K
    C_room: float         # J/K, 0 without room node
    G_liquid: float       # W/K, liquid loop flow conductance
    G_air: float          # W/K, air-side loop flow conductance
    UA_air_room: float    # W/K, flow-scaled coil UA, 0 without room node
    UA_room_env: float    # W/K
    UA_pipe: float        # W/K
    Q_liquid: float       # W
    Q_air: float          # W
    T_env: float          # C
    room_active: bool


def _capacity(detailed: float, lumped_mass: float, cp_water: float) -> float:
    """Detailed capacity, or the lumped mass when none was specified."""
    if detailed > 0:
        return detailed
    return lumped_mass * cp_water


class ExtendedIntegrator(Integrator):
    """Flow-coupled model with optional room-air node.

    Each step predicts the liquid, air-side and room temperatures
    explicitly from the current buffer and room state, then solves the
    buffer balance implicitly against the predicted loop temperatures.
    """

    name = "extended"

    def coefficients(self, params: SimulationParameters) -> ExtendedCoefficients:
        ext = params.ext if params.ext is not None else ExtendedParameters(
            cp=SpecificHeats(water=LEGACY_CP_WATER))
        cp_w = ext.cp.water

        room_on = ext.room.active
        C_room = room_air_capacity(ext.room.volume_m3, ext.cp) if room_on else 0.0

        flow_air = ext.flows.air_kgps
        flow_ref = ext.flow_scaling.reference_kgps
        if flow_ref <= 0:
            flow_ref = flow_air if flow_air > 0 else 1.0
        if flow_air > 0:
            scale = (flow_air / flow_ref) ** ext.flow_scaling.exponent
        else:
            scale = 0.0

        UA_air_total = ext.ua_totals.air if params.ext is not None else params.UA_A

        return ExtendedCoefficients(
            C_liquid=_capacity(ext.heat_caps.tcs, params.m_liquid, cp_w),
            C_air=_capacity(ext.heat_caps.fwu, params.m_air_side, cp_w),
            C_buffer=_capacity(ext.heat_caps.buffer, params.m_pipe, cp_w),
            C_room=C_room,
            G_liquid=ext.flows.liquid_kgps * cp_w,
            G_air=flow_air * cp_w,
            UA_air_room=UA_air_total * scale if room_on else 0.0,
            UA_room_env=ext.room.UA_room if room_on else 0.0,
            UA_pipe=params.UA_P,
            Q_liquid=params.Q_load * params.ratio_liquid,
            Q_air=params.Q_load * (1.0 - params.ratio_liquid),
            T_env=params.T_env,
            room_active=room_on,
        )

    def room_active(self, coeffs: ExtendedCoefficients) -> bool:
        return coeffs.room_active

    def initial_state(self, params: SimulationParameters,
                      coeffs: ExtendedCoefficients) -> ThermalState:
        T0 = params.T_sup
        T_room = params.ext.room.T_init if params.ext is not None else T0
        return ThermalState(liquid=T0, air=T0, buffer=T0, room=T_room)

    def step(self, state: ThermalState, coeffs: ExtendedCoefficients,
             dt: float) -> ThermalState:
        c = coeffs

        # Predictor: loops and room against the current buffer / room
        Q_mix_L = c.G_liquid * (state.buffer - state.liquid)
        Q_mix_A = c.G_air * (state.buffer - state.air)
        Q_room_air = c.UA_air_room * (state.room - state.air)
        Q_env_room = c.UA_room_env * (c.T_env - state.room)

        T_liquid = explicit_update(state.liquid, c.Q_liquid + Q_mix_L, c.C_liquid, dt)
        T_air = explicit_update(state.air, Q_mix_A + Q_room_air, c.C_air, dt)
        if c.room_active:
            T_room = explicit_update(
                state.room, c.Q_air - Q_room_air + Q_env_room, c.C_room, dt)
        else:
            T_room = state.room

        # Corrector: backward Euler for the buffer
        T_buffer = self.correct_buffer(state.buffer, T_liquid, T_air, c, dt)

        return ThermalState(liquid=T_liquid, air=T_air, buffer=T_buffer, room=T_room)

    @staticmethod
    def correct_buffer(T_buffer: float, T_liquid: float, T_air: float,
                       c: ExtendedCoefficients, dt: float) -> float:
        """Implicit buffer temperature at the end of the step.

        Solves
            (C_b/dt + G_L + G_A + UA_P) T_b' =
                (C_b/dt) T_b + G_L T_L' + G_A T_A' + UA_P T_env

        With C_b = 0 this is the instantaneous mixing temperature of the
        inflows and the environment.
        """
        storage = c.C_buffer / dt
        A = np.array([[storage + c.G_liquid + c.G_air + c.UA_pipe]])
        b = np.array([storage * T_buffer
                      + c.G_liquid * T_liquid
                      + c.G_air * T_air
                      + c.UA_pipe * c.T_env])

        if c.C_buffer == 0 and A[0, 0] == 0:
            # Massless and uncoupled: nothing sets the temperature
            return T_buffer

        return float(solve_linear_system(A, b)[0])
