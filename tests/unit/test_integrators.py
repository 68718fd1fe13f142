"""Unit tests for the basic and extended integrators and the dispatcher."""

import math
import unittest
import pytest

from hybrid_cooling_sim.plant_config import AirFlowScaling, SimulationParameters
from hybrid_cooling_sim.simulation import (
    BasicIntegrator,
    ExtendedIntegrator,
    run_model,
    select_integrator,
)
from hybrid_cooling_sim.thermal.materials import LEGACY_CP_WATER

from conftest import make_network


def basic_params(**overrides):
    """Basic-model parameters with lumped masses and no coupling"""
    values = dict(
        T_sup=20.0, T_env=40.0, Q_load=0.0, ratio_liquid=1.0,
        m_liquid=100.0, m_air_side=100.0, m_pipe=100.0,
        UA_L=0.0, UA_A=0.0, UA_P=0.0,
        timestep=1.0, horizon=10.0,
    )
    values.update(overrides)
    return SimulationParameters(**values)


# =============================================================================
# Shared stepping loop
# =============================================================================

class TestSteppingLoop(unittest.TestCase):
    """Sample recording common to both models"""

    def test_initial_sample_at_supply_temperature(self):
        for integrator in (BasicIntegrator(), ExtendedIntegrator()):
            result = integrator.run(basic_params(T_sup=18.0))
            first = result[0]
            self.assertEqual(first.time, 0.0)
            self.assertEqual(first.T_liquid, 18.0)
            self.assertEqual(first.T_air, 18.0)
            self.assertEqual(first.T_buffer, 18.0)

    def test_sample_count_and_times(self):
        result = BasicIntegrator().run(basic_params(horizon=10.0, timestep=3.0))
        self.assertEqual(result.nominal_steps, 4)
        self.assertEqual(len(result), 5)
        times = [s.time for s in result]
        self.assertEqual(times, [0.0, 3.0, 6.0, 9.0, 12.0])
        self.assertTrue(result.completed)

    def test_zero_horizon_records_initial_state_only(self):
        result = ExtendedIntegrator().run(basic_params(horizon=0.0))
        self.assertEqual(len(result), 1)
        self.assertTrue(result.completed)

    def test_time_strictly_increasing(self):
        result = ExtendedIntegrator().run(make_network(timestep=0.5, horizon=20.0))
        times = [s.time for s in result]
        self.assertTrue(all(b > a for a, b in zip(times, times[1:])))

    def test_deterministic(self):
        params = make_network(Q_load=50000.0, flow_liquid=1.0, flow_air=0.5,
                              UA_air=2000.0, UA_pipe=50.0, room_volume=200.0)
        first = ExtendedIntegrator().run(params)
        second = ExtendedIntegrator().run(params)
        self.assertEqual(first.samples, second.samples)


# =============================================================================
# Basic model
# =============================================================================

class TestBasicModel:
    """Uncoupled explicit-Euler nodes"""

    def test_capacities_use_legacy_water_cp(self):
        c = BasicIntegrator().coefficients(basic_params(m_liquid=10.0))
        assert c.C_liquid == pytest.approx(10.0 * LEGACY_CP_WATER)

    def test_liquid_rises_linearly_without_loss(self):
        # 1 K per second into 100 kg of water
        params = basic_params(Q_load=100.0 * LEGACY_CP_WATER)
        result = BasicIntegrator().run(params)
        assert result[-1].T_liquid == pytest.approx(30.0)
        assert result[5].T_liquid == pytest.approx(25.0)

    def test_air_side_constant_with_all_load_on_liquid(self):
        params = basic_params(Q_load=1.0e5, ratio_liquid=1.0)
        result = BasicIntegrator().run(params)
        assert all(s.T_air == 20.0 for s in result)

    def test_load_split(self):
        params = basic_params(Q_load=100.0 * LEGACY_CP_WATER, ratio_liquid=0.25)
        last = BasicIntegrator().run(params)[-1]
        assert last.T_liquid == pytest.approx(22.5)
        assert last.T_air == pytest.approx(27.5)

    def test_buffer_first_step_towards_environment(self):
        params = basic_params(UA_P=LEGACY_CP_WATER)
        result = BasicIntegrator().run(params)
        # UA_P (T_env - T_sup) dt / C = 4186 * 20 / 418600
        assert result[1].T_buffer == pytest.approx(20.2)

    def test_liquid_settles_at_load_over_ua(self):
        params = basic_params(Q_load=10000.0, UA_L=1000.0, horizon=20000.0,
                              timestep=10.0)
        last = BasicIntegrator().run(params)[-1]
        assert last.T_liquid == pytest.approx(30.0, abs=1e-6)

    def test_zero_mass_node_holds(self):
        params = basic_params(Q_load=1.0e5, m_liquid=0.0)
        result = BasicIntegrator().run(params)
        assert result[-1].T_liquid == 20.0

    def test_negative_mass_follows_euler_update(self):
        params = basic_params(Q_load=1.0e5, m_liquid=-1.0, horizon=1.0)
        result = BasicIntegrator().run(params)
        assert result[1].T_liquid == pytest.approx(20.0 - 1.0e5 / LEGACY_CP_WATER)

    def test_no_room_column(self):
        result = BasicIntegrator().run(basic_params())
        assert all(s.T_room is None for s in result)


# =============================================================================
# Extended model
# =============================================================================

class TestExtendedCoefficients:
    """Capacities, conductances and room gating"""

    def test_flow_conductances(self, network):
        c = ExtendedIntegrator().coefficients(
            network(flow_liquid=2.0, flow_air=0.5, cp_water=4000.0))
        assert c.G_liquid == pytest.approx(8000.0)
        assert c.G_air == pytest.approx(2000.0)

    def test_detailed_capacities_used(self, network):
        c = ExtendedIntegrator().coefficients(
            network(C_liquid=3.0e6, C_air=2.0e6, C_buffer=5.0e5))
        assert c.C_liquid == 3.0e6
        assert c.C_air == 2.0e6
        assert c.C_buffer == 5.0e5

    def test_lumped_fallback_without_detailed_capacity(self, network):
        params = network(C_liquid=0.0, C_buffer=0.0, m_pipe=50.0)
        params.m_liquid = 10.0
        c = ExtendedIntegrator().coefficients(params)
        assert c.C_liquid == pytest.approx(10.0 * 4000.0)
        assert c.C_buffer == pytest.approx(50.0 * 4000.0)

    def test_without_extended_bundle(self):
        params = basic_params(m_liquid=10.0, UA_A=500.0)
        c = ExtendedIntegrator().coefficients(params)
        assert c.C_liquid == pytest.approx(10.0 * LEGACY_CP_WATER)
        assert not c.room_active
        assert c.UA_air_room == 0.0

    def test_room_inactive_without_volume(self, network):
        c = ExtendedIntegrator().coefficients(
            network(flow_air=1.0, UA_air=1000.0, room_volume=0.0))
        assert not c.room_active
        assert c.C_room == 0.0
        assert c.UA_air_room == 0.0

    def test_room_capacity(self, network):
        c = ExtendedIntegrator().coefficients(network(room_volume=100.0))
        assert c.room_active
        assert c.C_room == pytest.approx(100.0 * 1.2 * 1005.0)

    def test_air_ua_at_reference_flow(self, network):
        c = ExtendedIntegrator().coefficients(
            network(flow_air=1.0, UA_air=1000.0, room_volume=100.0))
        assert c.UA_air_room == pytest.approx(1000.0)

    def test_air_ua_scales_with_flow(self, network):
        params = network(flow_air=1.0, UA_air=1000.0, room_volume=100.0)
        params.ext.flow_scaling = AirFlowScaling(reference_kgps=2.0, exponent=0.7)
        c = ExtendedIntegrator().coefficients(params)
        assert c.UA_air_room == pytest.approx(1000.0 * 0.5 ** 0.7)

    def test_air_ua_zero_without_air_flow(self, network):
        c = ExtendedIntegrator().coefficients(
            network(flow_air=0.0, UA_air=1000.0, room_volume=100.0))
        assert c.UA_air_room == 0.0


class TestExtendedDynamics:
    """Closed-form checks of the predictor/corrector step"""

    def test_buffer_relaxes_to_environment(self, network):
        """Backward Euler against the environment alone."""
        params = network(C_buffer=1.0e5, UA_pipe=100.0, T_sup=20.0,
                         T_env=40.0, horizon=300.0)
        result = ExtendedIntegrator().run(params)
        tau = 1.0e5 / 100.0

        for n in (1, 10, 300):
            implicit = 40.0 + (20.0 - 40.0) * (1.0 / (1.0 + 1.0 / tau)) ** n
            assert result[n].T_buffer == pytest.approx(implicit, rel=1e-9)

        exact = 40.0 + (20.0 - 40.0) * math.exp(-300.0 / tau)
        assert result[-1].T_buffer == pytest.approx(exact, abs=0.01)

    def test_buffer_stable_at_large_flow(self, network):
        """G*dt = 20 C_b: settles where an explicit update would blow up."""
        params = network(Q_load=1.0e6, C_buffer=1.0e4, flow_liquid=50.0,
                         UA_pipe=1.0e4, T_sup=20.0, T_env=20.0, horizon=600.0)
        result = ExtendedIntegrator().run(params)
        assert result.completed

        # Steady state: UA_P (T_b - 20) = Q, G (T_L - T_b) = Q
        buffers = [s.T_buffer for s in result]
        assert min(buffers) >= 20.0
        assert max(buffers) <= 120.5
        assert result[-1].T_buffer == pytest.approx(120.0, abs=1.0)
        assert result[-1].T_liquid == pytest.approx(125.0, abs=1.0)

    def test_massless_buffer_mixes_instantly(self, network):
        params = network(C_buffer=0.0, m_pipe=0.0, flow_liquid=1.0,
                         flow_air=1.0, UA_pipe=2000.0, T_sup=20.0, T_env=40.0)
        result = ExtendedIntegrator().run(params)
        # (4000*20 + 4000*20 + 2000*40) / 10000
        assert result[1].T_buffer == pytest.approx(24.0)

    def test_massless_uncoupled_buffer_holds(self, network):
        params = network(C_buffer=0.0, m_pipe=0.0, Q_load=1.0e5)
        result = ExtendedIntegrator().run(params)
        assert result.completed
        assert all(s.T_buffer == 20.0 for s in result)

    def test_liquid_load_heats_through_buffer(self, network):
        params = network(Q_load=1.0e5, ratio_liquid=1.0, flow_liquid=1.0,
                         flow_air=1.0, horizon=600.0)
        last = ExtendedIntegrator().run(params)[-1]
        assert last.T_liquid > last.T_buffer > 20.0
        assert 20.0 < last.T_air < last.T_buffer

    def test_room_node_recorded(self, network):
        params = network(Q_load=1.0e5, ratio_liquid=0.0, flow_air=1.0,
                         UA_air=5000.0, room_volume=500.0, room_T_init=25.0)
        result = ExtendedIntegrator().run(params)
        assert result[0].T_room == 25.0
        assert result[-1].T_room > 25.0
        assert all(s.T_room is not None for s in result)

    def test_room_exchanges_with_environment(self, network):
        params = network(room_volume=100.0, room_T_init=25.0, T_env=40.0,
                         UA_room=1000.0)
        result = ExtendedIntegrator().run(params)
        C_room = 100.0 * 1.2 * 1005.0
        assert result[1].T_room == pytest.approx(25.0 + 1000.0 * 15.0 / C_room)
        assert result[-1].T_room < 40.0
        # No air flow: the coil is decoupled from the room
        assert result[-1].T_air == 20.0

    def test_room_absent_when_inactive(self, network):
        result = ExtendedIntegrator().run(network(Q_load=1.0e5))
        assert all(s.T_room is None for s in result)

    def test_room_load_lost_without_room(self, network):
        """Without a room node the air share of the load has nowhere to go."""
        params = network(Q_load=1.0e5, ratio_liquid=0.0, flow_air=1.0)
        last = ExtendedIntegrator().run(params)[-1]
        assert last.T_air == pytest.approx(20.0)
        assert last.T_liquid == pytest.approx(20.0)


# =============================================================================
# Finite-value guard
# =============================================================================

class TestDivergence(unittest.TestCase):
    """Runs stop at the first non-finite state"""

    def test_singular_buffer_system(self):
        # C_b/dt + G_L + UA_P = -5000 + 4000 + 1000 = 0
        params = make_network(flow_liquid=1.0, cp_water=4000.0, UA_pipe=1000.0,
                              C_buffer=0.0, m_pipe=-1.25)
        result = ExtendedIntegrator().run(params)

        self.assertFalse(result.completed)
        self.assertEqual(len(result), 1)
        self.assertEqual(result.diagnostic.step, 0)
        self.assertEqual(result.diagnostic.phase, 'after_step')
        self.assertEqual(result.diagnostic.time, 1.0)
        self.assertTrue(math.isnan(result.diagnostic.state['T_buffer']))
        self.assertIn('after step', str(result.diagnostic))

    def test_explicit_instability(self):
        # UA*dt/C ~ 239: the liquid node oscillates with growing amplitude
        params = basic_params(Q_load=1000.0, m_liquid=1.0, UA_L=1.0e6,
                              horizon=1000.0)
        result = BasicIntegrator().run(params)

        self.assertFalse(result.completed)
        self.assertLess(len(result), result.nominal_steps + 1)
        self.assertGreater(len(result), 1)
        for sample in result:
            self.assertTrue(math.isfinite(sample.T_liquid))
        self.assertEqual(result.diagnostic.step, len(result) - 1)

    def test_non_finite_initial_state(self):
        params = make_network(room_volume=100.0, room_T_init=math.nan)
        result = ExtendedIntegrator().run(params)

        self.assertFalse(result.completed)
        self.assertEqual(len(result), 1)
        self.assertEqual(result.diagnostic.step, 0)
        self.assertEqual(result.diagnostic.phase, 'before_step')
        self.assertEqual(result.diagnostic.time, 0.0)

    def test_divergence_logged(self):
        params = make_network(flow_liquid=1.0, cp_water=4000.0, UA_pipe=1000.0,
                              C_buffer=0.0, m_pipe=-1.25)
        with self.assertLogs('hybrid_cooling_sim.simulation.integrators',
                             level='WARNING'):
            ExtendedIntegrator().run(params)


class TestUnusableRunSettings:
    """Settings edited after with_run_settings are reported, not raised"""

    @pytest.mark.parametrize("use_extended_model", [False, True])
    @pytest.mark.parametrize("timestep,horizon", [
        (0.0, 300.0),
        (math.nan, 300.0),
        (1.0, math.nan),
        (1.0, math.inf),
    ])
    def test_returns_initial_sample(self, timestep, horizon, use_extended_model):
        params = basic_params(Q_load=1.0e5)
        params.timestep = timestep
        params.horizon = horizon
        result = run_model(params, use_extended_model=use_extended_model)

        assert not result.completed
        assert len(result) == 1
        assert result[0].time == 0.0
        assert result[0].T_liquid == 20.0
        assert result.diagnostic.phase == 'settings'
        assert result.diagnostic.step == 0
        assert 'timestep' in str(result.diagnostic)

    def test_warning_logged(self, caplog):
        params = basic_params()
        params.timestep = 0.0
        with caplog.at_level('WARNING', logger='hybrid_cooling_sim.simulation.integrators'):
            run_model(params)
        assert 'unusable run settings' in caplog.text


# =============================================================================
# Dispatcher
# =============================================================================

class TestDispatcher:
    """Model routing"""

    def test_select_integrator(self):
        assert isinstance(select_integrator(True), ExtendedIntegrator)
        assert isinstance(select_integrator(False), BasicIntegrator)

    def test_routes_on_flag(self):
        params = basic_params()
        assert run_model(params).model == "basic"
        extended = params.with_run_settings(timestep=1.0, horizon=10.0,
                                            use_extended_model=True)
        assert run_model(extended).model == "extended"

    def test_override(self):
        params = basic_params()
        assert run_model(params, use_extended_model=True).model == "extended"

    def test_result_matches_integrator(self, network):
        params = network(Q_load=1.0e5, flow_liquid=1.0)
        assert run_model(params).samples == ExtendedIntegrator().run(params).samples
