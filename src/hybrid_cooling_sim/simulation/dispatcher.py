"""Model selection: the single entry point for running a simulation."""

from typing import Optional

from hybrid_cooling_sim.plant_config import SimulationParameters
from hybrid_cooling_sim.simulation.integrators import (
    BasicIntegrator,
    ExtendedIntegrator,
    Integrator,
)
from hybrid_cooling_sim.simulation.state import SimulationResult


def select_integrator(use_extended_model: bool) -> Integrator:
    if use_extended_model:
        return ExtendedIntegrator()
    return BasicIntegrator()


def run_model(params: SimulationParameters,
              use_extended_model: Optional[bool] = None) -> SimulationResult:
    """Run the basic or the extended plant model.

    Args:
        params: Parameter bundle with run settings attached
        use_extended_model: Overrides params.use_extended_model if given

    Returns:
        The integrator's SimulationResult, unmodified
    """
    if use_extended_model is None:
        use_extended_model = params.use_extended_model
    return select_integrator(use_extended_model).run(params)
