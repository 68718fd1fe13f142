"""Thermal state, samples and run results."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np


@dataclass
class ThermalState:
    """Mutable node temperatures (C) owned by a single run."""
    liquid: float
    air: float
    buffer: float
    room: float

    def as_dict(self, room_active: bool = True) -> Dict[str, Optional[float]]:
        return {
            'T_liquid': self.liquid,
            'T_air': self.air,
            'T_buffer': self.buffer,
            'T_room': self.room if room_active else None,
        }

    def is_finite(self, room_active: bool = True) -> bool:
        """True if every active node temperature is a finite number."""
        values = [self.liquid, self.air, self.buffer]
        if room_active:
            values.append(self.room)
        return bool(np.all(np.isfinite(values)))


@dataclass(frozen=True)
class Sample:
    """One recorded point of the temperature series.

    Attributes:
        time: Elapsed time (s)
        T_liquid: Liquid-loop (CDU return) temperature (C)
        T_air: Air-side coil water (FWU return) temperature (C)
        T_buffer: Buffer / supply temperature (C)
        T_room: Room-air temperature (C), None when no room node
    """
    time: float
    T_liquid: float
    T_air: float
    T_buffer: float
    T_room: Optional[float] = None


@dataclass(frozen=True)
class DivergenceDiagnostic:
    """Why and where a run stopped before reaching the horizon."""
    step: int
    time: float
    phase: str                       # 'before_step', 'after_step' or 'settings'
    state: Dict[str, Optional[float]]

    def __str__(self) -> str:
        values = ", ".join(f"{k}={v}" for k, v in self.state.items())
        if self.phase == 'settings':
            return f"unusable timestep or horizon, not run ({values})"
        return (f"non-finite temperature {self.phase.replace('_', ' ')} "
                f"{self.step} at t={self.time:g}s ({values})")


@dataclass
class SimulationResult:
    """Series produced by one integrator run.

    `samples` always starts with the initial condition at t=0. When the
    finite-value guard stops a run early, `samples` holds everything up
    to the last finite state and `diagnostic` says where it stopped.
    """
    model: str
    samples: List[Sample] = field(default_factory=list)
    nominal_steps: int = 0
    diagnostic: Optional[DivergenceDiagnostic] = None

    @property
    def completed(self) -> bool:
        return self.diagnostic is None

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)

    def __getitem__(self, index):
        return self.samples[index]
