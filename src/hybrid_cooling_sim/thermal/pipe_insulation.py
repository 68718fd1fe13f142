"""Exposed-pipe environment coupling.

Heat leaks between the buffer water and the ambient through the exposed
section of the external piping. The pipe wall is neglected; the path is
insulation conduction in series with external film convection on a
cylinder:

    R_cond = ln(r_2 / r_1) / (2*pi*k_ins*L)
    R_conv = 1 / (h_ext * 2*pi*r_2*L)
    UA     = f_env / (R_cond + R_conv)

with r_1 the pipe outer radius and r_2 = r_1 + t_ins the insulation outer
radius. When no geometry is known, an exposed area gives the bare-film
estimate UA = h_ext * A * f_env.
"""

import math
from dataclasses import dataclass
from typing import Optional


DEFAULT_INSULATION_CONDUCTIVITY = 0.035   # W/(m*K), mineral wool / PE foam
DEFAULT_EXTERNAL_HTC = 5.0                # W/(m^2*K), still air
DEFAULT_ENVIRONMENT_FACTOR = 1.0


@dataclass
class InsulatedPipe:
    """Cylindrical insulated pipe section exposed to the environment.

    Attributes:
        length: Exposed length (m)
        outer_diameter: Pipe outer diameter (m)
        insulation_thickness: Insulation thickness (m)
        k_insulation: Insulation thermal conductivity (W/(m*K))
        h_external: External convection coefficient (W/(m^2*K))
        env_factor: Correction for wind, sun and fittings
    """
    length: float
    outer_diameter: float
    insulation_thickness: float = 0.0
    k_insulation: float = DEFAULT_INSULATION_CONDUCTIVITY
    h_external: float = DEFAULT_EXTERNAL_HTC
    env_factor: float = DEFAULT_ENVIRONMENT_FACTOR

    @property
    def r_inner(self) -> float:
        return self.outer_diameter / 2.0

    @property
    def r_outer(self) -> float:
        return self.r_inner + max(self.insulation_thickness, 0.0)

    @property
    def R_cond(self) -> float:
        """Insulation conduction resistance (K/W)."""
        if self.r_outer <= self.r_inner:
            return 0.0
        if self.k_insulation <= 0:
            return math.inf
        return (math.log(self.r_outer / self.r_inner)
                / (2.0 * math.pi * self.k_insulation * self.length))

    @property
    def R_conv(self) -> float:
        """External film resistance (K/W)."""
        if self.h_external <= 0:
            return math.inf
        return 1.0 / (self.h_external * 2.0 * math.pi * self.r_outer * self.length)

    @property
    def total_resistance(self) -> float:
        return self.R_cond + self.R_conv

    @property
    def ua(self) -> float:
        """Environment conductance (W/K)."""
        R = self.total_resistance
        if not math.isfinite(R) or R <= 0:
            return 0.0
        return max(self.env_factor, 0.0) / R


def pipe_environment_ua(length: float = 0.0,
                        outer_diameter: float = 0.0,
                        insulation_thickness: float = 0.0,
                        k_insulation: float = DEFAULT_INSULATION_CONDUCTIVITY,
                        h_external: float = DEFAULT_EXTERNAL_HTC,
                        env_factor: float = DEFAULT_ENVIRONMENT_FACTOR,
                        exposed_area: Optional[float] = None) -> float:
    """Compute the buffer-to-environment UA of the exposed piping.

    Geometry takes precedence; the area estimate is used only when the
    length or the diameter is missing.

    Args:
        length: Exposed pipe length (m)
        outer_diameter: Pipe outer diameter (m)
        insulation_thickness: Insulation thickness (m)
        k_insulation: Insulation conductivity (W/(m*K))
        h_external: External convection coefficient (W/(m^2*K))
        env_factor: Environment correction factor
        exposed_area: Exposed surface area (m^2), fallback only

    Returns:
        UA in W/K (0 when neither geometry nor area is available)
    """
    if length > 0 and outer_diameter > 0:
        pipe = InsulatedPipe(
            length=length,
            outer_diameter=outer_diameter,
            insulation_thickness=insulation_thickness,
            k_insulation=k_insulation,
            h_external=h_external,
            env_factor=env_factor,
        )
        return pipe.ua

    if exposed_area is not None and exposed_area > 0:
        return max(h_external, 0.0) * exposed_area * max(env_factor, 0.0)

    return 0.0
