"""Configuration of the metabolic rate engine.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

from enum import Enum
import logging
import math

from equinox import Module, field

from metabolax.errors import ConfigurationError
from metabolax.metabolics.curves import PiecewiseLinearFunction, default_maintenance_curve


logger = logging.getLogger(__name__)


DEFAULT_BASAL_COEFFICIENT = 1.51
DEFAULT_BASAL_EXPONENT = 1.0
DEFAULT_PROBE_NAME = "metabolic_power"


class ReportMode(str, Enum):
    """Which channels the engine reports each evaluation."""

    TOTAL = "total"
    PER_MUSCLE = "per_muscle"


class MetabolicRateGates(Module):
    """Switches for each term of the metabolic rate.

    A term that is switched off contributes exactly zero.
    """

    activation: bool = field(default=True, static=True)
    maintenance: bool = field(default=True, static=True)
    shortening: bool = field(default=True, static=True)
    basal: bool = field(default=True, static=True)
    mechanical_work: bool = field(default=True, static=True)


class EngineConfig(Module):
    """Flags and coefficients fixed for the lifetime of an engine.

    Attributes:
        gates: Which terms are computed.
        use_force_dependent_shortening_constant: Whether the shortening heat
            coefficient scales with fiber force.
        normalize_mechanical_work_by_mass: Whether each muscle's mechanical
            work rate is divided by its mass.
        basal_coefficient: Scale of the basal heat rate [W/kg^exponent].
        basal_exponent: Exponent applied to body mass in the basal rate.
        maintenance_length_dependence: Scale factor on the maintenance heat
            rate as a function of normalized fiber length.
        report_mode: Whether to report the total or a per-muscle breakdown.
        name: Probe name, used to label reported channels.
    """

    gates: MetabolicRateGates = field(default_factory=MetabolicRateGates)
    use_force_dependent_shortening_constant: bool = field(default=False, static=True)
    normalize_mechanical_work_by_mass: bool = field(default=False, static=True)
    basal_coefficient: float = DEFAULT_BASAL_COEFFICIENT
    basal_exponent: float = DEFAULT_BASAL_EXPONENT
    maintenance_length_dependence: PiecewiseLinearFunction = field(
        default_factory=default_maintenance_curve
    )
    report_mode: ReportMode = field(default=ReportMode.TOTAL, static=True)
    name: str = field(default=DEFAULT_PROBE_NAME, static=True)

    def __check_init__(self):
        for label in ("basal_coefficient", "basal_exponent"):
            value = getattr(self, label)
            if not math.isfinite(value):
                raise ConfigurationError(f"{label} must be finite, got {value}")
        if not isinstance(self.maintenance_length_dependence, PiecewiseLinearFunction):
            raise ConfigurationError(
                "maintenance_length_dependence must be a PiecewiseLinearFunction"
            )
        if not isinstance(self.report_mode, ReportMode):
            raise ConfigurationError(f"Unknown report mode {self.report_mode!r}")
        if not self.name:
            raise ConfigurationError("Probe name must not be empty")

    @classmethod
    def from_flags(
        cls,
        activation_rate_on: bool = True,
        maintenance_rate_on: bool = True,
        shortening_rate_on: bool = True,
        basal_rate_on: bool = True,
        mechanical_work_rate_on: bool = True,
        **kwargs,
    ) -> EngineConfig:
        """Build a config from the five term switches, plus any other fields."""
        gates = MetabolicRateGates(
            activation=activation_rate_on,
            maintenance=maintenance_rate_on,
            shortening=shortening_rate_on,
            basal=basal_rate_on,
            mechanical_work=mechanical_work_rate_on,
        )
        return cls(gates=gates, **kwargs)
