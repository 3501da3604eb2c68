"""Muscle metabolic power after Bhargava et al. (2004).

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from metabolax.metabolics.curves import (
    DEFAULT_MAINTENANCE_CURVE_POINTS,
    PiecewiseLinearFunction,
    default_maintenance_curve,
)
from metabolax.metabolics.engine import (
    MetabolicRateEngine,
    MetabolicRates,
    resolve,
)
from metabolax.metabolics.engine_config import (
    EngineConfig,
    MetabolicRateGates,
    ReportMode,
)
from metabolax.metabolics.host import (
    AbstractMetabolicHost,
    HostState,
    MuscleArrayHost,
    MuscleHandle,
    MuscleQuantities,
    muscle_quantities,
)
from metabolax.metabolics.parameters import (
    MetabolicConstants,
    MetabolicMuscleParameter,
    ParameterTable,
    ResolvedParameterTable,
)
from metabolax.metabolics.probe import MetabolicEnergy, MetabolicPowerProbe
from metabolax.metabolics.rates import (
    MuscleMetabolicRates,
    activation_heat_rate,
    basal_heat_rate,
    evaluate,
    maintenance_heat_rate,
    mechanical_work_rate,
    shortening_coefficient,
    shortening_heat_rate,
    twitch_excitations,
)
from metabolax.metabolics.report import (
    PerMuscleRateReport,
    ProbeReport,
    TotalRateReport,
)

__all__ = [
    "AbstractMetabolicHost",
    "DEFAULT_MAINTENANCE_CURVE_POINTS",
    "EngineConfig",
    "HostState",
    "MetabolicConstants",
    "MetabolicEnergy",
    "MetabolicMuscleParameter",
    "MetabolicPowerProbe",
    "MetabolicRateEngine",
    "MetabolicRateGates",
    "MetabolicRates",
    "MuscleArrayHost",
    "MuscleHandle",
    "MuscleMetabolicRates",
    "MuscleQuantities",
    "ParameterTable",
    "PerMuscleRateReport",
    "PiecewiseLinearFunction",
    "ProbeReport",
    "ReportMode",
    "ResolvedParameterTable",
    "TotalRateReport",
    "activation_heat_rate",
    "basal_heat_rate",
    "default_maintenance_curve",
    "evaluate",
    "maintenance_heat_rate",
    "mechanical_work_rate",
    "muscle_quantities",
    "resolve",
    "shortening_coefficient",
    "shortening_heat_rate",
    "twitch_excitations",
]
