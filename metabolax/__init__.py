"""
:copyright: Copyright 2023-2024 by MLL <mll@mll.bio>.
:license: Apache 2.0, see LICENSE for details.
"""

import importlib.metadata
import logging
import os

from metabolax.errors import (
    AttachmentError,
    ConfigurationError,
    DuplicateMuscleError,
    MetabolicsError,
    NotReadyError,
    UnknownMuscleError,
)
from metabolax.graph import Component, init_state_from_component
from metabolax.iterate import iterate_component
from metabolax.metabolics import (
    EngineConfig,
    MetabolicMuscleParameter,
    MetabolicPowerProbe,
    MetabolicRateEngine,
    MetabolicRateGates,
    MuscleArrayHost,
    MuscleQuantities,
    ParameterTable,
    PiecewiseLinearFunction,
    ReportMode,
)
from metabolax.config import load_engine


try:
    __version__ = importlib.metadata.version("metabolax")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"


if os.environ.get("METABOLAX_DEBUG", False) == "True":
    DEFAULT_LOG_LEVEL = "DEBUG"
else:
    DEFAULT_LOG_LEVEL = "INFO"

LOG_LEVEL = os.environ.get("METABOLAX_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()


logger = logging.getLogger(__package__)
logger.addHandler(logging.NullHandler())
logger.setLevel(LOG_LEVEL)
