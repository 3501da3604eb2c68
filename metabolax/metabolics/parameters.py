"""Per-muscle metabolic parameters and the table that holds them.

Default constants follow Bhargava et al. (2004):

| Constant                | Slow twitch | Fast twitch |
|-------------------------|-------------|-------------|
| Activation heat (W/kg)  | 40          | 133         |
| Maintenance heat (W/kg) | 74          | 111         |

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
import logging
import math
from typing import TYPE_CHECKING

from equinox import Module, field
import jax.numpy as jnp
from jaxtyping import Array, Float
import numpy as np

from metabolax.errors import ConfigurationError

if TYPE_CHECKING:
    from metabolax.metabolics.host import AbstractMetabolicHost, MuscleHandle


logger = logging.getLogger(__name__)


DEFAULT_SLOW_TWITCH_RATIO = 0.5
DEFAULT_ACTIVATION_CONSTANT_SLOW = 40.0
DEFAULT_ACTIVATION_CONSTANT_FAST = 133.0
DEFAULT_MAINTENANCE_CONSTANT_SLOW = 74.0
DEFAULT_MAINTENANCE_CONSTANT_FAST = 111.0

DEFAULT_SPECIFIC_TENSION = 0.25e6  # Pa
DEFAULT_MUSCLE_DENSITY = 1059.7  # kg/m^3

_HEAT_CONSTANT_FIELDS = (
    "activation_constant_slow",
    "activation_constant_fast",
    "maintenance_constant_slow",
    "maintenance_constant_fast",
)


class MetabolicMuscleParameter(Module):
    """Physiological constants of one muscle.

    Attributes:
        muscle_name: Name of the host muscle these constants describe.
        mass: Muscle mass [kg].
        slow_twitch_ratio: Fraction of slow twitch fibers, in [0, 1].
        activation_constant_slow: Slow twitch activation heat constant [W/kg].
        activation_constant_fast: Fast twitch activation heat constant [W/kg].
        maintenance_constant_slow: Slow twitch maintenance heat constant [W/kg].
        maintenance_constant_fast: Fast twitch maintenance heat constant [W/kg].
    """

    muscle_name: str = field(static=True)
    mass: float
    slow_twitch_ratio: float = DEFAULT_SLOW_TWITCH_RATIO
    activation_constant_slow: float = DEFAULT_ACTIVATION_CONSTANT_SLOW
    activation_constant_fast: float = DEFAULT_ACTIVATION_CONSTANT_FAST
    maintenance_constant_slow: float = DEFAULT_MAINTENANCE_CONSTANT_SLOW
    maintenance_constant_fast: float = DEFAULT_MAINTENANCE_CONSTANT_FAST

    def __check_init__(self):
        if not isinstance(self.muscle_name, str) or not self.muscle_name:
            raise ConfigurationError(
                f"Muscle name must be a non-empty string, got {self.muscle_name!r}"
            )
        if not (math.isfinite(self.mass) and self.mass > 0):
            raise ConfigurationError(
                f"Mass of muscle '{self.muscle_name}' must be positive, got {self.mass}"
            )
        if not 0.0 <= self.slow_twitch_ratio <= 1.0:
            raise ConfigurationError(
                f"Slow twitch ratio of muscle '{self.muscle_name}' must lie in [0, 1], "
                f"got {self.slow_twitch_ratio}"
            )
        for name in _HEAT_CONSTANT_FIELDS:
            value = getattr(self, name)
            if not (math.isfinite(value) and value >= 0):
                raise ConfigurationError(
                    f"{name} of muscle '{self.muscle_name}' must be non-negative, got {value}"
                )

    @classmethod
    def from_muscle_properties(
        cls,
        muscle_name: str,
        max_isometric_force: float,
        optimal_fiber_length: float,
        *,
        specific_tension: float = DEFAULT_SPECIFIC_TENSION,
        density: float = DEFAULT_MUSCLE_DENSITY,
        **constants: float,
    ) -> MetabolicMuscleParameter:
        """Estimate muscle mass from its architecture.

        The physiological cross-sectional area is `max_isometric_force /
        specific_tension`, and the mass is that area times the optimal
        fiber length times the tissue density.

        Args:
            muscle_name: Name of the host muscle.
            max_isometric_force: Peak isometric force [N].
            optimal_fiber_length: Optimal fiber length [m].
            specific_tension: Force per unit cross-sectional area [Pa].
            density: Muscle tissue density [kg/m^3].
            **constants: Any of the remaining parameter fields.
        """
        if specific_tension <= 0 or density <= 0:
            raise ConfigurationError(
                "Specific tension and density must be positive to estimate muscle mass"
            )
        pcsa = max_isometric_force / specific_tension
        mass = pcsa * optimal_fiber_length * density
        return cls(muscle_name=muscle_name, mass=mass, **constants)


class MetabolicConstants(Module):
    """Constants of several muscles, stacked along a leading muscle axis.

    Field names match `MetabolicMuscleParameter`, so the rate functions
    accept either.
    """

    mass: Float[Array, " n_muscles"]
    slow_twitch_ratio: Float[Array, " n_muscles"]
    activation_constant_slow: Float[Array, " n_muscles"]
    activation_constant_fast: Float[Array, " n_muscles"]
    maintenance_constant_slow: Float[Array, " n_muscles"]
    maintenance_constant_fast: Float[Array, " n_muscles"]

    @classmethod
    def stack(cls, entries: Sequence[MetabolicMuscleParameter]) -> MetabolicConstants:
        def column(name: str) -> Array:
            return jnp.asarray(np.array([getattr(e, name) for e in entries], dtype=float))

        return cls(
            mass=column("mass"),
            slow_twitch_ratio=column("slow_twitch_ratio"),
            **{name: column(name) for name in _HEAT_CONSTANT_FIELDS},
        )


class ParameterTable(Module):
    """Ordered collection of muscle parameters, as configured.

    Entry order fixes the order of per-muscle outputs and of summation.
    """

    entries: tuple[MetabolicMuscleParameter, ...]

    def __init__(self, entries: Sequence[MetabolicMuscleParameter] = ()):
        for entry in entries:
            if not isinstance(entry, MetabolicMuscleParameter):
                raise ConfigurationError(
                    f"Parameter table entries must be MetabolicMuscleParameter, got {type(entry).__name__}"
                )
        self.entries = tuple(entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[MetabolicMuscleParameter]:
        return iter(self.entries)

    @property
    def muscle_names(self) -> tuple[str, ...]:
        return tuple(entry.muscle_name for entry in self.entries)

    def constants(self) -> MetabolicConstants:
        return MetabolicConstants.stack(self.entries)


class ResolvedParameterTable(Module):
    """A parameter table whose entries are paired with host muscles.

    The handles only identify muscles; the host keeps ownership of them.

    Attributes:
        entries: The configured parameters, in table order.
        handles: The host muscle each entry refers to, in the same order.
        host: The host the handles were resolved against.
        constants: `entries` stacked for vectorized evaluation.
    """

    entries: tuple[MetabolicMuscleParameter, ...]
    handles: tuple["MuscleHandle", ...]
    host: "AbstractMetabolicHost"
    constants: MetabolicConstants

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def muscle_names(self) -> tuple[str, ...]:
        return tuple(handle.name for handle in self.handles)
