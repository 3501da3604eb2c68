"""The view of a host musculoskeletal model that the engine reads from.

The engine never owns or advances muscles. Per evaluation it asks the host
for a handful of scalar quantities per muscle and for the total body mass.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
import logging
from typing import Optional

from equinox import Module, field
import jax.numpy as jnp
import jax.tree as jt
from jaxtyping import Array, ArrayLike, Float, Int, PyTree, Scalar

from metabolax.errors import ConfigurationError


logger = logging.getLogger(__name__)


class MuscleHandle(Module):
    """Non-owning reference to a muscle of a host model.

    Attributes:
        name: Name of the muscle in the host.
        index: Position of the muscle in the host's muscle ordering.
    """

    name: str = field(static=True)
    index: int = field(static=True)


class MuscleQuantities(Module):
    """Scalar muscle quantities at one state, one entry per muscle.

    Fiber velocity is positive when lengthening and negative when shortening.

    Attributes:
        excitation: Neural excitation, in [0, 1].
        fiber_velocity: Contractile element velocity [m/s].
        active_fiber_force: Force developed by the contractile element [N].
        isometric_fiber_force: Force the contractile element would develop
            isometrically at the current activation and fiber length [N].
        norm_fiber_length: Fiber length / optimal fiber length.
    """

    excitation: Float[Array, "*muscles"]
    fiber_velocity: Float[Array, "*muscles"]
    active_fiber_force: Float[Array, "*muscles"]
    isometric_fiber_force: Float[Array, "*muscles"]
    norm_fiber_length: Float[Array, "*muscles"]

    def take(self, indices: Int[Array, " n"]) -> MuscleQuantities:
        """Select the quantities of the muscles at `indices`, in that order."""
        return jt.map(lambda x: jnp.asarray(x)[indices], self)


class AbstractMetabolicHost(Module):
    """Read-only interface to a model whose muscles are being probed."""

    @property
    @abstractmethod
    def muscle_names(self) -> tuple[str, ...]:
        """Names of all muscles in the model, in model order."""
        ...

    @abstractmethod
    def muscle_quantities(
        self,
        state: PyTree,
        handles: Sequence[MuscleHandle],
    ) -> MuscleQuantities:
        """Return the quantities of the muscles in `handles` at `state`."""
        ...

    @abstractmethod
    def total_mass(self, state: PyTree) -> Scalar:
        """Return the mass of the whole model [kg]."""
        ...

    def find_muscle(self, name: str) -> Optional[MuscleHandle]:
        """Look up a muscle by name, or return `None` if there is none."""
        names = self.muscle_names
        if name not in names:
            return None
        return MuscleHandle(name=name, index=names.index(name))


class MuscleArrayHost(AbstractMetabolicHost):
    """A host whose state is a `MuscleQuantities` covering all its muscles.

    This is the natural adapter for models that already carry per-muscle
    arrays in their state, e.g. the outputs of a batch of Hill muscles.

    Attributes:
        names: Muscle names, matching the leading axis of the state arrays.
        body_mass: Mass of the whole model [kg]. Used unless a mass is
            passed explicitly with the state.
    """

    names: tuple[str, ...] = field(static=True)
    body_mass: float

    def __init__(self, names: Sequence[str], body_mass: float):
        names = tuple(names)
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Host muscle names must be unique, got {names}")
        if not body_mass > 0:
            raise ConfigurationError(f"Body mass must be positive, got {body_mass}")
        self.names = names
        self.body_mass = body_mass

    @property
    def muscle_names(self) -> tuple[str, ...]:
        return self.names

    def muscle_quantities(
        self,
        state: MuscleQuantities | HostState,
        handles: Sequence[MuscleHandle],
    ) -> MuscleQuantities:
        if isinstance(state, HostState):
            state = state.muscles
        indices = jnp.array([handle.index for handle in handles], dtype=jnp.int32)
        return state.take(indices)

    def total_mass(self, state: MuscleQuantities | HostState) -> Scalar:
        if isinstance(state, HostState) and state.body_mass is not None:
            return jnp.asarray(state.body_mass)
        return jnp.asarray(self.body_mass)


class HostState(Module):
    """A `MuscleArrayHost` state whose body mass may vary between states.

    Attributes:
        muscles: Quantities of all host muscles.
        body_mass: Whole-model mass [kg]; falls back to the host's own mass
            when `None`.
    """

    muscles: MuscleQuantities
    body_mass: Optional[ArrayLike] = None


def muscle_quantities(
    excitation: ArrayLike,
    fiber_velocity: ArrayLike,
    active_fiber_force: ArrayLike,
    isometric_fiber_force: ArrayLike,
    norm_fiber_length: ArrayLike,
) -> MuscleQuantities:
    """Convenience constructor that converts every input to an array."""
    return MuscleQuantities(
        excitation=jnp.asarray(excitation),
        fiber_velocity=jnp.asarray(fiber_velocity),
        active_fiber_force=jnp.asarray(active_fiber_force),
        isometric_fiber_force=jnp.asarray(isometric_fiber_force),
        norm_fiber_length=jnp.asarray(norm_fiber_length),
    )
