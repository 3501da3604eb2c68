"""Heat and work rates of muscle contraction, after Bhargava et al. (2004).

All functions are pure and operate elementwise, so they accept either a
single muscle's scalars or arrays stacked along a muscle axis. Fiber velocity
follows the host convention (positive when lengthening); zero velocity is
handled by the `v >= 0` branch everywhere.

Key references:
- Bhargava, Pandy & Anderson (2004): A phenomenological model for estimating
  metabolic energy consumption in muscle contraction. J Biomech 37, 81-88.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

import logging
from typing import Protocol

from equinox import Module
import jax.numpy as jnp
import jax.tree as jt
from jaxtyping import Array, ArrayLike, Float, Scalar

from metabolax.metabolics.curves import PiecewiseLinearFunction
from metabolax.metabolics.engine_config import EngineConfig
from metabolax.metabolics.host import MuscleQuantities


logger = logging.getLogger(__name__)


# Shortening heat coefficients
FORCE_DEPENDENT_ISOMETRIC_COEFF = 0.16
FORCE_DEPENDENT_CONCENTRIC_COEFF = 0.18
FORCE_DEPENDENT_ECCENTRIC_COEFF = 0.157
CONSTANT_CONCENTRIC_COEFF = 0.25
CONSTANT_ECCENTRIC_COEFF = 0.0


class MuscleConstantsLike(Protocol):
    """Anything carrying the per-muscle constants by name."""

    mass: ArrayLike
    slow_twitch_ratio: ArrayLike
    activation_constant_slow: ArrayLike
    activation_constant_fast: ArrayLike
    maintenance_constant_slow: ArrayLike
    maintenance_constant_fast: ArrayLike


class MuscleMetabolicRates(Module):
    """The four muscle-level terms of the metabolic rate [W].

    Attributes:
        activation: Activation heat rate.
        maintenance: Maintenance heat rate.
        shortening: Shortening heat rate.
        mechanical_work: Mechanical work rate.
    """

    activation: Float[Array, "*muscles"]
    maintenance: Float[Array, "*muscles"]
    shortening: Float[Array, "*muscles"]
    mechanical_work: Float[Array, "*muscles"]

    @property
    def total(self) -> Float[Array, "*muscles"]:
        return self.activation + self.maintenance + self.shortening + self.mechanical_work


def twitch_excitations(
    excitation: ArrayLike,
    slow_twitch_ratio: ArrayLike,
) -> tuple[Array, Array]:
    """Split excitation into slow and fast twitch recruitment.

    Slow twitch fibers are recruited first, as `r * sin(pi/2 * u)`; fast
    twitch fibers follow as `(1 - r) * (1 - cos(pi/2 * u))`.
    """
    u = jnp.asarray(excitation)
    r = jnp.asarray(slow_twitch_ratio)
    slow = r * jnp.sin(0.5 * jnp.pi * u)
    fast = (1.0 - r) * (1.0 - jnp.cos(0.5 * jnp.pi * u))
    return slow, fast


def activation_heat_rate(params: MuscleConstantsLike, excitation: ArrayLike) -> Array:
    """Adot = m * [A_slow * r * sin(pi/2 u) + A_fast * (1-r) * (1 - cos(pi/2 u))]."""
    slow, fast = twitch_excitations(excitation, params.slow_twitch_ratio)
    return params.mass * (
        params.activation_constant_slow * slow + params.activation_constant_fast * fast
    )


def maintenance_heat_rate(
    params: MuscleConstantsLike,
    excitation: ArrayLike,
    norm_fiber_length: ArrayLike,
    length_dependence: PiecewiseLinearFunction,
) -> Array:
    """Mdot = m * f(l) * [M_slow * r * sin(pi/2 u) + M_fast * (1-r) * (1 - cos(pi/2 u))]."""
    slow, fast = twitch_excitations(excitation, params.slow_twitch_ratio)
    scale = length_dependence(norm_fiber_length)
    return params.mass * scale * (
        params.maintenance_constant_slow * slow + params.maintenance_constant_fast * fast
    )


def shortening_coefficient(
    fiber_velocity: ArrayLike,
    active_fiber_force: ArrayLike,
    isometric_fiber_force: ArrayLike,
    force_dependent: bool = False,
) -> Array:
    """Proportionality constant `alpha` of the shortening heat rate.

    Args:
        fiber_velocity: Contractile element velocity.
        active_fiber_force: Contractile element force.
        isometric_fiber_force: Isometric contractile element force at the
            current activation and fiber length.
        force_dependent: Use the force-dependent coefficients instead of
            the constant ones.
    """
    v = jnp.asarray(fiber_velocity)
    force = jnp.asarray(active_fiber_force)
    if force_dependent:
        non_negative = (
            FORCE_DEPENDENT_ISOMETRIC_COEFF * jnp.asarray(isometric_fiber_force)
            + FORCE_DEPENDENT_CONCENTRIC_COEFF * force
        )
        negative = FORCE_DEPENDENT_ECCENTRIC_COEFF * force
    else:
        non_negative = jnp.full(jnp.shape(v), CONSTANT_CONCENTRIC_COEFF)
        negative = jnp.full(jnp.shape(v), CONSTANT_ECCENTRIC_COEFF)
    return jnp.where(v >= 0, non_negative, negative)


def shortening_heat_rate(
    fiber_velocity: ArrayLike,
    active_fiber_force: ArrayLike,
    isometric_fiber_force: ArrayLike,
    force_dependent: bool = False,
) -> Array:
    """Sdot = -alpha * v."""
    alpha = shortening_coefficient(
        fiber_velocity, active_fiber_force, isometric_fiber_force, force_dependent
    )
    return -alpha * jnp.asarray(fiber_velocity)


def mechanical_work_rate(
    fiber_velocity: ArrayLike,
    active_fiber_force: ArrayLike,
    mass: ArrayLike | None = None,
) -> Array:
    """Wdot = -F * v for v >= 0, and zero otherwise.

    If `mass` is given, the rate is divided by it.
    """
    v = jnp.asarray(fiber_velocity)
    rate = jnp.where(v >= 0, -jnp.asarray(active_fiber_force) * v, 0.0)
    if mass is not None:
        rate = rate / mass
    return rate


def basal_heat_rate(
    body_mass: ArrayLike,
    coefficient: ArrayLike,
    exponent: ArrayLike,
) -> Scalar:
    """Bdot = coefficient * body_mass ** exponent."""
    return coefficient * jnp.power(jnp.asarray(body_mass), exponent)


def evaluate(
    params: MuscleConstantsLike,
    quantities: MuscleQuantities,
    config: EngineConfig,
) -> MuscleMetabolicRates:
    """Compute the gated muscle-level terms of the metabolic rate.

    Terms switched off in `config.gates` are returned as zeros of the same
    shape as the others, so they can always be summed.

    Args:
        params: Constants of one muscle, or of several stacked.
        quantities: Host quantities for the same muscle(s) at one state.
        config: Engine configuration.
    """
    gates = config.gates
    zeros = jnp.zeros(jnp.broadcast_shapes(
        *(jnp.shape(x) for x in jt.leaves(quantities)),
        jnp.shape(params.mass),
    ))

    if gates.activation:
        activation = activation_heat_rate(params, quantities.excitation)
    else:
        activation = zeros

    if gates.maintenance:
        maintenance = maintenance_heat_rate(
            params,
            quantities.excitation,
            quantities.norm_fiber_length,
            config.maintenance_length_dependence,
        )
    else:
        maintenance = zeros

    if gates.shortening:
        shortening = shortening_heat_rate(
            quantities.fiber_velocity,
            quantities.active_fiber_force,
            quantities.isometric_fiber_force,
            force_dependent=config.use_force_dependent_shortening_constant,
        )
    else:
        shortening = zeros

    if gates.mechanical_work:
        mechanical_work = mechanical_work_rate(
            quantities.fiber_velocity,
            quantities.active_fiber_force,
            mass=params.mass if config.normalize_mechanical_work_by_mass else None,
        )
    else:
        mechanical_work = zeros

    return MuscleMetabolicRates(
        activation=activation + zeros,
        maintenance=maintenance + zeros,
        shortening=shortening + zeros,
        mechanical_work=mechanical_work + zeros,
    )
