"""Piecewise-linear curves used to scale heat rates.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging

from equinox import Module
import jax.numpy as jnp
from jaxtyping import Array, ArrayLike, Float
import numpy as np

from metabolax.errors import ConfigurationError


logger = logging.getLogger(__name__)


# Normalized fiber length dependence of the maintenance heat rate
# (Bhargava et al. 2004, Fig. 3).
DEFAULT_MAINTENANCE_CURVE_POINTS: tuple[tuple[float, float], ...] = (
    (0.0, 0.5),
    (0.5, 0.5),
    (1.0, 1.0),
    (1.5, 0.0),
)


class PiecewiseLinearFunction(Module):
    """Linear interpolation through an ordered set of breakpoints.

    Queries below the first or above the last breakpoint return the value
    at that breakpoint.

    Attributes:
        x: Breakpoint abscissae, strictly increasing.
        y: Breakpoint ordinates.
    """

    x: Float[Array, " n_points"]
    y: Float[Array, " n_points"]

    def __init__(self, x: ArrayLike, y: ArrayLike):
        x_np = np.asarray(x, dtype=float)
        y_np = np.asarray(y, dtype=float)

        if x_np.ndim != 1 or y_np.ndim != 1:
            raise ConfigurationError("Curve breakpoints must be one-dimensional")
        if x_np.shape != y_np.shape:
            raise ConfigurationError(
                f"Curve has {x_np.size} x values but {y_np.size} y values"
            )
        if x_np.size < 2:
            raise ConfigurationError("A piecewise-linear curve needs at least 2 breakpoints")
        if not (np.all(np.isfinite(x_np)) and np.all(np.isfinite(y_np))):
            raise ConfigurationError("Curve breakpoints must be finite")
        if np.any(np.diff(x_np) <= 0):
            raise ConfigurationError(
                f"Curve x values must be strictly increasing, got {x_np.tolist()}"
            )

        self.x = jnp.asarray(x_np)
        self.y = jnp.asarray(y_np)

    def __call__(self, x: ArrayLike) -> Array:
        return jnp.interp(x, self.x, self.y)

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> PiecewiseLinearFunction:
        """Build a curve from a sequence of `(x, y)` pairs."""
        try:
            xs, ys = zip(*((float(px), float(py)) for px, py in points))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Curve points must be (x, y) pairs, got {points!r}"
            ) from e
        return cls(xs, ys)

    @classmethod
    def constant(cls, value: float) -> PiecewiseLinearFunction:
        """A flat curve; clamping extends it over every query."""
        return cls((0.0, 1.0), (value, value))

    def points(self) -> tuple[tuple[float, float], ...]:
        return tuple(
            (float(px), float(py)) for px, py in zip(np.asarray(self.x), np.asarray(self.y))
        )

    @property
    def domain(self) -> tuple[float, float]:
        """The interval over which the curve is not clamped."""
        return float(self.x[0]), float(self.x[-1])


def default_maintenance_curve() -> PiecewiseLinearFunction:
    return PiecewiseLinearFunction.from_points(DEFAULT_MAINTENANCE_CURVE_POINTS)
