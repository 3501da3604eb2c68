"""Labeled probe outputs.

An engine reports either one channel with the total rate or one channel
per muscle. The two are separate result types; code that needs to tell
them apart matches on the type.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

from equinox import Module, field
from jaxtyping import Array, Float


class TotalRateReport(Module):
    """Single channel: whole-body metabolic rate [W].

    Attributes:
        values: Shape `(1,)`.
        labels: One label, the probe name.
    """

    values: Float[Array, " 1"]
    labels: tuple[str] = field(static=True)

    @property
    def total(self) -> Float[Array, ""]:
        return self.values[0]

    def as_dict(self) -> dict[str, Array]:
        return {self.labels[0]: self.values[0]}


class PerMuscleRateReport(Module):
    """One channel per muscle, in parameter table order [W].

    The basal rate belongs to the whole body rather than to any muscle, so
    it is carried separately and not included in `values`.

    Attributes:
        values: Shape `(n_muscles,)`; each muscle's summed heat and work rate.
        labels: `"{probe}_{muscle}"` for each muscle.
        basal: Basal heat rate at the same state.
    """

    values: Float[Array, " n_muscles"]
    labels: tuple[str, ...] = field(static=True)
    basal: Float[Array, ""]

    @property
    def total(self) -> Float[Array, ""]:
        return self.basal + self.values.sum()

    def as_dict(self) -> dict[str, Array]:
        return dict(zip(self.labels, self.values))


type ProbeReport = TotalRateReport | PerMuscleRateReport


def total_labels(name: str) -> tuple[str]:
    return (name,)


def per_muscle_labels(name: str, muscle_names: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(f"{name}_{muscle}" for muscle in muscle_names)
