"""Whole-body metabolic rate of a set of muscles.

Usage:

    engine = MetabolicRateEngine(config, table).attach(host)
    report = engine.report(state)

`attach` resolves every parameter entry against the host and is the only
place where lookup errors can occur. Afterwards, evaluation is a pure
function of the host state and may be wrapped in `jax.jit` or `jax.vmap`.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

import logging
from typing import Optional

from equinox import Module
import jax.numpy as jnp
from jaxtyping import Array, Float, PyTree, Scalar

from metabolax.errors import (
    AttachmentError,
    DuplicateMuscleError,
    NotReadyError,
    UnknownMuscleError,
)
from metabolax.metabolics.engine_config import EngineConfig, ReportMode
from metabolax.metabolics.host import AbstractMetabolicHost, MuscleHandle
from metabolax.metabolics.parameters import (
    MetabolicConstants,
    ParameterTable,
    ResolvedParameterTable,
)
from metabolax.metabolics.rates import MuscleMetabolicRates, basal_heat_rate, evaluate
from metabolax.metabolics.report import (
    PerMuscleRateReport,
    ProbeReport,
    TotalRateReport,
    per_muscle_labels,
    total_labels,
)


logger = logging.getLogger(__name__)


def resolve(host: AbstractMetabolicHost, table: ParameterTable) -> ResolvedParameterTable:
    """Pair each parameter entry with the host muscle it names.

    Raises:
        UnknownMuscleError: An entry names a muscle the host does not have.
        DuplicateMuscleError: Two entries name the same host muscle.
    """
    handles: list[MuscleHandle] = []
    claimed: dict[int, str] = {}

    for entry in table:
        handle = host.find_muscle(entry.muscle_name)
        if handle is None:
            raise UnknownMuscleError(
                f"Muscle '{entry.muscle_name}' was not found in the model; "
                f"available muscles are {list(host.muscle_names)}"
            )
        if handle.index in claimed:
            raise DuplicateMuscleError(
                f"Muscle '{entry.muscle_name}' appears more than once in the "
                "metabolic parameter table"
            )
        claimed[handle.index] = entry.muscle_name
        handles.append(handle)

    if not handles:
        logger.warning("Metabolic parameter table is empty; only the basal rate will be reported")
    else:
        logger.info(f"Resolved metabolic parameters for {len(handles)} muscles")
        logger.debug(f"Muscles: {', '.join(h.name for h in handles)}")

    return ResolvedParameterTable(
        entries=table.entries,
        handles=tuple(handles),
        host=host,
        constants=table.constants(),
    )


class MetabolicRates(Module):
    """All terms of the metabolic rate at one state.

    Attributes:
        muscles: Per-muscle terms, each of shape `(n_muscles,)`.
        basal: Whole-body basal heat rate.
    """

    muscles: MuscleMetabolicRates
    basal: Float[Array, ""]

    @property
    def total(self) -> Float[Array, ""]:
        return self.basal + jnp.sum(self.muscles.total)


class MetabolicRateEngine(Module):
    """Net metabolic power of the muscles in a parameter table.

    Edot = Bdot + sum over muscles of (Adot + Mdot + Sdot + Wdot).

    Attributes:
        config: Term switches and coefficients.
        table: Per-muscle parameters, as configured.
        resolved: The table resolved against a host; `None` until `attach`.
    """

    config: EngineConfig
    table: ParameterTable
    resolved: Optional[ResolvedParameterTable] = None

    @property
    def is_ready(self) -> bool:
        return self.resolved is not None

    def attach(self, host: AbstractMetabolicHost) -> MetabolicRateEngine:
        """Return a copy of this engine resolved against `host`."""
        if self.resolved is not None:
            raise AttachmentError("Engine is already attached to a model")
        resolved = resolve(host, self.table)
        return MetabolicRateEngine(self.config, self.table, resolved)

    def _ready(self) -> ResolvedParameterTable:
        if self.resolved is None:
            raise NotReadyError(
                "Metabolic rate engine must be attached to a model before evaluation"
            )
        return self.resolved

    @property
    def muscle_names(self) -> tuple[str, ...]:
        return self._ready().muscle_names

    @property
    def constants(self) -> MetabolicConstants:
        return self._ready().constants

    def muscle_rates(self, state: PyTree) -> MuscleMetabolicRates:
        """Per-muscle heat and work rates at `state`, in table order."""
        resolved = self._ready()
        quantities = resolved.host.muscle_quantities(state, resolved.handles)
        return evaluate(resolved.constants, quantities, self.config)

    def basal_rate(self, state: PyTree) -> Scalar:
        resolved = self._ready()
        if not self.config.gates.basal:
            return jnp.zeros(())
        body_mass = resolved.host.total_mass(state)
        return basal_heat_rate(
            body_mass, self.config.basal_coefficient, self.config.basal_exponent
        )

    def evaluate(self, state: PyTree) -> MetabolicRates:
        return MetabolicRates(
            muscles=self.muscle_rates(state),
            basal=jnp.asarray(self.basal_rate(state)),
        )

    def total_rate(self, state: PyTree) -> Scalar:
        """Net metabolic power of the whole model at `state` [W]."""
        return self.evaluate(state).total

    def report(self, state: PyTree) -> ProbeReport:
        rates = self.evaluate(state)
        if self.config.report_mode is ReportMode.PER_MUSCLE:
            return PerMuscleRateReport(
                values=rates.muscles.total,
                labels=self.probe_labels(),
                basal=rates.basal,
            )
        return TotalRateReport(
            values=jnp.reshape(rates.total, (1,)),
            labels=self.probe_labels(),
        )

    def probe_values(self, state: PyTree) -> Float[Array, " n_outputs"]:
        return self.report(state).values

    def probe_labels(self) -> tuple[str, ...]:
        """Labels of the reported channels; fixed once the engine is attached."""
        resolved = self._ready()
        if self.config.report_mode is ReportMode.PER_MUSCLE:
            return per_muscle_labels(self.config.name, resolved.muscle_names)
        return total_labels(self.config.name)

    @property
    def n_probe_outputs(self) -> int:
        return len(self.probe_labels())
