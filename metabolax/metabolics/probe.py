"""Metabolic power probe as a steppable component.

The probe reads per-muscle quantities from its inputs, reports the engine's
channels, and accumulates metabolic energy with an Euler step so that a
simulation loop can read the energy spent so far at any time.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

import logging
from typing import Optional

from equinox import Module
from equinox.nn import State, StateIndex
import jax.numpy as jnp
from jaxtyping import Array, Float, PRNGKeyArray, PyTree

from metabolax.errors import ConfigurationError, NotReadyError
from metabolax.graph import Component
from metabolax.metabolics.engine import MetabolicRateEngine
from metabolax.metabolics.host import HostState, MuscleArrayHost, MuscleQuantities
from metabolax.metabolics.report import PerMuscleRateReport, ProbeReport


logger = logging.getLogger(__name__)


class MetabolicEnergy(Module):
    """Metabolic energy spent so far [J].

    Attributes:
        channels: Energy of each reported channel.
        basal: Energy of the basal rate when it is not part of any channel,
            i.e. in per-muscle reports. Zero otherwise.
    """

    channels: Float[Array, " n_outputs"]
    basal: Float[Array, ""]

    @property
    def total(self) -> Float[Array, ""]:
        return self.channels.sum() + self.basal


def _unassigned_rate(report: ProbeReport) -> Array:
    if isinstance(report, PerMuscleRateReport):
        return report.basal
    return jnp.zeros(())


class MetabolicPowerProbe(Component):
    """Reports metabolic power and integrates it into energy.

    Inputs are arrays over all muscles of the host, in host order. The
    optional `body_mass` input overrides the host's body mass.

    `total_energy` always integrates `total_rate`. With a per-muscle report
    that is the sum of `energy` and `basal_energy`.

    Attributes:
        engine: An engine attached to a `MuscleArrayHost`.
        gain: Factor applied to every reported channel.
        dt: Integration timestep [s].
    """

    input_ports = (
        "excitation",
        "fiber_velocity",
        "active_fiber_force",
        "isometric_fiber_force",
        "norm_fiber_length",
        "body_mass",
    )
    output_ports = ("values", "total_rate", "energy", "basal_energy", "total_energy")

    engine: MetabolicRateEngine
    gain: float
    dt: float

    state_index: StateIndex

    def __init__(
        self,
        engine: MetabolicRateEngine,
        gain: float = 1.0,
        dt: float = 0.01,
        initial_energy: Optional[Float[Array, " n_outputs"]] = None,
    ):
        """Initialize the probe.

        Args:
            engine: Attached metabolic rate engine.
            gain: Factor applied to every reported channel.
            dt: Integration timestep [s].
            initial_energy: Starting energy of each channel [J]; zeros
                if not given.
        """
        if not engine.is_ready:
            raise NotReadyError("MetabolicPowerProbe needs an engine attached to a model")
        if not isinstance(engine.resolved.host, MuscleArrayHost):
            raise ConfigurationError(
                "MetabolicPowerProbe reads muscle quantities from its inputs and "
                "needs an engine attached to a MuscleArrayHost"
            )
        if not dt > 0:
            raise ConfigurationError(f"Integration timestep must be positive, got {dt}")

        self.engine = engine
        self.gain = gain
        self.dt = dt

        n_outputs = engine.n_probe_outputs
        if initial_energy is None:
            initial_energy = jnp.zeros((n_outputs,))
        initial_energy = jnp.asarray(initial_energy, dtype=jnp.result_type(float))
        if initial_energy.shape != (n_outputs,):
            raise ConfigurationError(
                f"Initial energy must have shape ({n_outputs},), got {initial_energy.shape}"
            )
        self.state_index = StateIndex(
            MetabolicEnergy(
                channels=initial_energy,
                basal=jnp.zeros((), dtype=initial_energy.dtype),
            )
        )

    @property
    def labels(self) -> tuple[str, ...]:
        return self.engine.probe_labels()

    def _host_state(self, inputs: dict[str, PyTree]) -> HostState:
        muscles = MuscleQuantities(
            excitation=jnp.asarray(inputs["excitation"]),
            fiber_velocity=jnp.asarray(inputs["fiber_velocity"]),
            active_fiber_force=jnp.asarray(inputs["active_fiber_force"]),
            isometric_fiber_force=jnp.asarray(inputs["isometric_fiber_force"]),
            norm_fiber_length=jnp.asarray(inputs["norm_fiber_length"]),
        )
        return HostState(muscles=muscles, body_mass=inputs.get("body_mass"))

    def __call__(
        self,
        inputs: dict[str, PyTree],
        state: State,
        *,
        key: PRNGKeyArray,
    ) -> tuple[dict[str, PyTree], State]:
        """Evaluate the metabolic rate and take one integration step.

        Args:
            inputs: Per-muscle quantities, keyed by input port name.
            state: Current State container.
            key: PRNG key (unused).

        Returns:
            Outputs dict and updated state.
        """
        missing = [port for port in self.missing_inputs(inputs) if port != "body_mass"]
        if missing:
            raise KeyError(f"MetabolicPowerProbe is missing inputs {missing}")

        report = self.engine.report(self._host_state(inputs))
        values = self.gain * report.values
        basal_rate = self.gain * _unassigned_rate(report)

        energy = state.get(self.state_index)
        new_energy = MetabolicEnergy(
            channels=energy.channels + values * self.dt,
            basal=energy.basal + basal_rate * self.dt,
        )
        state = state.set(self.state_index, new_energy)

        outputs = {
            "values": values,
            "total_rate": self.gain * report.total,
            "energy": new_energy.channels,
            "basal_energy": new_energy.basal,
            "total_energy": new_energy.total,
        }
        return outputs, state
