"""Components that can be stepped by a host simulation loop.

A component maps a dict of named inputs and the current `State` to a dict
of named outputs and an updated `State`. Any persistent quantity lives in
the `State`, addressed by a `StateIndex` created at construction.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import ClassVar

from equinox import Module
from equinox.nn import State, StateIndex
from jaxtyping import PRNGKeyArray, PyTree


def init_state_from_component(component: Module) -> State:
    """Collect the initial values of all `StateIndex` leaves in `component`."""
    return State(component)


class Component(Module):
    """Base class for probes and other steppable nodes."""

    input_ports: ClassVar[tuple[str, ...]] = ()
    output_ports: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def __call__(
        self,
        inputs: dict[str, PyTree],
        state: State,
        *,
        key: PRNGKeyArray,
    ) -> tuple[dict[str, PyTree], State]:
        """Execute the component."""
        ...

    def init_state(self, *, key: PRNGKeyArray) -> State:
        """Return initial state for this component."""
        return init_state_from_component(self)

    def state_view(self, state: State) -> PyTree | None:
        """Return the state owned by this component, if any."""
        idx = getattr(self, "state_index", None)
        if isinstance(idx, StateIndex):
            return state.get(idx)
        return None

    def missing_inputs(self, inputs: dict[str, PyTree]) -> tuple[str, ...]:
        return tuple(port for port in self.input_ports if port not in inputs)

