"""Iteration utilities for components.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from __future__ import annotations

import equinox as eqx
from equinox.nn import State
import jax.lax as lax
import jax.numpy as jnp
import jax.random as jr
import jax.tree as jt
from jaxtyping import PRNGKeyArray, PyTree

from metabolax.graph import Component


def iterate_component(
    component: Component,
    inputs: PyTree,  # leading time dimension
    init_state: State,
    n_steps: int,
    key: PRNGKeyArray,
    state_filter: PyTree[bool] = True,
) -> tuple[PyTree, State, PyTree | None]:
    """Step a component over the leading axis of its inputs.

    Returns:
        Outputs stacked over time, the final state, and the history of the
        component's own state (including the initial value), or `None` if
        the component keeps no state.
    """
    keys = jr.split(key, n_steps)

    init_state_view = component.state_view(init_state)
    save_history = state_filter is not False and init_state_view is not None

    def step(state, args):
        step_input, step_key = args
        outputs, new_state = component(step_input, state, key=step_key)
        if save_history:
            state_view = eqx.filter(component.state_view(new_state), state_filter)
            return new_state, (outputs, state_view)
        return new_state, (outputs, None)

    final_state, (outputs, state_history) = lax.scan(step, init_state, (inputs, keys))

    if not save_history:
        return outputs, final_state, None

    init_state_view = eqx.filter(init_state_view, state_filter)
    state_history = jt.map(
        lambda x0, x: jnp.concatenate([x0[None], x], axis=0),
        init_state_view,
        state_history,
    )
    return outputs, final_state, state_history
