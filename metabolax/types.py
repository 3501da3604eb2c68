"""Nested namespaces for configuration trees.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""

from collections.abc import Mapping
from types import SimpleNamespace
from typing import Any, TypeVar

import jax.tree_util as jtu

__all__ = [
    "TreeNamespace",
    "deep_merge",
    "dict_to_namespace",
    "namespace_to_dict",
]


NT = TypeVar("NT", bound=SimpleNamespace)


def _convert(x, to_type: type, from_type: type):
    if isinstance(x, from_type):
        items = vars(x).items() if isinstance(x, SimpleNamespace) else x.items()
        converted = {k: _convert(v, to_type, from_type) for k, v in items}
        if issubclass(to_type, SimpleNamespace):
            return to_type(**converted)
        return to_type(converted)
    if isinstance(x, (list, tuple)):
        return type(x)(_convert(v, to_type, from_type) for v in x)
    return x


def dict_to_namespace(d: Mapping, to_type: type[NT] = SimpleNamespace) -> NT:
    """Convert a nested dict to nested namespaces. Lists are converted item-wise."""
    return _convert(d, to_type=to_type, from_type=dict)


def namespace_to_dict(ns: SimpleNamespace) -> dict:
    """Inverse of `dict_to_namespace`."""
    return _convert(ns, to_type=dict, from_type=SimpleNamespace)


def deep_merge(base: Mapping[str, Any], over: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay `over` on `base`, merging nested dicts and replacing anything else.

    Neither argument is modified; only the branches touched by `over` are copied.
    """
    out: dict[str, Any] = dict(base)
    for k, v in over.items():
        bv = out.get(k)
        if isinstance(v, dict) and isinstance(bv, dict):
            out[k] = deep_merge(bv, v)
        else:
            out[k] = v
    return out


@jtu.register_pytree_with_keys_class
class TreeNamespace(SimpleNamespace):
    """A `SimpleNamespace` that is also a PyTree.

    Configs loaded with `load_config_as_ns` use this, so that e.g. every log
    level in the logging config can be normalized with a single `jt.map`.
    """

    def tree_flatten_with_keys(self):
        children = [(jtu.GetAttrKey(k), v) for k, v in self.__dict__.items()]
        return children, tuple(self.__dict__)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(**dict(zip(aux_data, children)))

    def __or__(self, other: "TreeNamespace | Mapping") -> "TreeNamespace":
        """Merge with values from `other` taking precedence, recursively."""
        if isinstance(other, SimpleNamespace):
            other = namespace_to_dict(other)
        merged = deep_merge(namespace_to_dict(self), other)
        return dict_to_namespace(merged, to_type=type(self))
