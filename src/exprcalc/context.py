"""Evaluation contexts: read-only snapshots of named double arrays."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

import jax.numpy as jnp

from .errors import IndexOutOfBounds
from .functions import interleave_arrays
from .values import as_vector

logger = logging.getLogger(__name__)


class Context(Mapping[str, jnp.ndarray]):
    """Immutable mapping from variable name to a non-empty rank-1 array.

    Scalars are stored as length-1 arrays. Derived functions (objects with
    ``dimension``/``array_value``/``values``) are materialized when the
    snapshot is built.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, object] | None = None, **values: object) -> None:
        merged: dict[str, object] = {} if data is None else dict(data)
        merged.update(values)
        frozen: dict[str, jnp.ndarray] = {}
        for name, value in merged.items():
            if not isinstance(name, str):
                raise TypeError(f"context keys must be str, got {type(name).__name__}")
            frozen[name] = as_vector(value, where=f"context[{name!r}]")
        self._data = frozen

    def __getitem__(self, key: str) -> jnp.ndarray:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        shapes = ", ".join(f"{name}[{int(arr.shape[0])}]" for name, arr in self._data.items())
        return f"Context({shapes})"

    def resolve(self, name: str) -> jnp.ndarray | None:
        return self._data.get(name)

    def updated(self, data: Mapping[str, object] | None = None, **values: object) -> "Context":
        """Return a new snapshot with some entries replaced or added."""
        merged: dict[str, object] = dict(self._data)
        if data is not None:
            merged.update(data)
        merged.update(values)
        return Context(merged)


def as_context(context: Mapping[str, object] | None) -> Context:
    if context is None:
        return Context()
    if isinstance(context, Context):
        return context
    if not isinstance(context, Mapping):
        raise TypeError(f"context must be a mapping, got {type(context).__name__}")
    return Context(context)


class Interleave:
    """Derived array built by interleaving the elements of its arguments.

    With ``n`` arguments and longest length ``max_len`` the dimension is
    ``max_len * n``; element ``i`` comes from argument ``i % n`` at offset
    ``(i // n)`` modulo that argument's length.
    """

    def __init__(self, *args: object) -> None:
        if not args:
            raise ValueError("Interleave requires at least one argument")
        self.args = tuple(args)
        lengths = [int(as_vector(arg, where=f"arg[{k}]").shape[0]) for k, arg in enumerate(self.args)]
        self._max_len = max(lengths)
        logger.debug("Interleave of %d arguments with lengths %s", len(lengths), lengths)

    @property
    def dimension(self) -> int:
        return self._max_len * len(self.args)

    def values(self) -> jnp.ndarray:
        # arguments may be live derived objects, so re-read them each time
        return interleave_arrays(*(as_vector(arg) for arg in self.args))

    def array_value(self, i: int = 0) -> float:
        if i < 0 or i >= self.dimension:
            raise IndexOutOfBounds(i, self.dimension)
        n = len(self.args)
        arg = as_vector(self.args[i % n])
        return float(arg[(i // n) % int(arg.shape[0])])
