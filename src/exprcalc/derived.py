"""Derived quantities: an expression re-evaluated against live model state."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Callable, Union

import jax.numpy as jnp

from .ast import Node, variable_names
from .context import as_context
from .errors import IndexOutOfBounds
from .evaluator import evaluate
from .parser import parse
from .values import to_python

ContextSource = Union[Mapping[str, object], Callable[[], Mapping[str, object]]]


class DerivedExpression:
    """A named derived array computed from an expression.

    ``context`` may be a mapping or a zero-argument callable returning one;
    the callable form lets the owning model hand out a fresh snapshot on
    every read.
    """

    def __init__(self, source: str, context: ContextSource, *, name: str = "expr") -> None:
        self.source = source
        self.name = name
        self.node: Node = parse(source)
        self._context = context

    @property
    def arguments(self) -> tuple[str, ...]:
        return variable_names(self.node)

    def _snapshot(self):
        source = self._context() if callable(self._context) else self._context
        return as_context(source)

    def values(self) -> jnp.ndarray:
        return jnp.atleast_1d(evaluate(self.node, self._snapshot()))

    @property
    def dimension(self) -> int:
        return int(self.values().shape[0])

    def array_value(self, i: int = 0) -> float:
        values = self.values()
        if i < 0 or i >= values.shape[0]:
            raise IndexOutOfBounds(i, int(values.shape[0]))
        return float(values[i])

    def log_header(self, prefix: str | None = None) -> str:
        label = prefix if prefix is not None else self.name
        dim = self.dimension
        if dim == 1:
            return label
        return "\t".join(f"{label}_{i}" for i in range(dim))

    def log_row(self) -> str:
        row = to_python(self.values())
        return "\t".join(repr(x) for x in row)
