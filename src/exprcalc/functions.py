"""Fixed registry of named functions callable from expressions."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Final, Mapping

import jax.numpy as jnp

from .errors import ArityMismatch, UnknownFunction


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    min_args: int
    max_args: int | None
    impl: Callable[..., jnp.ndarray]
    summary: str = ""

    def arity_text(self) -> str:
        if self.max_args is None:
            return f"at least {self.min_args}"
        if self.max_args == self.min_args:
            return str(self.min_args)
        return f"{self.min_args} to {self.max_args}"

    def accepts(self, count: int) -> bool:
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args


def _theta(x: jnp.ndarray) -> jnp.ndarray:
    return jnp.where(x < 0, jnp.zeros_like(x), jnp.ones_like(x))


def interleave_arrays(*arrays: jnp.ndarray) -> jnp.ndarray:
    """Round-robin interleave; shorter arguments are recycled.

    The result has ``max_len * len(arrays)`` elements and element ``i`` is
    ``arrays[i % n][(i // n) % len(arrays[i % n])]``.
    """
    if not arrays:
        raise ValueError("interleave requires at least one argument")
    vectors = [jnp.atleast_1d(arr) for arr in arrays]
    max_len = max(int(vec.shape[0]) for vec in vectors)
    positions = jnp.arange(max_len)
    rows = [jnp.take(vec, positions % int(vec.shape[0])) for vec in vectors]
    return jnp.stack(rows).T.reshape(-1)


_FUNCTIONS: Final[dict[str, FunctionSpec]] = {
    "exp": FunctionSpec("exp", 1, 1, jnp.exp, "element-wise natural exponential"),
    "log": FunctionSpec("log", 1, 1, jnp.log, "element-wise natural logarithm"),
    "sqrt": FunctionSpec("sqrt", 1, 1, jnp.sqrt, "element-wise square root"),
    "abs": FunctionSpec("abs", 1, 1, jnp.abs, "element-wise absolute value"),
    "theta": FunctionSpec("theta", 1, 1, _theta, "element-wise Heaviside step (0 below zero, else 1)"),
    "sum": FunctionSpec("sum", 1, 1, jnp.sum, "sum of all elements"),
    "interleave": FunctionSpec("interleave", 1, None, interleave_arrays, "round-robin interleave of the arguments"),
}

FUNCTIONS: Final[Mapping[str, FunctionSpec]] = MappingProxyType(_FUNCTIONS)


def lookup_function(name: str, arg_count: int) -> FunctionSpec:
    spec = FUNCTIONS.get(name)
    if spec is None:
        raise UnknownFunction(name)
    if not spec.accepts(arg_count):
        raise ArityMismatch(name, spec.arity_text(), arg_count)
    return spec
