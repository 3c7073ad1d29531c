"""Tree-walking evaluator for the arithmetic expression language on top of JAX."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Callable, Final

import jax
import jax.numpy as jnp
from jax.experimental import checkify

from .ast import (
    AddSub,
    ArrayIndex,
    ArrayLiteral,
    Bracketed,
    Exponentiation,
    FunctionCall,
    MulDiv,
    Negation,
    Node,
    Number,
    PassthroughExpr,
    PassthroughFactor,
    PassthroughMolecule,
    Variable,
)
from .context import Context, as_context
from .errors import DimensionMismatch, IndexOutOfBounds, UnknownVariable
from .functions import lookup_function
from .parser import parse_cached
from .values import as_array, as_scalar, float_dtype, is_scalar_like, length_of, validate_value

Lookup = Callable[[str], "jnp.ndarray | None"]

_BINARY_OPS: Final[dict[str, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]]] = {
    "+": lambda w, x: w + x,
    "-": lambda w, x: w - x,
    "*": lambda w, x: w * x,
    "/": lambda w, x: w / x,
    "^": lambda w, x: jnp.power(w, x),
}


def _broadcast_binary(op: str, left: jnp.ndarray, right: jnp.ndarray) -> jnp.ndarray:
    fn = _BINARY_OPS[op]
    left_scalar = is_scalar_like(left)
    right_scalar = is_scalar_like(right)

    if left_scalar and right_scalar:
        # two length-1 arrays stay an array; anything involving a true scalar is scalar
        if left.ndim == 1 and right.ndim == 1:
            return fn(left, right)
        return fn(as_scalar(left), as_scalar(right))
    if left_scalar:
        return fn(as_scalar(left), right)
    if right_scalar:
        return fn(left, as_scalar(right))
    if left.shape[0] != right.shape[0]:
        raise DimensionMismatch(op, length_of(left), length_of(right))
    return fn(left, right)


def _is_concrete(value: jnp.ndarray) -> bool:
    return not isinstance(value, jax.core.Tracer)


def _index_array(target: jnp.ndarray, index: jnp.ndarray) -> jnp.ndarray:
    if not is_scalar_like(index):
        raise DimensionMismatch("[]", length_of(target), length_of(index))
    vector = jnp.atleast_1d(target)
    length = int(vector.shape[0])
    # truncation toward zero
    offset = jnp.trunc(as_scalar(index))

    if _is_concrete(offset):
        if not bool(jnp.isfinite(offset)):
            raise IndexOutOfBounds(None, length)
        position = int(offset)
        if position < 0 or position >= length:
            raise IndexOutOfBounds(position, length)
        return vector[position]

    checkify.check(
        jnp.logical_and(offset >= 0, offset < length),
        f"Index out of bounds for array of length {length}",
    )
    return jnp.take(vector, offset.astype(jnp.int32), mode="clip")


def _concat_items(items: list[jnp.ndarray]) -> jnp.ndarray:
    return jnp.concatenate([jnp.atleast_1d(item) for item in items])


def eval_node(node: Node, lookup: Lookup) -> jnp.ndarray:
    """Reduce ``node`` to a rank-0 or rank-1 array, resolving names via ``lookup``."""
    if isinstance(node, Number):
        return jnp.asarray(node.value, dtype=float_dtype())

    if isinstance(node, Variable):
        value = lookup(node.name)
        if value is None:
            raise UnknownVariable(node.name)
        return value

    if isinstance(node, (PassthroughExpr, PassthroughFactor, PassthroughMolecule, Bracketed)):
        return eval_node(node.inner, lookup)

    if isinstance(node, (AddSub, MulDiv)):
        left = eval_node(node.left, lookup)
        right = eval_node(node.right, lookup)
        return _broadcast_binary(node.op, left, right)

    if isinstance(node, Exponentiation):
        base = eval_node(node.base, lookup)
        exponent = eval_node(node.exponent, lookup)
        return _broadcast_binary("^", base, exponent)

    if isinstance(node, Negation):
        return -eval_node(node.inner, lookup)

    if isinstance(node, ArrayIndex):
        target = eval_node(node.target, lookup)
        index = eval_node(node.index, lookup)
        return _index_array(target, index)

    if isinstance(node, FunctionCall):
        spec = lookup_function(node.name, len(node.args))
        args = [eval_node(arg, lookup) for arg in node.args]
        result = as_array(spec.impl(*args))
        validate_value(result, where=f"{spec.name}()")
        return result

    if isinstance(node, ArrayLiteral):
        return _concat_items([eval_node(item, lookup) for item in node.items])

    raise TypeError(f"Unsupported expression node: {type(node)!r}")


def evaluate(expression: str | Node, context: Mapping[str, object] | None = None) -> jnp.ndarray:
    """Evaluate expression source or a parsed AST against ``context``.

    Returns a rank-0 array for scalar results and a rank-1 array otherwise.
    Source strings are parsed through an LRU cache; the context is only read.
    """
    node = parse_cached(expression) if isinstance(expression, str) else expression
    snapshot: Context = as_context(context)
    return eval_node(node, snapshot.resolve)
