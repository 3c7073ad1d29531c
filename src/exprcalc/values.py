"""Runtime value model: rank-0 scalars and rank-1 arrays of doubles."""

from __future__ import annotations

import numbers
import os
from dataclasses import dataclass
from enum import Enum

import jax
import jax.numpy as jnp

ENABLE_X64 = os.environ.get("EXPRCALC_ENABLE_X64", "1") != "0"

if ENABLE_X64:
    jax.config.update("jax_enable_x64", True)


class ValueKind(str, Enum):
    SCALAR = "scalar"
    ARRAY = "array"


@dataclass(frozen=True)
class ValueInfo:
    kind: ValueKind
    length: int


def float_dtype():
    return jnp.result_type(float)


def as_array(value: object) -> jnp.ndarray:
    """Coerce numbers and sequences to a float JAX array without changing rank."""
    if isinstance(value, jax.Array) and jnp.issubdtype(value.dtype, jnp.floating):
        return value
    if isinstance(value, bool) or isinstance(value, complex):
        raise TypeError(f"unsupported value type {type(value).__name__}")
    if hasattr(value, "dimension") and hasattr(value, "array_value"):
        # derived functions such as Interleave
        return as_array(value.values())
    return jnp.asarray(value, dtype=float_dtype())


def as_vector(value: object, *, where: str = "value") -> jnp.ndarray:
    """Coerce ``value`` to a non-empty rank-1 float array."""
    if isinstance(value, str):
        raise TypeError(f"{where} must be numeric, got str")
    try:
        arr = as_array(value)
    except (TypeError, ValueError) as exc:
        raise TypeError(f"{where} has unsupported runtime type {type(value).__name__}") from exc
    if arr.ndim == 0:
        return arr.reshape((1,))
    if arr.ndim != 1:
        raise ValueError(f"{where} must be one-dimensional, got shape {tuple(arr.shape)}")
    if arr.shape[0] == 0:
        raise ValueError(f"{where} must contain at least one element")
    return arr


def length_of(value: jnp.ndarray) -> int:
    return 1 if value.ndim == 0 else int(value.shape[0])


def is_scalar_like(value: jnp.ndarray) -> bool:
    """Scalars and length-1 arrays are interchangeable in operator positions."""
    return value.ndim == 0 or value.shape[0] == 1


def as_scalar(value: jnp.ndarray) -> jnp.ndarray:
    return value if value.ndim == 0 else value[0]


def kind_of(value: object) -> ValueKind:
    arr = as_array(value)
    if arr.ndim == 0:
        return ValueKind.SCALAR
    return ValueKind.ARRAY


def value_info(value: object) -> ValueInfo:
    arr = as_array(value)
    return ValueInfo(kind=kind_of(arr), length=length_of(arr))


def to_python(value: object) -> float | list[float]:
    """Convert an evaluated value to a float (scalar) or list of floats (array)."""
    arr = as_array(value)
    if arr.ndim == 0:
        return float(arr)
    return [float(x) for x in arr.tolist()]


def validate_value(value: object, *, where: str = "value") -> None:
    if isinstance(value, jax.Array):
        if value.ndim > 1:
            raise TypeError(f"{where} has unsupported rank {value.ndim}")
        return
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return
    raise TypeError(f"{where} has unsupported runtime type {type(value).__name__}")
