"""Compiled expressions: parsed ASTs as pure JAX callables with jit/vmap helpers."""

from __future__ import annotations

import logging
import os
import re
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass, field

import jax
from jax.experimental import checkify

from .ast import Node, variable_names
from .context import Context
from .errors import IndexOutOfBounds, UnknownVariable
from .evaluator import eval_node
from .parser import parse_cached
from .values import as_array, as_vector

logger = logging.getLogger(__name__)

_COMPILE_CACHE_MAX = max(1, int(os.environ.get("EXPRCALC_COMPILE_CACHE_MAX", "256")))
_TRANSFORM_CACHE: "OrderedDict[tuple[object, ...], object]" = OrderedDict()
_TRANSFORM_STATS: dict[str, int] = {"hits": 0, "misses": 0}
_LENGTH_RE = re.compile(r"length (\d+)")


def _raise_checkify_error(err: checkify.Error) -> None:
    message = err.get()
    if message is None:
        return
    match = _LENGTH_RE.search(message)
    length = int(match.group(1)) if match else -1
    raise IndexOutOfBounds(None, length)


@dataclass
class CompiledExpression:
    """Callable wrapper around a parsed expression with named array arguments."""

    node: Node
    arg_names: tuple[str, ...]
    source: str | None = None
    constants: Context = field(default_factory=Context)
    _jit_fn: object | None = field(default=None, init=False, repr=False)
    _vmap_cache: dict[str, object] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.arg_names = tuple(self.arg_names)
        if len(set(self.arg_names)) != len(self.arg_names):
            raise ValueError(f"duplicate argument names in {self.arg_names}")
        for name in variable_names(self.node):
            if name not in self.arg_names and name not in self.constants:
                raise UnknownVariable(name)

    def _call_raw(self, *args):
        bound = dict(zip(self.arg_names, args))

        def lookup(name: str):
            if name in bound:
                return bound[name]
            return self.constants.resolve(name)

        return eval_node(self.node, lookup)

    def _resolve_call_args(self, args: tuple[object, ...], kwargs: dict[str, object]) -> tuple[object, ...]:
        if args and kwargs:
            raise TypeError("Use either positional or keyword arguments, not both")
        if kwargs:
            missing = [name for name in self.arg_names if name not in kwargs]
            extra = [name for name in kwargs if name not in self.arg_names]
            if missing or extra:
                raise TypeError(f"Argument mismatch: missing={missing} extra={extra}")
            return tuple(kwargs[name] for name in self.arg_names)
        if len(args) != len(self.arg_names):
            raise TypeError(f"Expected {len(self.arg_names)} arguments, got {len(args)}")
        return args

    def _vectors(self, args: tuple[object, ...], kwargs: dict[str, object]) -> tuple[object, ...]:
        values = self._resolve_call_args(args, kwargs)
        return tuple(as_vector(value, where=name) for name, value in zip(self.arg_names, values))

    def __call__(self, *args, **kwargs):
        return self._call_raw(*self._vectors(args, kwargs))

    def trace(self, *args, **kwargs):
        """Emit the jaxpr for this expression under sample inputs."""
        return jax.make_jaxpr(self._call_raw)(*self._vectors(args, kwargs))

    def jit(self):
        """Return a JIT-compiled callable with index bounds checked via checkify."""
        if self._jit_fn is not None:
            return self._jit_fn

        logger.debug("JIT-compiling expression %r", self.source)
        jitted = jax.jit(checkify.checkify(self._call_raw))

        def wrapped(*args, **kwargs):
            err, out = jitted(*self._vectors(args, kwargs))
            _raise_checkify_error(err)
            return out

        self._jit_fn = wrapped
        return wrapped

    def vmap(self, *, in_axes=0, out_axes=0):
        """Return a jitted callable mapped over a leading batch axis (e.g. MCMC samples)."""
        key = repr((in_axes, out_axes))
        cached = self._vmap_cache.get(key)
        if cached is not None:
            return cached

        logger.debug("Vectorizing expression %r with in_axes=%r", self.source, in_axes)
        mapped = jax.vmap(self._call_raw, in_axes=in_axes, out_axes=out_axes)
        jitted = jax.jit(checkify.checkify(mapped))

        def wrapped(*args, **kwargs):
            values = tuple(as_array(value) for value in self._resolve_call_args(args, kwargs))
            err, out = jitted(*values)
            _raise_checkify_error(err)
            return out

        self._vmap_cache[key] = wrapped
        return wrapped


def compile_expression(
    expression: str | Node,
    *,
    arg_names: tuple[str, ...] | None = None,
    constants: Mapping[str, object] | None = None,
) -> CompiledExpression:
    """Compile expression source or an AST into a :class:`CompiledExpression`.

    ``arg_names`` defaults to the variables of the expression (minus
    ``constants``) in order of first appearance.
    """
    if isinstance(expression, str):
        node = parse_cached(expression)
        source: str | None = expression
    else:
        node = expression
        source = None
    consts = constants if isinstance(constants, Context) else Context(constants)
    if arg_names is None:
        arg_names = tuple(name for name in variable_names(node) if name not in consts)
    return CompiledExpression(node=node, arg_names=tuple(arg_names), source=source, constants=consts)


def _constants_key(constants: Mapping[str, object] | None) -> tuple[object, ...]:
    if not constants:
        return ()
    return tuple((name, tuple(float(x) for x in as_vector(constants[name]).tolist())) for name in sorted(constants))


def _cached_transform(key: tuple[object, ...], build):
    cached = _TRANSFORM_CACHE.get(key)
    if cached is not None:
        _TRANSFORM_STATS["hits"] += 1
        _TRANSFORM_CACHE.move_to_end(key)
        return cached
    _TRANSFORM_STATS["misses"] += 1
    fn = build()
    _TRANSFORM_CACHE[key] = fn
    while len(_TRANSFORM_CACHE) > _COMPILE_CACHE_MAX:
        evicted, _ = _TRANSFORM_CACHE.popitem(last=False)
        logger.debug("Evicting compiled expression %r", evicted[1])
    return fn


def cached_jit(
    source: str,
    *,
    arg_names: tuple[str, ...] | None = None,
    constants: Mapping[str, object] | None = None,
):
    """Return a cached JIT callable keyed by source, arguments and constants."""
    key = ("jit", source, None if arg_names is None else tuple(arg_names), _constants_key(constants))
    return _cached_transform(
        key,
        lambda: compile_expression(source, arg_names=arg_names, constants=constants).jit(),
    )


def cached_vmap(
    source: str,
    *,
    arg_names: tuple[str, ...] | None = None,
    constants: Mapping[str, object] | None = None,
    in_axes=0,
    out_axes=0,
):
    """Return a cached VMAP callable keyed by source, arguments and axes."""
    key = (
        "vmap",
        source,
        None if arg_names is None else tuple(arg_names),
        _constants_key(constants),
        repr(in_axes),
        repr(out_axes),
    )
    return _cached_transform(
        key,
        lambda: compile_expression(source, arg_names=arg_names, constants=constants).vmap(
            in_axes=in_axes, out_axes=out_axes
        ),
    )


def compile_cache_stats(*, reset: bool = False) -> dict[str, float | int]:
    hits = _TRANSFORM_STATS["hits"]
    misses = _TRANSFORM_STATS["misses"]
    total = hits + misses
    stats: dict[str, float | int] = {
        "hits": hits,
        "misses": misses,
        "size": len(_TRANSFORM_CACHE),
        "max_size": _COMPILE_CACHE_MAX,
        "hit_rate": float(hits / total) if total else 0.0,
    }
    if reset:
        _TRANSFORM_CACHE.clear()
        _TRANSFORM_STATS["hits"] = 0
        _TRANSFORM_STATS["misses"] = 0
    return stats
