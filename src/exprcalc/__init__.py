"""exprcalc public API."""

from .errors import (
    ArityMismatch,
    DimensionMismatch,
    EvalError,
    ExprError,
    IndexOutOfBounds,
    LexError,
    ParseError,
    UnknownFunction,
    UnknownVariable,
)
from .lexer import Token, tokenize
from .parser import parse
from .values import ValueKind, to_python, value_info
from .functions import FUNCTIONS
from .context import Context, Interleave
from .evaluator import evaluate
from .compiled import CompiledExpression, cached_jit, cached_vmap, compile_cache_stats, compile_expression
from .derived import DerivedExpression

__all__ = [
    "tokenize",
    "Token",
    "parse",
    "evaluate",
    "Context",
    "Interleave",
    "FUNCTIONS",
    "ValueKind",
    "value_info",
    "to_python",
    "compile_expression",
    "CompiledExpression",
    "cached_jit",
    "cached_vmap",
    "compile_cache_stats",
    "DerivedExpression",
    "ExprError",
    "LexError",
    "ParseError",
    "EvalError",
    "UnknownVariable",
    "UnknownFunction",
    "ArityMismatch",
    "DimensionMismatch",
    "IndexOutOfBounds",
]
