"""AST nodes for the arithmetic expression language.

One node type per labeled grammar alternative. The passthrough variants
forward their single child unchanged; they keep the tree shape aligned with
the grammar tiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class AddSub:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class PassthroughExpr:
    inner: "Node"


@dataclass(frozen=True)
class MulDiv:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class PassthroughFactor:
    inner: "Node"


@dataclass(frozen=True)
class Negation:
    inner: "Node"


@dataclass(frozen=True)
class Exponentiation:
    base: "Node"
    exponent: "Node"


@dataclass(frozen=True)
class PassthroughMolecule:
    inner: "Node"


@dataclass(frozen=True)
class Bracketed:
    inner: "Node"


@dataclass(frozen=True)
class ArrayIndex:
    target: "Node"
    index: "Node"


@dataclass(frozen=True)
class ArrayLiteral:
    items: tuple["Node", ...]


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: tuple["Node", ...]


Passthrough = Union[PassthroughExpr, PassthroughFactor, PassthroughMolecule, Bracketed]
Node = Union[
    Number,
    Variable,
    AddSub,
    PassthroughExpr,
    MulDiv,
    PassthroughFactor,
    Negation,
    Exponentiation,
    PassthroughMolecule,
    Bracketed,
    ArrayIndex,
    ArrayLiteral,
    FunctionCall,
]

PASSTHROUGH_TYPES = (PassthroughExpr, PassthroughFactor, PassthroughMolecule, Bracketed)


def strip_passthrough(node: Node) -> Node:
    """Return the first descendant of ``node`` that is not a transparent wrapper."""
    while isinstance(node, PASSTHROUGH_TYPES):
        node = node.inner
    return node


def variable_names(node: Node) -> tuple[str, ...]:
    """Variables referenced by ``node`` in first-appearance order."""
    seen: dict[str, None] = {}
    stack: list[Node] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Variable):
            seen.setdefault(current.name, None)
        elif isinstance(current, (AddSub, MulDiv)):
            stack.append(current.right)
            stack.append(current.left)
        elif isinstance(current, Exponentiation):
            stack.append(current.exponent)
            stack.append(current.base)
        elif isinstance(current, ArrayIndex):
            stack.append(current.index)
            stack.append(current.target)
        elif isinstance(current, (ArrayLiteral, FunctionCall)):
            children = current.items if isinstance(current, ArrayLiteral) else current.args
            stack.extend(reversed(children))
        elif isinstance(current, (Negation, *PASSTHROUGH_TYPES)):
            stack.append(current.inner)
    return tuple(seen)
