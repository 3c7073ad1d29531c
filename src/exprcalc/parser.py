"""Recursive-descent parser for the arithmetic expression language.

Grammar, loosest binding first::

    expression := factor (('+'|'-') factor)*
    factor     := molecule (('*'|'/') molecule)*
    molecule   := '-' power | power
    power      := atom ('^' molecule)?
    atom       := primary ('[' expression ']')*
    primary    := '(' expression ')'
                | '{' expression (',' expression)* '}'
                | NAME '(' (expression (',' expression)*)? ')'
                | NAME
                | NUMBER

Unary minus wraps a whole ``power`` reduction, so ``-2^2`` is ``-(2^2)``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

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
from .errors import ParseError
from .lexer import Token, tokenize

logger = logging.getLogger(__name__)

_PARSE_CACHE_MAX = max(1, int(os.environ.get("EXPRCALC_PARSE_CACHE_MAX", "512")))

_PRIMARY_START = ("NUMBER", "NAME", "LPAREN", "LBRACE")
_CLOSERS = {"LPAREN": ")", "LBRACK": "]", "LBRACE": "}"}


@dataclass
class _Parser:
    tokens: list[Token]
    index: int = 0

    def parse_root(self) -> Node:
        node = self._parse_expression()
        tok = self._peek()
        if tok.kind != "EOF":
            self._error(tok, message="Unexpected trailing input", expected=("EOF", "OP"))
        return node

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        tok = self.tokens[self.index]
        if tok.kind != "EOF":
            self.index += 1
        return tok

    def _at_op(self, *ops: str) -> bool:
        tok = self._peek()
        return tok.kind == "OP" and tok.text in ops

    def _expect(self, kind: str, *, opener: Token | None = None) -> Token:
        tok = self._peek()
        if tok.kind != kind:
            message = "Unexpected token"
            if opener is not None:
                message = f"Missing {_CLOSERS[opener.kind]!r} to close {opener.text!r} at index {opener.pos}"
            self._error(tok, message=message, expected=(kind,))
        return self._advance()

    def _error(self, tok: Token | None = None, *, message: str | None = None, expected: tuple[str, ...] = ()) -> None:
        token = tok if tok is not None else self._peek()
        detail = message if message is not None else "Unexpected token"
        normalized_expected = tuple(dict.fromkeys(expected))
        if token.kind == "EOF":
            found = "EOF"
        else:
            found = f"{token.kind}({token.text})"
        raise ParseError(detail, token.pos, token.end, expected=normalized_expected, found=found)

    def _parse_expression(self) -> Node:
        first = self._parse_factor()
        if not self._at_op("+", "-"):
            return PassthroughExpr(first)

        left: Node = PassthroughExpr(first)
        while self._at_op("+", "-"):
            op = self._advance().text
            right = self._parse_factor()
            left = AddSub(op=op, left=left, right=right)
        return left

    def _parse_factor(self) -> Node:
        first = self._parse_molecule()
        if not self._at_op("*", "/"):
            return PassthroughFactor(first)

        left: Node = PassthroughFactor(first)
        while self._at_op("*", "/"):
            op = self._advance().text
            right = self._parse_molecule()
            left = MulDiv(op=op, left=left, right=right)
        return left

    def _parse_molecule(self) -> Node:
        if self._at_op("-"):
            self._advance()
            return Negation(self._parse_power())
        power = self._parse_power()
        if isinstance(power, Exponentiation):
            return power
        return PassthroughMolecule(power)

    def _parse_power(self) -> Node:
        base = self._parse_atom()
        if not self._at_op("^"):
            return base
        self._advance()
        # Right recursion through molecule makes '^' right-associative.
        exponent = self._parse_molecule()
        return Exponentiation(base=base, exponent=exponent)

    def _parse_atom(self) -> Node:
        node = self._parse_primary()
        while self._peek().kind == "LBRACK":
            opener = self._advance()
            index = self._parse_expression()
            self._expect("RBRACK", opener=opener)
            node = ArrayIndex(target=node, index=index)
        return node

    def _parse_primary(self) -> Node:
        tok = self._peek()

        if tok.kind == "NUMBER":
            if tok.value is None:
                self._error(tok, message="Numeric token without a value", expected=("NUMBER",))
            self._advance()
            return Number(tok.value)

        if tok.kind == "NAME":
            self._advance()
            if self._peek().kind == "LPAREN":
                opener = self._advance()
                args = self._parse_arguments("RPAREN", opener=opener, allow_empty=True)
                return FunctionCall(name=tok.text, args=args)
            return Variable(tok.text)

        if tok.kind == "LPAREN":
            opener = self._advance()
            inner = self._parse_expression()
            self._expect("RPAREN", opener=opener)
            return Bracketed(inner)

        if tok.kind == "LBRACE":
            opener = self._advance()
            items = self._parse_arguments("RBRACE", opener=opener, allow_empty=False)
            return ArrayLiteral(items)

        if tok.kind == "EOF":
            self._error(tok, message="Unexpected end of input", expected=_PRIMARY_START + ("OP(-)",))
        self._error(tok, expected=_PRIMARY_START + ("OP(-)",))
        raise AssertionError("unreachable")

    def _parse_arguments(self, closer: str, *, opener: Token, allow_empty: bool) -> tuple[Node, ...]:
        if allow_empty and self._peek().kind == closer:
            self._advance()
            return ()

        items = [self._parse_expression()]
        while self._peek().kind == "COMMA":
            self._advance()
            items.append(self._parse_expression())
        if self._peek().kind != closer:
            self._error(
                message=f"Missing {_CLOSERS[opener.kind]!r} to close {opener.text!r} at index {opener.pos}",
                expected=(closer, "COMMA"),
            )
        self._advance()
        return tuple(items)


def parse(source: str | list[Token]) -> Node:
    """Parse expression source (or a token list) into a single AST root."""
    tokens = tokenize(source) if isinstance(source, str) else list(source)
    if not tokens or tokens[-1].kind != "EOF":
        raise ValueError("Token stream must end with an EOF token")
    return _Parser(tokens).parse_root()


@lru_cache(maxsize=_PARSE_CACHE_MAX)
def parse_cached(source: str) -> Node:
    """LRU-cached :func:`parse` for repeatedly evaluated source strings."""
    logger.debug("Parsing expression %r", source)
    return parse(source)
