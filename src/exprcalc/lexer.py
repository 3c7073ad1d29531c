"""Tokenization for the arithmetic expression language."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import LexError


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int
    value: float | None = None


_SINGLE_TOKENS = {
    "(": "LPAREN",
    ")": "RPAREN",
    "[": "LBRACK",
    "]": "RBRACK",
    "{": "LBRACE",
    "}": "RBRACE",
    ",": "COMMA",
}

OPERATORS = frozenset("+-*/^")
_WHITESPACE = frozenset(" \t\r\n\f\v")


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _is_ident_continue(ch: str) -> bool:
    return _is_ident_start(ch) or "0" <= ch <= "9"


def _scan_digits(source: str, start: int) -> int:
    i = start
    while i < len(source) and "0" <= source[i] <= "9":
        i += 1
    return i


def _scan_number(source: str, start: int) -> int:
    i = _scan_digits(source, start)
    if i < len(source) and source[i] == ".":
        frac_end = _scan_digits(source, i + 1)
        if frac_end == i + 1:
            raise LexError(f"Invalid numeric literal {source[start:i + 1]!r}", i, source[i])
        i = frac_end

    if i < len(source) and source[i] in {"e", "E"}:
        j = i + 1
        if j < len(source) and source[j] in {"+", "-"}:
            j += 1
        exp_end = _scan_digits(source, j)
        # "2e" followed by no digits is the number 2 then the identifier "e"
        if exp_end > j:
            i = exp_end
    return i


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0

    while i < len(source):
        ch = source[i]

        if ch in _WHITESPACE:
            i += 1
            continue

        if ch in _SINGLE_TOKENS:
            tokens.append(Token(_SINGLE_TOKENS[ch], ch, i, i + 1))
            i += 1
            continue

        if ch in OPERATORS:
            tokens.append(Token("OP", ch, i, i + 1))
            i += 1
            continue

        if "0" <= ch <= "9" or (ch == "." and i + 1 < len(source) and "0" <= source[i + 1] <= "9"):
            end = _scan_number(source, i)
            text = source[i:end]
            tokens.append(Token("NUMBER", text, i, end, value=float(text)))
            i = end
            continue

        if _is_ident_start(ch):
            start = i
            i += 1
            while i < len(source) and _is_ident_continue(source[i]):
                i += 1
            tokens.append(Token("NAME", source[start:i], start, i))
            continue

        raise LexError(f"Unexpected character {ch!r}", i, ch)

    tokens.append(Token("EOF", "", len(source), len(source)))
    return tokens
