"""Structured error types for lexing, parsing and evaluation."""

from __future__ import annotations


class ExprError(Exception):
    """Base class for structured exprcalc errors."""


class LexError(ExprError, SyntaxError):
    """Unrecognized character in expression source."""

    def __init__(self, message: str, pos: int, char: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.pos = pos
        self.char = char

    def __str__(self) -> str:
        return f"{self.message} at index {self.pos}"


class ParseError(ExprError, SyntaxError):
    def __init__(
        self,
        message: str,
        start: int,
        end: int,
        expected: tuple[str, ...] = (),
        found: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.end = end
        self.expected = expected
        self.found = found

    def __str__(self) -> str:
        expected_text = ""
        if self.expected:
            expected_text = f"; expected {', '.join(self.expected)}"
        found_text = ""
        if self.found is not None:
            found_text = f"; found {self.found}"
        return f"{self.message} at span [{self.start}, {self.end}){expected_text}{found_text}"


class EvalError(ExprError):
    """Failure while reducing a parsed expression to a value."""


class UnknownVariable(EvalError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown variable {self.name!r}"


class UnknownFunction(EvalError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown function {self.name!r}"


class ArityMismatch(EvalError):
    def __init__(self, name: str, expected: str, got: int) -> None:
        super().__init__(name, expected, got)
        self.name = name
        self.expected = expected
        self.got = got

    def __str__(self) -> str:
        return f"Function {self.name!r} expects {self.expected} argument(s), got {self.got}"


class DimensionMismatch(EvalError):
    def __init__(self, op: str, left_len: int, right_len: int) -> None:
        super().__init__(op, left_len, right_len)
        self.op = op
        self.left_len = left_len
        self.right_len = right_len

    def __str__(self) -> str:
        return f"Operands of {self.op!r} have incompatible lengths {self.left_len} and {self.right_len}"


class IndexOutOfBounds(EvalError, IndexError):
    def __init__(self, index: int | None, length: int) -> None:
        super().__init__(index, length)
        self.index = index
        self.length = length

    def __str__(self) -> str:
        if self.index is None:
            return f"Index out of bounds for array of length {self.length}"
        return f"Index {self.index} out of bounds for array of length {self.length}"
