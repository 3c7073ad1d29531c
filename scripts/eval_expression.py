"""Evaluate an arithmetic expression against variables given on the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from exprcalc import ExprError, UnknownVariable, compile_expression, evaluate, to_python


def _parse_binding(text: str) -> tuple[str, list[float]]:
    name, sep, raw = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=V1[,V2...], got {text!r}")
    try:
        values = [float(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"non-numeric value in {text!r}") from exc
    if not values:
        raise argparse.ArgumentTypeError(f"no values given for {name!r}")
    return name, values


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("expression", help="expression source, e.g. 'x*2 + y[0]'")
    parser.add_argument(
        "-v",
        "--var",
        dest="bindings",
        action="append",
        default=[],
        type=_parse_binding,
        metavar="NAME=V1[,V2...]",
        help="bind a variable to one or more comma-separated values (repeatable)",
    )
    parser.add_argument("--jit", action="store_true", help="evaluate through the JIT-compiled path")
    parser.add_argument("--json", action="store_true", help="print the result as JSON")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)
    context = dict(args.bindings)

    try:
        if args.jit:
            compiled = compile_expression(args.expression)
            for name in compiled.arg_names:
                if name not in context:
                    raise UnknownVariable(name)
            result = compiled.jit()(**{name: context[name] for name in compiled.arg_names})
        else:
            result = evaluate(args.expression, context)
    except (ExprError, TypeError) as err:
        print(f"error: {err}", file=sys.stderr)
        return 1

    value = to_python(result)
    if args.json:
        print(json.dumps(value))
    elif isinstance(value, list):
        print(" ".join(repr(x) for x in value))
    else:
        print(repr(value))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
