"""Interpreted vs. JIT vs. VMAP evaluation timings for typical derived-parameter expressions."""

from __future__ import annotations

import argparse
import json
import math
import time
from dataclasses import asdict, dataclass

import jax
import jax.numpy as jnp

from exprcalc import Context, compile_expression, evaluate


@dataclass(frozen=True)
class Case:
    name: str
    expression: str
    length: int
    note: str


@dataclass(frozen=True)
class Row:
    name: str
    note: str
    interpreted_us: float
    jit_us: float
    vmap_per_sample_us: float


CASES: tuple[Case, ...] = (
    Case("scalar_arith", "2*x + y/3 - 1", 1, "scalar parameters"),
    Case("broadcast", "exp(-rate*t) * N0", 16, "exponential growth over a time grid"),
    Case("indexed", "x[0]^2 + x[1]^2 + sqrt(abs(x[2]))", 3, "index into a vector parameter"),
    Case("interleave", "sum(interleave(x, y) * 0.5)", 32, "interleave two vectors then reduce"),
)


def block_until_ready(value: object) -> None:
    if hasattr(value, "block_until_ready"):
        value.block_until_ready()


def percentile(values: list[float], q: float) -> float:
    ordered = sorted(values)
    if len(ordered) == 1:
        return ordered[0]
    pos = (len(ordered) - 1) * q
    lo = int(math.floor(pos))
    hi = int(math.ceil(pos))
    if lo == hi:
        return ordered[lo]
    alpha = pos - lo
    return ordered[lo] * (1.0 - alpha) + ordered[hi] * alpha


def _time_us(fn, *, repeats: int, samples: int) -> float:
    block_until_ready(fn())
    rows: list[float] = []
    for _ in range(samples):
        start_ns = time.perf_counter_ns()
        for _ in range(repeats):
            block_until_ready(fn())
        rows.append((time.perf_counter_ns() - start_ns) / repeats / 1e3)
    return percentile(rows, 0.5)


def _context_for(case: Case, key: jax.Array) -> dict[str, jnp.ndarray]:
    compiled = compile_expression(case.expression)
    keys = jax.random.split(key, len(compiled.arg_names))
    return {
        name: jax.random.uniform(k, (case.length,), minval=0.5, maxval=2.0)
        for name, k in zip(compiled.arg_names, keys)
    }


def run_case(case: Case, *, repeats: int, samples: int, batch: int) -> Row:
    values = _context_for(case, jax.random.PRNGKey(0))
    context = Context(values)
    compiled = compile_expression(case.expression)
    args = tuple(values[name] for name in compiled.arg_names)
    jitted = compiled.jit()
    batched = tuple(jnp.broadcast_to(arg, (batch,) + arg.shape) for arg in args)
    vmapped = compiled.vmap(in_axes=0)

    interpreted_us = _time_us(lambda: evaluate(compiled.node, context), repeats=repeats, samples=samples)
    jit_us = _time_us(lambda: jitted(*args), repeats=repeats, samples=samples)
    vmap_us = _time_us(lambda: vmapped(*batched), repeats=max(1, repeats // 10), samples=samples)
    return Row(
        name=case.name,
        note=case.note,
        interpreted_us=interpreted_us,
        jit_us=jit_us,
        vmap_per_sample_us=vmap_us / batch,
    )


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--repeats", type=int, default=200, help="calls per timing sample")
    parser.add_argument("--samples", type=int, default=5, help="timing samples per case")
    parser.add_argument("--batch", type=int, default=1024, help="batch size for the vmapped path")
    parser.add_argument("--json", action="store_true", help="print rows as JSON")
    args = parser.parse_args()

    rows = [run_case(case, repeats=args.repeats, samples=args.samples, batch=args.batch) for case in CASES]
    if args.json:
        print(json.dumps([asdict(row) for row in rows], indent=2))
        return 0

    print("| Case | Interpreted (us) | JIT (us) | VMAP per sample (us) | Note |")
    print("|---|---:|---:|---:|---|")
    for row in rows:
        print(f"| `{row.name}` | {row.interpreted_us:.1f} | {row.jit_us:.1f} | {row.vmap_per_sample_us:.3f} | {row.note} |")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
