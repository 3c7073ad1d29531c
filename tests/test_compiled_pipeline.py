from __future__ import annotations

import importlib.util
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for compiled expression tests")
class CompiledExpressionTests(unittest.TestCase):
    def test_default_arg_names_follow_first_appearance(self) -> None:
        from exprcalc import compile_expression

        compiled = compile_expression("b*a + c[0] - b")
        self.assertEqual(compiled.arg_names, ("b", "a", "c"))

    def test_constants_are_excluded_from_arguments(self) -> None:
        from exprcalc import compile_expression, to_python

        compiled = compile_expression("scale*x", constants={"scale": 3.0})
        self.assertEqual(compiled.arg_names, ("x",))
        self.assertEqual(to_python(compiled([1.0, 2.0])), [3.0, 6.0])

    def test_unknown_variable_is_reported_at_compile_time(self) -> None:
        from exprcalc import UnknownVariable, compile_expression

        with self.assertRaises(UnknownVariable) as ctx:
            compile_expression("x + y", arg_names=("x",))
        self.assertEqual(ctx.exception.name, "y")

    def test_positional_and_keyword_calls(self) -> None:
        from exprcalc import compile_expression, to_python

        compiled = compile_expression("x - y", arg_names=("x", "y"))
        self.assertEqual(to_python(compiled(5.0, 2.0)), 3.0)
        self.assertEqual(to_python(compiled(y=2.0, x=5.0)), 3.0)
        with self.assertRaises(TypeError):
            compiled(1.0)
        with self.assertRaises(TypeError):
            compiled(x=1.0, z=2.0)
        with self.assertRaises(TypeError):
            compiled(1.0, y=2.0)

    def test_jit_matches_interpreter(self) -> None:
        from exprcalc import Context, compile_expression, evaluate, to_python

        cases = [
            ("2+3*4", {}),
            ("-2^2", {}),
            ("x*2 + y", {"x": [1.0, 2.0, 3.0], "y": [10.0, 20.0, 30.0]}),
            ("sum(abs(x)) / x[1]", {"x": [-1.0, 2.0, -3.0]}),
            ("interleave(x, y)[3] + theta(x - 1)", {"x": [0.5, 2.0], "y": [4.0, 8.0]}),
            ("{x, 1}^2", {"x": [2.0, 3.0]}),
        ]
        for source, values in cases:
            with self.subTest(source=source):
                compiled = compile_expression(source)
                jitted = compiled.jit()
                args = [values[name] for name in compiled.arg_names]
                expected = to_python(evaluate(source, Context(values)))
                got = to_python(jitted(*args))
                if isinstance(expected, list):
                    self.assertEqual(len(got), len(expected))
                    for g, e in zip(got, expected):
                        self.assertAlmostEqual(g, e)
                else:
                    self.assertAlmostEqual(got, expected)

    def test_jit_transform_is_cached_per_instance(self) -> None:
        from exprcalc import compile_expression

        compiled = compile_expression("x+1")
        self.assertIs(compiled.jit(), compiled.jit())

    def test_jit_dimension_mismatch_surfaces_at_trace_time(self) -> None:
        from exprcalc import DimensionMismatch, compile_expression

        jitted = compile_expression("x+y").jit()
        with self.assertRaises(DimensionMismatch):
            jitted([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_jit_index_bounds_are_checked(self) -> None:
        from exprcalc import IndexOutOfBounds, compile_expression, to_python

        jitted = compile_expression("a[i]", arg_names=("a", "i")).jit()
        self.assertEqual(to_python(jitted([1.0, 2.0, 3.0], 2.0)), 3.0)
        self.assertEqual(to_python(jitted([1.0, 2.0, 3.0], 1.7)), 2.0)
        with self.assertRaises(IndexOutOfBounds) as ctx:
            jitted([1.0, 2.0, 3.0], 3.0)
        self.assertEqual(ctx.exception.length, 3)
        with self.assertRaises(IndexOutOfBounds):
            jitted([1.0, 2.0, 3.0], -1.0)

    def test_vmap_over_samples(self) -> None:
        import jax.numpy as jnp

        from exprcalc import compile_expression

        compiled = compile_expression("rate*t + offset", arg_names=("rate", "t", "offset"))
        batched = compiled.vmap(in_axes=(0, None, 0))
        rates = jnp.asarray([1.0, 2.0, 3.0])
        offsets = jnp.asarray([0.0, 10.0, 100.0])
        t = jnp.asarray([1.0, 2.0])
        out = batched(rates, t, offsets)
        self.assertEqual(out.shape, (3, 2))
        self.assertEqual(out.tolist(), [[1.0, 2.0], [12.0, 14.0], [103.0, 106.0]])

    def test_trace_emits_jaxpr(self) -> None:
        from exprcalc import compile_expression

        jaxpr = compile_expression("x*2").trace([1.0, 2.0])
        self.assertIn("mul", str(jaxpr))

    def test_compile_accepts_parsed_ast(self) -> None:
        from exprcalc import compile_expression, parse, to_python

        compiled = compile_expression(parse("x^2"))
        self.assertIsNone(compiled.source)
        self.assertEqual(to_python(compiled(3.0)), 9.0)


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for compiled expression tests")
class CompileCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        from exprcalc import compile_cache_stats

        compile_cache_stats(reset=True)

    def test_cached_jit_reuses_transformed_callable(self) -> None:
        from exprcalc import cached_jit, compile_cache_stats, to_python

        first = cached_jit("x*k", arg_names=("x",), constants={"k": 2.0})
        second = cached_jit("x*k", arg_names=("x",), constants={"k": 2.0})
        other = cached_jit("x*k", arg_names=("x",), constants={"k": 3.0})
        self.assertIs(first, second)
        self.assertIsNot(first, other)
        self.assertEqual(to_python(first([1.0, 2.0])), [2.0, 4.0])

        stats = compile_cache_stats()
        self.assertEqual(stats["hits"], 1)
        self.assertEqual(stats["misses"], 2)
        self.assertEqual(stats["size"], 2)

    def test_cached_vmap_and_reset(self) -> None:
        from exprcalc import cached_vmap, compile_cache_stats

        fn = cached_vmap("x+1")
        self.assertIs(fn, cached_vmap("x+1"))
        self.assertEqual(fn([[1.0], [2.0]]).tolist(), [2.0, 3.0])

        compile_cache_stats(reset=True)
        stats = compile_cache_stats()
        self.assertEqual(stats["size"], 0)
        self.assertEqual(stats["hits"], 0)


if __name__ == "__main__":
    unittest.main()
