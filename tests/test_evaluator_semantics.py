from __future__ import annotations

import importlib.util
import math
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for evaluator tests")
class EvaluatorArithmeticTests(unittest.TestCase):
    def _eval(self, source: str, context=None):
        from exprcalc import evaluate, to_python

        return to_python(evaluate(source, context))

    def test_precedence(self) -> None:
        self.assertEqual(self._eval("2+3*4"), 14.0)
        self.assertEqual(self._eval("(2+3)*4"), 20.0)
        self.assertEqual(self._eval("10-4-3"), 3.0)
        self.assertEqual(self._eval("16/4/2"), 2.0)

    def test_exponentiation_is_right_associative(self) -> None:
        self.assertEqual(self._eval("2^3^2"), 512.0)
        self.assertEqual(self._eval("(2^3)^2"), 64.0)

    def test_unary_minus_binds_looser_than_exponent(self) -> None:
        self.assertEqual(self._eval("-2^2"), -4.0)
        self.assertEqual(self._eval("(-2)^2"), 4.0)
        self.assertEqual(self._eval("2^-1"), 0.5)
        self.assertEqual(self._eval("3*-2"), -6.0)

    def test_number_literal_forms(self) -> None:
        self.assertAlmostEqual(self._eval("1.5e-3*1000"), 1.5)
        self.assertEqual(self._eval(".25*4"), 1.0)

    def test_division_by_zero_follows_ieee(self) -> None:
        self.assertEqual(self._eval("1/0"), math.inf)
        self.assertEqual(self._eval("-1/0"), -math.inf)
        self.assertTrue(math.isnan(self._eval("0/0")))

    def test_scalar_result_is_rank_zero(self) -> None:
        from exprcalc import ValueKind, evaluate, value_info

        info = value_info(evaluate("1+1"))
        self.assertEqual(info.kind, ValueKind.SCALAR)
        self.assertEqual(info.length, 1)

    def test_results_are_double_precision(self) -> None:
        from exprcalc import evaluate

        self.assertEqual(str(evaluate("0.1+0.2").dtype), "float64")
        self.assertEqual(float(evaluate("0.1+0.2")), 0.1 + 0.2)


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for evaluator tests")
class EvaluatorArrayTests(unittest.TestCase):
    def _eval(self, source: str, context=None):
        from exprcalc import evaluate, to_python

        return to_python(evaluate(source, context))

    def test_scalar_broadcasts_against_array(self) -> None:
        ctx = {"x": [1.0, 2.0, 3.0]}
        self.assertEqual(self._eval("x*2", ctx), [2.0, 4.0, 6.0])
        self.assertEqual(self._eval("2*x", ctx), [2.0, 4.0, 6.0])
        self.assertEqual(self._eval("10-x", ctx), [9.0, 8.0, 7.0])
        self.assertEqual(self._eval("x^2", ctx), [1.0, 4.0, 9.0])
        self.assertEqual(self._eval("2^x", ctx), [2.0, 4.0, 8.0])

    def test_equal_length_arrays_combine_elementwise(self) -> None:
        ctx = {"x": [1.0, 2.0, 3.0], "y": [10.0, 20.0, 30.0]}
        self.assertEqual(self._eval("x+y", ctx), [11.0, 22.0, 33.0])
        self.assertEqual(self._eval("y/x", ctx), [10.0, 10.0, 10.0])

    def test_negation_is_elementwise(self) -> None:
        self.assertEqual(self._eval("-x", {"x": [1.0, -2.0]}), [-1.0, 2.0])

    def test_dimension_mismatch(self) -> None:
        from exprcalc import DimensionMismatch, evaluate

        with self.assertRaises(DimensionMismatch) as ctx:
            evaluate("x+y", {"x": [1.0, 2.0], "y": [1.0, 2.0, 3.0]})
        self.assertEqual(ctx.exception.op, "+")
        self.assertEqual((ctx.exception.left_len, ctx.exception.right_len), (2, 3))

    def test_single_element_array_behaves_as_scalar(self) -> None:
        ctx = {"k": [3.0], "x": [1.0, 2.0, 3.0]}
        self.assertEqual(self._eval("k*x", ctx), [3.0, 6.0, 9.0])
        self.assertEqual([round(v, 9) for v in self._eval("x^k", ctx)], [1.0, 8.0, 27.0])
        self.assertEqual(self._eval("k+1", ctx), 4.0)
        self.assertEqual(self._eval("x[k-1]", ctx), 3.0)

    def test_indexing_round_trip(self) -> None:
        values = [0.5, -1.25, 7.0, 42.0]
        for i, expected in enumerate(values):
            with self.subTest(i=i):
                self.assertEqual(self._eval(f"a[{i}]", {"a": values}), expected)

    def test_index_is_truncated_toward_zero(self) -> None:
        ctx = {"a": [10.0, 20.0, 30.0]}
        self.assertEqual(self._eval("a[1.9]", ctx), 20.0)
        self.assertEqual(self._eval("a[-0.5]", ctx), 10.0)
        self.assertEqual(self._eval("a[2*0.75]", ctx), 20.0)

    def test_index_out_of_bounds(self) -> None:
        from exprcalc import IndexOutOfBounds, evaluate

        for source in ("a[3]", "a[-1]", "a[10]", "a[0/0]", "a[1/0]", "a[-1/0]"):
            with self.subTest(source=source):
                with self.assertRaises(IndexOutOfBounds) as ctx:
                    evaluate(source, {"a": [1.0, 2.0, 3.0]})
                self.assertEqual(ctx.exception.length, 3)

    def test_array_index_requires_scalar_index(self) -> None:
        from exprcalc import DimensionMismatch, evaluate

        with self.assertRaises(DimensionMismatch):
            evaluate("a[b]", {"a": [1.0, 2.0], "b": [0.0, 1.0]})

    def test_chained_indexing_of_scalar_element(self) -> None:
        self.assertEqual(self._eval("a[1][0]", {"a": [4.0, 5.0]}), 5.0)

    def test_scalar_literal_can_be_indexed_at_zero(self) -> None:
        self.assertEqual(self._eval("(2+3)[0]"), 5.0)

    def test_array_literal_concatenates_items(self) -> None:
        ctx = {"x": [1.0, 2.0]}
        self.assertEqual(self._eval("{0, x, 3}", ctx), [0.0, 1.0, 2.0, 3.0])
        self.assertEqual(self._eval("{1, 2}*x", ctx), [1.0, 4.0])
        self.assertEqual(self._eval("{4, 5, 6}[2]"), 6.0)

    def test_unknown_variable(self) -> None:
        from exprcalc import UnknownVariable, evaluate

        with self.assertRaises(UnknownVariable) as ctx:
            evaluate("q", {})
        self.assertEqual(ctx.exception.name, "q")

    def test_evaluation_is_idempotent(self) -> None:
        from exprcalc import Context, evaluate, parse, to_python

        node = parse("x*y + sum(x)")
        ctx = Context(x=[1.0, 2.0], y=[3.0, 4.0])
        first = to_python(evaluate(node, ctx))
        second = to_python(evaluate(node, ctx))
        self.assertEqual(first, second)
        self.assertEqual(first, [6.0, 11.0])

    def test_failed_evaluation_leaves_ast_reusable(self) -> None:
        from exprcalc import UnknownVariable, evaluate, parse

        node = parse("x+1")
        with self.assertRaises(UnknownVariable):
            evaluate(node, {})
        self.assertEqual(float(evaluate(node, {"x": 2.0})), 3.0)

    def test_context_is_not_mutated(self) -> None:
        from exprcalc import evaluate

        ctx = {"x": [1.0, 2.0]}
        evaluate("x*3", ctx)
        self.assertEqual(ctx, {"x": [1.0, 2.0]})


if __name__ == "__main__":
    unittest.main()
