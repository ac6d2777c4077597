import unittest
import warnings
import numpy as np

from src.ndgrad.domain._errors import ShapeMismatchError
from src.ndgrad.infrastructure.ndarray import NdArray


class TestNdArrayArithmetic(unittest.TestCase):
    def setUp(self) -> None:
        self.a_np = np.array([[1.0, -2.0, 3.0], [0.5, 4.0, -6.0]], dtype=np.float32)
        self.b_np = np.array([[2.0, 1.0, -1.0], [3.0, 0.25, 2.0]], dtype=np.float32)
        self.a = NdArray(self.a_np)
        self.b = NdArray(self.b_np)

    def test_binary_ops_match_numpy(self) -> None:
        np.testing.assert_allclose(self.a.add(self.b).to_numpy(), self.a_np + self.b_np)
        np.testing.assert_allclose(self.a.sub(self.b).to_numpy(), self.a_np - self.b_np)
        np.testing.assert_allclose(self.a.mul(self.b).to_numpy(), self.a_np * self.b_np)
        np.testing.assert_allclose(self.a.div(self.b).to_numpy(), self.a_np / self.b_np)

    def test_operators(self) -> None:
        np.testing.assert_allclose((self.a + self.b).to_numpy(), self.a_np + self.b_np)
        np.testing.assert_allclose((2.0 - self.a).to_numpy(), 2.0 - self.a_np)
        np.testing.assert_allclose((3 * self.a).to_numpy(), 3 * self.a_np)
        np.testing.assert_allclose((1.0 / self.b).to_numpy(), 1.0 / self.b_np)
        np.testing.assert_allclose((-self.a).to_numpy(), -self.a_np)
        np.testing.assert_allclose((self.b ** 2).to_numpy(), self.b_np**2)

    def test_add_then_sub_round_trips(self) -> None:
        rng = np.random.default_rng(0)
        for shape in [(3,), (2, 4), (2, 3, 5)]:
            a = NdArray(rng.normal(size=shape))
            b = NdArray(rng.normal(size=shape))
            self.assertTrue(a.add(b).sub(b).allclose(a, atol=1e-5))

    def test_inputs_are_not_mutated(self) -> None:
        before = self.a.to_numpy()
        _ = self.a.add(self.b).mul(2.0).exp()
        np.testing.assert_array_equal(self.a.to_numpy(), before)

    def test_broadcasting(self) -> None:
        row = NdArray([10.0, 20.0, 30.0])
        np.testing.assert_allclose(self.a.add(row).to_numpy(), self.a_np + [10, 20, 30])
        col = NdArray([[1.0], [2.0]])
        np.testing.assert_allclose(self.a.mul(col).to_numpy(), self.a_np * [[1], [2]])
        np.testing.assert_allclose(self.a.add(1).to_numpy(), self.a_np + 1)

    def test_incompatible_shapes_raise(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            self.a.add(NdArray([1.0, 2.0]))

    def test_non_numeric_operand_raises_type_error(self) -> None:
        with self.assertRaises(TypeError):
            self.a.add("x")

    def test_nan_and_inf_propagate_silently(self) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            out = NdArray([1.0, 0.0, -1.0]).div(NdArray([0.0, 0.0, 0.0]))
            logs = NdArray([-1.0, 0.0]).log()
        v = out.to_numpy()
        self.assertTrue(np.isposinf(v[0]))
        self.assertTrue(np.isnan(v[1]))
        self.assertTrue(np.isneginf(v[2]))
        self.assertTrue(np.isnan(logs.to_numpy()[0]))
        self.assertFalse(out.is_finite())


class TestNdArrayUnary(unittest.TestCase):
    def test_unary_math_matches_numpy(self) -> None:
        x_np = np.array([0.1, 0.5, 1.0, 2.0], dtype=np.float32)
        x = NdArray(x_np)
        cases = {
            "abs": np.abs,
            "square": np.square,
            "sqrt": np.sqrt,
            "exp": np.exp,
            "log": np.log,
            "sin": np.sin,
            "cos": np.cos,
            "tanh": np.tanh,
        }
        for name, ref in cases.items():
            with self.subTest(op=name):
                np.testing.assert_allclose(getattr(x, name)().to_numpy(), ref(x_np), rtol=1e-6)

    def test_sigmoid_saturates_without_overflow(self) -> None:
        s = NdArray([-1000.0, 0.0, 1000.0]).sigmoid().to_numpy()
        np.testing.assert_allclose(s, [0.0, 0.5, 1.0], atol=1e-6)

    def test_relu_maximum_mask(self) -> None:
        x = NdArray([-2.0, 0.0, 3.0])
        np.testing.assert_array_equal(x.relu().to_numpy(), [0.0, 0.0, 3.0])
        np.testing.assert_array_equal(x.maximum(1.0).to_numpy(), [1.0, 1.0, 3.0])
        np.testing.assert_array_equal(x.mask(0.0).to_numpy(), [0.0, 0.0, 1.0])

    def test_clip(self) -> None:
        x = NdArray([-2.0, 0.5, 3.0])
        np.testing.assert_array_equal(x.clip(-1.0, 1.0).to_numpy(), [-1.0, 0.5, 1.0])
        with self.assertRaises(ValueError):
            x.clip(1.0, -1.0)

    def test_comparisons_return_masks(self) -> None:
        a = NdArray([1.0, 2.0, 3.0])
        b = NdArray([2.0, 2.0, 2.0])
        np.testing.assert_array_equal(a.eq(b).to_numpy(), [0, 1, 0])
        np.testing.assert_array_equal(a.gt(b).to_numpy(), [0, 0, 1])
        np.testing.assert_array_equal(a.lt(b).to_numpy(), [1, 0, 0])
        np.testing.assert_array_equal(a.ge(2.0).to_numpy(), [0, 1, 1])
        np.testing.assert_array_equal(a.le(2.0).to_numpy(), [1, 1, 0])
        np.testing.assert_array_equal((a > 1.5).to_numpy(), [0, 1, 1])


class TestNdArraySoftmax(unittest.TestCase):
    def test_softmax_is_stable(self) -> None:
        p = NdArray([1000.0, 1001.0, 999.0]).softmax()
        self.assertTrue(p.is_finite())
        self.assertAlmostEqual(p.sum().item(), 1.0, places=5)
        ref = np.exp([1.0, 2.0, 0.0]) / np.exp([1.0, 2.0, 0.0]).sum()
        np.testing.assert_allclose(p.to_numpy(), ref, rtol=1e-5)

    def test_softmax_along_axis(self) -> None:
        x = NdArray([[1.0, 2.0], [3.0, 5.0]])
        np.testing.assert_allclose(x.softmax(axis=0).sum(axis=0).to_numpy(), [1.0, 1.0], rtol=1e-6)
        np.testing.assert_allclose(x.softmax(axis=-1).sum(axis=1).to_numpy(), [1.0, 1.0], rtol=1e-6)

    def test_log_softmax_matches_log_of_softmax(self) -> None:
        x = NdArray([[0.5, -1.0, 2.0], [100.0, 101.0, 102.0]])
        np.testing.assert_allclose(
            x.log_softmax().to_numpy(), np.log(x.softmax().to_numpy()), rtol=1e-5, atol=1e-6
        )
        self.assertTrue(NdArray([1000.0, -1000.0]).log_softmax().is_finite())


class TestNdArraySelection(unittest.TestCase):
    def test_where_broadcasts_all_operands(self) -> None:
        cond = NdArray([[1.0], [0.0]])
        out = NdArray.where(cond, NdArray([1.0, 2.0, 3.0]), -1.0)
        np.testing.assert_array_equal(out.to_numpy(), [[1, 2, 3], [-1, -1, -1]])
        with self.assertRaises(ShapeMismatchError):
            NdArray.where(NdArray.ones((2,)), NdArray.ones((3,)), 0.0)

    def test_where_does_not_leak_infinity(self) -> None:
        out = NdArray.where(NdArray([1.0, 0.0]), NdArray([1.0, float("inf")]), 0.0)
        np.testing.assert_array_equal(out.to_numpy(), [1.0, 0.0])

    def test_masked_fill(self) -> None:
        a = NdArray([[1.0, 2.0], [3.0, 4.0]])
        out = a.masked_fill(NdArray([[0.0, 1.0]]), float("-inf"))
        np.testing.assert_array_equal(out.to_numpy(), [[1, -np.inf], [3, -np.inf]])
        self.assertEqual(a.get(0, 1), 2.0)
        with self.assertRaises(ShapeMismatchError):
            a.masked_fill(NdArray.ones((3,)), 0.0)


if __name__ == "__main__":
    unittest.main()
