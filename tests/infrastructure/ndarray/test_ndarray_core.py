import unittest
import numpy as np

from src.ndgrad.domain._errors import IndexOutOfRangeError, ShapeMismatchError
from src.ndgrad.domain._ndarray import INdArray
from src.ndgrad.infrastructure.ndarray import NdArray


class TestNdArrayConstruction(unittest.TestCase):
    def test_from_nested_list(self) -> None:
        a = NdArray([[1, 2, 3], [4, 5, 6]])
        self.assertEqual(a.shape, (2, 3))
        self.assertEqual(a.dtype, np.float32)
        np.testing.assert_array_equal(a.to_numpy(), [[1, 2, 3], [4, 5, 6]])

    def test_scalar_has_empty_shape(self) -> None:
        a = NdArray(3.5)
        self.assertEqual(a.shape, ())
        self.assertEqual(a.size, 1)
        self.assertEqual(a.item(), 3.5)

    def test_scalar_fills_requested_shape(self) -> None:
        a = NdArray(2.0, shape=(2, 2))
        np.testing.assert_array_equal(a.to_numpy(), np.full((2, 2), 2.0))

    def test_reshapes_to_requested_shape(self) -> None:
        a = NdArray([1, 2, 3, 4, 5, 6], shape=(2, 3))
        self.assertEqual(a.shape, (2, 3))
        with self.assertRaises(ShapeMismatchError):
            NdArray([1, 2, 3], shape=(2, 2))

    def test_copies_numpy_input(self) -> None:
        src = np.ones((2, 2), dtype=np.float32)
        a = NdArray(src)
        src[0, 0] = 9.0
        self.assertEqual(a.get(0, 0), 1.0)

    def test_ragged_input_raises(self) -> None:
        with self.assertRaises(ValueError):
            NdArray([[1, 2], [3]])

    def test_satisfies_interface(self) -> None:
        self.assertIsInstance(NdArray.zeros((2,)), INdArray)


class TestNdArrayFactories(unittest.TestCase):
    def test_zeros_ones_full(self) -> None:
        np.testing.assert_array_equal(NdArray.zeros((2, 3)).to_numpy(), np.zeros((2, 3)))
        np.testing.assert_array_equal(NdArray.ones((2,)).to_numpy(), np.ones((2,)))
        np.testing.assert_array_equal(NdArray.full((1, 2), 7).to_numpy(), [[7, 7]])

    def test_eye(self) -> None:
        np.testing.assert_array_equal(NdArray.eye(3).to_numpy(), np.eye(3))
        self.assertEqual(NdArray.eye(2, 4).shape, (2, 4))

    def test_random_factories_are_seeded(self) -> None:
        a = NdArray.uniform((3, 4), -1.0, 1.0, seed=0)
        b = NdArray.uniform((3, 4), -1.0, 1.0, seed=0)
        self.assertEqual(a, b)
        self.assertTrue(np.all(a.to_numpy() >= -1.0))
        self.assertTrue(np.all(a.to_numpy() <= 1.0))

        n = NdArray.normal((1000,), mean=2.0, std=0.5, seed=1)
        self.assertAlmostEqual(float(n.to_numpy().mean()), 2.0, delta=0.1)

    def test_linspace_is_row(self) -> None:
        a = NdArray.linspace(0.0, 1.0, 5)
        self.assertEqual(a.shape, (1, 5))
        np.testing.assert_allclose(a.to_numpy()[0], [0, 0.25, 0.5, 0.75, 1.0])

    def test_from_data(self) -> None:
        self.assertEqual(NdArray.from_data([[1, 2]]), NdArray([[1, 2]]))

    def test_zeros_sum_is_zero(self) -> None:
        for shape in [(1,), (2, 3), (2, 3, 4), ()]:
            self.assertEqual(NdArray.zeros(shape).sum().item(), 0.0)


class TestNdArrayAccess(unittest.TestCase):
    def test_get_and_set(self) -> None:
        a = NdArray.zeros((2, 3))
        a.set_(5.0, 1, 2)
        self.assertEqual(a.get(1, 2), 5.0)
        self.assertEqual(a.buffer[5], 5.0)
        with self.assertRaises(IndexOutOfRangeError):
            a.get(2, 0)

    def test_item_requires_single_element(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            NdArray([1, 2]).item()
        self.assertEqual(NdArray([[4.0]]).item(), 4.0)

    def test_copy_is_independent(self) -> None:
        a = NdArray([1.0, 2.0])
        b = a.copy()
        b.fill_(0.0)
        np.testing.assert_array_equal(a.to_numpy(), [1.0, 2.0])

    def test_add_inplace_broadcasts(self) -> None:
        a = NdArray.zeros((2, 3))
        a.add_(NdArray([1.0, 2.0, 3.0]))
        np.testing.assert_array_equal(a.to_numpy(), [[1, 2, 3], [1, 2, 3]])
        with self.assertRaises(ShapeMismatchError):
            NdArray.zeros((3,)).add_(NdArray.zeros((2, 3)))

    def test_is_finite(self) -> None:
        self.assertTrue(NdArray([1.0, 2.0]).is_finite())
        self.assertFalse(NdArray([1.0, np.nan]).is_finite())
        self.assertFalse(NdArray([np.inf]).is_finite())

    def test_structural_equality(self) -> None:
        self.assertEqual(NdArray([1, 2]), NdArray([1.0, 2.0]))
        self.assertNotEqual(NdArray([1, 2]), NdArray([[1, 2]]))
        self.assertNotEqual(NdArray([1, 2]), NdArray([1, 3]))

    def test_allclose(self) -> None:
        self.assertTrue(NdArray([1.0, 2.0]).allclose([1.0, 2.0 + 1e-7]))
        self.assertFalse(NdArray([1.0, 2.0]).allclose([1.0, 2.1]))
        self.assertFalse(NdArray([1.0, 2.0]).allclose([1.0, 2.0, 3.0]))

    def test_tolist_and_len(self) -> None:
        a = NdArray([[1, 2], [3, 4], [5, 6]])
        self.assertEqual(a.tolist(), [[1, 2], [3, 4], [5, 6]])
        self.assertEqual(len(a), 3)
        rows = list(a)
        self.assertEqual(rows[1], NdArray([3, 4]))


if __name__ == "__main__":
    unittest.main()
