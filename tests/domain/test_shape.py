import unittest

import numpy as np

from src.ndgrad.domain._errors import IndexOutOfRangeError, ShapeMismatchError
from src.ndgrad.domain._shape import Shape


class TestShapeConstruction(unittest.TestCase):
    def test_of_and_constructor_agree(self) -> None:
        self.assertEqual(Shape.of(2, 3), Shape((2, 3)))
        self.assertEqual(Shape.of((2, 3)), Shape([2, 3]))
        self.assertEqual(Shape.of(Shape.of(2, 3)), Shape.of(2, 3))
        self.assertEqual(Shape(4), Shape.of(4))

    def test_equals_plain_tuple(self) -> None:
        self.assertEqual(Shape.of(2, 3), (2, 3))
        self.assertNotEqual(Shape.of(2, 3), (3, 2))

    def test_size_and_rank(self) -> None:
        s = Shape.of(2, 3, 4)
        self.assertEqual(s.size, 24)
        self.assertEqual(s.ndim, 3)
        self.assertEqual(len(s), 3)
        self.assertEqual(list(s), [2, 3, 4])
        self.assertEqual(s[-1], 4)

    def test_scalar_shape(self) -> None:
        s = Shape(())
        self.assertEqual(s.size, 1)
        self.assertEqual(s.ndim, 0)
        self.assertTrue(s.is_scalar)

    def test_rejects_non_positive_dims(self) -> None:
        with self.assertRaises(ValueError):
            Shape.of(2, 0)
        with self.assertRaises(ValueError):
            Shape.of(-1, 3)
        with self.assertRaises(ValueError):
            Shape.of(2.5, 3)

    def test_is_immutable_and_hashable(self) -> None:
        s = Shape.of(2, 3)
        with self.assertRaises(AttributeError):
            s._dims = (1,)  # type: ignore[misc]
        d = {s: "x"}
        self.assertEqual(d[Shape.of(2, 3)], "x")

    def test_row_column_and_kind(self) -> None:
        s = Shape.of(5, 2, 3)
        self.assertEqual(s.row, 2)
        self.assertEqual(s.column, 3)
        self.assertTrue(Shape.of(2, 3).is_matrix)
        self.assertTrue(Shape.of(1, 3).is_vector)
        self.assertFalse(Shape.of(2, 3).is_vector)

    def test_dimension_accepts_negative_axis(self) -> None:
        s = Shape.of(2, 3, 4)
        self.assertEqual(s.dimension(0), 2)
        self.assertEqual(s.dimension(-1), 4)
        with self.assertRaises(IndexOutOfRangeError):
            s.dimension(3)


class TestShapeIndexing(unittest.TestCase):
    def test_strides_are_row_major(self) -> None:
        self.assertEqual(Shape.of(2, 3, 4).strides, (12, 4, 1))

    def test_index_and_multi_index_are_inverse(self) -> None:
        s = Shape.of(2, 3, 4)
        for flat in range(s.size):
            self.assertEqual(s.index(*s.multi_index(flat)), flat)
        self.assertEqual(s.index(1, 2, 3), 23)

    def test_index_out_of_range(self) -> None:
        s = Shape.of(2, 3)
        with self.assertRaises(IndexOutOfRangeError):
            s.index(2, 0)
        with self.assertRaises(IndexOutOfRangeError):
            s.index(0, -1)
        with self.assertRaises(IndexOutOfRangeError):
            s.index(0)
        with self.assertRaises(IndexOutOfRangeError):
            s.multi_index(6)

    def test_fractional_index_rejected(self) -> None:
        s = Shape.of(2, 3)
        with self.assertRaises(TypeError):
            s.index(1.5, 0.9)
        with self.assertRaises(TypeError):
            s.multi_index(2.5)
        with self.assertRaises(TypeError):
            s.normalize_axis(0.5)
        self.assertEqual(s.index(1.0, 2.0), 5)
        self.assertEqual(s.multi_index(np.float32(4.0)), (1, 1))


class TestShapeBroadcast(unittest.TestCase):
    def test_trailing_alignment(self) -> None:
        self.assertEqual(Shape.broadcast((2, 3), (3,)), (2, 3))
        self.assertEqual(Shape.broadcast((4, 1, 3), (2, 1)), (4, 2, 3))
        self.assertEqual(Shape.broadcast((), (2, 2)), (2, 2))

    def test_broadcast_is_symmetric(self) -> None:
        a, b = Shape.of(1, 3), Shape.of(2, 1)
        self.assertEqual(Shape.broadcast(a, b), Shape.broadcast(b, a))

    def test_incompatible_raises(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            Shape.broadcast((2, 3), (4, 3))
        with self.assertRaises(ValueError):
            Shape.broadcast((2, 3), (2,))

    def test_can_broadcast_to_is_one_directional(self) -> None:
        self.assertTrue(Shape.of(1, 3).can_broadcast_to((2, 3)))
        self.assertTrue(Shape.of(3).can_broadcast_to((4, 2, 3)))
        self.assertFalse(Shape.of(2, 3).can_broadcast_to((1, 3)))
        self.assertFalse(Shape.of(2, 2, 3).can_broadcast_to((2, 3)))


if __name__ == "__main__":
    unittest.main()
