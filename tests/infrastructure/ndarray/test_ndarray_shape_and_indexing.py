import unittest
import numpy as np

from src.ndgrad.domain._errors import (
    IndexOutOfRangeError,
    RankViolationError,
    ShapeMismatchError,
)
from src.ndgrad.infrastructure.ndarray import NdArray


def _grid(*shape: int) -> NdArray:
    return NdArray(np.arange(int(np.prod(shape)), dtype=np.float32).reshape(shape))


class TestNdArrayViews(unittest.TestCase):
    def test_reshape_infers_minus_one(self) -> None:
        a = _grid(2, 3, 4)
        self.assertEqual(a.reshape(4, -1).shape, (4, 6))
        self.assertEqual(a.reshape((-1,)).shape, (24,))
        with self.assertRaises(ShapeMismatchError):
            a.reshape(5, -1)
        with self.assertRaises(ShapeMismatchError):
            a.reshape(5, 5)
        with self.assertRaises(ValueError):
            a.reshape(-1, -1)

    def test_reshape_shares_buffer(self) -> None:
        a = _grid(2, 3)
        r = a.reshape(3, 2)
        r.set_(100.0, 0, 0)
        self.assertEqual(a.get(0, 0), 100.0)

    def test_flatten_is_row(self) -> None:
        self.assertEqual(_grid(2, 3, 4).flatten().shape, (1, 24))

    def test_transpose(self) -> None:
        a = _grid(2, 3, 4)
        np.testing.assert_array_equal(a.transpose().to_numpy(), a.to_numpy().T)
        np.testing.assert_array_equal(
            a.transpose(1, 0, 2).to_numpy(), a.to_numpy().transpose(1, 0, 2)
        )
        np.testing.assert_array_equal(_grid(2, 3).T.to_numpy(), _grid(2, 3).to_numpy().T)
        with self.assertRaises(ValueError):
            a.transpose(0, 0, 1)

    def test_squeeze_unsqueeze(self) -> None:
        a = _grid(1, 3, 1)
        self.assertEqual(a.squeeze().shape, (3,))
        self.assertEqual(a.squeeze(0).shape, (3, 1))
        self.assertEqual(a.squeeze(-1).shape, (1, 3))
        with self.assertRaises(ValueError):
            a.squeeze(1)
        self.assertEqual(_grid(3).unsqueeze(0).shape, (1, 3))
        self.assertEqual(_grid(3).unsqueeze(-1).shape, (3, 1))
        with self.assertRaises(IndexOutOfRangeError):
            _grid(3).unsqueeze(3)

    def test_broadcast_to(self) -> None:
        a = NdArray([[1.0, 2.0]])
        np.testing.assert_array_equal(a.broadcast_to((3, 2)).to_numpy(), [[1, 2]] * 3)
        with self.assertRaises(ShapeMismatchError):
            a.broadcast_to((3, 3))

    def test_concat(self) -> None:
        a, b = _grid(2, 3), _grid(1, 3)
        out = NdArray.concat([a, b], axis=0)
        self.assertEqual(out.shape, (3, 3))
        np.testing.assert_array_equal(out.to_numpy()[2], b.to_numpy()[0])
        self.assertEqual(NdArray.concat([a, a], axis=-1).shape, (2, 6))
        with self.assertRaises(ShapeMismatchError):
            NdArray.concat([a, _grid(2, 2)], axis=0)
        with self.assertRaises(ValueError):
            NdArray.concat([], axis=0)


class TestNdArrayGetItem(unittest.TestCase):
    def setUp(self) -> None:
        self.a = _grid(3, 4)
        self.a_np = self.a.to_numpy()

    def test_point_index_mode(self) -> None:
        out = self.a.get_item([0, 2, 1], [3, 0, 1])
        self.assertEqual(out.shape, (1, 3))
        np.testing.assert_array_equal(out.to_numpy(), [[3, 8, 5]])

    def test_rectangular_rows_only(self) -> None:
        out = self.a.get_item([2, 0], None)
        np.testing.assert_array_equal(out.to_numpy(), self.a_np[[2, 0], :])

    def test_rectangular_cols_only_contiguous(self) -> None:
        out = self.a.get_item(None, [1, 2])
        np.testing.assert_array_equal(out.to_numpy(), self.a_np[:, 1:3])

    def test_full_selection_copies(self) -> None:
        full = self.a.get_item(None, None)
        np.testing.assert_array_equal(full.to_numpy(), self.a_np)
        full.fill_(0.0)
        self.assertEqual(self.a.get(2, 3), 11.0)

    def test_non_contiguous_gather(self) -> None:
        out = self.a.get_item(None, [3, 1])
        np.testing.assert_array_equal(out.to_numpy(), self.a_np[:, [3, 1]])

    def test_batch_axes_are_carried(self) -> None:
        b = _grid(2, 3, 4)
        out = b.get_item([0, 1], [1, 2])
        self.assertEqual(out.shape, (2, 1, 2))
        np.testing.assert_array_equal(out.to_numpy()[:, 0, :], b.to_numpy()[:, [0, 1], [1, 2]])

    def test_out_of_range_and_rank(self) -> None:
        with self.assertRaises(IndexOutOfRangeError):
            self.a.get_item([3], None)
        with self.assertRaises(IndexOutOfRangeError):
            self.a.get_item(None, [-1])
        with self.assertRaises(ValueError):
            self.a.get_item([0, 1], [0])
        with self.assertRaises(RankViolationError):
            _grid(4).get_item([0], None)

    def test_fractional_indices_rejected(self) -> None:
        with self.assertRaises(TypeError):
            self.a.get_item([0.7], [1.9])
        with self.assertRaises(TypeError):
            self.a.get_item(None, [2.5])
        with self.assertRaises(TypeError):
            self.a.get_item([float("nan")], None)
        with self.assertRaises(TypeError):
            NdArray.zeros((3, 4)).set_item_([1.5], None, 1.0)
        with self.assertRaises(TypeError):
            NdArray.zeros((3, 4)).add_at(None, [0.25], 1.0)
        self.assertEqual(self.a.to_numpy().tolist(), self.a_np.tolist())

    def test_integer_valued_float_indices_accepted(self) -> None:
        out = self.a.get_item(None, [3.0, 1.0])
        np.testing.assert_array_equal(out.to_numpy(), self.a_np[:, [3, 1]])
        # argmax output is float32 and selects exactly
        cols = self.a.argmax(axis=-1)
        point = self.a.get_item([0, 1, 2], cols)
        np.testing.assert_array_equal(point.to_numpy(), [[3, 7, 11]])

    def test_set_item_inplace(self) -> None:
        a = NdArray.zeros((2, 3))
        a.set_item_([0, 1], [2, 0], [7.0, 8.0])
        np.testing.assert_array_equal(a.to_numpy(), [[0, 0, 7], [8, 0, 0]])
        a.set_item_(None, [1], 5.0)
        np.testing.assert_array_equal(a.to_numpy()[:, 1], [5, 5])


class TestNdArrayAddAt(unittest.TestCase):
    def test_point_mode_duplicates_accumulate(self) -> None:
        a = NdArray.zeros((3, 3))
        out = a.add_at([0, 2, 0], [1, 1, 1], NdArray([[10.0, 20.0, 30.0]]))
        expected = np.zeros((3, 3), dtype=np.float32)
        expected[0, 1] = 40.0
        expected[2, 1] = 20.0
        np.testing.assert_array_equal(out.to_numpy(), expected)
        # source untouched
        self.assertEqual(a.sum().item(), 0.0)

    def test_rectangular_mode_duplicates_accumulate(self) -> None:
        a = NdArray.ones((3, 2))
        out = a.add_at([1, 1], None, NdArray([[1.0, 2.0], [3.0, 4.0]]))
        np.testing.assert_array_equal(out.to_numpy(), [[1, 1], [5, 7], [1, 1]])

    def test_add_at_is_adjoint_of_get_item(self) -> None:
        rng = np.random.default_rng(7)
        x = NdArray(rng.normal(size=(4, 5)))
        rows, cols = [0, 3, 3], [4, 1, 1]
        g = NdArray(rng.normal(size=(1, 3)))
        lhs = (x.get_item(rows, cols).mul(g)).sum().item()
        rhs = (NdArray.zeros((4, 5)).add_at(rows, cols, g).mul(x)).sum().item()
        self.assertAlmostEqual(lhs, rhs, places=4)

    def test_values_shape_checked(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            NdArray.zeros((2, 2)).add_at([0], None, NdArray.ones((3, 3)))


class TestNdArraySplitAndTril(unittest.TestCase):
    def test_split_chunks_and_remainder(self) -> None:
        a = _grid(2, 5)
        parts = a.split(2, axis=1)
        self.assertEqual([p.shape for p in parts], [(2, 2), (2, 2), (2, 1)])
        np.testing.assert_array_equal(NdArray.concat(parts, axis=1).to_numpy(), a.to_numpy())
        parts[0].fill_(-1.0)
        self.assertEqual(a.get(0, 0), 0.0)
        with self.assertRaises(ValueError):
            a.split(0)

    def test_tril(self) -> None:
        a = NdArray.ones((3, 3))
        np.testing.assert_array_equal(a.tril().to_numpy(), np.tril(np.ones((3, 3))))
        np.testing.assert_array_equal(a.tril(-1).to_numpy(), np.tril(np.ones((3, 3)), -1))
        b = NdArray.ones((2, 3, 3)).tril(1)
        np.testing.assert_array_equal(b.to_numpy()[1], np.tril(np.ones((3, 3)), 1))
        with self.assertRaises(RankViolationError):
            NdArray.ones((3,)).tril()


class TestNdArrayIndexSelect(unittest.TestCase):
    def test_index_select_along_axes(self) -> None:
        a = _grid(2, 3, 4)
        np.testing.assert_array_equal(
            a.index_select([2, 0, 2], axis=1).to_numpy(), a.to_numpy()[:, [2, 0, 2], :]
        )
        np.testing.assert_array_equal(
            a.index_select([3], axis=-1).to_numpy(), a.to_numpy()[:, :, [3]]
        )
        with self.assertRaises(IndexOutOfRangeError):
            a.index_select([3], axis=1)
        with self.assertRaises(TypeError):
            a.index_select([1.5], axis=0)

    def test_index_add_accumulates_duplicates(self) -> None:
        out = NdArray.zeros((3, 2)).index_add([2, 0, 2], NdArray([[1.0, 1.0], [2.0, 2.0], [3.0, 3.0]]))
        np.testing.assert_array_equal(out.to_numpy(), [[2, 2], [0, 0], [4, 4]])
        with self.assertRaises(ShapeMismatchError):
            NdArray.zeros((3, 2)).index_add([0], NdArray.ones((2, 2)))

    def test_index_add_is_adjoint_of_index_select(self) -> None:
        rng = np.random.default_rng(3)
        x = NdArray(rng.normal(size=(3, 4, 2)))
        idx = [1, 3, 1]
        g = NdArray(rng.normal(size=(3, 3, 2)))
        lhs = x.index_select(idx, axis=1).mul(g).sum().item()
        rhs = NdArray.zeros((3, 4, 2)).index_add(idx, g, axis=1).mul(x).sum().item()
        self.assertAlmostEqual(lhs, rhs, places=4)


if __name__ == "__main__":
    unittest.main()
