"""
Shape manipulation and indexing for NdArray.

This module defines `NdArrayShapeAndIndexingMixin`: reshaping and axis
permutation, explicit broadcasting, concatenation and splitting, the lower
triangle (`tril`), single-axis selection (`index_select`, `index_add`) and
two-axis slicing (`get_item`, `set_item_`, `add_at`).

Slicing model
-------------
Slicing operates on the last two axes (rows and columns); any leading axes
are treated as batch axes and carried through unchanged.

- Point-index mode (`rows` and `cols` both given, equal length N): selects
  the N scattered elements ``(rows[i], cols[i])`` and returns shape
  ``(..., 1, N)``.
- Rectangular mode (either side ``None``): ``None`` means "every index on
  that axis"; the result is the outer product of the two selections with
  shape ``(..., R, C)``. Index runs that are contiguous and ascending are
  copied as a slice; anything else is gathered element by element.

Indices must lie in ``[0, dim)``; negative indices are rejected rather than
wrapped.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Optional, Sequence, Union

import numpy as np

from ....domain._errors import (
    IndexOutOfRangeError,
    RankViolationError,
    ShapeMismatchError,
)
from ....domain._shape import Shape

IndexLike = Union[int, Sequence[int], np.ndarray, Any]


def _index_vector(idx: IndexLike, bound: int, what: str) -> np.ndarray:
    """
    Normalize an index selection into a validated 1-D int64 vector.

    Accepts an int, a sequence, a NumPy array or an array-like exposing
    `to_numpy()`. Float indices (such as `argmax` output) must be
    integer-valued; they are never truncated.

    Raises
    ------
    IndexOutOfRangeError
        If any index falls outside ``[0, bound)``.
    TypeError
        If an index is fractional, non-finite or not numeric.
    ValueError
        If the selection is empty.
    """
    if hasattr(idx, "to_numpy"):
        idx = idx.to_numpy()
    arr = np.asarray(idx).reshape(-1)
    if arr.dtype.kind == "f":
        if not (np.isfinite(arr).all() and np.array_equal(arr, np.floor(arr))):
            raise TypeError(f"{what} must be finite and integer-valued")
    elif arr.size and arr.dtype.kind not in "iu":
        raise TypeError(f"{what} must be integers, got dtype {arr.dtype}")
    arr = arr.astype(np.int64)
    if arr.size == 0:
        raise ValueError(f"{what} selection must not be empty")
    bad = (arr < 0) | (arr >= bound)
    if bad.any():
        raise IndexOutOfRangeError(int(arr[bad][0]), bound, what=what)
    return arr


def _as_slice(arr: np.ndarray) -> Optional[slice]:
    """Return an equivalent slice if `arr` is a contiguous ascending run."""
    start = int(arr[0])
    if arr.size == 1 or np.array_equal(arr, np.arange(start, start + arr.size)):
        return slice(start, start + arr.size)
    return None


class NdArrayShapeAndIndexingMixin(ABC):
    """
    Mixin implementing views, broadcasting, concatenation and slicing.

    The host class must provide `_data`, `shape`, `_from_numpy` and
    `_coerce`.
    """

    # ------------------------------------------------------------------
    # reshaping
    # ------------------------------------------------------------------
    def reshape(self, *shape: Any):
        """
        Return an array with the same elements and a new shape.

        Accepts ``reshape(2, 3)``, ``reshape((2, 3))`` or a `Shape`. At most
        one dimension may be ``-1`` and is inferred. The result shares the
        source buffer.

        Raises
        ------
        ShapeMismatchError
            If the element counts differ.
        ValueError
            If more than one dimension is ``-1``.
        """
        if len(shape) == 1 and not isinstance(shape[0], (int, np.integer)):
            shape = tuple(shape[0])
        dims = [int(d) for d in shape]

        if dims.count(-1) > 1:
            raise ValueError("reshape: only one dimension may be -1")
        if -1 in dims:
            known = 1
            for d in dims:
                if d != -1:
                    known *= d
            if known <= 0 or self.shape.size % known != 0:
                raise ShapeMismatchError(
                    f"reshape: cannot infer -1 for {self.shape.size} elements into {tuple(shape)}",
                    self.shape.dims,
                )
            dims[dims.index(-1)] = self.shape.size // known

        target = Shape(dims)
        if target.size != self.shape.size:
            raise ShapeMismatchError(
                f"reshape: cannot reshape {self.shape} ({self.shape.size} elements) "
                f"into {target} ({target.size} elements)",
                self.shape.dims,
                target.dims,
            )
        return self._from_numpy(self._data.reshape(target.dims))

    def flatten(self):
        """Return a (1, N) row containing every element in row-major order."""
        return self.reshape(1, self.shape.size)

    def transpose(self, *axes: int):
        """
        Permute axes. With no arguments the axis order is reversed.

        Raises
        ------
        ValueError
            If `axes` is not a permutation of ``range(ndim)``.
        """
        if len(axes) == 1 and isinstance(axes[0], (tuple, list)):
            axes = tuple(axes[0])
        if not axes:
            perm = tuple(reversed(range(self.shape.ndim)))
        else:
            perm = tuple(self.shape.normalize_axis(a) for a in axes)
            if sorted(perm) != list(range(self.shape.ndim)):
                raise ValueError(f"transpose: {axes} is not a permutation of {self.shape.ndim} axes")
        return self._from_numpy(np.transpose(self._data, perm))

    @property
    def T(self):
        """Reverse-axes transpose."""
        return self.transpose()

    def squeeze(self, axis: Optional[int] = None):
        """
        Drop size-1 axes (all of them, or only `axis`).

        Raises
        ------
        ValueError
            If `axis` is given and its size is not 1.
        """
        if axis is None:
            return self._from_numpy(self._data.reshape(tuple(d for d in self.shape if d != 1)))
        ax = self.shape.normalize_axis(axis)
        if self.shape[ax] != 1:
            raise ValueError(f"squeeze: axis {axis} has size {self.shape[ax]}, expected 1")
        dims = self.shape.dims[:ax] + self.shape.dims[ax + 1 :]
        return self._from_numpy(self._data.reshape(dims))

    def unsqueeze(self, axis: int):
        """Insert a size-1 axis at position `axis` (``-1`` appends)."""
        nd = self.shape.ndim + 1
        ax = axis + nd if axis < 0 else axis
        if ax < 0 or ax >= nd:
            raise IndexOutOfRangeError(axis, nd, what="axis")
        dims = self.shape.dims[:ax] + (1,) + self.shape.dims[ax:]
        return self._from_numpy(self._data.reshape(dims))

    # ------------------------------------------------------------------
    # broadcasting / concatenation
    # ------------------------------------------------------------------
    def broadcast_to(self, shape: Any):
        """
        Materialize this array stretched to `shape`.

        Raises
        ------
        ShapeMismatchError
            If this shape cannot be broadcast to `shape` (only size-1 or
            missing leading dims may be stretched).
        """
        target = Shape(shape)
        if not self.shape.can_broadcast_to(target):
            raise ShapeMismatchError(
                f"broadcast_to: cannot broadcast {self.shape} to {target}",
                self.shape.dims,
                target.dims,
            )
        return self._from_numpy(np.broadcast_to(self._data, target.dims).copy())

    @classmethod
    def concat(cls, arrays: Sequence[Any], axis: int = 0):
        """
        Join arrays along an existing axis.

        Raises
        ------
        ValueError
            If `arrays` is empty.
        ShapeMismatchError
            If ranks differ or any non-concatenated dimension differs.
        """
        items = [cls._coerce(a) for a in arrays]
        if not items:
            raise ValueError("concat requires at least one array")
        first = items[0].shape
        ax = first.normalize_axis(axis)
        for a in items[1:]:
            s = a.shape
            if s.ndim != first.ndim or any(
                x != y for i, (x, y) in enumerate(zip(s, first)) if i != ax
            ):
                raise ShapeMismatchError(
                    f"concat: shape {s} does not match {first} outside axis {ax}",
                    first.dims,
                    s.dims,
                )
        return cls._from_numpy(np.concatenate([a._data for a in items], axis=ax))

    def split(self, split_size: int, axis: int = 0) -> list:
        """
        Cut this array into chunks of `split_size` along `axis`.

        The last chunk is shorter when the axis length is not a multiple of
        `split_size`. Chunks are copies; concatenating them restores the
        array.

        Raises
        ------
        ValueError
            If `split_size` is not positive.
        """
        if split_size < 1:
            raise ValueError(f"split: split_size must be positive, got {split_size}")
        ax = self.shape.normalize_axis(axis)
        bounds = list(range(split_size, self.shape[ax], split_size))
        return [self._from_numpy(p.copy()) for p in np.split(self._data, bounds, axis=ax)]

    def tril(self, k: int = 0):
        """
        Lower triangle of the last two axes; entries with ``col > row + k``
        are zeroed. Leading axes are a batch.

        Raises
        ------
        RankViolationError
            If the array has fewer than two axes.
        """
        self._require_matrix_rank("tril")
        return self._from_numpy(np.tril(self._data, k))

    # ------------------------------------------------------------------
    # single-axis selection
    # ------------------------------------------------------------------
    def index_select(self, indices: IndexLike, axis: int = 0):
        """
        Gather whole slices along `axis`.

        The result has ``shape[axis] == len(indices)``; repeated indices
        repeat the slice. Leading and trailing axes are kept.

        Raises
        ------
        IndexOutOfRangeError
            If any index is outside ``[0, shape[axis])``.
        """
        ax = self.shape.normalize_axis(axis)
        idx = _index_vector(indices, self.shape[ax], "index")
        return self._from_numpy(np.take(self._data, idx, axis=ax))

    def index_add(self, indices: IndexLike, values: Any, axis: int = 0):
        """
        Scatter-add `values` into a copy of this array along `axis`.

        Adjoint of `index_select`: slice ``i`` of `values` is added to slice
        ``indices[i]`` and duplicates accumulate.

        Raises
        ------
        ShapeMismatchError
            If `values` does not have the shape `index_select` would return.
        """
        ax = self.shape.normalize_axis(axis)
        idx = _index_vector(indices, self.shape[ax], "index")
        v = self._coerce(values)
        expected = self.shape.dims[:ax] + (idx.size,) + self.shape.dims[ax + 1 :]
        if v.shape != expected:
            raise ShapeMismatchError(
                f"index_add: values of shape {v.shape} do not match selection {Shape(expected)}",
                v.shape.dims,
                expected,
            )
        out = self._data.copy()
        np.add.at(out, (slice(None),) * ax + (idx,), v._data)
        return self._from_numpy(out)

    # ------------------------------------------------------------------
    # two-axis slicing
    # ------------------------------------------------------------------
    def _require_matrix_rank(self, op: str) -> None:
        if self.shape.ndim < 2:
            raise RankViolationError(op, ">= 2", self.shape.ndim)

    def _selection(self, rows: Optional[IndexLike], cols: Optional[IndexLike]):
        """
        Resolve `rows`/`cols` into validated index vectors.

        Returns ``(point_mode, r, c)`` where `r`/`c` are int64 vectors.
        """
        n_rows, n_cols = self.shape[-2], self.shape[-1]
        if rows is not None and cols is not None:
            r = _index_vector(rows, n_rows, "row index")
            c = _index_vector(cols, n_cols, "column index")
            if r.size != c.size:
                raise ValueError(
                    f"point indexing needs equal-length rows and cols, got {r.size} and {c.size}"
                )
            return True, r, c
        r = np.arange(n_rows) if rows is None else _index_vector(rows, n_rows, "row index")
        c = np.arange(n_cols) if cols is None else _index_vector(cols, n_cols, "column index")
        return False, r, c

    def get_item(self, rows: Optional[IndexLike] = None, cols: Optional[IndexLike] = None):
        """
        Select elements over the last two axes.

        Parameters
        ----------
        rows, cols : index selection or None
            See the module docstring for point-index and rectangular modes.

        Returns
        -------
        NdArray
            ``(..., 1, N)`` in point-index mode, ``(..., R, C)`` otherwise.

        Raises
        ------
        RankViolationError
            If the array has fewer than two axes.
        IndexOutOfRangeError
            If any index is out of range.
        """
        self._require_matrix_rank("get_item")
        point, r, c = self._selection(rows, cols)
        if point:
            out = self._data[..., r, c]
            return self._from_numpy(out[..., np.newaxis, :])

        rs, cs = _as_slice(r), _as_slice(c)
        if rs is not None and cs is not None:
            return self._from_numpy(self._data[..., rs, cs].copy())
        return self._from_numpy(self._data[..., r[:, None], c[None, :]])

    def set_item_(
        self,
        rows: Optional[IndexLike],
        cols: Optional[IndexLike],
        values: Any,
    ):
        """
        In-place counterpart of `get_item`: write `values` into the selection.

        `values` is broadcast to the shape `get_item` would return for the
        same selection.

        Raises
        ------
        ShapeMismatchError
            If `values` cannot be broadcast to the selection shape.
        """
        self._require_matrix_rank("set_item_")
        point, r, c = self._selection(rows, cols)
        lead = self.shape.dims[:-2]
        v = self._coerce(values)
        if point:
            sel_shape = lead + (1, r.size)
            self._check_values(v, sel_shape, "set_item_")
            self._data[..., r, c] = np.broadcast_to(v._data, sel_shape)[..., 0, :]
        else:
            sel_shape = lead + (r.size, c.size)
            self._check_values(v, sel_shape, "set_item_")
            self._data[..., r[:, None], c[None, :]] = np.broadcast_to(v._data, sel_shape)
        return self

    def add_at(self, rows: Optional[IndexLike], cols: Optional[IndexLike], values: Any):
        """
        Scatter-add `values` into a copy of this array.

        Duplicate indices accumulate (every occurrence contributes). This is
        the gradient kernel of `get_item`.

        Returns
        -------
        NdArray
            New array; `self` is not modified.
        """
        self._require_matrix_rank("add_at")
        point, r, c = self._selection(rows, cols)
        lead = self.shape.dims[:-2]
        batch = int(np.prod(lead)) if lead else 1
        v = self._coerce(values)

        out = self._data.copy()
        out3 = out.reshape((batch,) + self.shape.dims[-2:])
        if point:
            sel_shape = lead + (1, r.size)
            self._check_values(v, sel_shape, "add_at")
            vals = np.broadcast_to(v._data, sel_shape).reshape(batch, r.size)
            np.add.at(out3, (slice(None), r, c), vals)
        else:
            sel_shape = lead + (r.size, c.size)
            self._check_values(v, sel_shape, "add_at")
            vals = np.broadcast_to(v._data, sel_shape).reshape(batch, r.size, c.size)
            np.add.at(out3, (slice(None), r[:, None], c[None, :]), vals)
        return self._from_numpy(out)

    @staticmethod
    def _check_values(v: Any, sel_shape: tuple[int, ...], op: str) -> None:
        if not v.shape.can_broadcast_to(sel_shape):
            raise ShapeMismatchError(
                f"{op}: values of shape {v.shape} do not fit selection {Shape(sel_shape)}",
                v.shape.dims,
                sel_shape,
            )
