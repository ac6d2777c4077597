"""
Differentiable shape, broadcast and slicing primitives.

These functions move data around without arithmetic, so their backward
rules are the inverse data movement:

- reshape        <-> reshape back
- transpose      <-> inverse permutation
- broadcast_to   <-> sum_to
- get_item       <-> scatter-add into zeros (`add_at`)
- concat         <-> split
- squeeze        <-> reshape back
- index_select   <-> scatter-add along the axis (`index_add`)
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from ...domain._errors import RankViolationError
from ...domain._shape import Shape
from ..autograd._function import Function
from ..autograd._variable import Variable
from ..ndarray import NdArray


class ReshapeFn(Function):
    def __init__(self, shape: Sequence[int]) -> None:
        super().__init__()
        self.shape = tuple(shape)

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.reshape(self.shape)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.reshape(self.saved_meta["x_shape"])


class TransposeFn(Function):
    """
    Axis permutation.

    With ``axes=None`` the axis order is reversed. The backward pass applies
    the inverse permutation.
    """

    def __init__(self, axes: Optional[Sequence[int]] = None) -> None:
        super().__init__()
        self.axes = None if axes is None else tuple(axes)

    def forward(self, x: NdArray) -> NdArray:
        if self.axes is None:
            perm = tuple(reversed(range(x.ndim)))
        else:
            perm = tuple(x.shape.normalize_axis(a) for a in self.axes)
        out = x.transpose(*perm) if perm else x.copy()
        self.saved_meta["perm"] = perm
        return out

    def backward(self, gy: NdArray) -> NdArray:
        perm = self.saved_meta["perm"]
        if not perm:
            return gy
        inv = tuple(int(i) for i in np.argsort(perm))
        return gy.transpose(*inv)


class BroadcastToFn(Function):
    def __init__(self, shape: Sequence[int]) -> None:
        super().__init__()
        self.shape = Shape(shape)

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.broadcast_to(self.shape)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.sum_to(self.saved_meta["x_shape"])


class SumToFn(Function):
    def __init__(self, shape: Sequence[int]) -> None:
        super().__init__()
        self.shape = Shape(shape)

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.sum_to(self.shape)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.broadcast_to(self.saved_meta["x_shape"])


class GetItemFn(Function):
    """
    Two-axis selection (see `NdArray.get_item`).

    Backward scatters the upstream gradient into a zero array of the input
    shape; entries selected more than once accumulate.
    """

    def __init__(self, rows: Any = None, cols: Any = None) -> None:
        super().__init__()
        self.rows = rows
        self.cols = cols

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.get_item(self.rows, self.cols)

    def backward(self, gy: NdArray) -> NdArray:
        zeros = NdArray.zeros(self.saved_meta["x_shape"])
        return zeros.add_at(self.rows, self.cols, gy)


class ConcatFn(Function):
    """Concatenation along an existing axis; backward splits the gradient."""

    def __init__(self, axis: int = 0) -> None:
        super().__init__()
        self.axis = axis

    def forward(self, *xs: NdArray) -> NdArray:
        out = NdArray.concat(xs, axis=self.axis)
        ax = out.shape.normalize_axis(self.axis)
        self.saved_meta["axis"] = ax
        self.saved_meta["sizes"] = tuple(x.shape[ax] for x in xs)
        return out

    def backward(self, gy: NdArray):
        ax = self.saved_meta["axis"]
        bounds = np.cumsum(self.saved_meta["sizes"])[:-1]
        parts = np.split(gy.to_numpy(), bounds, axis=ax)
        return tuple(NdArray(p) for p in parts)


class SqueezeFn(Function):
    def __init__(self, axis: Optional[int] = None) -> None:
        super().__init__()
        self.axis = axis

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.squeeze(self.axis)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.reshape(self.saved_meta["x_shape"])


class UnsqueezeFn(Function):
    def __init__(self, axis: int) -> None:
        super().__init__()
        self.axis = axis

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.unsqueeze(self.axis)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.reshape(self.saved_meta["x_shape"])


class SplitFn(Function):
    """
    Chunks of `split_size` along `axis`, one output per chunk.

    Backward concatenates the per-chunk gradients; chunks that received no
    gradient arrive as zeros.
    """

    def __init__(self, split_size: int, axis: int = 0) -> None:
        super().__init__()
        self.split_size = split_size
        self.axis = axis

    def forward(self, x: NdArray):
        parts = x.split(self.split_size, axis=self.axis)
        self.saved_meta["axis"] = x.shape.normalize_axis(self.axis)
        return tuple(parts)

    def backward(self, *gys: NdArray) -> NdArray:
        return NdArray.concat(gys, axis=self.saved_meta["axis"])


class IndexSelectFn(Function):
    """
    Whole slices along `axis` (see `NdArray.index_select`).

    The indices are a constant of the node. Backward scatter-adds into
    zeros, so repeated indices accumulate.
    """

    def __init__(self, indices: Any, axis: int = 0) -> None:
        super().__init__()
        self.indices = indices
        self.axis = axis

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.index_select(self.indices, axis=self.axis)

    def backward(self, gy: NdArray) -> NdArray:
        zeros = NdArray.zeros(self.saved_meta["x_shape"])
        return zeros.index_add(self.indices, gy, axis=self.axis)


class GatherFn(Function):
    """
    Row lookup into a table (embedding lookup).

    For a ``(V, ...)`` table and indices of any shape ``S``, the output has
    shape ``S + table.shape[1:]``. Only the table receives a gradient.
    """

    def __init__(self, indices: Any) -> None:
        super().__init__()
        self.indices = indices

    def forward(self, table: NdArray) -> NdArray:
        if table.ndim < 1:
            raise RankViolationError("gather", ">= 1", table.ndim)
        idx = self.indices.to_numpy() if hasattr(self.indices, "to_numpy") else self.indices
        idx_shape = np.shape(idx)
        rows = table.index_select(idx, axis=0)
        self.saved_meta["table_shape"] = table.shape
        self.saved_meta["rows_shape"] = rows.shape
        return rows.reshape(idx_shape + table.shape.dims[1:])

    def backward(self, gy: NdArray) -> NdArray:
        rows = gy.reshape(self.saved_meta["rows_shape"])
        zeros = NdArray.zeros(self.saved_meta["table_shape"])
        return zeros.index_add(self.indices, rows, axis=0)


def reshape(x: Any, shape: Sequence[int]) -> Variable:
    """Differentiable reshape; one dimension may be -1."""
    return ReshapeFn(shape)(x)


def flatten(x: Any) -> Variable:
    """Differentiable flatten to a (1, N) row."""
    return ReshapeFn((1, -1))(x)


def transpose(x: Any, axes: Optional[Sequence[int]] = None) -> Variable:
    return TransposeFn(axes)(x)


def broadcast_to(x: Any, shape: Sequence[int]) -> Variable:
    """
    Differentiable explicit broadcast.

    Raises
    ------
    ShapeMismatchError
        If `x` cannot be broadcast to `shape`.
    """
    return BroadcastToFn(shape)(x)


def sum_to(x: Any, shape: Sequence[int]) -> Variable:
    """
    Differentiable reverse broadcast (sum over stretched axes).

    Raises
    ------
    ShapeMismatchError
        If `shape` could not have been broadcast to ``x.shape``.
    """
    return SumToFn(shape)(x)


def get_item(x: Any, rows: Any = None, cols: Any = None) -> Variable:
    """
    Differentiable two-axis selection.

    Point-index mode when both `rows` and `cols` are given, rectangular mode
    otherwise (``None`` selects every index on that axis).
    """
    return GetItemFn(rows, cols)(x)


def concat(xs: Sequence[Any], axis: int = 0) -> Variable:
    return ConcatFn(axis)(*xs)


def squeeze(x: Any, axis: Optional[int] = None) -> Variable:
    return SqueezeFn(axis)(x)


def unsqueeze(x: Any, axis: int) -> Variable:
    return UnsqueezeFn(axis)(x)


def split(x: Any, split_size: int, axis: int = 0) -> tuple[Variable, ...]:
    """
    Differentiable split into chunks of `split_size` along `axis`.

    Always returns a tuple, even when the axis fits in a single chunk.
    """
    out = SplitFn(split_size, axis)(x)
    return out if isinstance(out, tuple) else (out,)


def index_select(x: Any, indices: Any, axis: int = 0) -> Variable:
    return IndexSelectFn(indices, axis)(x)


def gather(table: Any, indices: Any) -> Variable:
    """
    Differentiable embedding lookup: ``out[s] = table[indices[s]]``.

    Raises
    ------
    IndexOutOfRangeError
        If any index is outside ``[0, table.shape[0])``.
    TypeError
        If an index is fractional.
    """
    return GatherFn(indices)(table)
