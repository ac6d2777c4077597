"""
Differentiable reductions (sum, mean, var, max, min) and top-k selection.

The backward passes restore the reduced axis (when it was dropped) and
broadcast the upstream gradient back to the input shape.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ...domain._shape import Shape
from ..autograd._function import Function
from ..autograd._variable import Variable
from ..ndarray import NdArray


def _expand_reduced(gy: NdArray, x_shape: Shape, axis: Optional[int], keepdims: bool) -> NdArray:
    """
    Reinsert a dropped reduction axis so `gy` broadcasts against `x_shape`.
    """
    if axis is not None and not keepdims:
        gy = gy.unsqueeze(x_shape.normalize_axis(axis))
    return gy


class _ReductionFn(Function):
    def __init__(self, axis: Optional[int] = None, keepdims: bool = False) -> None:
        super().__init__()
        self.axis = axis
        self.keepdims = keepdims


class SumFn(_ReductionFn):
    """Sum; every input element receives the upstream gradient unchanged."""

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.sum(axis=self.axis, keepdims=self.keepdims)

    def backward(self, gy: NdArray) -> NdArray:
        x_shape = self.saved_meta["x_shape"]
        return _expand_reduced(gy, x_shape, self.axis, self.keepdims).broadcast_to(x_shape)


class MeanFn(_ReductionFn):
    """Mean; the upstream gradient is shared equally by the reduced elements."""

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        out = x.mean(axis=self.axis, keepdims=self.keepdims)
        self.saved_meta["count"] = x.size // out.size
        return out

    def backward(self, gy: NdArray) -> NdArray:
        x_shape = self.saved_meta["x_shape"]
        g = _expand_reduced(gy, x_shape, self.axis, self.keepdims)
        return g.broadcast_to(x_shape).div(float(self.saved_meta["count"]))


class _ExtremumFn(_ReductionFn):
    """
    Shared backward for `MaxFn` / `MinFn`.

    The gradient flows only to the elements equal to the extremum. When
    several elements tie, the gradient is split equally among them.
    """

    def _reduce(self, x: NdArray) -> NdArray:
        raise NotImplementedError

    def forward(self, x: NdArray) -> NdArray:
        out = self._reduce(x)
        self.save_for_backward(x, out)
        return out

    def backward(self, gy: NdArray) -> NdArray:
        x, out = self.saved_tensors
        out_k = _expand_reduced(out, x.shape, self.axis, self.keepdims)
        g = _expand_reduced(gy, x.shape, self.axis, self.keepdims)

        hits = x.eq(out_k)
        if self.axis is None:
            count = hits.sum(keepdims=True)
        else:
            count = hits.sum(axis=self.axis, keepdims=True)
        return hits.div(count).mul(g)


class MaxFn(_ExtremumFn):
    def _reduce(self, x: NdArray) -> NdArray:
        return x.max(axis=self.axis, keepdims=self.keepdims)


class MinFn(_ExtremumFn):
    def _reduce(self, x: NdArray) -> NdArray:
        return x.min(axis=self.axis, keepdims=self.keepdims)


class VarFn(_ReductionFn):
    """
    Population variance.

    Backward:

        d var / d x_i = 2 * (x_i - mean) / N
    """

    def forward(self, x: NdArray) -> NdArray:
        out = x.var(axis=self.axis, keepdims=self.keepdims)
        self.save_for_backward(x, x.mean(axis=self.axis, keepdims=True))
        self.saved_meta["count"] = x.size // out.size
        return out

    def backward(self, gy: NdArray) -> NdArray:
        x, mean = self.saved_tensors
        g = _expand_reduced(gy, x.shape, self.axis, self.keepdims).broadcast_to(x.shape)
        return g.mul(x.sub(mean)).mul(2.0 / self.saved_meta["count"])


class TopKFn(Function):
    """
    The `k` largest entries along `axis` (see `NdArray.top_k`).

    Only the values are a graph output. The selected positions are kept on
    ``self.indices`` as a constant float32 array; backward scatters the
    upstream gradient back to those positions.
    """

    def __init__(self, k: int, axis: int = -1) -> None:
        super().__init__()
        self.k = k
        self.axis = axis
        self.indices: Optional[NdArray] = None

    def forward(self, x: NdArray) -> NdArray:
        values, indices = x.top_k(self.k, axis=self.axis)
        self.indices = indices
        self.saved_meta["x_shape"] = x.shape
        self.saved_meta["axis"] = x.shape.normalize_axis(self.axis)
        return values

    def backward(self, gy: NdArray) -> NdArray:
        grad = np.zeros(self.saved_meta["x_shape"].dims, dtype=np.float32)
        idx = self.indices.to_numpy().astype(np.int64)
        np.put_along_axis(grad, idx, gy.to_numpy(), axis=self.saved_meta["axis"])
        return NdArray(grad)


def sum(x: Any, axis: Optional[int] = None, keepdims: bool = False) -> Variable:
    """
    Differentiable sum, globally or along one axis.

    Examples
    --------
    For ``[[1, 2, 3], [4, 5, 6]]``, ``sum(x, axis=0)`` is ``[5, 7, 9]`` and
    ``sum(x, axis=1)`` is ``[6, 15]``.
    """
    return SumFn(axis, keepdims)(x)


def mean(x: Any, axis: Optional[int] = None, keepdims: bool = False) -> Variable:
    return MeanFn(axis, keepdims)(x)


def max(x: Any, axis: Optional[int] = None, keepdims: bool = False) -> Variable:
    return MaxFn(axis, keepdims)(x)


def min(x: Any, axis: Optional[int] = None, keepdims: bool = False) -> Variable:
    return MinFn(axis, keepdims)(x)


def var(x: Any, axis: Optional[int] = None, keepdims: bool = False) -> Variable:
    """Differentiable population variance (divides by N)."""
    return VarFn(axis, keepdims)(x)


def top_k(x: Any, k: int, axis: int = -1) -> tuple[Variable, NdArray]:
    """
    Differentiable top-k selection.

    Returns
    -------
    values : Variable
        The `k` largest entries along `axis`, in descending order.
    indices : NdArray
        Their positions along `axis` (float32, not part of the graph).

    Raises
    ------
    ValueError
        If `k` is outside ``[1, shape[axis]]``.
    """
    fn = TopKFn(k, axis)
    values = fn(x)
    return values, fn.indices
