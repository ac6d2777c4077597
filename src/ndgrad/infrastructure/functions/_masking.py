"""
Differentiable masking primitives (masked_fill, where, tril).

Masks and conditions are constants of the node: they select which input
an output element comes from but never receive a gradient themselves.
Selection is done with `NdArray.where`, so a ``-inf`` fill value never turns
into NaN in either pass.

A causal attention mask combines these:

    future = NdArray.ones((T, T)).sub(NdArray.ones((T, T)).tril())
    scores = F.masked_fill(scores, future, float("-inf"))
    weights = F.softmax(scores, axis=-1)
"""

from __future__ import annotations

from typing import Any

from ..autograd._function import Function, as_array
from ..autograd._variable import Variable
from ..ndarray import NdArray


class MaskedFillFn(Function):
    """
    Replace the elements where `mask` is non-zero with `value`.

    The gradient passes only through the positions that were kept.
    """

    def __init__(self, mask: Any, value: float) -> None:
        super().__init__()
        self.mask = as_array(mask)
        self.value = float(value)

    def forward(self, x: NdArray) -> NdArray:
        return x.masked_fill(self.mask, self.value)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.masked_fill(self.mask, 0.0)


class WhereFn(Function):
    """
    ``x`` where `condition` is non-zero, ``y`` elsewhere.

    Each branch receives the upstream gradient at the positions it supplied,
    reduced back to its own shape when it was broadcast.
    """

    def __init__(self, condition: Any) -> None:
        super().__init__()
        self.condition = as_array(condition)

    def forward(self, x: NdArray, y: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        self.saved_meta["y_shape"] = y.shape
        return NdArray.where(self.condition, x, y)

    def backward(self, gy: NdArray):
        g_x = NdArray.where(self.condition, gy, 0.0)
        g_y = NdArray.where(self.condition, 0.0, gy)
        return g_x.sum_to(self.saved_meta["x_shape"]), g_y.sum_to(self.saved_meta["y_shape"])


class TrilFn(Function):
    """Lower triangle of the last two axes; backward masks the gradient alike."""

    def __init__(self, k: int = 0) -> None:
        super().__init__()
        self.k = k

    def forward(self, x: NdArray) -> NdArray:
        return x.tril(self.k)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.tril(self.k)


def masked_fill(x: Any, mask: Any, value: float) -> Variable:
    """
    Differentiable masked fill.

    Raises
    ------
    ShapeMismatchError
        If `mask` does not broadcast to ``x.shape``.
    """
    return MaskedFillFn(mask, value)(x)


def where(condition: Any, x: Any, y: Any) -> Variable:
    """
    Differentiable elementwise select; `condition`, `x` and `y` broadcast
    together.
    """
    return WhereFn(condition)(x, y)


def tril(x: Any, k: int = 0) -> Variable:
    """
    Differentiable lower triangle (``col <= row + k`` kept).

    Raises
    ------
    RankViolationError
        If `x` has fewer than two axes.
    """
    return TrilFn(k)(x)
