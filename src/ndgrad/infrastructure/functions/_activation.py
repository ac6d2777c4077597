"""
Differentiable softmax-family activations.

Both forward passes use the max-shifted `NdArray.softmax` /
`NdArray.log_softmax` kernels, so large logits stay finite.
"""

from __future__ import annotations

from typing import Any

from ..autograd._function import Function
from ..autograd._variable import Variable
from ..ndarray import NdArray


class SoftmaxFn(Function):
    """
    Softmax along one axis.

    Backward (per slice along `axis`):

        dL/dx = y * (g - sum(g * y))

    where `y` is the softmax output and `g` the upstream gradient.
    """

    def __init__(self, axis: int = -1) -> None:
        super().__init__()
        self.axis = axis

    def forward(self, x: NdArray) -> NdArray:
        y = x.softmax(axis=self.axis)
        self.save_for_backward(y)
        return y

    def backward(self, gy: NdArray) -> NdArray:
        (y,) = self.saved_tensors
        if y.ndim == 0:
            return gy.mul(0.0)
        gx = y.mul(gy)
        return gx.sub(y.mul(gx.sum(axis=self.axis, keepdims=True)))


class LogSoftmaxFn(Function):
    """
    Log-softmax along one axis.

    Backward (per slice along `axis`):

        dL/dx = g - softmax(x) * sum(g)
    """

    def __init__(self, axis: int = -1) -> None:
        super().__init__()
        self.axis = axis

    def forward(self, x: NdArray) -> NdArray:
        y = x.log_softmax(axis=self.axis)
        self.save_for_backward(y)
        return y

    def backward(self, gy: NdArray) -> NdArray:
        (y,) = self.saved_tensors
        if y.ndim == 0:
            return gy.mul(0.0)
        return gy.sub(y.exp().mul(gy.sum(axis=self.axis, keepdims=True)))


def softmax(x: Any, axis: int = -1) -> Variable:
    """
    Differentiable, numerically stable softmax.

    Examples
    --------
    ``softmax([1000, 1001, 999])`` is finite and sums to 1.
    """
    return SoftmaxFn(axis)(x)


def log_softmax(x: Any, axis: int = -1) -> Variable:
    return LogSoftmaxFn(axis)(x)
