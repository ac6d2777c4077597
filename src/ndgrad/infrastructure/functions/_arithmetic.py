"""
Differentiable arithmetic primitives.

Binary operations broadcast their operands in the forward pass. In the
backward pass each operand's gradient is reduced back to that operand's
shape with `sum_to`, which sums exactly the axes stretched by the forward
broadcast.
"""

from __future__ import annotations

import numbers
from typing import Any

from ..autograd._function import Function
from ..autograd._variable import Variable
from ..ndarray import NdArray


class AddFn(Function):
    """
    Elementwise addition with broadcasting.

    Backward:

        dL/da = sum_to(grad_out, a.shape)
        dL/db = sum_to(grad_out, b.shape)
    """

    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        self.saved_meta["shapes"] = (a.shape, b.shape)
        return a.add(b)

    def backward(self, gy: NdArray):
        sa, sb = self.saved_meta["shapes"]
        return gy.sum_to(sa), gy.sum_to(sb)


class SubFn(Function):
    """
    Elementwise subtraction with broadcasting.

    Backward:

        dL/da = sum_to(grad_out, a.shape)
        dL/db = -sum_to(grad_out, b.shape)
    """

    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        self.saved_meta["shapes"] = (a.shape, b.shape)
        return a.sub(b)

    def backward(self, gy: NdArray):
        sa, sb = self.saved_meta["shapes"]
        return gy.sum_to(sa), gy.neg().sum_to(sb)


class MulFn(Function):
    """
    Elementwise multiplication with broadcasting.

    Backward:

        dL/da = sum_to(grad_out * b, a.shape)
        dL/db = sum_to(grad_out * a, b.shape)
    """

    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        self.save_for_backward(a, b)
        return a.mul(b)

    def backward(self, gy: NdArray):
        a, b = self.saved_tensors
        return gy.mul(b).sum_to(a.shape), gy.mul(a).sum_to(b.shape)


class DivFn(Function):
    """
    Elementwise division with broadcasting.

    Backward:

        dL/da = sum_to(grad_out / b, a.shape)
        dL/db = sum_to(-grad_out * a / b^2, b.shape)
    """

    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        self.save_for_backward(a, b)
        return a.div(b)

    def backward(self, gy: NdArray):
        a, b = self.saved_tensors
        ga = gy.div(b)
        gb = gy.neg().mul(a).div(b.square())
        return ga.sum_to(a.shape), gb.sum_to(b.shape)


class NegFn(Function):
    def forward(self, x: NdArray) -> NdArray:
        return x.neg()

    def backward(self, gy: NdArray) -> NdArray:
        return gy.neg()


class PowFn(Function):
    """
    Elementwise power with a constant (scalar) exponent.

    Backward:

        dL/dx = grad_out * c * x^(c - 1)
    """

    def __init__(self, exponent: float) -> None:
        super().__init__()
        self.exponent = float(exponent)

    def forward(self, x: NdArray) -> NdArray:
        self.save_for_backward(x)
        return x.pow(self.exponent)

    def backward(self, gy: NdArray) -> NdArray:
        (x,) = self.saved_tensors
        c = self.exponent
        return gy.mul(x.pow(c - 1.0).mul(c))


def add(a: Any, b: Any) -> Variable:
    """Differentiable ``a + b`` (either side may be a constant)."""
    return AddFn()(a, b)


def sub(a: Any, b: Any) -> Variable:
    """Differentiable ``a - b``."""
    return SubFn()(a, b)


def mul(a: Any, b: Any) -> Variable:
    """Differentiable ``a * b``."""
    return MulFn()(a, b)


def div(a: Any, b: Any) -> Variable:
    """Differentiable ``a / b``."""
    return DivFn()(a, b)


def neg(x: Any) -> Variable:
    return NegFn()(x)


def pow(x: Any, exponent: float) -> Variable:
    """
    Differentiable ``x ** exponent`` for a scalar exponent.

    Raises
    ------
    TypeError
        If `exponent` is not a real number.
    """
    if isinstance(exponent, bool) or not isinstance(exponent, numbers.Real):
        raise TypeError(f"pow expects a scalar exponent, got {type(exponent)!r}")
    return PowFn(exponent)(x)
