"""
Differentiable elementwise math primitives.

Each primitive computes its forward result with the matching `NdArray`
kernel and expresses its derivative with `NdArray` arithmetic, saving
whichever of the input or output makes the backward rule cheapest.
"""

from __future__ import annotations

from typing import Any

from ..autograd._function import Function
from ..autograd._variable import Variable
from ..ndarray import NdArray


class ExpFn(Function):
    """
    Elementwise exponential.

    Backward:

        d(exp(x))/dx = exp(x) = out
    """

    def forward(self, x: NdArray) -> NdArray:
        out = x.exp()
        self.save_for_backward(out)
        return out

    def backward(self, gy: NdArray) -> NdArray:
        (out,) = self.saved_tensors
        return gy.mul(out)


class LogFn(Function):
    """Natural logarithm; ``d/dx = 1 / x``."""

    def forward(self, x: NdArray) -> NdArray:
        self.save_for_backward(x)
        return x.log()

    def backward(self, gy: NdArray) -> NdArray:
        (x,) = self.saved_tensors
        return gy.div(x)


class SqrtFn(Function):
    """Square root; ``d/dx = 0.5 / sqrt(x)``."""

    def forward(self, x: NdArray) -> NdArray:
        out = x.sqrt()
        self.save_for_backward(out)
        return out

    def backward(self, gy: NdArray) -> NdArray:
        (out,) = self.saved_tensors
        return gy.mul(0.5).div(out)


class SquareFn(Function):
    def forward(self, x: NdArray) -> NdArray:
        self.save_for_backward(x)
        return x.square()

    def backward(self, gy: NdArray) -> NdArray:
        (x,) = self.saved_tensors
        return gy.mul(x.mul(2.0))


class AbsFn(Function):
    """
    Absolute value.

    The derivative is ``sign(x)``; at ``x == 0`` the subgradient 0 is used.
    """

    def forward(self, x: NdArray) -> NdArray:
        self.save_for_backward(x)
        return x.abs()

    def backward(self, gy: NdArray) -> NdArray:
        (x,) = self.saved_tensors
        sign = x.gt(0.0).sub(x.lt(0.0))
        return gy.mul(sign)


class SinFn(Function):
    def forward(self, x: NdArray) -> NdArray:
        self.save_for_backward(x)
        return x.sin()

    def backward(self, gy: NdArray) -> NdArray:
        (x,) = self.saved_tensors
        return gy.mul(x.cos())


class CosFn(Function):
    def forward(self, x: NdArray) -> NdArray:
        self.save_for_backward(x)
        return x.cos()

    def backward(self, gy: NdArray) -> NdArray:
        (x,) = self.saved_tensors
        return gy.mul(x.sin().neg())


class TanhFn(Function):
    """
    Hyperbolic tangent.

    Backward:

        d(tanh(x))/dx = 1 - tanh(x)^2 = 1 - out^2
    """

    def forward(self, x: NdArray) -> NdArray:
        out = x.tanh()
        self.save_for_backward(out)
        return out

    def backward(self, gy: NdArray) -> NdArray:
        (out,) = self.saved_tensors
        return gy.mul(out.square().neg().add(1.0))


class SigmoidFn(Function):
    """
    Logistic sigmoid.

    Backward:

        d(sigmoid(x))/dx = out * (1 - out)
    """

    def forward(self, x: NdArray) -> NdArray:
        out = x.sigmoid()
        self.save_for_backward(out)
        return out

    def backward(self, gy: NdArray) -> NdArray:
        (out,) = self.saved_tensors
        return gy.mul(out).mul(out.neg().add(1.0))


class ReLUFn(Function):
    """
    Rectified linear unit ``max(x, 0)``.

    The gradient passes where ``x > 0`` and is zero elsewhere (including at
    ``x == 0``).
    """

    def forward(self, x: NdArray) -> NdArray:
        self.save_for_backward(x.mask(0.0))
        return x.relu()

    def backward(self, gy: NdArray) -> NdArray:
        (mask,) = self.saved_tensors
        return gy.mul(mask)


class LeakyReLUFn(Function):
    """
    Leaky ReLU: ``x`` for ``x > 0``, ``slope * x`` otherwise.
    """

    def __init__(self, slope: float = 0.01) -> None:
        super().__init__()
        self.slope = float(slope)

    def forward(self, x: NdArray) -> NdArray:
        pos = x.mask(0.0)
        # 1 where x > 0, slope elsewhere
        scale = pos.add(pos.neg().add(1.0).mul(self.slope))
        self.save_for_backward(scale)
        return x.mul(scale)

    def backward(self, gy: NdArray) -> NdArray:
        (scale,) = self.saved_tensors
        return gy.mul(scale)


class SiLUFn(Function):
    """
    Sigmoid-weighted linear unit ``x * sigmoid(x)``.

    Backward:

        d/dx = s * (1 + x * (1 - s)),  s = sigmoid(x)
    """

    def forward(self, x: NdArray) -> NdArray:
        s = x.sigmoid()
        self.save_for_backward(x, s)
        return x.mul(s)

    def backward(self, gy: NdArray) -> NdArray:
        x, s = self.saved_tensors
        return gy.mul(s.mul(x.mul(s.neg().add(1.0)).add(1.0)))


class ELUFn(Function):
    """
    Exponential linear unit: ``x`` for ``x >= 0``, ``alpha * (exp(x) - 1)``
    otherwise.

    The exponential is taken of ``min(x, 0)`` so large positive inputs do
    not overflow in the unused branch.
    """

    def __init__(self, alpha: float = 1.0) -> None:
        super().__init__()
        self.alpha = float(alpha)

    def forward(self, x: NdArray) -> NdArray:
        pos = x.ge(0.0)
        neg_exp = x.mul(pos.neg().add(1.0)).exp()
        self.save_for_backward(pos, neg_exp)
        return NdArray.where(pos, x, neg_exp.sub(1.0).mul(self.alpha))

    def backward(self, gy: NdArray) -> NdArray:
        pos, neg_exp = self.saved_tensors
        return gy.mul(NdArray.where(pos, 1.0, neg_exp.mul(self.alpha)))


class ClipFn(Function):
    """
    Clamp into ``[min_value, max_value]``.

    The gradient passes where ``min_value <= x <= max_value``.
    """

    def __init__(self, min_value: float, max_value: float) -> None:
        super().__init__()
        self.min_value = min_value
        self.max_value = max_value

    def forward(self, x: NdArray) -> NdArray:
        out = x.clip(self.min_value, self.max_value)
        self.save_for_backward(x.ge(self.min_value).mul(x.le(self.max_value)))
        return out

    def backward(self, gy: NdArray) -> NdArray:
        (mask,) = self.saved_tensors
        return gy.mul(mask)


def exp(x: Any) -> Variable:
    return ExpFn()(x)


def log(x: Any) -> Variable:
    return LogFn()(x)


def sqrt(x: Any) -> Variable:
    return SqrtFn()(x)


def square(x: Any) -> Variable:
    return SquareFn()(x)


def abs(x: Any) -> Variable:
    return AbsFn()(x)


def sin(x: Any) -> Variable:
    return SinFn()(x)


def cos(x: Any) -> Variable:
    return CosFn()(x)


def tanh(x: Any) -> Variable:
    return TanhFn()(x)


def sigmoid(x: Any) -> Variable:
    return SigmoidFn()(x)


def relu(x: Any) -> Variable:
    return ReLUFn()(x)


def leaky_relu(x: Any, slope: float = 0.01) -> Variable:
    return LeakyReLUFn(slope)(x)


def silu(x: Any) -> Variable:
    return SiLUFn()(x)


def elu(x: Any, alpha: float = 1.0) -> Variable:
    return ELUFn(alpha)(x)


def clip(x: Any, min_value: float, max_value: float) -> Variable:
    """
    Differentiable clamp.

    Raises
    ------
    ValueError
        If ``min_value > max_value``.
    """
    return ClipFn(min_value, max_value)(x)
