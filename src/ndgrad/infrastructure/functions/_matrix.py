"""
Differentiable matrix multiplication.
"""

from __future__ import annotations

from typing import Any

from ..autograd._function import Function
from ..autograd._variable import Variable
from ..ndarray import NdArray


def _swap_last_two(a: NdArray) -> NdArray:
    perm = list(range(a.ndim))
    perm[-2], perm[-1] = perm[-1], perm[-2]
    return a.transpose(*perm)


class MatMulFn(Function):
    """
    Matrix product ``a @ b`` (2-D or batched).

    Backward:

        dL/da = grad_out @ b^T
        dL/db = a^T @ grad_out

    where ``^T`` swaps the last two axes. For batched operands whose batch
    axes were broadcast, each gradient is then reduced to its operand's
    shape with `sum_to`.
    """

    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        self.save_for_backward(a, b)
        return a.matmul(b)

    def backward(self, gy: NdArray):
        a, b = self.saved_tensors
        ga = gy.matmul(_swap_last_two(b))
        gb = _swap_last_two(a).matmul(gy)
        return ga.sum_to(a.shape), gb.sum_to(b.shape)


def matmul(a: Any, b: Any) -> Variable:
    """
    Differentiable matrix product.

    Raises
    ------
    RankViolationError
        If either operand has rank < 2.
    DimensionMismatchError
        If the inner dimensions differ.
    ShapeMismatchError
        If batch axes do not broadcast.
    """
    return MatMulFn()(a, b)


dot = matmul
