"""
Comparison operations on value nodes.

Comparisons are piecewise constant, so they are not differentiable: the
results are constant `Variable`s carrying a 1.0 / 0.0 mask and never record
a graph, whatever the inputs' `requires_grad` flags.
"""

from __future__ import annotations

from typing import Any

from ..autograd._function import Function
from ..autograd._variable import Variable
from ..ndarray import NdArray


class _ComparisonFn(Function):
    differentiable = False

    def backward(self, gy: NdArray):
        return None, None


class EqFn(_ComparisonFn):
    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        return a.eq(b)


class GtFn(_ComparisonFn):
    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        return a.gt(b)


class LtFn(_ComparisonFn):
    def forward(self, a: NdArray, b: NdArray) -> NdArray:
        return a.lt(b)


def eq(a: Any, b: Any) -> Variable:
    return EqFn()(a, b)


def gt(a: Any, b: Any) -> Variable:
    return GtFn()(a, b)


def lt(a: Any, b: Any) -> Variable:
    return LtFn()(a, b)
