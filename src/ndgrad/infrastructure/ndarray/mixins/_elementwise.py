"""
Elementwise NdArray kernels.

This module defines `NdArrayElementwiseMixin`, which provides per-element
arithmetic, unary math, comparisons, clipping, masked selection and the
softmax family for a concrete `NdArray`.

Broadcasting
------------
Every binary kernel lifts Python scalars and sequences to arrays and then
broadcasts both operands with `Shape.broadcast`. Incompatible operands raise
`ShapeMismatchError` before any arithmetic is attempted.

Numeric semantics
-----------------
Kernels run inside ``np.errstate(all="ignore")``: division by zero, log of a
negative number and overflow produce Inf/NaN values without raising and
without emitting NumPy runtime warnings. Callers that need to reject such
values opt in with `NdArray.is_finite()`.
"""

from __future__ import annotations

import functools
from abc import ABC
from typing import Any, Callable, Union

import numpy as np

from ....domain._errors import ShapeMismatchError
from ....domain._shape import Shape

Number = Union[int, float]

_OPERAND_TYPES = (bool, int, float, np.number, np.ndarray, list, tuple)


def defer_unknown_operand(method: Callable) -> Callable:
    """
    Operator wrapper returning ``NotImplemented`` for operands that are not
    array-like, so Python falls back to the other operand's reflected method
    (e.g. `Variable.__rmul__` for ``ndarray * variable``).
    """

    @functools.wraps(method)
    def wrapper(self, other: Any):
        if not isinstance(other, _OPERAND_TYPES + (type(self),)):
            return NotImplemented
        return method(self, other)

    return wrapper


def _kernel(fn: Callable[..., np.ndarray], *arrays: np.ndarray) -> np.ndarray:
    with np.errstate(all="ignore"):
        return fn(*arrays)


class NdArrayElementwiseMixin(ABC):
    """
    Mixin implementing per-element kernels.

    The host class must provide `_data`, `shape`, `_from_numpy` and
    `_coerce`.
    """

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _binary(self, other: Any, fn: Callable[[np.ndarray, np.ndarray], np.ndarray], name: str):
        o = self._coerce(other)
        try:
            Shape.broadcast(self.shape, o.shape)
        except ShapeMismatchError as e:
            raise ShapeMismatchError(
                f"{name}: shapes {self.shape} and {o.shape} are not broadcast-compatible",
                self.shape.dims,
                o.shape.dims,
            ) from e
        return self._from_numpy(_kernel(fn, self._data, o._data))

    def _unary(self, fn: Callable[[np.ndarray], np.ndarray]):
        return self._from_numpy(_kernel(fn, self._data))

    # ------------------------------------------------------------------
    # arithmetic
    # ------------------------------------------------------------------
    def add(self, other: Any):
        """Elementwise ``self + other`` with broadcasting."""
        return self._binary(other, np.add, "add")

    def sub(self, other: Any):
        """Elementwise ``self - other`` with broadcasting."""
        return self._binary(other, np.subtract, "sub")

    def mul(self, other: Any):
        """Elementwise ``self * other`` with broadcasting."""
        return self._binary(other, np.multiply, "mul")

    def div(self, other: Any):
        """
        Elementwise ``self / other`` with broadcasting.

        Division by zero yields +/-Inf (or NaN for 0/0); it does not raise.
        """
        return self._binary(other, np.divide, "div")

    def pow(self, exponent: Any):
        """Elementwise power; `exponent` may be a scalar or a broadcastable array."""
        return self._binary(exponent, np.power, "pow")

    def neg(self):
        return self._unary(np.negative)

    # ------------------------------------------------------------------
    # unary math
    # ------------------------------------------------------------------
    def abs(self):
        return self._unary(np.abs)

    def square(self):
        return self._unary(np.square)

    def sqrt(self):
        return self._unary(np.sqrt)

    def exp(self):
        return self._unary(np.exp)

    def log(self):
        """Natural logarithm; non-positive inputs produce -Inf/NaN."""
        return self._unary(np.log)

    def sin(self):
        return self._unary(np.sin)

    def cos(self):
        return self._unary(np.cos)

    def tanh(self):
        return self._unary(np.tanh)

    def sigmoid(self):
        """
        Logistic function ``1 / (1 + exp(-x))``.

        Computed as ``0.5 * (1 + tanh(x / 2))`` so that large-magnitude inputs
        saturate at 0 and 1 instead of overflowing.
        """
        return self._unary(lambda a: 0.5 * (1.0 + np.tanh(0.5 * a)))

    def relu(self):
        return self._unary(lambda a: np.maximum(a, 0.0))

    def maximum(self, number: Number):
        """Elementwise ``max(x, number)`` against a scalar threshold."""
        return self._unary(lambda a: np.maximum(a, np.float32(number)))

    def mask(self, number: Number):
        """1.0 where ``x > number``, else 0.0."""
        return self._unary(lambda a: (a > np.float32(number)).astype(np.float32))

    def clip(self, min_value: Number, max_value: Number):
        """
        Clamp every element into ``[min_value, max_value]``.

        Raises
        ------
        ValueError
            If ``min_value > max_value``.
        """
        if min_value > max_value:
            raise ValueError(f"clip: min ({min_value}) must not exceed max ({max_value})")
        return self._unary(lambda a: np.clip(a, min_value, max_value))

    # ------------------------------------------------------------------
    # selection
    # ------------------------------------------------------------------
    @classmethod
    def where(cls, condition: Any, x: Any, y: Any):
        """
        Pick ``x`` where `condition` is non-zero and ``y`` elsewhere.

        All three operands broadcast against each other. Unlike a blend
        ``c * x + (1 - c) * y``, infinities in the unselected operand never
        leak into the result.

        Raises
        ------
        ShapeMismatchError
            If the three shapes are not broadcast-compatible.
        """
        c, a, b = cls._coerce(condition), cls._coerce(x), cls._coerce(y)
        try:
            Shape.broadcast(Shape.broadcast(c.shape, a.shape), b.shape)
        except ShapeMismatchError as e:
            raise ShapeMismatchError(
                f"where: shapes {c.shape}, {a.shape} and {b.shape} are not broadcast-compatible",
                c.shape.dims,
                a.shape.dims,
                b.shape.dims,
            ) from e
        return cls._from_numpy(np.where(c._data != 0, a._data, b._data).astype(np.float32))

    def masked_fill(self, mask: Any, value: Number):
        """
        Copy of this array with `value` written wherever `mask` is non-zero.

        `mask` must broadcast to this array's shape; the result keeps
        ``self.shape``. Typical use is a causal attention mask filled with
        ``-inf`` before a softmax.

        Raises
        ------
        ShapeMismatchError
            If `mask` cannot be broadcast to ``self.shape``.
        """
        m = self._coerce(mask)
        if not m.shape.can_broadcast_to(self.shape):
            raise ShapeMismatchError(
                f"masked_fill: mask of shape {m.shape} does not broadcast to {self.shape}",
                m.shape.dims,
                self.shape.dims,
            )
        return self._from_numpy(np.where(m._data != 0, np.float32(value), self._data))

    # ------------------------------------------------------------------
    # comparisons (1.0 / 0.0 masks)
    # ------------------------------------------------------------------
    def eq(self, other: Any):
        return self._binary(other, lambda a, b: (a == b).astype(np.float32), "eq")

    def gt(self, other: Any):
        return self._binary(other, lambda a, b: (a > b).astype(np.float32), "gt")

    def lt(self, other: Any):
        return self._binary(other, lambda a, b: (a < b).astype(np.float32), "lt")

    def ge(self, other: Any):
        return self._binary(other, lambda a, b: (a >= b).astype(np.float32), "ge")

    def le(self, other: Any):
        return self._binary(other, lambda a, b: (a <= b).astype(np.float32), "le")

    # ------------------------------------------------------------------
    # softmax family
    # ------------------------------------------------------------------
    def softmax(self, axis: int = -1):
        """
        Numerically stable softmax along `axis`.

        The per-slice maximum is subtracted before exponentiating, so inputs
        such as ``[1000, 1001, 999]`` produce finite probabilities.

        Raises
        ------
        IndexOutOfRangeError
            If `axis` is not a valid axis.
        """
        if self.shape.ndim == 0:
            return self._from_numpy(np.ones((), dtype=np.float32))
        ax = self.shape.normalize_axis(axis)

        def _softmax(a: np.ndarray) -> np.ndarray:
            shifted = a - np.max(a, axis=ax, keepdims=True)
            e = np.exp(shifted)
            return e / np.sum(e, axis=ax, keepdims=True)

        return self._unary(_softmax)

    def log_softmax(self, axis: int = -1):
        """
        Numerically stable ``log(softmax(x))`` along `axis`.

        Uses ``x - max - log(sum(exp(x - max)))`` so that no intermediate
        probability underflows to zero before the logarithm.
        """
        if self.shape.ndim == 0:
            return self._from_numpy(np.zeros((), dtype=np.float32))
        ax = self.shape.normalize_axis(axis)

        def _log_softmax(a: np.ndarray) -> np.ndarray:
            shifted = a - np.max(a, axis=ax, keepdims=True)
            return shifted - np.log(np.sum(np.exp(shifted), axis=ax, keepdims=True))

        return self._unary(_log_softmax)

    # ------------------------------------------------------------------
    # operator overloads
    # ------------------------------------------------------------------
    @defer_unknown_operand
    def __add__(self, other: Any):
        return self.add(other)

    @defer_unknown_operand
    def __radd__(self, other: Any):
        return self._coerce(other).add(self)

    @defer_unknown_operand
    def __sub__(self, other: Any):
        return self.sub(other)

    @defer_unknown_operand
    def __rsub__(self, other: Any):
        return self._coerce(other).sub(self)

    @defer_unknown_operand
    def __mul__(self, other: Any):
        return self.mul(other)

    @defer_unknown_operand
    def __rmul__(self, other: Any):
        return self._coerce(other).mul(self)

    @defer_unknown_operand
    def __truediv__(self, other: Any):
        return self.div(other)

    @defer_unknown_operand
    def __rtruediv__(self, other: Any):
        return self._coerce(other).div(self)

    @defer_unknown_operand
    def __pow__(self, exponent: Any):
        return self.pow(exponent)

    def __neg__(self):
        return self.neg()

    def __abs__(self):
        return self.abs()

    @defer_unknown_operand
    def __gt__(self, other: Any):
        return self.gt(other)

    @defer_unknown_operand
    def __lt__(self, other: Any):
        return self.lt(other)

    @defer_unknown_operand
    def __ge__(self, other: Any):
        return self.ge(other)

    @defer_unknown_operand
    def __le__(self, other: Any):
        return self.le(other)
