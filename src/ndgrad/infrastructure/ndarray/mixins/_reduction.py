"""
Reduction kernels for NdArray.

This module defines `NdArrayReductionMixin`, which provides global and
single-axis reductions (`sum`, `mean`, `var`, `max`, `min`), index
reductions (`argmax`, `top_k`) and the inverse-broadcast reduction
`sum_to`.

Reduction conventions
---------------------
- ``axis=None`` reduces every element and returns a scalar-shaped array
  (shape ``()``), or an all-ones shape of the same rank when
  ``keepdims=True``.
- An integer axis (negative allowed) collapses exactly that axis. The axis is
  dropped from the result unless ``keepdims=True``.
- `var` is the population variance (divides by N).
- Index results (`argmax`, `top_k` indices) are returned as float32 arrays so
  that they compose with the rest of the float-only kernel surface.
  float32 represents every integer up to 2**24 exactly, so indices are exact
  only while the indexed axis (or the flat size, for a global `argmax`) has
  at most 2**24 elements.
"""

from __future__ import annotations

from abc import ABC
from typing import Optional

import numpy as np

from ....domain._errors import ShapeMismatchError
from ....domain._shape import Shape, ShapeLike


def _sum_to_reduce_axes(
    src_shape: tuple[int, ...], target_shape: tuple[int, ...]
) -> tuple[int, ...]:
    """
    Compute the reduction axes that collapse `src_shape` to `target_shape`.

    `target_shape` is left-padded with ones to the rank of `src_shape`; every
    axis where the padded target has size 1 but the source does not is a
    stretched axis and must be summed.

    Parameters
    ----------
    src_shape:
        The broadcast (larger) shape.
    target_shape:
        The original pre-broadcast shape.

    Returns
    -------
    tuple[int, ...]
        Axes of the source to sum with ``keepdims=True``. Padded leading axes
        are dropped afterwards by reshaping to `target_shape`.

    Raises
    ------
    ShapeMismatchError
        If `target_shape` could not have been broadcast to `src_shape`.
    """
    if not Shape(target_shape).can_broadcast_to(src_shape):
        raise ShapeMismatchError(
            f"sum_to: shape {Shape(target_shape)} cannot be reached from {Shape(src_shape)}",
            src_shape,
            target_shape,
        )
    pad = len(src_shape) - len(target_shape)
    padded = (1,) * pad + tuple(target_shape)
    reduce_axes = tuple(
        i for i, (sd, td) in enumerate(zip(src_shape, padded)) if td == 1 and sd != 1
    )
    return reduce_axes


class NdArrayReductionMixin(ABC):
    """
    Mixin implementing reductions for a concrete `NdArray`.

    The host class must provide `_data`, `shape` and `_from_numpy`.
    """

    def _reduce(self, fn, axis: Optional[int], keepdims: bool):
        ax = None if axis is None else self.shape.normalize_axis(axis)
        with np.errstate(all="ignore"):
            out = fn(self._data, axis=ax, keepdims=keepdims)
        return self._from_numpy(np.asarray(out, dtype=np.float32))

    def sum(self, axis: Optional[int] = None, keepdims: bool = False):
        """
        Sum of elements, globally or along one axis.

        Parameters
        ----------
        axis : int, optional
            Axis to collapse; ``None`` sums everything.
        keepdims : bool
            Keep the reduced axis with size 1.

        Returns
        -------
        NdArray
            Reduced array.

        Raises
        ------
        IndexOutOfRangeError
            If `axis` is not a valid axis.

        Examples
        --------
        ``[[1, 2, 3], [4, 5, 6]]`` summed over axis 0 is ``[5, 7, 9]`` and over
        axis 1 is ``[6, 15]``.
        """
        return self._reduce(np.sum, axis, keepdims)

    def mean(self, axis: Optional[int] = None, keepdims: bool = False):
        """Arithmetic mean, globally or along one axis."""
        return self._reduce(np.mean, axis, keepdims)

    def var(self, axis: Optional[int] = None, keepdims: bool = False):
        """Population variance (``ddof=0``), globally or along one axis."""
        return self._reduce(np.var, axis, keepdims)

    def max(self, axis: Optional[int] = None, keepdims: bool = False):
        return self._reduce(np.max, axis, keepdims)

    def min(self, axis: Optional[int] = None, keepdims: bool = False):
        return self._reduce(np.min, axis, keepdims)

    def argmax(self, axis: Optional[int] = None):
        """
        Index of the maximum, globally (flat index) or along one axis.

        Ties resolve to the lowest index. The result is float32, which is
        exact for axes of up to 2**24 elements.
        """
        ax = None if axis is None else self.shape.normalize_axis(axis)
        idx = np.argmax(self._data, axis=ax)
        return self._from_numpy(np.asarray(idx, dtype=np.float32))

    def top_k(self, k: int, axis: int = -1):
        """
        The `k` largest entries along `axis`.

        Parameters
        ----------
        k : int
            Number of entries to keep, ``1 <= k <= shape[axis]``.
        axis : int
            Axis to select along (default: last).

        Returns
        -------
        values, indices : tuple[NdArray, NdArray]
            Both with ``shape[axis] == k``. Values are in descending order;
            equal values keep their original (ascending index) order.
            Indices are float32 and exact while ``shape[axis] <= 2**24``.

        Raises
        ------
        ValueError
            If `k` is out of range.
        IndexOutOfRangeError
            If `axis` is not a valid axis.
        """
        if self.shape.ndim == 0:
            raise ValueError("top_k requires at least one axis")
        ax = self.shape.normalize_axis(axis)
        n = self.shape[ax]
        if k < 1 or k > n:
            raise ValueError(f"top_k: k must be in [1, {n}], got {k}")

        order = np.argsort(-self._data, axis=ax, kind="stable")
        idx = np.take(order, np.arange(k), axis=ax)
        values = np.take_along_axis(self._data, idx, axis=ax)
        return self._from_numpy(values), self._from_numpy(idx.astype(np.float32))

    def sum_to(self, shape: ShapeLike):
        """
        Reverse of broadcasting: sum stretched axes so the result has `shape`.

        This is the gradient-routing primitive for broadcast operations: if an
        operand of shape `shape` was broadcast to ``self.shape`` during the
        forward pass, its gradient is ``grad.sum_to(shape)``.

        Raises
        ------
        ShapeMismatchError
            If `shape` could not have been broadcast to ``self.shape``.
        """
        target = Shape(shape)
        if target == self.shape:
            return self._from_numpy(self._data.copy())
        axes = _sum_to_reduce_axes(self.shape.dims, target.dims)
        out = self._data
        if axes:
            out = np.sum(out, axis=axes, keepdims=True)
        return self._from_numpy(out.reshape(target.dims))
