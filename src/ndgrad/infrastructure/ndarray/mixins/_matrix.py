"""
Matrix-product mixin for NdArray.

Provides `matmul` (aliased as `dot` and the ``@`` operator). Validation and
the 2-D / batched split live in `ndgrad.infrastructure.ops.matmul_cpu`.
"""

from __future__ import annotations

from abc import ABC
from typing import Any

from ...ops.matmul_cpu import matmul_cpu
from ._elementwise import defer_unknown_operand


class NdArrayMatrixMixin(ABC):
    """
    Mixin implementing matrix multiplication.

    The host class must provide `_data`, `_from_numpy` and `_coerce`.
    """

    def matmul(self, other: Any):
        """
        Matrix product ``self @ other``.

        Rank-2 operands take the 2-D path. Higher-rank operands are treated
        as stacks of matrices over their leading axes, which broadcast
        against each other (a batch axis of size 1 stretches).

        Raises
        ------
        RankViolationError
            If either operand has rank < 2.
        DimensionMismatchError
            If ``self.shape[-1] != other.shape[-2]``. The message names both
            shapes. This is a `ShapeMismatchError` subclass.
        ShapeMismatchError
            If the batch axes do not broadcast.

        Examples
        --------
        ``(2, 3) @ (3, 4)`` has shape ``(2, 4)``; ``(2, 3) @ (2, 2)`` raises.
        """
        o = self._coerce(other)
        return self._from_numpy(matmul_cpu(self._data, o._data))

    def dot(self, other: Any):
        """Alias of `matmul`."""
        return self.matmul(other)

    @defer_unknown_operand
    def __matmul__(self, other: Any):
        return self.matmul(other)

    @defer_unknown_operand
    def __rmatmul__(self, other: Any):
        return self._coerce(other).matmul(self)
