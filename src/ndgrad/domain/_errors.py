"""
Structural exceptions for ndgrad.

This module defines the error taxonomy raised by the array engine and the
autograd layer. Every error signals a caller defect (wrong shapes, wrong
axis, wrong rank) and is raised immediately at the point of misuse. None of
them are recoverable inside the engine and none are retried.

Numeric degeneracy (NaN / Infinity) is intentionally *not* part of this
taxonomy: such values propagate per IEEE-754 and callers opt into explicit
checks via `NdArray.is_finite()`.

The classes also derive from the matching builtin exception (`ValueError`,
`IndexError`) so that code written against NumPy conventions keeps working.
"""

from __future__ import annotations

from typing import Sequence


def _fmt_shape(shape: Sequence[int]) -> str:
    return "(" + ", ".join(str(int(d)) for d in shape) + ")"


class NdGradError(Exception):
    """
    Base class for all structural errors raised by ndgrad.
    """


class ShapeMismatchError(NdGradError, ValueError):
    """
    Raised when operand shapes are incompatible.

    Typical sources are elementwise operations whose operands cannot be
    broadcast together, `broadcast_to` / `sum_to` targets that are not
    broadcast-compatible, reshapes that change the element count, and
    batched matmul whose leading batch dimensions disagree.

    Attributes
    ----------
    shapes : tuple[tuple[int, ...], ...]
        The offending shapes, in operand order (may be empty).
    """

    def __init__(self, message: str, *shapes: Sequence[int]) -> None:
        """
        Initialize the ShapeMismatchError.

        Parameters
        ----------
        message : str
            Human-readable description of the failed operation.
        *shapes : Sequence[int]
            Shapes involved in the failure.
        """
        super().__init__(message)
        self.shapes = tuple(tuple(int(d) for d in s) for s in shapes)


class DimensionMismatchError(ShapeMismatchError):
    """
    Raised when the inner dimensions of a matrix product disagree.

    For `left @ right`, the last dimension of `left` must equal the
    second-to-last dimension of `right`. The message names both shapes.

    Attributes
    ----------
    left_shape : tuple[int, ...]
        Shape of the left operand.
    right_shape : tuple[int, ...]
        Shape of the right operand.
    """

    def __init__(self, left_shape: Sequence[int], right_shape: Sequence[int]) -> None:
        left = tuple(int(d) for d in left_shape)
        right = tuple(int(d) for d in right_shape)
        super().__init__(
            f"matmul dimension mismatch: {_fmt_shape(left)} x {_fmt_shape(right)}; "
            f"left inner dimension ({left[-1]}) must equal right outer "
            f"dimension ({right[-2]})",
            left,
            right,
        )
        self.left_shape = left
        self.right_shape = right


class IndexOutOfRangeError(NdGradError, IndexError):
    """
    Raised when an index falls outside the valid range of an axis.

    Attributes
    ----------
    index : int
        The offending index value.
    bound : int
        The size of the indexed axis (valid indices are ``0 <= i < bound``).
    """

    def __init__(self, index: int, bound: int, what: str = "index") -> None:
        """
        Initialize the IndexOutOfRangeError.

        Parameters
        ----------
        index : int
            The offending index.
        bound : int
            Size of the indexed axis.
        what : str, optional
            Name of the indexed quantity used in the message (e.g. "row").
        """
        super().__init__(
            f"{what} {int(index)} out of range for axis of size {int(bound)}"
        )
        self.index = int(index)
        self.bound = int(bound)


class RankViolationError(NdGradError, ValueError):
    """
    Raised when an operation requires a rank its operand does not have.

    Attributes
    ----------
    op : str
        Name of the operation.
    required : str
        Description of the required rank (e.g. ">= 2", "4").
    actual : int
        Rank of the offending operand.
    """

    def __init__(self, op: str, required: str, actual: int) -> None:
        super().__init__(f"{op} requires rank {required}, got rank {int(actual)}")
        self.op = op
        self.required = required
        self.actual = int(actual)
