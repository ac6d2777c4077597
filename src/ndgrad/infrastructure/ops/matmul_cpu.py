"""
CPU matrix-multiplication kernels for ndgrad.

Two paths are provided:

- `matmul_2d_cpu`: plain (M, K) x (K, N) product.
- `matmul_batched_cpu`: (..., M, K) x (..., K, N) product where the leading
  "batch" axes broadcast against each other (a batch size of 1 on either
  operand is stretched across the other operand's batches).

`matmul_cpu` validates operand ranks and inner dimensions and dispatches to
the appropriate path. All kernels take and return float32 NumPy arrays; the
summation itself is delegated to NumPy (BLAS-backed), so accumulation order
is unspecified and results agree with a naive i-k-j loop within float
tolerance.
"""

from __future__ import annotations

import numpy as np

from ...domain._errors import (
    DimensionMismatchError,
    RankViolationError,
    ShapeMismatchError,
)
from ...domain._shape import Shape


def matmul_2d_cpu(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Multiply two rank-2 matrices.

    Parameters
    ----------
    a : np.ndarray
        Left operand of shape (M, K).
    b : np.ndarray
        Right operand of shape (K, N).

    Returns
    -------
    np.ndarray
        Product of shape (M, N), float32.
    """
    with np.errstate(all="ignore"):
        return np.dot(a, b).astype(np.float32, copy=False)


def matmul_batched_cpu(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Batched matrix multiply over broadcast leading axes.

    Parameters
    ----------
    a : np.ndarray
        Left operand of shape (*batch_a, M, K).
    b : np.ndarray
        Right operand of shape (*batch_b, K, N).

    Returns
    -------
    np.ndarray
        Product of shape (*broadcast(batch_a, batch_b), M, N).

    Raises
    ------
    ShapeMismatchError
        If the batch axes are not broadcast-compatible.
    """
    batch_a, batch_b = a.shape[:-2], b.shape[:-2]
    try:
        Shape.broadcast(batch_a, batch_b)
    except ShapeMismatchError as e:
        raise ShapeMismatchError(
            f"matmul: batch dimensions {Shape(batch_a)} and {Shape(batch_b)} do not broadcast",
            a.shape,
            b.shape,
        ) from e
    with np.errstate(all="ignore"):
        return np.matmul(a, b).astype(np.float32, copy=False)


def matmul_cpu(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Validate operands and compute ``a @ b``.

    Raises
    ------
    RankViolationError
        If either operand has rank < 2.
    DimensionMismatchError
        If ``a.shape[-1] != b.shape[-2]``.
    ShapeMismatchError
        If batch axes do not broadcast.
    """
    if a.ndim < 2:
        raise RankViolationError("matmul", ">= 2", a.ndim)
    if b.ndim < 2:
        raise RankViolationError("matmul", ">= 2", b.ndim)
    if a.shape[-1] != b.shape[-2]:
        raise DimensionMismatchError(a.shape, b.shape)

    if a.ndim == 2 and b.ndim == 2:
        return matmul_2d_cpu(a, b)
    return matmul_batched_cpu(a, b)
