"""
CPU im2col / col2im kernels for ndgrad.

`im2col` unfolds every receptive field of a 4-D NCHW input into one row of a
2-D patch matrix, so that a convolution becomes a single matrix product
against a reshaped kernel. `col2im` is its adjoint: it scatters patch rows
back into NCHW layout, summing the contributions of overlapping windows.

Layout
------
- Input: (N, C, H, W), zero-padded by `padding` on each spatial border.
- Patch matrix: (N * OH * OW, C * KH * KW). Rows are ordered (n, oh, ow)
  and columns (c, kh, kw), i.e. a row is one flattened (C, KH, KW) window.
- Output size: ``OH = (H + 2*ph - KH) // sh + 1`` (same for width).

Both kernels loop over the (KH, KW) kernel offsets and move a whole strided
slab per offset, which keeps the Python-level loop count independent of the
image size.
"""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np

from ...domain._errors import RankViolationError, ShapeMismatchError

IntPair = Union[int, Tuple[int, int]]


def _pair(v: IntPair) -> Tuple[int, int]:
    """
    Normalize an integer or pair into a (height, width) 2-tuple.
    """
    return (int(v[0]), int(v[1])) if isinstance(v, (tuple, list)) else (int(v), int(v))


def conv_output_size(
    hw: Tuple[int, int],
    kernel: Tuple[int, int],
    stride: IntPair,
    padding: IntPair,
) -> Tuple[int, int]:
    """
    Compute (OH, OW) for a sliding window.

    Raises
    ------
    ValueError
        If the kernel size or stride is not positive, or padding is negative.
    ShapeMismatchError
        If the window does not fit, i.e. an output size would be < 1.
    """
    s_h, s_w = _pair(stride)
    p_h, p_w = _pair(padding)
    k_h, k_w = kernel
    if k_h < 1 or k_w < 1:
        raise ValueError(f"kernel size must be positive, got {(k_h, k_w)}")
    if s_h < 1 or s_w < 1:
        raise ValueError(f"stride must be positive, got {(s_h, s_w)}")
    if p_h < 0 or p_w < 0:
        raise ValueError(f"padding must be non-negative, got {(p_h, p_w)}")

    H, W = hw
    OH = (H + 2 * p_h - k_h) // s_h + 1
    OW = (W + 2 * p_w - k_w) // s_w + 1
    if OH < 1 or OW < 1:
        raise ShapeMismatchError(
            f"window {(k_h, k_w)} with stride {(s_h, s_w)} and padding {(p_h, p_w)} "
            f"does not fit input of spatial size {(H, W)}",
            (H, W),
            (k_h, k_w),
        )
    return OH, OW


def im2col_cpu(
    x: np.ndarray,
    kernel_h: int,
    kernel_w: int,
    stride: IntPair = 1,
    padding: IntPair = 0,
) -> np.ndarray:
    """
    Unfold sliding windows of an NCHW tensor into a patch matrix.

    Parameters
    ----------
    x : np.ndarray
        Input of shape (N, C, H, W).
    kernel_h, kernel_w : int
        Window size.
    stride : int or tuple[int, int]
        Window step.
    padding : int or tuple[int, int]
        Zero padding applied to each spatial border.

    Returns
    -------
    np.ndarray
        Patch matrix of shape (N * OH * OW, C * KH * KW), float32.

    Raises
    ------
    RankViolationError
        If `x` is not 4-D.
    ShapeMismatchError
        If the window does not fit.
    """
    if x.ndim != 4:
        raise RankViolationError("im2col", "4", x.ndim)

    N, C, H, W = x.shape
    s_h, s_w = _pair(stride)
    p_h, p_w = _pair(padding)
    OH, OW = conv_output_size((H, W), (kernel_h, kernel_w), stride, padding)

    x_pad = np.pad(
        x,
        pad_width=((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)),
        mode="constant",
        constant_values=0.0,
    )

    col = np.zeros((N, C, kernel_h, kernel_w, OH, OW), dtype=np.float32)
    for i in range(kernel_h):
        i_max = i + s_h * OH
        for j in range(kernel_w):
            j_max = j + s_w * OW
            col[:, :, i, j, :, :] = x_pad[:, :, i:i_max:s_h, j:j_max:s_w]

    # (N, OH, OW, C, KH, KW) -> rows (n, oh, ow), columns (c, kh, kw)
    return np.ascontiguousarray(
        col.transpose(0, 4, 5, 1, 2, 3).reshape(N * OH * OW, C * kernel_h * kernel_w)
    )


def col2im_cpu(
    col: np.ndarray,
    input_shape: Sequence[int],
    kernel_h: int,
    kernel_w: int,
    stride: IntPair = 1,
    padding: IntPair = 0,
) -> np.ndarray:
    """
    Fold a patch matrix back into an NCHW tensor (adjoint of `im2col_cpu`).

    Overlapping windows accumulate: each input position receives the sum of
    every patch entry that was read from it. Padding positions are dropped.

    Parameters
    ----------
    col : np.ndarray
        Patch matrix of shape (N * OH * OW, C * KH * KW).
    input_shape : Sequence[int]
        The (N, C, H, W) shape to rebuild.
    kernel_h, kernel_w, stride, padding
        Same geometry as the forward `im2col_cpu` call.

    Returns
    -------
    np.ndarray
        Tensor of shape `input_shape`, float32.

    Raises
    ------
    RankViolationError
        If `input_shape` is not 4-D.
    ShapeMismatchError
        If `col` does not have the patch-matrix shape implied by the geometry.
    """
    if len(input_shape) != 4:
        raise RankViolationError("col2im", "4", len(input_shape))

    N, C, H, W = (int(d) for d in input_shape)
    s_h, s_w = _pair(stride)
    p_h, p_w = _pair(padding)
    OH, OW = conv_output_size((H, W), (kernel_h, kernel_w), stride, padding)

    expected = (N * OH * OW, C * kernel_h * kernel_w)
    if tuple(col.shape) != expected:
        raise ShapeMismatchError(
            f"col2im: expected patch matrix of shape {expected}, got {tuple(col.shape)}",
            col.shape,
            expected,
        )

    cols = col.reshape(N, OH, OW, C, kernel_h, kernel_w).transpose(0, 3, 4, 5, 1, 2)

    img = np.zeros(
        (N, C, H + 2 * p_h + s_h - 1, W + 2 * p_w + s_w - 1), dtype=np.float32
    )
    for i in range(kernel_h):
        i_max = i + s_h * OH
        for j in range(kernel_w):
            j_max = j + s_w * OW
            img[:, :, i:i_max:s_h, j:j_max:s_w] += cols[:, :, i, j, :, :]

    return np.ascontiguousarray(img[:, :, p_h : H + p_h, p_w : W + p_w])
