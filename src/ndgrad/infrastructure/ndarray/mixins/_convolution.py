"""
Convolution-support mixin for NdArray (im2col / col2im).
"""

from __future__ import annotations

from abc import ABC
from typing import Sequence

from ...ops.im2col_cpu import IntPair, col2im_cpu, im2col_cpu


class NdArrayConvolutionMixin(ABC):
    """
    Mixin exposing the patch-matrix transforms used to lower convolution
    onto matrix multiplication.

    The host class must provide `_data` and `_from_numpy`.
    """

    def im2col(
        self,
        kernel_h: int,
        kernel_w: int,
        stride: IntPair = 1,
        padding: IntPair = 0,
    ):
        """
        Unfold an (N, C, H, W) array into an (N*OH*OW, C*KH*KW) patch matrix.

        Rows are ordered (n, oh, ow); columns (c, kh, kw). Out-of-bounds
        window positions read zeros.

        Raises
        ------
        RankViolationError
            If the array is not 4-D.
        ShapeMismatchError
            If the window does not fit the (padded) input.
        """
        return self._from_numpy(im2col_cpu(self._data, kernel_h, kernel_w, stride, padding))

    def col2im(
        self,
        input_shape: Sequence[int],
        kernel_h: int,
        kernel_w: int,
        stride: IntPair = 1,
        padding: IntPair = 0,
    ):
        """
        Fold a patch matrix back into `input_shape`, summing overlaps.

        ``x.im2col(...).col2im(x.shape, ...)`` equals `x` multiplied by the
        number of windows covering each position.
        """
        return self._from_numpy(
            col2im_cpu(self._data, tuple(input_shape), kernel_h, kernel_w, stride, padding)
        )
