"""
Differentiable im2col / col2im and a composite 2-D convolution.

`conv2d` lowers an NCHW convolution onto a single matrix product:

    cols = im2col(x)                       # (N*OH*OW, C*KH*KW)
    y    = cols @ w.reshape(OC, -1).T      # (N*OH*OW, OC)
    y    = y.reshape(N, OH, OW, OC).transpose(0, 3, 1, 2)

Every step is itself differentiable, so no dedicated convolution backward
is needed: `Im2ColFn` and `Col2ImFn` are each other's adjoint.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ...domain._errors import RankViolationError, ShapeMismatchError
from ..autograd._function import Function
from ..autograd._variable import Variable, as_variable
from ..ndarray import NdArray
from ..ops.im2col_cpu import IntPair, _pair, conv_output_size
from ._arithmetic import add
from ._matrix import matmul
from ._shape import reshape, transpose


class Im2ColFn(Function):
    """Patch extraction; backward folds the gradient with `col2im`."""

    def __init__(self, kernel_h: int, kernel_w: int, stride: IntPair = 1, padding: IntPair = 0) -> None:
        super().__init__()
        self.kernel_h = kernel_h
        self.kernel_w = kernel_w
        self.stride = stride
        self.padding = padding

    def forward(self, x: NdArray) -> NdArray:
        self.saved_meta["x_shape"] = x.shape
        return x.im2col(self.kernel_h, self.kernel_w, self.stride, self.padding)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.col2im(
            self.saved_meta["x_shape"], self.kernel_h, self.kernel_w, self.stride, self.padding
        )


class Col2ImFn(Function):
    """Patch folding; backward unfolds the gradient with `im2col`."""

    def __init__(
        self,
        input_shape: Sequence[int],
        kernel_h: int,
        kernel_w: int,
        stride: IntPair = 1,
        padding: IntPair = 0,
    ) -> None:
        super().__init__()
        self.input_shape = tuple(input_shape)
        self.kernel_h = kernel_h
        self.kernel_w = kernel_w
        self.stride = stride
        self.padding = padding

    def forward(self, col: NdArray) -> NdArray:
        return col.col2im(self.input_shape, self.kernel_h, self.kernel_w, self.stride, self.padding)

    def backward(self, gy: NdArray) -> NdArray:
        return gy.im2col(self.kernel_h, self.kernel_w, self.stride, self.padding)


def im2col(x: Any, kernel_h: int, kernel_w: int, stride: IntPair = 1, padding: IntPair = 0) -> Variable:
    return Im2ColFn(kernel_h, kernel_w, stride, padding)(x)


def col2im(
    col: Any,
    input_shape: Sequence[int],
    kernel_h: int,
    kernel_w: int,
    stride: IntPair = 1,
    padding: IntPair = 0,
) -> Variable:
    return Col2ImFn(input_shape, kernel_h, kernel_w, stride, padding)(col)


def conv2d(
    x: Any,
    w: Any,
    b: Optional[Any] = None,
    stride: IntPair = 1,
    padding: IntPair = 0,
) -> Variable:
    """
    Differentiable 2-D convolution (cross-correlation) in NCHW layout.

    Parameters
    ----------
    x : Variable
        Input of shape (N, C, H, W).
    w : Variable
        Kernel of shape (OC, C, KH, KW).
    b : Variable, optional
        Bias of shape (OC,).
    stride, padding : int or tuple[int, int]
        Window step and zero padding.

    Returns
    -------
    Variable
        Output of shape (N, OC, OH, OW).

    Raises
    ------
    RankViolationError
        If `x` or `w` is not 4-D.
    ShapeMismatchError
        If channel counts differ, the bias shape is wrong, or the window
        does not fit.
    """
    x = as_variable(x)
    w = as_variable(w)
    if x.ndim != 4:
        raise RankViolationError("conv2d input", "4", x.ndim)
    if w.ndim != 4:
        raise RankViolationError("conv2d weight", "4", w.ndim)

    N, C, H, W = x.shape.dims
    OC, C_w, KH, KW = w.shape.dims
    if C != C_w:
        raise ShapeMismatchError(
            f"conv2d: input has {C} channels but weight expects {C_w}",
            x.shape.dims,
            w.shape.dims,
        )
    OH, OW = conv_output_size((H, W), (KH, KW), _pair(stride), _pair(padding))

    cols = im2col(x, KH, KW, stride, padding)
    w_mat = transpose(reshape(w, (OC, C * KH * KW)))
    y = matmul(cols, w_mat)

    if b is not None:
        b = as_variable(b)
        if b.shape != (OC,):
            raise ShapeMismatchError(
                f"conv2d: bias must have shape ({OC},), got {b.shape}",
                b.shape.dims,
                (OC,),
            )
        y = add(y, b)

    return transpose(reshape(y, (N, OH, OW, OC)), (0, 3, 1, 2))
