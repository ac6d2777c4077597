"""
Differentiable primitives.

Each primitive is a `Function` subclass (``AddFn``, ``ExpFn``, ...) plus a
functional wrapper (``add``, ``exp``, ...) that instantiates the node and
calls it. The wrappers accept `Variable`s, `NdArray`s, NumPy arrays and
Python scalars; anything that is not a `Variable` is treated as a constant.
"""

from ._arithmetic import AddFn, SubFn, MulFn, DivFn, NegFn, PowFn
from ._arithmetic import add, sub, mul, div, neg, pow
from ._math import (
    ExpFn,
    LogFn,
    SqrtFn,
    SquareFn,
    AbsFn,
    SinFn,
    CosFn,
    TanhFn,
    SigmoidFn,
    ReLUFn,
    LeakyReLUFn,
    SiLUFn,
    ELUFn,
    ClipFn,
)
from ._math import (
    exp,
    log,
    sqrt,
    square,
    abs,
    sin,
    cos,
    tanh,
    sigmoid,
    relu,
    leaky_relu,
    silu,
    elu,
    clip,
)
from ._activation import SoftmaxFn, LogSoftmaxFn, softmax, log_softmax
from ._shape import (
    ReshapeFn,
    TransposeFn,
    BroadcastToFn,
    SumToFn,
    GetItemFn,
    ConcatFn,
    SqueezeFn,
    UnsqueezeFn,
    SplitFn,
    IndexSelectFn,
    GatherFn,
)
from ._shape import (
    reshape,
    flatten,
    transpose,
    broadcast_to,
    sum_to,
    get_item,
    concat,
    squeeze,
    unsqueeze,
    split,
    index_select,
    gather,
)
from ._reduction import SumFn, MeanFn, VarFn, MaxFn, MinFn, TopKFn
from ._reduction import sum, mean, var, max, min, top_k
from ._masking import MaskedFillFn, WhereFn, TrilFn, masked_fill, where, tril
from ._matrix import MatMulFn, matmul, dot
from ._convolution import Im2ColFn, Col2ImFn, im2col, col2im, conv2d
from ._comparison import EqFn, GtFn, LtFn, eq, gt, lt

__all__ = [
    # arithmetic
    "AddFn", "SubFn", "MulFn", "DivFn", "NegFn", "PowFn",
    "add", "sub", "mul", "div", "neg", "pow",
    # math
    "ExpFn", "LogFn", "SqrtFn", "SquareFn", "AbsFn", "SinFn", "CosFn",
    "TanhFn", "SigmoidFn", "ReLUFn", "LeakyReLUFn", "SiLUFn", "ELUFn", "ClipFn",
    "exp", "log", "sqrt", "square", "abs", "sin", "cos", "tanh",
    "sigmoid", "relu", "leaky_relu", "silu", "elu", "clip",
    # activation
    "SoftmaxFn", "LogSoftmaxFn", "softmax", "log_softmax",
    # shape
    "ReshapeFn", "TransposeFn", "BroadcastToFn", "SumToFn", "GetItemFn",
    "ConcatFn", "SqueezeFn", "UnsqueezeFn", "SplitFn", "IndexSelectFn",
    "GatherFn", "reshape", "flatten", "transpose", "broadcast_to", "sum_to",
    "get_item", "concat", "squeeze", "unsqueeze", "split", "index_select",
    "gather",
    # masking
    "MaskedFillFn", "WhereFn", "TrilFn", "masked_fill", "where", "tril",
    # reduction
    "SumFn", "MeanFn", "VarFn", "MaxFn", "MinFn", "TopKFn",
    "sum", "mean", "var", "max", "min", "top_k",
    # matrix / convolution
    "MatMulFn", "matmul", "dot",
    "Im2ColFn", "Col2ImFn", "im2col", "col2im", "conv2d",
    # comparison
    "EqFn", "GtFn", "LtFn", "eq", "gt", "lt",
]
