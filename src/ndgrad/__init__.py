"""
ndgrad: a dense float32 tensor engine with reverse-mode autograd.

Public surface
--------------
- `Shape`, `NdArray`: shapes, broadcasting and array kernels
- `Variable`, `Function`: define-by-run autograd graph
- `Config`, `no_grad`, `using_config`: graph-construction switches
- `ndgrad.functions`: differentiable primitives
"""

import logging

from .domain._errors import (
    NdGradError,
    ShapeMismatchError,
    DimensionMismatchError,
    IndexOutOfRangeError,
    RankViolationError,
)
from .domain._shape import Shape
from .domain.utils._config import Config, no_grad, using_config
from .infrastructure.ndarray import NdArray
from .infrastructure.autograd import Function, Variable, as_variable
from . import functions

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Shape",
    "NdArray",
    "Variable",
    "Function",
    "as_variable",
    "Config",
    "no_grad",
    "using_config",
    "NdGradError",
    "ShapeMismatchError",
    "DimensionMismatchError",
    "IndexOutOfRangeError",
    "RankViolationError",
    "functions",
]
