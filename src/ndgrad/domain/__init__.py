"""
Backend-independent definitions: shapes, errors, configuration and the
array / function interfaces.
"""

from ._errors import (
    NdGradError,
    ShapeMismatchError,
    DimensionMismatchError,
    IndexOutOfRangeError,
    RankViolationError,
)
from ._shape import Shape
from ._ndarray import INdArray
from ._function import IFunction
