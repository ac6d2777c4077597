"""
NdArray kernel mixins.

Each mixin groups one family of kernels; the concrete `NdArray` composes all
of them. Mixins never import `NdArray` itself and construct results through
the host's `_from_numpy` hook.
"""

from ._elementwise import NdArrayElementwiseMixin
from ._reduction import NdArrayReductionMixin
from ._shape_and_indexing import NdArrayShapeAndIndexingMixin
from ._matrix import NdArrayMatrixMixin
from ._convolution import NdArrayConvolutionMixin

__all__ = [
    NdArrayElementwiseMixin.__name__,
    NdArrayReductionMixin.__name__,
    NdArrayShapeAndIndexingMixin.__name__,
    NdArrayMatrixMixin.__name__,
    NdArrayConvolutionMixin.__name__,
]
