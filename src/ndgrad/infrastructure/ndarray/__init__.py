"""
Dense float32 array implementation.
"""

from ._ndarray import NdArray

__all__ = [NdArray.__name__]
