"""
Functional differentiable primitives.

    import ndgrad.functions as F

    y = F.softmax(F.matmul(x, w), axis=-1)
"""

from .infrastructure.functions import *  # noqa: F401,F403
from .infrastructure.functions import __all__  # noqa: F401
