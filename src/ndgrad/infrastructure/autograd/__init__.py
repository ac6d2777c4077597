"""
Autograd graph: value nodes (`Variable`) and operation nodes (`Function`).
"""

from ._function import Function, as_array
from ._variable import Variable, as_variable

__all__ = [
    Function.__name__,
    Variable.__name__,
    as_array.__name__,
    as_variable.__name__,
]
