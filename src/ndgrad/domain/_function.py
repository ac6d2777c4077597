"""
Differentiable-operation interface definitions.

This module defines the abstract base class for operation nodes in the
autograd graph. Concrete subclasses implement both the forward computation
(on plain arrays) and the matching backward computation (one gradient per
input, shaped like that input).

Graph wiring (recording inputs, linking outputs back to their creator,
generation bookkeeping) is not part of this contract; it is provided by the
infrastructure `Function` base class so that primitives only describe math.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Union

from ._ndarray import INdArray


class IFunction(ABC):
    """
    Abstract base class for differentiable operations.

    A function object represents a single node in the computation graph.
    Unlike stateless ``@staticmethod`` autograd functions, instances are
    created per call and may keep whatever forward state their backward rule
    needs (input shapes, saved outputs, masks) on ``self``.

    Notes
    -----
    - `forward` receives and returns arrays, never value nodes.
    - `backward` returns one entry per forward input, in order. An entry may
      be None for inputs that have no meaningful gradient (e.g. indices).
    """

    @abstractmethod
    def forward(self, *xs: INdArray) -> Union[INdArray, tuple[INdArray, ...]]:
        """
        Perform the forward computation.

        Parameters
        ----------
        *xs : INdArray
            Input arrays, in the order the function was called with.

        Returns
        -------
        INdArray or tuple[INdArray, ...]
            Output array, or a tuple of arrays for multi-output functions.
        """
        ...

    @abstractmethod
    def backward(
        self, *gys: INdArray
    ) -> Union[Optional[INdArray], tuple[Optional[INdArray], ...]]:
        """
        Compute gradients with respect to the inputs.

        Parameters
        ----------
        *gys : INdArray
            Upstream gradients, one per output.

        Returns
        -------
        INdArray or tuple[INdArray | None, ...]
            Gradient for each forward input. Single-input functions may
            return a bare array.
        """
        ...
