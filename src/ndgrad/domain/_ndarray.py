"""
Array interface definitions.

`INdArray` captures the minimal, backend-agnostic surface that the autograd
layer relies on: shape metadata, a NumPy view for interop, and the handful
of arithmetic and broadcast primitives used by gradient routing. It uses
structural typing so that any array implementation exposing these members
satisfies it.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import numpy as np

from ._shape import Shape, ShapeLike


@runtime_checkable
class INdArray(Protocol):
    """
    Dense float32 N-dimensional array interface.

    Notes
    -----
    The protocol intentionally lists only what the graph machinery calls;
    the concrete `NdArray` exposes a much larger kernel surface.
    """

    @property
    def shape(self) -> Shape:
        """Shape of the array."""
        ...

    @property
    def ndim(self) -> int:
        ...

    @property
    def size(self) -> int:
        ...

    def to_numpy(self) -> np.ndarray:
        """Return the data as a NumPy float32 array."""
        ...

    def copy(self) -> "INdArray":
        ...

    def add(self, other: Any) -> "INdArray":
        ...

    def mul(self, other: Any) -> "INdArray":
        ...

    def sum_to(self, shape: ShapeLike) -> "INdArray":
        """Reverse broadcasting: collapse stretched dims down to `shape`."""
        ...

    def broadcast_to(self, shape: ShapeLike) -> "INdArray":
        ...
