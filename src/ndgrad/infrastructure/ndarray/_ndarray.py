"""
Concrete dense array implementation (NumPy CPU backend).

This module provides `NdArray`, the float32 N-dimensional array that every
higher layer of ndgrad is written against. It satisfies the domain-level
`INdArray` protocol and stores its elements in a single contiguous NumPy
buffer described by an immutable `Shape`.

Design notes
------------
- The class body only holds storage, construction, factories and data
  access. Kernels live in cohesive mixins (elementwise, reduction, shape and
  indexing, matrix, convolution) that construct results through
  `self._from_numpy(...)` rather than importing this module.
- Arrays have value semantics: every kernel returns a new array and leaves
  its operands untouched. The few in-place methods end with an underscore
  (`add_`, `fill_`, `set_`, `set_item_`).
- `reshape` returns an array that shares the buffer of its source. Because
  arrays are not mutated in normal use this is unobservable, but in-place
  methods applied to one of them are visible through the other.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

import numpy as np

from ...domain._errors import ShapeMismatchError
from ...domain._shape import Shape, ShapeLike
from .mixins import (
    NdArrayConvolutionMixin,
    NdArrayElementwiseMixin,
    NdArrayMatrixMixin,
    NdArrayReductionMixin,
    NdArrayShapeAndIndexingMixin,
)

Number = Union[int, float]

DTYPE = np.float32


class NdArray(
    NdArrayElementwiseMixin,
    NdArrayReductionMixin,
    NdArrayShapeAndIndexingMixin,
    NdArrayMatrixMixin,
    NdArrayConvolutionMixin,
):
    """
    Dense float32 N-dimensional array.

    Parameters
    ----------
    data : Any, optional
        Initial contents. Accepts a Python scalar, a (nested) sequence of
        numbers, a NumPy array, or another `NdArray` (copied). Defaults to
        the scalar 0.
    shape : ShapeLike, optional
        If given, `data` is reshaped to it (element counts must match), or,
        when `data` is a scalar, the scalar is broadcast to fill it.

    Raises
    ------
    ShapeMismatchError
        If `shape` is given and incompatible with `data`.
    ValueError
        If `data` is ragged or contains non-numeric entries.

    Notes
    -----
    - The buffer is always C-contiguous float32.
    - `NdArray(np_array)` copies; `NdArray._from_numpy` adopts without copy
      and is what kernels use internally.
    """

    __slots__ = ("_data", "_shape")

    # Make NumPy defer to our reflected operators (e.g. `np_scalar * arr`).
    __array_priority__ = 1000

    def __init__(self, data: Any = 0.0, shape: Optional[ShapeLike] = None) -> None:
        if isinstance(data, NdArray):
            arr = data._data.copy()
        else:
            try:
                arr = np.array(data, dtype=DTYPE)
            except (TypeError, ValueError) as e:
                raise ValueError(f"cannot build NdArray from {type(data)!r}: {e}") from e

        if shape is not None:
            target = Shape(shape)
            if arr.size == 1 and target.size != 1:
                arr = np.full(target.dims, arr.reshape(()), dtype=DTYPE)
            elif arr.size != target.size:
                raise ShapeMismatchError(
                    f"cannot place {arr.size} elements into shape {target}",
                    arr.shape,
                    target.dims,
                )
            else:
                arr = arr.reshape(target.dims)

        self._data = np.asarray(arr, dtype=DTYPE, order="C")
        self._shape = Shape(self._data.shape)

    # ------------------------------------------------------------------
    # Internal construction helpers (used by mixins)
    # ------------------------------------------------------------------
    @classmethod
    def _from_numpy(cls, arr: np.ndarray) -> "NdArray":
        """
        Wrap a NumPy array without copying when it is already contiguous
        float32.
        """
        out = cls.__new__(cls)
        out._data = np.asarray(arr, dtype=DTYPE, order="C")
        out._shape = Shape(out._data.shape)
        return out

    @classmethod
    def _coerce(cls, other: Any) -> "NdArray":
        """
        Lift a scalar, sequence or NumPy array to an `NdArray`.

        Existing arrays are returned unchanged.

        Raises
        ------
        TypeError
            If `other` is not numeric data.
        """
        if isinstance(other, NdArray):
            return other
        if isinstance(other, (bool, int, float, np.number, np.ndarray, list, tuple)):
            return cls(other)
        raise TypeError(f"unsupported operand type for NdArray: {type(other)!r}")

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def zeros(cls, shape: ShapeLike) -> "NdArray":
        """Array of zeros with the given shape."""
        return cls._from_numpy(np.zeros(Shape(shape).dims, dtype=DTYPE))

    @classmethod
    def ones(cls, shape: ShapeLike) -> "NdArray":
        """Array of ones with the given shape."""
        return cls._from_numpy(np.ones(Shape(shape).dims, dtype=DTYPE))

    @classmethod
    def full(cls, shape: ShapeLike, value: Number) -> "NdArray":
        """Array filled with a constant value."""
        return cls._from_numpy(np.full(Shape(shape).dims, value, dtype=DTYPE))

    @classmethod
    def eye(cls, n: int, m: Optional[int] = None) -> "NdArray":
        """2-D identity matrix of shape (n, m) (square when `m` is None)."""
        Shape.of(n, n if m is None else m)  # validates
        return cls._from_numpy(np.eye(n, m, dtype=DTYPE))

    @classmethod
    def uniform(
        cls,
        shape: ShapeLike,
        low: float = 0.0,
        high: float = 1.0,
        seed: Optional[int] = None,
    ) -> "NdArray":
        """
        Samples from U[low, high).

        Parameters
        ----------
        shape : ShapeLike
            Output shape.
        low, high : float
            Interval bounds.
        seed : int, optional
            Seed for a private generator; reproducible when given.
        """
        rng = np.random.default_rng(seed)
        return cls._from_numpy(rng.uniform(low, high, size=Shape(shape).dims))

    @classmethod
    def normal(
        cls,
        shape: ShapeLike,
        mean: float = 0.0,
        std: float = 1.0,
        seed: Optional[int] = None,
    ) -> "NdArray":
        """Samples from N(mean, std^2)."""
        rng = np.random.default_rng(seed)
        return cls._from_numpy(rng.normal(mean, std, size=Shape(shape).dims))

    @classmethod
    def linspace(cls, start: float, stop: float, num: int) -> "NdArray":
        """`num` evenly spaced values over [start, stop], as a (1, num) row."""
        Shape.of(num)
        return cls._from_numpy(np.linspace(start, stop, num, dtype=DTYPE).reshape(1, num))

    @classmethod
    def from_data(cls, data: Any) -> "NdArray":
        """Build an array from nested literal data (alias of the constructor)."""
        return cls(data)

    def like(self, value: Number) -> "NdArray":
        """Constant-filled array with this array's shape."""
        return type(self).full(self._shape, value)

    # ------------------------------------------------------------------
    # Metadata and data access
    # ------------------------------------------------------------------
    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def ndim(self) -> int:
        return self._shape.ndim

    @property
    def size(self) -> int:
        return self._shape.size

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def buffer(self) -> np.ndarray:
        """
        Flat view over the underlying storage.

        Writing through this view mutates the array.
        """
        return self._data.reshape(-1)

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the data as a NumPy float32 array."""
        return self._data.copy()

    def tolist(self) -> Union[float, list]:
        return self._data.tolist()

    def item(self) -> float:
        """
        Return the single element as a Python float.

        Raises
        ------
        ShapeMismatchError
            If the array holds more than one element.
        """
        if self.size != 1:
            raise ShapeMismatchError(
                f"item() requires exactly one element, got shape {self._shape}",
                self._shape.dims,
            )
        return float(self._data.reshape(-1)[0])

    def get(self, *indices: int) -> float:
        """Return one element addressed by a full multi-index."""
        return float(self.buffer[self._shape.index(*indices)])

    def set_(self, value: Number, *indices: int) -> "NdArray":
        """In-place: write one element addressed by a full multi-index."""
        self.buffer[self._shape.index(*indices)] = value
        return self

    def fill_(self, value: Number) -> "NdArray":
        """In-place: set every element to `value`."""
        self._data.fill(value)
        return self

    def add_(self, other: Any) -> "NdArray":
        """
        In-place accumulate `other` into this array.

        Raises
        ------
        ShapeMismatchError
            If `other` cannot be broadcast to this array's shape.
        """
        o = self._coerce(other)
        if not o.shape.can_broadcast_to(self._shape):
            raise ShapeMismatchError(
                f"cannot accumulate shape {o.shape} into shape {self._shape}",
                o.shape.dims,
                self._shape.dims,
            )
        with np.errstate(all="ignore"):
            self._data += o._data
        return self

    def copy(self) -> "NdArray":
        return type(self)._from_numpy(self._data.copy())

    def is_finite(self) -> bool:
        """True iff no element is NaN or +/-Infinity."""
        return bool(np.isfinite(self._data).all())

    def allclose(self, other: Any, rtol: float = 1e-5, atol: float = 1e-6) -> bool:
        """Approximate equality with broadcasting (NaNs compare unequal)."""
        o = self._coerce(other)
        try:
            Shape.broadcast(self._shape, o.shape)
        except ShapeMismatchError:
            return False
        return bool(np.allclose(self._data, o._data, rtol=rtol, atol=atol))

    # ------------------------------------------------------------------
    # Python protocol
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        if self.ndim == 0:
            raise TypeError("len() of a 0-d NdArray")
        return self._shape[0]

    def __iter__(self) -> Iterable["NdArray"]:
        for row in self._data:
            yield type(self)._from_numpy(row.copy())

    def __float__(self) -> float:
        return self.item()

    def __eq__(self, other: object) -> bool:
        """Structural equality: same shape and identical elements."""
        if not isinstance(other, NdArray):
            return NotImplemented
        return self._shape == other._shape and bool(np.array_equal(self._data, other._data))

    def __ne__(self, other: object) -> bool:
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = np.array2string(self._data, precision=6, separator=", ")
        return f"NdArray({body}, shape={self._shape})"

    def __getstate__(self) -> dict:
        return {"data": self._data}

    def __setstate__(self, state: dict) -> None:
        self._data = np.asarray(state["data"], dtype=DTYPE, order="C")
        self._shape = Shape(self._data.shape)
