"""
Immutable shape descriptor and broadcasting rules.

A `Shape` is an ordered tuple of positive dimension sizes. The empty tuple
describes a scalar (size 1). Shapes are compared structurally, both against
other `Shape` objects and against plain tuples, which keeps call sites that
pass `(2, 3)` interchangeable with `Shape.of(2, 3)`.

Besides storage metadata, this module owns the index arithmetic shared by
all kernels:

- `Shape.broadcast(a, b)` : NumPy-style trailing-edge broadcasting
- `Shape.can_broadcast_to` : one-directional broadcast check
- `Shape.index` / `Shape.multi_index` : row-major flat <-> multi index
"""

from __future__ import annotations

import operator
from typing import Iterable, Iterator, Union

from ._errors import IndexOutOfRangeError, ShapeMismatchError

ShapeLike = Union["Shape", int, Iterable[int]]


def _as_int(value, what: str) -> int:
    """
    Return `value` as an int without truncation.

    Integer-valued floats (e.g. `argmax` output) are accepted; fractional or
    non-finite values raise `TypeError`.
    """
    try:
        return operator.index(value)
    except TypeError:
        pass
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise TypeError(f"{what} must be an integer, got {value!r}") from None
    if not f.is_integer():
        raise TypeError(f"{what} must be integer-valued, got {value!r}")
    return int(f)


class Shape:
    """
    Immutable N-dimensional size vector.

    Parameters
    ----------
    dims : ShapeLike
        Dimension sizes. Accepts another `Shape`, a single int, or any
        iterable of ints.

    Raises
    ------
    ValueError
        If any dimension is not a positive integer.

    Notes
    -----
    - `size` is the product of dims; the scalar shape ``()`` has size 1.
    - Instances are hashable and may be used as dict keys.
    """

    __slots__ = ("_dims", "_strides")

    def __init__(self, dims: ShapeLike = ()) -> None:
        if isinstance(dims, Shape):
            normalized = dims._dims
        elif isinstance(dims, int):
            normalized = (dims,)
        else:
            normalized = tuple(dims)

        out = []
        for d in normalized:
            # bool is an int subclass; reject it explicitly
            if isinstance(d, bool) or int(d) != d or int(d) <= 0:
                raise ValueError(
                    f"shape dimensions must be positive integers, got {normalized!r}"
                )
            out.append(int(d))

        object.__setattr__(self, "_dims", tuple(out))

        strides = [1] * len(out)
        for i in range(len(out) - 2, -1, -1):
            strides[i] = strides[i + 1] * out[i + 1]
        object.__setattr__(self, "_strides", tuple(strides))

    def __setattr__(self, name, value) -> None:
        raise AttributeError("Shape is immutable")

    @classmethod
    def of(cls, *dims: ShapeLike) -> "Shape":
        """
        Build a shape from positional dims, e.g. ``Shape.of(2, 3)``.

        A single iterable or `Shape` argument is also accepted, so
        ``Shape.of((2, 3))`` and ``Shape.of(Shape.of(2, 3))`` are equivalent.
        """
        if len(dims) == 1 and not isinstance(dims[0], int):
            return cls(dims[0])
        return cls(dims)  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def dims(self) -> tuple[int, ...]:
        """Dimension sizes as a plain tuple."""
        return self._dims

    @property
    def ndim(self) -> int:
        """Number of dimensions (rank)."""
        return len(self._dims)

    @property
    def size(self) -> int:
        """Total element count; 1 for the scalar shape."""
        n = 1
        for d in self._dims:
            n *= d
        return n

    @property
    def strides(self) -> tuple[int, ...]:
        """Row-major element strides."""
        return self._strides

    def dimension(self, axis: int) -> int:
        """
        Return the size of one axis (negative axes count from the end).

        Raises
        ------
        IndexOutOfRangeError
            If `axis` is not a valid axis of this shape.
        """
        return self._dims[self.normalize_axis(axis)]

    @property
    def row(self) -> int:
        """Second-to-last dimension (1 for rank < 2)."""
        return self._dims[-2] if len(self._dims) >= 2 else 1

    @property
    def column(self) -> int:
        """Last dimension (1 for scalars)."""
        return self._dims[-1] if self._dims else 1

    @property
    def is_scalar(self) -> bool:
        return self.size == 1

    @property
    def is_vector(self) -> bool:
        return len(self._dims) == 1 or (
            len(self._dims) == 2 and (self._dims[0] == 1 or self._dims[1] == 1)
        )

    @property
    def is_matrix(self) -> bool:
        return len(self._dims) == 2

    def normalize_axis(self, axis: int) -> int:
        """
        Map a possibly-negative axis to ``0 <= axis < ndim``.

        Raises
        ------
        IndexOutOfRangeError
            If `axis` is out of bounds.
        """
        nd = len(self._dims)
        ax = _as_int(axis, "axis")
        if ax < 0:
            ax += nd
        if ax < 0 or ax >= nd:
            raise IndexOutOfRangeError(axis, nd, what="axis")
        return ax

    # ------------------------------------------------------------------
    # Index arithmetic
    # ------------------------------------------------------------------
    def index(self, *indices: int) -> int:
        """
        Convert a multi-index into a row-major flat offset.

        Raises
        ------
        IndexOutOfRangeError
            If the index count differs from the rank or any component is
            out of bounds. Negative components are not wrapped.
        TypeError
            If a component is fractional.
        """
        if len(indices) == 1 and isinstance(indices[0], (tuple, list)):
            indices = tuple(indices[0])
        if len(indices) != len(self._dims):
            raise IndexOutOfRangeError(len(indices), len(self._dims), what="index rank")
        flat = 0
        for i, (idx, dim, stride) in enumerate(zip(indices, self._dims, self._strides)):
            idx = _as_int(idx, f"index on axis {i}")
            if idx < 0 or idx >= dim:
                raise IndexOutOfRangeError(idx, dim, what=f"index on axis {i}")
            flat += idx * stride
        return flat

    def multi_index(self, flat: int) -> tuple[int, ...]:
        """
        Convert a row-major flat offset into a multi-index.

        Raises
        ------
        IndexOutOfRangeError
            If `flat` is outside ``[0, size)``.
        """
        flat = _as_int(flat, "flat index")
        if flat < 0 or flat >= self.size:
            raise IndexOutOfRangeError(flat, self.size, what="flat index")
        out = []
        rem = flat
        for stride in self._strides:
            q, rem = divmod(rem, stride)
            out.append(q)
        return tuple(out)

    # ------------------------------------------------------------------
    # Broadcasting
    # ------------------------------------------------------------------
    @staticmethod
    def broadcast(a: ShapeLike, b: ShapeLike) -> "Shape":
        """
        Compute the broadcast shape of two operands.

        Dimensions are aligned from the trailing edge. Two aligned dims are
        compatible iff they are equal or one of them is 1; the result takes
        the larger one. Missing leading dims behave as 1.

        Raises
        ------
        ShapeMismatchError
            If any aligned pair is incompatible.
        """
        sa = a if isinstance(a, Shape) else Shape(a)
        sb = b if isinstance(b, Shape) else Shape(b)
        if sa == sb:
            return sa

        n = max(sa.ndim, sb.ndim)
        da = (1,) * (n - sa.ndim) + sa.dims
        db = (1,) * (n - sb.ndim) + sb.dims

        out = []
        for x, y in zip(da, db):
            if x == y or y == 1:
                out.append(x)
            elif x == 1:
                out.append(y)
            else:
                raise ShapeMismatchError(
                    f"shapes {sa} and {sb} cannot be broadcast together", sa.dims, sb.dims
                )
        return Shape(out)

    def can_broadcast_to(self, target: ShapeLike) -> bool:
        """
        Return True if this shape can be stretched to `target`.

        Unlike `broadcast`, this is one-directional: only dims of `self` may
        be stretched, and `self` may not have a higher rank than `target`.
        """
        t = target if isinstance(target, Shape) else Shape(target)
        if self.ndim > t.ndim:
            return False
        padded = (1,) * (t.ndim - self.ndim) + self._dims
        return all(s == d or s == 1 for s, d in zip(padded, t.dims))

    # ------------------------------------------------------------------
    # Dunder protocol
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._dims)

    def __iter__(self) -> Iterator[int]:
        return iter(self._dims)

    def __getitem__(self, item):
        return self._dims[item]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Shape):
            return self._dims == other._dims
        if isinstance(other, tuple):
            return self._dims == other
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    def __hash__(self) -> int:
        return hash(self._dims)

    def __repr__(self) -> str:
        return f"Shape{self._dims}" if len(self._dims) != 1 else f"Shape({self._dims[0]},)"

    def __str__(self) -> str:
        return "(" + ", ".join(str(d) for d in self._dims) + ")"
