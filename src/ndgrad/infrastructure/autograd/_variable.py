"""
Value node of the autograd graph.

A `Variable` wraps an `NdArray` value and, when it takes part in a recorded
graph, the `Function` that produced it. Gradients are accumulated into
``Variable.grad`` by `Variable.backward`.

Accumulation contract
---------------------
Gradients are summed into ``.grad`` and never reset implicitly: calling
`backward` twice without `clear_grad` adds the gradients twice. Training
loops call `clear_grad` (and `unchain` to release the graph) between steps.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Any, Optional, Union

from ...domain._errors import ShapeMismatchError
from ...domain._shape import Shape
from ..ndarray import NdArray
from ._function import Function, as_array

logger = logging.getLogger(__name__)


def _functions():
    from .. import functions

    return functions


def as_variable(obj: Any) -> "Variable":
    """
    Return `obj` if it is a `Variable`, else wrap it as a constant.

    Constants have ``requires_grad=False`` and receive no gradient.
    """
    if isinstance(obj, Variable):
        return obj
    return Variable(as_array(obj), requires_grad=False)


class Variable:
    """
    Autograd-tracked wrapper around an `NdArray`.

    Parameters
    ----------
    data : NdArray | number | sequence | numpy.ndarray
        The value. Non-`NdArray` data is converted (scalars become shape
        ``()``).
    name : str, optional
        Label used in `repr` and debug logs.
    requires_grad : bool
        Whether gradients should be accumulated for this node.

    Attributes
    ----------
    data : NdArray
        The value.
    grad : NdArray or None
        Accumulated gradient, same shape as `data`, owned by this node.
    creator : Function or None
        The operation that produced this node while the graph was recorded.
    generation : int
        Graph depth (0 for leaves).
    """

    # Make NumPy defer to our reflected operators.
    __array_priority__ = 1000

    def __init__(
        self,
        data: Any,
        name: Optional[str] = None,
        requires_grad: bool = True,
    ) -> None:
        if isinstance(data, Variable):
            raise TypeError("Variable data must be an array, not another Variable")
        self.data: NdArray = as_array(data)
        self.name = name
        self.requires_grad = bool(requires_grad)
        self.grad: Optional[NdArray] = None
        self.creator: Optional[Function] = None
        self.generation: int = 0

    # ------------------------------------------------------------------
    # metadata
    # ------------------------------------------------------------------
    @property
    def shape(self) -> Shape:
        return self.data.shape

    @property
    def ndim(self) -> int:
        return self.data.ndim

    @property
    def size(self) -> int:
        return self.data.size

    @property
    def value(self) -> NdArray:
        """Alias of `data`."""
        return self.data

    def item(self) -> float:
        return self.data.item()

    def to_numpy(self):
        return self.data.to_numpy()

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        label = f", name={self.name!r}" if self.name else ""
        return f"Variable({self.data!r}{label}, requires_grad={self.requires_grad})"

    # ------------------------------------------------------------------
    # graph wiring
    # ------------------------------------------------------------------
    def set_creator(self, func: Function) -> None:
        """Link this node to the function that produced it."""
        self.creator = func
        self.generation = func.generation + 1
        self.requires_grad = True

    def clear_grad(self) -> None:
        """Drop the accumulated gradient."""
        self.grad = None

    def detach(self) -> "Variable":
        """
        Return a constant node with the same value and no graph history.
        """
        return Variable(self.data, name=self.name, requires_grad=False)

    def unchain(self) -> None:
        """
        Detach creator links from this node and, transitively, from every
        node behind it.

        Values and accumulated gradients are left untouched. Former
        intermediates become leaves.
        """
        stack = [self]
        seen: set[int] = set()
        released = 0
        while stack:
            var = stack.pop()
            func = var.creator
            if func is None:
                continue
            var.creator = None
            if id(func) in seen:
                continue
            seen.add(id(func))
            stack.extend(func.inputs)
            func.unchain()
            released += 1
        logger.debug("unchain(%s): released %d function nodes", self._label(), released)

    def _label(self) -> str:
        return self.name or f"Variable{tuple(self.shape)}"

    def _accumulate_grad(self, g: NdArray) -> None:
        if self.grad is None:
            self.grad = g.copy()
        else:
            self.grad.add_(g)

    # ------------------------------------------------------------------
    # reverse traversal
    # ------------------------------------------------------------------
    def backward(
        self,
        seed: Union[NdArray, "Variable", Any, None] = None,
        retain_grad: bool = True,
    ) -> None:
        """
        Backpropagate from this node through the recorded graph.

        Parameters
        ----------
        seed : NdArray, optional
            Gradient with respect to this node; must match its shape. May be
            omitted only when this node holds exactly one element, in which
            case a gradient of ones is used.
        retain_grad : bool
            Also accumulate gradients into intermediate nodes (nodes with a
            creator). Leaves that require grad always receive gradients.

        Raises
        ------
        ShapeMismatchError
            If the seed is missing for a multi-element output, if its shape
            differs from this node's shape, or if a function returns a
            gradient whose shape differs from its input.
        RuntimeError
            If a function returns the wrong number of gradients.

        Notes
        -----
        Every function is visited exactly once, in descending generation
        order, so a node's gradient is complete (summed over all consumers)
        before its creator runs. Results accumulate into ``.grad``; repeated
        calls add again.
        """
        if seed is None:
            if self.size != 1:
                raise ShapeMismatchError(
                    f"backward: a seed gradient is required for output of shape {self.shape}",
                    self.shape.dims,
                )
            seed_arr = NdArray.ones(self.shape)
        else:
            seed_arr = as_array(seed)
            if seed_arr.shape != self.shape:
                raise ShapeMismatchError(
                    f"backward: seed shape {seed_arr.shape} does not match output shape {self.shape}",
                    seed_arr.shape.dims,
                    self.shape.dims,
                )

        grads: dict[int, NdArray] = {id(self): seed_arr}
        nodes: dict[int, Variable] = {id(self): self}

        heap: list = []
        seen: set[int] = set()
        counter = itertools.count()

        def push(func: Optional[Function]) -> None:
            if func is None or id(func) in seen:
                return
            seen.add(id(func))
            heapq.heappush(heap, (-func.generation, next(counter), func))

        push(self.creator)
        visited = 0

        while heap:
            _, _, func = heapq.heappop(heap)
            gys = func.output_grads(grads)
            if gys is None:
                continue
            visited += 1

            gxs = func.backward(*gys)
            if not isinstance(gxs, tuple):
                gxs = (gxs,)
            if len(gxs) != len(func.inputs):
                raise RuntimeError(
                    f"{type(func).__name__}.backward must return one gradient per input. "
                    f"Got {len(gxs)} gradients for {len(func.inputs)} inputs."
                )

            for x, gx in zip(func.inputs, gxs):
                if gx is None or not x.requires_grad:
                    continue
                gx = as_array(gx)
                if gx.shape != x.shape:
                    raise ShapeMismatchError(
                        f"{type(func).__name__}.backward returned gradient of shape "
                        f"{gx.shape} for input of shape {x.shape}",
                        gx.shape.dims,
                        x.shape.dims,
                    )
                key = id(x)
                if key in grads:
                    grads[key] = grads[key].add(gx)
                else:
                    grads[key] = gx
                    nodes[key] = x
                push(x.creator)

        for key, var in nodes.items():
            if not var.requires_grad:
                continue
            if var.creator is not None and not retain_grad:
                continue
            var._accumulate_grad(grads[key])

        logger.debug(
            "backward(%s): visited %d function nodes, %d value nodes",
            self._label(),
            visited,
            len(nodes),
        )

    # ------------------------------------------------------------------
    # differentiable operations
    # ------------------------------------------------------------------
    def add(self, other: Any) -> "Variable":
        return _functions().add(self, other)

    def sub(self, other: Any) -> "Variable":
        return _functions().sub(self, other)

    def mul(self, other: Any) -> "Variable":
        return _functions().mul(self, other)

    def div(self, other: Any) -> "Variable":
        return _functions().div(self, other)

    def neg(self) -> "Variable":
        return _functions().neg(self)

    def pow(self, exponent: float) -> "Variable":
        return _functions().pow(self, exponent)

    def matmul(self, other: Any) -> "Variable":
        return _functions().matmul(self, other)

    def exp(self) -> "Variable":
        return _functions().exp(self)

    def log(self) -> "Variable":
        return _functions().log(self)

    def sqrt(self) -> "Variable":
        return _functions().sqrt(self)

    def square(self) -> "Variable":
        return _functions().square(self)

    def abs(self) -> "Variable":
        return _functions().abs(self)

    def sin(self) -> "Variable":
        return _functions().sin(self)

    def cos(self) -> "Variable":
        return _functions().cos(self)

    def tanh(self) -> "Variable":
        return _functions().tanh(self)

    def sigmoid(self) -> "Variable":
        return _functions().sigmoid(self)

    def relu(self) -> "Variable":
        return _functions().relu(self)

    def clip(self, min_value: float, max_value: float) -> "Variable":
        return _functions().clip(self, min_value, max_value)

    def softmax(self, axis: int = -1) -> "Variable":
        return _functions().softmax(self, axis=axis)

    def log_softmax(self, axis: int = -1) -> "Variable":
        return _functions().log_softmax(self, axis=axis)

    def reshape(self, *shape: Any) -> "Variable":
        if len(shape) == 1 and not isinstance(shape[0], int):
            shape = tuple(shape[0])
        return _functions().reshape(self, shape)

    def transpose(self, *axes: int) -> "Variable":
        if len(axes) == 1 and isinstance(axes[0], (tuple, list)):
            axes = tuple(axes[0])
        return _functions().transpose(self, axes or None)

    @property
    def T(self) -> "Variable":
        return self.transpose()

    def broadcast_to(self, shape: Any) -> "Variable":
        return _functions().broadcast_to(self, shape)

    def sum_to(self, shape: Any) -> "Variable":
        return _functions().sum_to(self, shape)

    def get_item(self, rows: Any = None, cols: Any = None) -> "Variable":
        return _functions().get_item(self, rows, cols)

    def squeeze(self, axis: Optional[int] = None) -> "Variable":
        return _functions().squeeze(self, axis)

    def unsqueeze(self, axis: int) -> "Variable":
        return _functions().unsqueeze(self, axis)

    def split(self, split_size: int, axis: int = 0) -> tuple:
        return _functions().split(self, split_size, axis=axis)

    def index_select(self, indices: Any, axis: int = 0) -> "Variable":
        return _functions().index_select(self, indices, axis=axis)

    def masked_fill(self, mask: Any, value: float) -> "Variable":
        return _functions().masked_fill(self, mask, value)

    def tril(self, k: int = 0) -> "Variable":
        return _functions().tril(self, k)

    def sum(self, axis: Optional[int] = None, keepdims: bool = False) -> "Variable":
        return _functions().sum(self, axis=axis, keepdims=keepdims)

    def mean(self, axis: Optional[int] = None, keepdims: bool = False) -> "Variable":
        return _functions().mean(self, axis=axis, keepdims=keepdims)

    def var(self, axis: Optional[int] = None, keepdims: bool = False) -> "Variable":
        return _functions().var(self, axis=axis, keepdims=keepdims)

    def max(self, axis: Optional[int] = None, keepdims: bool = False) -> "Variable":
        return _functions().max(self, axis=axis, keepdims=keepdims)

    def min(self, axis: Optional[int] = None, keepdims: bool = False) -> "Variable":
        return _functions().min(self, axis=axis, keepdims=keepdims)

    def top_k(self, k: int, axis: int = -1) -> tuple:
        """Differentiable values and constant float32 indices."""
        return _functions().top_k(self, k, axis=axis)

    def eq(self, other: Any) -> "Variable":
        return _functions().eq(self, other)

    def gt(self, other: Any) -> "Variable":
        return _functions().gt(self, other)

    def lt(self, other: Any) -> "Variable":
        return _functions().lt(self, other)

    # ------------------------------------------------------------------
    # operators
    # ------------------------------------------------------------------
    def __add__(self, other: Any) -> "Variable":
        return self.add(other)

    def __radd__(self, other: Any) -> "Variable":
        return _functions().add(other, self)

    def __sub__(self, other: Any) -> "Variable":
        return self.sub(other)

    def __rsub__(self, other: Any) -> "Variable":
        return _functions().sub(other, self)

    def __mul__(self, other: Any) -> "Variable":
        return self.mul(other)

    def __rmul__(self, other: Any) -> "Variable":
        return _functions().mul(other, self)

    def __truediv__(self, other: Any) -> "Variable":
        return self.div(other)

    def __rtruediv__(self, other: Any) -> "Variable":
        return _functions().div(other, self)

    def __pow__(self, exponent: float) -> "Variable":
        return self.pow(exponent)

    def __matmul__(self, other: Any) -> "Variable":
        return self.matmul(other)

    def __rmatmul__(self, other: Any) -> "Variable":
        return _functions().matmul(other, self)

    def __neg__(self) -> "Variable":
        return self.neg()
