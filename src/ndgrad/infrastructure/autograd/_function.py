"""
Operation-node base class for the define-by-run autograd graph.

`Function` turns the math-only `IFunction` contract into a graph node:
calling a function instance runs `forward` on plain arrays and, when graph
construction is enabled and at least one input requires a gradient, links
the outputs back to the node.

Graph ownership
---------------
- An output `Variable` holds its creator strongly (``output.creator``).
- A `Function` holds its inputs strongly and its outputs through weak
  references.
- Inputs are strong references: an unnamed intermediate has no other
  owner between forward and backward. Dropping the output still releases
  the inputs, because nothing else points at the node.

Reachability is therefore driven entirely by who holds the output: dropping
(or unchaining) the final output releases every node behind it, and the
weak output links keep the graph free of reference cycles.

Saved state
-----------
Subclasses keep whatever backward needs on the instance. For the common
cases the base class offers `save_for_backward` / `saved_tensors` and a
`saved_meta` dict, released together with the inputs by `unchain`.
"""

from __future__ import annotations

import weakref
from typing import Any, Optional

from ...domain._function import IFunction
from ...domain.utils._config import Config
from ..ndarray import NdArray


def as_array(obj: Any) -> NdArray:
    """
    Lift scalars, sequences and NumPy arrays to an `NdArray`.

    `NdArray` instances are returned unchanged; `Variable`-like objects are
    unwrapped to their data.
    """
    if isinstance(obj, NdArray):
        return obj
    data = getattr(obj, "data", None)
    if isinstance(data, NdArray):
        return data
    return NdArray._coerce(obj)


class Function(IFunction):
    """
    Base class for differentiable operations (graph nodes).

    Subclasses implement `forward(*xs) -> NdArray | tuple[NdArray, ...]` and
    `backward(*gys) -> NdArray | tuple[NdArray | None, ...]`. Instances are
    single-use: create a new one per call.

    Attributes
    ----------
    inputs : tuple[Variable, ...]
        Input value nodes (set only when the graph is recorded).
    outputs : tuple[weakref.ref, ...]
        Weak references to the output value nodes.
    generation : int
        Max generation of the inputs; orders the reverse traversal.
    differentiable : bool
        Class flag. Non-differentiable functions never record a graph and
        always produce constant outputs.
    """

    differentiable: bool = True

    def __init__(self) -> None:
        self.inputs: tuple = ()
        self.outputs: tuple = ()
        self.generation: int = 0
        self.saved_tensors: tuple[NdArray, ...] = ()
        self.saved_meta: dict[str, Any] = {}
        self._output_shapes: tuple = ()

    def __call__(self, *inputs: Any):
        """
        Run the forward pass and record the graph when required.

        Parameters
        ----------
        *inputs : Variable | NdArray | number | sequence
            Non-`Variable` inputs are wrapped as constant value nodes.

        Returns
        -------
        Variable or tuple[Variable, ...]
            A single output, or a tuple for multi-output functions.
        """
        from ._variable import Variable, as_variable

        xs = tuple(as_variable(x) for x in inputs)
        ys = self.forward(*(x.data for x in xs))
        if not isinstance(ys, tuple):
            ys = (ys,)
        outputs = tuple(Variable(as_array(y), requires_grad=False) for y in ys)

        record = (
            self.differentiable
            and Config.enable_backprop
            and any(x.requires_grad for x in xs)
        )
        if record:
            self.generation = max(x.generation for x in xs)
            for out in outputs:
                out.set_creator(self)
            self.inputs = xs
            self.outputs = tuple(weakref.ref(out) for out in outputs)
            self._output_shapes = tuple(out.shape for out in outputs)
        else:
            self.release()

        return outputs if len(outputs) > 1 else outputs[0]

    # ------------------------------------------------------------------
    # saved state
    # ------------------------------------------------------------------
    def save_for_backward(self, *arrays: NdArray) -> None:
        """Keep arrays needed by `backward`."""
        self.saved_tensors = tuple(arrays)

    def release(self) -> None:
        """Drop saved arrays and graph links."""
        self.inputs = ()
        self.outputs = ()
        self.saved_tensors = ()
        self.saved_meta = {}

    def unchain(self) -> None:
        """
        Detach this node from the graph.

        Live outputs lose their creator link and the node drops its inputs
        and saved state.
        """
        for ref in self.outputs:
            out = ref()
            if out is not None and out.creator is self:
                out.creator = None
        self.release()

    # ------------------------------------------------------------------
    # helpers for the traversal
    # ------------------------------------------------------------------
    def output_grads(self, grads: dict) -> Optional[tuple[NdArray, ...]]:
        """
        Collect upstream gradients for this node from a per-call table.

        Outputs that received no gradient (or have been garbage-collected)
        contribute zeros. Returns None when no output received a gradient.
        """
        gys = []
        any_grad = False
        for ref, shape in zip(self.outputs, self._output_shapes):
            out = ref()
            g = None if out is None else grads.get(id(out))
            if g is None:
                g = NdArray.zeros(shape)
            else:
                any_grad = True
            gys.append(g)
        return tuple(gys) if any_grad else None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} gen={self.generation} inputs={len(self.inputs)}>"
