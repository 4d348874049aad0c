"""Edges: weight matrices connecting an input node to an output node."""

from __future__ import annotations

import logging
import warnings
from typing import Dict, Optional

import numpy as np

from . import initializers
from .errors import ShapeMismatchError
from .node import Node
from .params import EdgeParameter
from .types import ActState, Array, UnaryFn

logger = logging.getLogger(__name__)


class Edge:
    """Base class holding the weight matrix and its gradient.

    Subclasses implement :meth:`forward` and :meth:`backward`. Both nodes are
    wired at construction time and their feature counts must agree with the
    parameter's dims.
    """

    def __init__(
        self,
        param: EdgeParameter,
        node_in: Node,
        node_out: Node,
        *,
        weight: Optional[Array] = None,
        dtype=np.float64,
    ) -> None:
        self._param = param.clone()
        rows, cols = self._param.weight_shape
        if rows != node_in.features:
            raise ShapeMismatchError(
                f"Edge {self._param.id}: weight has {rows} rows but input node "
                f"{node_in.id} has {node_in.features} features"
            )
        if cols != node_out.features:
            raise ShapeMismatchError(
                f"Edge {self._param.id}: weight has {cols} columns but output node "
                f"{node_out.id} has {node_out.features} features"
            )
        self.node_in = node_in
        self.node_out = node_out
        self._weight = np.zeros((rows, cols), dtype=dtype)
        self._nabla_weight = np.zeros((rows, cols), dtype=dtype)
        if weight is not None:
            self.set_weight(weight)

    def __repr__(self) -> str:
        rows, cols = self._weight.shape
        return (
            f"{type(self).__name__}(id={self.id}, in={self.node_in.id}, "
            f"out={self.node_out.id}, weight={rows}x{cols})"
        )

    @property
    def param(self) -> EdgeParameter:
        return self._param

    @property
    def id(self) -> int:
        return self._param.id

    @property
    def weight(self) -> Array:
        """Live weight matrix; an optimizer may update it in place."""

        return self._weight

    @property
    def nabla_weight(self) -> Array:
        return self._nabla_weight

    def set_weight(self, values) -> None:
        matrix = np.asarray(values, dtype=self._weight.dtype)
        if matrix.shape != self._weight.shape:
            raise ShapeMismatchError(
                f"Edge {self.id}: weight shape {matrix.shape} does not match "
                f"{self._weight.shape}"
            )
        self._weight[...] = matrix

    def initialize_weight(self, functor: Optional[UnaryFn] = None) -> None:
        """Overwrite the weight with ``functor(weight)``.

        Without a functor the weight is sampled from a standard normal
        distribution and a ``RuntimeWarning`` is issued.
        """

        if functor is None:
            warnings.warn(
                f"Edge {self.id}: functor passed to initialize_weight() is not defined; "
                "initialising weight with a standard normal distribution",
                RuntimeWarning,
                stacklevel=2,
            )
            functor = initializers.normal(0.0, 1.0)
        initializers.apply(functor, self._weight)

    def forward(self) -> None:
        raise NotImplementedError

    def backward(self) -> None:
        raise NotImplementedError

    def dump(self) -> Dict[str, object]:
        """Return copies of the weight and its gradient; does not touch state."""

        return {
            "id": self.id,
            "name": self._param.name,
            "weight": self._weight.copy(),
            "nabla_weight": self._nabla_weight.copy(),
        }

    def log_state(self, level: int = logging.INFO) -> None:
        if not logger.isEnabledFor(level):
            return
        logger.log(
            level,
            "%s %s weight:\n%s\nnabla weight:\n%s",
            type(self).__name__,
            self.id,
            np.array2string(self._weight),
            np.array2string(self._nabla_weight),
        )


class DenseEdge(Edge):
    """Fully connected edge trained with backpropagation."""

    def forward(self) -> None:
        """Accumulate ``W^T a_in + b_out`` into the output node's buffer.

        The output buffer is added to rather than overwritten so a node may
        receive several incoming edges; whoever drives the sweep zeros it
        first. The output node is left in ``INIT``.
        """

        a_in = self.node_in.activation
        a_out = self.node_out.activation
        rows, cols = self._weight.shape
        if rows != a_in.shape[0]:
            raise ShapeMismatchError(
                f"Edge {self.id}: forward failed, weight rows {rows} != input "
                f"activation rows {a_in.shape[0]}"
            )
        if cols != a_out.shape[0]:
            raise ShapeMismatchError(
                f"Edge {self.id}: forward failed, weight columns {cols} != output "
                f"activation rows {a_out.shape[0]}"
            )
        if a_in.shape[1] != a_out.shape[1]:
            raise ShapeMismatchError(
                f"Edge {self.id}: forward failed, input batch {a_in.shape[1]} != "
                f"output batch {a_out.shape[1]}"
            )
        a_out += self._weight.T @ a_in + self.node_out.bias
        self.node_out.to_init()

    def backward(self) -> None:
        """Compute ``nabla_weight`` and propagate delta to the input node.

        Must run after the output node's delta is set and before the input
        node's activation has been turned into its derivative.
        """

        a_in = self.node_in.activation
        d_out = self.node_out.delta
        rows, cols = self._weight.shape
        if cols != d_out.shape[0]:
            raise ShapeMismatchError(
                f"Edge {self.id}: backward failed, weight columns {cols} != output "
                f"delta rows {d_out.shape[0]}"
            )
        if rows != a_in.shape[0]:
            raise ShapeMismatchError(
                f"Edge {self.id}: backward failed, weight rows {rows} != input "
                f"activation rows {a_in.shape[0]}"
            )
        if a_in.shape[1] != d_out.shape[1] or self.node_in.delta.shape != a_in.shape:
            raise ShapeMismatchError(
                f"Edge {self.id}: backward failed, batch sizes of input node "
                f"{self.node_in.id} and output node {self.node_out.id} disagree"
            )
        batch_size = a_in.shape[1]
        # nabla W = a_in delta_out^T / batch
        np.matmul(a_in, d_out.T, out=self._nabla_weight)
        self._nabla_weight /= batch_size
        # delta_in = (W delta_out) * f'(a_in)
        np.matmul(self._weight, d_out, out=self.node_in.delta)
        self.node_in.transition(ActState.DERIVATIVE)
        self.node_in.delta[...] *= self.node_in.activation


__all__ = ["DenseEdge", "Edge"]
