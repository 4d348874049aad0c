"""Nodes: per-layer activation, bias and delta buffers plus their state machine.

A node's activation buffer is reused for three different quantities, tracked
by :class:`~intellgraph.core.types.ActState`:

``INIT``
    raw pre-activation sums, usually just written by an incoming edge;
``ACTIVATED``
    ``f(z)`` for the node's activation strategy ``f``;
``DERIVATIVE``
    ``f'`` evaluated on the activated value.

Moving to ``DERIVATIVE`` is destructive: the activated value is gone until
the next forward write.
"""

from __future__ import annotations

import logging
import warnings
from typing import Dict, Optional

import numpy as np

from . import initializers
from .errors import IllegalTransitionError, MissingStrategyError, ShapeMismatchError
from .params import NodeParameter
from .types import ActState, Array, UnaryFn

logger = logging.getLogger(__name__)


def _as_matrix(values, dtype, features: int) -> Array:
    """Copy ``values`` into a 2-D matrix.

    A 1-D argument is a row of batch values for a single-feature node and a
    column vector otherwise.
    """

    matrix = np.array(values, dtype=dtype, copy=True)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1) if features == 1 else matrix.reshape(-1, 1)
    if matrix.ndim != 2:
        raise ShapeMismatchError(f"Expected a 2-D matrix, got {matrix.ndim} dimensions")
    return matrix


class Node:
    """A layer's activation state for one batch."""

    def __init__(self, param: NodeParameter, *, dtype=np.float64) -> None:
        self._param = param.clone()
        self._dtype = np.dtype(dtype)
        features, batch = self._param.features, self._param.batch
        self._activation = np.zeros((features, batch), dtype=self._dtype)
        self._delta = np.zeros((features, batch), dtype=self._dtype)
        self._bias = np.zeros((features, 1), dtype=self._dtype)
        self._state = ActState.INIT

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id}, name={self._param.name!r}, "
            f"features={self.features}, batch={self.batch}, state={self._state.name})"
        )

    # ------------------------------------------------------------------
    # Accessors

    @property
    def param(self) -> NodeParameter:
        return self._param

    @property
    def id(self) -> int:
        return self._param.id

    @property
    def name(self) -> str:
        return self._param.name

    @property
    def features(self) -> int:
        return self._param.features

    @property
    def batch(self) -> int:
        return self._activation.shape[1]

    @property
    def state(self) -> ActState:
        return self._state

    @property
    def activation(self) -> Array:
        """Live activation buffer. Edges mutate it in place."""

        return self._activation

    @property
    def delta(self) -> Array:
        return self._delta

    @property
    def bias(self) -> Array:
        return self._bias

    @property
    def nabla_bias(self) -> Array:
        """Bias gradient averaged over the batch, as a column vector."""

        return self._delta.mean(axis=1, keepdims=True)

    def is_activated(self) -> bool:
        return self._state == ActState.ACTIVATED

    # ------------------------------------------------------------------
    # Mutators

    def set_activation(self, values) -> None:
        """Replace the activation buffer and fix the batch column count."""

        matrix = _as_matrix(values, self._dtype, self.features)
        if matrix.shape[0] != self.features:
            raise ShapeMismatchError(
                f"Node {self.id}: activation has {matrix.shape[0]} rows, "
                f"expected {self.features}"
            )
        self._check_bias_columns(matrix.shape[1])
        if matrix.shape[1] != self._delta.shape[1]:
            self._delta = np.zeros_like(matrix)
        self._activation = matrix
        self.to_init()

    def set_activation_value(self, value: float) -> None:
        self._activation.fill(value)
        self.to_init()

    def set_bias(self, values) -> None:
        """Set the bias as a column vector or a full ``[features x batch]`` matrix."""

        matrix = _as_matrix(values, self._dtype, self.features)
        if matrix.shape[0] != self.features:
            raise ShapeMismatchError(
                f"Node {self.id}: bias has {matrix.shape[0]} rows, expected {self.features}"
            )
        if matrix.shape[1] not in (1, self.batch):
            raise ShapeMismatchError(
                f"Node {self.id}: bias has {matrix.shape[1]} columns, "
                f"expected 1 or {self.batch}"
            )
        self._bias = matrix

    def set_delta(self, values) -> None:
        matrix = _as_matrix(values, self._dtype, self.features)
        if matrix.shape != self._activation.shape:
            raise ShapeMismatchError(
                f"Node {self.id}: delta shape {matrix.shape} does not match "
                f"activation shape {self._activation.shape}"
            )
        self._delta = matrix

    def reset(self, batch: Optional[int] = None) -> None:
        """Zero activation and delta, resizing them to ``batch`` columns if given."""

        batch = self.batch if batch is None else int(batch)
        if batch <= 0:
            raise ShapeMismatchError(f"Node {self.id}: batch must be positive, got {batch}")
        if batch != self.batch:
            self._check_bias_columns(batch)
            self._activation = np.zeros((self.features, batch), dtype=self._dtype)
            self._delta = np.zeros((self.features, batch), dtype=self._dtype)
        else:
            self._activation.fill(0.0)
            self._delta.fill(0.0)
        self.to_init()

    def apply_unary_functor(self, functor: Optional[UnaryFn]) -> None:
        """Map the activation buffer through ``functor``; the result counts as raw."""

        if functor is None:
            warnings.warn(
                f"Node {self.id}: functor passed to apply_unary_functor() is not defined",
                RuntimeWarning,
                stacklevel=2,
            )
            return
        self._activation[...] = functor(self._activation)
        self.to_init()

    def initialize_bias(self, functor: Optional[UnaryFn]) -> None:
        """Sample one value per feature and broadcast it across the batch."""

        if functor is None:
            warnings.warn(
                f"Node {self.id}: functor passed to initialize_bias() is not defined",
                RuntimeWarning,
                stacklevel=2,
            )
            return
        column = np.zeros((self.features, 1), dtype=self._dtype)
        initializers.apply(functor, column)
        if self._bias.shape[1] == 1:
            self._bias[...] = column
        else:
            self._bias[...] = np.broadcast_to(column, self._bias.shape)
        self.to_init()

    # ------------------------------------------------------------------
    # State machine

    def to_init(self) -> None:
        self._state = ActState.INIT

    def call_act_fxn(self) -> None:
        """Apply the activation strategy (``INIT -> ACTIVATED``)."""

        self.transition(ActState.ACTIVATED)

    def calc_act_prime(self) -> None:
        """Overwrite the activated value with its derivative (``-> DERIVATIVE``)."""

        self.transition(ActState.DERIVATIVE)

    def transition(self, state: ActState) -> None:
        """Advance to ``state``, applying every intermediate step in order.

        ``INIT`` is always reachable. Asking for an earlier state than the
        current one raises :class:`IllegalTransitionError`.
        """

        state = ActState(state)
        if state == ActState.INIT:
            self.to_init()
            return
        if self._state > state:
            raise IllegalTransitionError(
                f"Node {self.id}: cannot move from {self._state.name} back to {state.name}"
            )
        while self._state < state:
            if self._state == ActState.INIT:
                self._init_to_act()
            else:
                self._act_to_prime()

    def _init_to_act(self) -> None:
        act_fn = self._param.act_fn
        if act_fn is None:
            raise MissingStrategyError(f"Node {self.id}: activation function is not defined")
        self._activation[...] = act_fn(self._activation)
        self._state = ActState.ACTIVATED

    def _act_to_prime(self) -> None:
        act_prime_fn = self._param.act_prime_fn
        if act_prime_fn is None:
            raise MissingStrategyError(
                f"Node {self.id}: activation derivative function is not defined"
            )
        self._activation[...] = act_prime_fn(self._activation)
        self._state = ActState.DERIVATIVE

    # ------------------------------------------------------------------
    # Diagnostics

    def dump(self) -> Dict[str, object]:
        """Return copies of the node's matrices; does not touch state."""

        return {
            "id": self.id,
            "name": self.name,
            "state": self._state.name,
            "activation": self._activation.copy(),
            "bias": self._bias.copy(),
            "delta": self._delta.copy(),
        }

    def log_state(self, level: int = logging.INFO) -> None:
        if not logger.isEnabledFor(level):
            return
        logger.log(
            level,
            "%s %s activation (%s):\n%s\nbias:\n%s\ndelta:\n%s",
            type(self).__name__,
            self.id,
            self._state.name,
            np.array2string(self._activation),
            np.array2string(self._bias),
            np.array2string(self._delta),
        )

    def _check_bias_columns(self, batch: int) -> None:
        if self._bias.shape[1] not in (1, batch):
            raise ShapeMismatchError(
                f"Node {self.id}: bias has {self._bias.shape[1]} columns but batch is {batch}"
            )


class OutputNode(Node):
    """Terminal node that also owns the loss strategy."""

    def calc_loss(self, target) -> float:
        """Evaluate the loss of the activated value against ``target``."""

        loss_fn = self._param.loss_fn
        if loss_fn is None:
            raise MissingStrategyError(f"Node {self.id}: loss function is not defined")
        target = self._check_target(target)
        self.transition(ActState.ACTIVATED)
        return float(loss_fn(self._activation, target))

    def calc_delta(self, target) -> None:
        """Set ``delta = dL/da * f'(a)``, leaving the buffer in ``DERIVATIVE``."""

        loss_prime_fn = self._param.loss_prime_fn
        if loss_prime_fn is None:
            raise MissingStrategyError(
                f"Node {self.id}: loss derivative function is not defined"
            )
        target = self._check_target(target)
        self.transition(ActState.ACTIVATED)
        grad = np.asarray(loss_prime_fn(self._activation, target), dtype=self._dtype)
        if grad.shape != self._activation.shape:
            raise ShapeMismatchError(
                f"Node {self.id}: loss derivative has shape {grad.shape}, "
                f"expected {self._activation.shape}"
            )
        self.transition(ActState.DERIVATIVE)
        np.multiply(grad, self._activation, out=self._delta)

    def _check_target(self, target) -> Array:
        target = _as_matrix(target, self._dtype, self.features)
        if target.shape != self._activation.shape:
            raise ShapeMismatchError(
                f"Node {self.id}: target shape {target.shape} does not match "
                f"activation shape {self._activation.shape}"
            )
        return target


__all__ = ["Node", "OutputNode"]
