"""Shape and strategy descriptors used to construct nodes and edges.

Parameters are frozen dataclasses. A node or edge keeps its own
:meth:`clone` of the parameter it was built from, so neither dims nor
strategy functions can be changed under a live object. The ``with_*``
helpers return modified copies and can be chained::

    param = NodeParameter(1, "hidden", (4, 8)).with_activation(sigmoid, sigmoid_prime)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .types import LossFn, LossPrimeFn, UnaryFn


def _normalise_dims(dims, field_name: str) -> Tuple[int, ...]:
    try:
        values = tuple(int(d) for d in dims)
    except TypeError as exc:
        raise TypeError(f"{field_name} must be a sequence of ints") from exc
    if not 1 <= len(values) <= 2:
        raise ValueError(f"{field_name} must hold one or two entries, got {values}")
    if any(v <= 0 for v in values):
        raise ValueError(f"{field_name} must be positive, got {values}")
    return values


@dataclass(frozen=True)
class NodeParameter:
    """Dimensions plus activation and loss strategies of one node.

    Attributes
    ----------
    id:
        Identifier used in diagnostics.
    name:
        Free-form label.
    dims:
        ``(features,)`` or ``(features, batch)``. The batch entry only sizes
        the buffers allocated at construction; the first forward write of a
        batch fixes the actual column count.
    act_fn / act_prime_fn:
        Elementwise activation and its derivative, the latter expressed in
        terms of the activated value.
    loss_fn / loss_prime_fn:
        Only meaningful for terminal nodes.
    """

    id: int
    name: str = ""
    dims: Tuple[int, ...] = (1,)
    act_fn: Optional[UnaryFn] = None
    act_prime_fn: Optional[UnaryFn] = None
    loss_fn: Optional[LossFn] = None
    loss_prime_fn: Optional[LossPrimeFn] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "dims", _normalise_dims(self.dims, "dims"))

    @property
    def features(self) -> int:
        return self.dims[0]

    @property
    def batch(self) -> int:
        return self.dims[1] if len(self.dims) > 1 else 1

    def clone(self) -> "NodeParameter":
        return copy.deepcopy(self)

    def with_dims(self, dims) -> "NodeParameter":
        return replace(self, dims=tuple(dims))

    def with_activation(
        self, act_fn: Optional[UnaryFn], act_prime_fn: Optional[UnaryFn]
    ) -> "NodeParameter":
        return replace(self, act_fn=act_fn, act_prime_fn=act_prime_fn)

    def with_loss(
        self, loss_fn: Optional[LossFn], loss_prime_fn: Optional[LossPrimeFn]
    ) -> "NodeParameter":
        return replace(self, loss_fn=loss_fn, loss_prime_fn=loss_prime_fn)


@dataclass(frozen=True)
class EdgeParameter:
    """Dimensions of the two nodes an edge connects."""

    id: int
    name: str = ""
    dims_in: Tuple[int, ...] = (1,)
    dims_out: Tuple[int, ...] = (1,)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dims_in", _normalise_dims(self.dims_in, "dims_in"))
        object.__setattr__(self, "dims_out", _normalise_dims(self.dims_out, "dims_out"))

    @property
    def weight_shape(self) -> Tuple[int, int]:
        return self.dims_in[0], self.dims_out[0]

    def clone(self) -> "EdgeParameter":
        return copy.deepcopy(self)

    def with_dims(self, dims_in, dims_out) -> "EdgeParameter":
        return replace(self, dims_in=tuple(dims_in), dims_out=tuple(dims_out))


__all__ = ["EdgeParameter", "NodeParameter"]
