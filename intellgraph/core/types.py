"""Core typing contracts for IntellGraph."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

import numpy as np

Array = np.ndarray

# Elementwise strategy: maps an array to an array of the same shape.
UnaryFn = Callable[[Array], Array]
# Loss strategy: (activation, target) -> scalar loss.
LossFn = Callable[[Array, Array], float]
# Loss derivative strategy: (activation, target) -> dL/da.
LossPrimeFn = Callable[[Array, Array], Array]


class ActState(IntEnum):
    """Meaning of the values stored in a node's activation buffer.

    The ordering matters: a node may only advance to a later state, or be
    reset to ``INIT``.
    """

    INIT = 0
    ACTIVATED = 1
    DERIVATIVE = 2


@dataclass(frozen=True)
class Batch:
    """A single mini-batch laid out as ``[features x batch]`` matrices."""

    inputs: Array
    targets: Array


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`intellgraph.training.pipelines.run_pipeline`."""

    steps: int
    final_loss: float
    metrics_path: str
    manifest_path: str


__all__ = ["ActState", "Array", "Batch", "LossFn", "LossPrimeFn", "RunResult", "UnaryFn"]
