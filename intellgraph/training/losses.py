"""Loss strategies consumed by terminal nodes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

import numpy as np

from ..core.types import Array, LossFn, LossPrimeFn


@dataclass(frozen=True)
class Loss:
    """A loss and its derivative with respect to the activated output."""

    name: str
    fn: LossFn
    prime: LossPrimeFn

    def __call__(self, activation: Array, target: Array) -> float:
        return self.fn(activation, target)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn, prime: LossPrimeFn) -> None:
        self._registry[name] = Loss(name, fn, prime)

    def get(self, name: str) -> Loss:
        try:
            return self._registry[name]
        except KeyError as exc:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}") from exc

    def names(self) -> Iterable[str]:
        return sorted(self._registry)


REGISTRY = LossRegistry()

_EPS = 1e-12


def _batch_size(activation: Array) -> int:
    return activation.shape[1] if activation.ndim > 1 else 1


def l2(activation: Array, target: Array) -> float:
    """Half the squared error summed over features, averaged over the batch."""

    diff = activation - target
    return float(0.5 * np.sum(np.square(diff)) / _batch_size(activation))


def l2_prime(activation: Array, target: Array) -> Array:
    return activation - target


def bce(activation: Array, target: Array) -> float:
    """Binary cross entropy on probabilities, averaged over the batch."""

    probs = np.clip(activation, _EPS, 1.0 - _EPS)
    total = np.sum(target * np.log(probs) + (1.0 - target) * np.log(1.0 - probs))
    return float(-total / _batch_size(activation))


def bce_prime(activation: Array, target: Array) -> Array:
    probs = np.clip(activation, _EPS, 1.0 - _EPS)
    return (probs - target) / (probs * (1.0 - probs))


REGISTRY.register("l2", l2, l2_prime)
REGISTRY.register("bce", bce, bce_prime)
# Alias matching the squared-loss naming used by presets
REGISTRY.register("mse", l2, l2_prime)

__all__ = ["Loss", "LossRegistry", "REGISTRY", "bce", "bce_prime", "l2", "l2_prime"]
