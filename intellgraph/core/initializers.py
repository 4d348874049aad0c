"""Elementwise weight and bias initialisation functors."""

from __future__ import annotations

import numpy as np

from .types import Array, UnaryFn


def normal(mean: float = 0.0, std: float = 1.0, seed: int | None = None) -> UnaryFn:
    """Return a functor that samples ``N(mean, std)`` for every entry."""

    rng = np.random.default_rng(seed)

    def _sample(x: Array) -> Array:
        return rng.normal(mean, std, size=x.shape)

    return _sample


def uniform(low: float = -1.0, high: float = 1.0, seed: int | None = None) -> UnaryFn:
    rng = np.random.default_rng(seed)

    def _sample(x: Array) -> Array:
        return rng.uniform(low, high, size=x.shape)

    return _sample


def constant(value: float) -> UnaryFn:
    def _fill(x: Array) -> Array:
        return np.full_like(x, value, dtype=float)

    return _fill


def zeros() -> UnaryFn:
    return constant(0.0)


def apply(functor: UnaryFn, target: Array) -> None:
    """Overwrite ``target`` in place with ``functor(target)``."""

    values = np.asarray(functor(target), dtype=target.dtype)
    if values.shape != target.shape:
        raise ValueError(
            f"Initialiser returned shape {values.shape}, expected {target.shape}"
        )
    target[...] = values


__all__ = ["apply", "constant", "normal", "uniform", "zeros"]
