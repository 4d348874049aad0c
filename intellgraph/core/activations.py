"""Activation utilities for IntellGraph.

Every ``*_prime`` helper is evaluated on the *activated* value ``a = f(z)``,
not on the raw pre-activation ``z``: a node overwrites its buffer with
``f(z)`` before the derivative is requested.
"""

from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

from .types import Array, UnaryFn


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid."""

    return 1.0 / (1.0 + np.exp(-x))


def sigmoid_prime(a: Array) -> Array:
    """Return ``f'(z)`` for the sigmoid given ``a = sigmoid(z)``."""

    return a * (1.0 - a)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def tanh_prime(a: Array) -> Array:
    return 1.0 - a**2


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_prime(a: Array) -> Array:
    return (a > 0).astype(a.dtype)


def identity(x: Array) -> Array:
    return x


def identity_prime(a: Array) -> Array:
    return np.ones_like(a)


_ACTIVATIONS: Dict[str, Tuple[UnaryFn, UnaryFn]] = {
    "sigmoid": (sigmoid, sigmoid_prime),
    "tanh": (tanh, tanh_prime),
    "relu": (relu, relu_prime),
    "identity": (identity, identity_prime),
}


def get(name: str) -> Tuple[UnaryFn, UnaryFn]:
    """Return the ``(activation, derivative)`` pair registered as ``name``."""

    try:
        return _ACTIVATIONS[name]
    except KeyError as exc:
        available = ", ".join(sorted(_ACTIVATIONS))
        raise KeyError(f"Unknown activation {name!r}. Available activations: {available}") from exc


def names():
    return sorted(_ACTIVATIONS)


__all__ = [
    "get",
    "identity",
    "identity_prime",
    "names",
    "relu",
    "relu_prime",
    "sigmoid",
    "sigmoid_prime",
    "tanh",
    "tanh_prime",
]
