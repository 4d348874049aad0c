"""Core numerical primitives for IntellGraph."""

from . import activations, errors, initializers, params, types
from .edge import DenseEdge, Edge
from .node import Node, OutputNode

__all__ = [
    "DenseEdge",
    "Edge",
    "Node",
    "OutputNode",
    "activations",
    "errors",
    "initializers",
    "params",
    "types",
]
