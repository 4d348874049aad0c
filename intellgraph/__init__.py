"""IntellGraph public API."""

from .core import activations, initializers  # noqa: F401
from .core.edge import DenseEdge, Edge
from .core.errors import (
    ChainError,
    IllegalTransitionError,
    IntellGraphError,
    MissingStrategyError,
    ShapeMismatchError,
)
from .core.node import Node, OutputNode
from .core.params import EdgeParameter, NodeParameter
from .core.types import ActState
from .registry import EDGES, NODES, create_edge, create_node
from .training.chain import Chain, Link
from .training.pipelines import build_chain, load_preset, presets, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "ActState",
    "Chain",
    "ChainError",
    "DenseEdge",
    "EDGES",
    "Edge",
    "EdgeParameter",
    "IllegalTransitionError",
    "IntellGraphError",
    "Link",
    "MissingStrategyError",
    "NODES",
    "Node",
    "NodeParameter",
    "OutputNode",
    "ShapeMismatchError",
    "activations",
    "build_chain",
    "create_edge",
    "create_node",
    "initializers",
    "load_preset",
    "presets",
    "run_pipeline",
]
