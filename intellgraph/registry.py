"""Node and edge factories keyed by type tag.

Factories can be registered either as decorators::

    @NODES.register("softsign")
    def make_softsign(param):
        ...

or directly::

    NODES.register("softsign", make_softsign)
"""

from __future__ import annotations

from typing import Callable, Dict, Generic, Iterable, TypeVar

from .core.activations import get as get_activation
from .core.edge import DenseEdge, Edge
from .core.node import Node, OutputNode
from .core.params import EdgeParameter, NodeParameter
from .training.losses import REGISTRY as LOSS_REGISTRY

F = TypeVar("F", bound=Callable)

NodeFactory = Callable[[NodeParameter], Node]
EdgeFactory = Callable[..., Edge]


class _Registry(Generic[F]):
    kind = "object"

    def __init__(self) -> None:
        self._registry: Dict[str, F] = {}

    def register(self, name: str, factory: F | None = None):
        def _decorator(func: F) -> F:
            self._registry[str(name)] = func
            return func

        if factory is not None:
            return _decorator(factory)
        return _decorator

    def get(self, name: str) -> F:
        try:
            return self._registry[name]
        except KeyError as exc:
            available = ", ".join(sorted(self._registry))
            raise KeyError(
                f"Unknown {self.kind} type {name!r}. Available {self.kind} types: {available}"
            ) from exc

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry


class NodeRegistry(_Registry[NodeFactory]):
    kind = "node"

    def create(self, name: str, param: NodeParameter, **kwargs) -> Node:
        return self.get(name)(param, **kwargs)


class EdgeRegistry(_Registry[EdgeFactory]):
    kind = "edge"

    def create(
        self, name: str, param: EdgeParameter, node_in: Node, node_out: Node, **kwargs
    ) -> Edge:
        return self.get(name)(param, node_in, node_out, **kwargs)


NODES = NodeRegistry()
EDGES = EdgeRegistry()


def _activation_node(activation: str) -> NodeFactory:
    act_fn, act_prime_fn = get_activation(activation)

    def _make(param: NodeParameter, **kwargs) -> Node:
        return Node(param.with_activation(act_fn, act_prime_fn), **kwargs)

    return _make


def _loss_node(activation: str, loss: str) -> NodeFactory:
    act_fn, act_prime_fn = get_activation(activation)
    loss_entry = LOSS_REGISTRY.get(loss)

    def _make(param: NodeParameter, **kwargs) -> OutputNode:
        configured = param.with_activation(act_fn, act_prime_fn).with_loss(
            loss_entry.fn, loss_entry.prime
        )
        return OutputNode(configured, **kwargs)

    return _make


# Nodes whose strategies come entirely from the parameter
NODES.register("activation", Node)
NODES.register("act_loss", OutputNode)
# Inputs arrive already activated, so they pass through unchanged
NODES.register("input", _activation_node("identity"))
NODES.register("sigmoid", _activation_node("sigmoid"))
NODES.register("tanh", _activation_node("tanh"))
NODES.register("relu", _activation_node("relu"))
NODES.register("sigmoid_l2", _loss_node("sigmoid", "l2"))
NODES.register("sigmoid_bce", _loss_node("sigmoid", "bce"))
NODES.register("linear_l2", _loss_node("identity", "l2"))

EDGES.register("dense", DenseEdge)


def create_node(name: str, param: NodeParameter, **kwargs) -> Node:
    """Return a new node of type ``name`` built from ``param``."""

    return NODES.create(name, param, **kwargs)


def create_edge(
    name: str, param: EdgeParameter, node_in: Node, node_out: Node, **kwargs
) -> Edge:
    """Return a new edge of type ``name`` wiring ``node_in`` to ``node_out``."""

    return EDGES.create(name, param, node_in, node_out, **kwargs)


__all__ = [
    "EDGES",
    "EdgeRegistry",
    "NODES",
    "NodeRegistry",
    "create_edge",
    "create_node",
]
