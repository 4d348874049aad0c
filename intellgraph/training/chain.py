"""Chains of node-edge-node links and their forward/backward sweeps."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence

from ..core.edge import Edge
from ..core.errors import ChainError
from ..core.node import Node, OutputNode
from ..core.types import Array

logger = logging.getLogger(__name__)

Gradients = Dict[str, Array]


@dataclass(frozen=True)
class Link:
    """One ``(node_in, edge, node_out)`` step of a chain."""

    node_in: Node
    edge: Edge
    node_out: Node

    @classmethod
    def from_edge(cls, edge: Edge) -> "Link":
        return cls(edge.node_in, edge, edge.node_out)


class Chain:
    """Ordered sequence of links forming a strict path.

    The chain is the only component that knows the link order, so it owns the
    sweep discipline: edges run front-to-back on :meth:`forward` and
    back-to-front on :meth:`backward`. Nodes are destructive (see
    :mod:`intellgraph.core.node`), so calling edges in any other order gives
    wrong numbers rather than an error.
    """

    def __init__(
        self,
        links: Sequence[Link | Edge],
        callbacks: Sequence[object] | None = None,
    ) -> None:
        resolved = [item if isinstance(item, Link) else Link.from_edge(item) for item in links]
        self._validate(resolved)
        self._links: List[Link] = resolved
        self.callbacks = list(callbacks or [])
        self._nodes: List[Node] = [resolved[0].node_in] + [link.node_out for link in resolved]
        self._forwarded = False
        self._steps = 0

    @staticmethod
    def _validate(links: Sequence[Link]) -> None:
        if not links:
            raise ChainError("A chain needs at least one link")
        seen = {id(links[0].node_in)}
        for idx, link in enumerate(links):
            if link.edge.node_in is not link.node_in or link.edge.node_out is not link.node_out:
                raise ChainError(f"Link {idx}: edge {link.edge.id} is not wired to the link's nodes")
            if idx > 0 and links[idx - 1].node_out is not link.node_in:
                raise ChainError(
                    f"Link {idx}: input node {link.node_in.id} is not the output node "
                    f"{links[idx - 1].node_out.id} of the previous link"
                )
            if id(link.node_out) in seen:
                raise ChainError(f"Link {idx}: node {link.node_out.id} appears twice in the chain")
            seen.add(id(link.node_out))

    # ------------------------------------------------------------------
    # Accessors

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[Link]:
        return iter(self._links)

    @property
    def links(self) -> List[Link]:
        return list(self._links)

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        return [link.edge for link in self._links]

    @property
    def input_node(self) -> Node:
        return self._nodes[0]

    @property
    def output_node(self) -> Node:
        return self._nodes[-1]

    @property
    def steps(self) -> int:
        return self._steps

    # ------------------------------------------------------------------
    # Sweeps

    def forward(self, inputs) -> Array:
        """Run the forward sweep and return a copy of the terminal activation.

        ``inputs`` is ``[features x batch]`` and is taken as already activated;
        the input node is never passed through its activation function here.
        Each node is activated right after the edge that writes it, so the
        next edge reads ``f(z)`` rather than the raw sum.
        """

        self._forwarded = False
        self.input_node.set_activation(inputs)
        batch = self.input_node.batch
        for node in self._nodes[1:]:
            node.reset(batch)
        for link in self._links:
            link.edge.forward()
            link.node_out.call_act_fxn()
        self._forwarded = True
        return self.output_node.activation.copy()

    predict = forward

    def evaluate(self, inputs, targets) -> float:
        """Forward sweep followed by the terminal loss, without gradients."""

        self.forward(inputs)
        return self._terminal().calc_loss(targets)

    def backward(self, targets) -> float:
        """Run the backward sweep against ``targets`` and return the batch loss."""

        terminal = self._terminal()
        if not self._forwarded:
            raise ChainError("backward() requires a forward() of the same batch first")
        loss = terminal.calc_loss(targets)
        terminal.calc_delta(targets)
        for link in reversed(self._links):
            link.edge.backward()
        self._forwarded = False
        self._steps += 1
        logger.debug("Chain step %d loss=%.6f", self._steps, loss)
        self._emit_step(self._steps, {"loss": loss})
        return loss

    def step(self, inputs, targets) -> float:
        self.forward(inputs)
        return self.backward(targets)

    def gradients(self) -> Gradients:
        """Gradients readable by an external optimizer after :meth:`backward`."""

        grads: Gradients = {}
        for idx, link in enumerate(self._links):
            grads[f"W{idx}"] = link.edge.nabla_weight.copy()
            grads[f"b{idx}"] = link.node_out.nabla_bias
        return grads

    # ------------------------------------------------------------------
    # Diagnostics

    def dump(self) -> Dict[str, object]:
        return {
            "nodes": [node.dump() for node in self._nodes],
            "edges": [edge.dump() for edge in self.edges],
        }

    def log_state(self, level: int = logging.INFO) -> None:
        for node in self._nodes:
            node.log_state(level)
        for edge in self.edges:
            edge.log_state(level)

    # ------------------------------------------------------------------
    # Internal helpers

    def _terminal(self) -> OutputNode:
        node = self.output_node
        if not isinstance(node, OutputNode):
            raise ChainError(f"Terminal node {node.id} has no loss strategy; use an OutputNode")
        return node

    def _emit_step(self, step: int, metrics: Dict[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(step, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(step, metrics)


def total_parameters(chain: Chain) -> int:
    return int(sum(edge.weight.size for edge in chain.edges)) + int(
        sum(node.bias.shape[0] for node in chain.nodes[1:])
    )


__all__ = ["Chain", "Gradients", "Link", "total_parameters"]
