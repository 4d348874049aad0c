import numpy as np
import pytest

from intellgraph.core import activations
from intellgraph.core.node import Node, OutputNode
from intellgraph.core.params import NodeParameter
from intellgraph.registry import EDGES, NODES, create_node
from intellgraph.training.losses import REGISTRY, bce, bce_prime, l2, l2_prime


def test_l2_values():
    a = np.array([[1.0, 2.0], [0.0, 0.0]])
    y = np.zeros((2, 2))
    assert l2(a, y) == pytest.approx(0.5 * 5.0 / 2)
    assert np.allclose(l2_prime(a, y), a)


def test_bce_prime_matches_numerical_derivative():
    a = np.array([[0.2, 0.7], [0.9, 0.4]])
    y = np.array([[0.0, 1.0], [1.0, 0.0]])
    eps = 1e-6
    batch = a.shape[1]
    numeric = np.zeros_like(a)
    for idx in np.ndindex(a.shape):
        up, down = a.copy(), a.copy()
        up[idx] += eps
        down[idx] -= eps
        numeric[idx] = batch * (bce(up, y) - bce(down, y)) / (2 * eps)
    assert np.allclose(bce_prime(a, y), numeric, atol=1e-5)


def test_loss_registry_lookup():
    assert {"l2", "bce", "mse"} <= set(REGISTRY.names())
    assert REGISTRY.get("mse").prime is l2_prime
    with pytest.raises(KeyError, match="Available losses"):
        REGISTRY.get("hinge")


def test_activation_derivatives_use_activated_values():
    z = np.linspace(-2, 2, 5)
    for name in ("sigmoid", "tanh"):
        fn, prime = activations.get(name)
        eps = 1e-6
        numeric = (fn(z + eps) - fn(z - eps)) / (2 * eps)
        assert np.allclose(prime(fn(z)), numeric, atol=1e-6)
    with pytest.raises(KeyError):
        activations.get("swish")


def test_registry_builds_typed_nodes():
    param = NodeParameter(0, "x", (2, 3))
    sig = create_node("sigmoid", param)
    assert type(sig) is Node
    assert sig.param.act_fn is activations.sigmoid
    assert param.act_fn is None

    out = create_node("sigmoid_l2", param)
    assert isinstance(out, OutputNode)
    assert out.param.loss_fn is l2

    assert "dense" in EDGES
    assert {"input", "sigmoid", "tanh", "relu", "sigmoid_l2", "act_loss"} <= set(NODES.names())


def test_registry_unknown_tag_and_decorator():
    with pytest.raises(KeyError, match="Available node types"):
        create_node("lstm", NodeParameter(0, dims=(1,)))

    @NODES.register("test_softsign")
    def _make(param, **kwargs):
        return Node(param.with_activation(lambda x: x / (1 + np.abs(x)), None), **kwargs)

    node = create_node("test_softsign", NodeParameter(0, dims=(1, 1)))
    node.set_activation([[1.0]])
    node.call_act_fxn()
    assert node.activation[0, 0] == pytest.approx(0.5)
