import numpy as np
import pytest

from intellgraph.core.initializers import constant, normal
from intellgraph.training.pipelines import build_chain

EPS = 1e-6
TOL = 1e-4


def _numeric_weight_grad(chain, edge, x, y):
    grad = np.zeros_like(edge.weight)
    for idx in np.ndindex(edge.weight.shape):
        original = edge.weight[idx]
        edge.weight[idx] = original + EPS
        up = chain.evaluate(x, y)
        edge.weight[idx] = original - EPS
        down = chain.evaluate(x, y)
        edge.weight[idx] = original
        grad[idx] = (up - down) / (2 * EPS)
    return grad


def _numeric_bias_grad(chain, node, x, y):
    grad = np.zeros_like(node.bias)
    for idx in np.ndindex(node.bias.shape):
        original = node.bias[idx]
        node.bias[idx] = original + EPS
        up = chain.evaluate(x, y)
        node.bias[idx] = original - EPS
        down = chain.evaluate(x, y)
        node.bias[idx] = original
        grad[idx] = (up - down) / (2 * EPS)
    return grad


def _data(d_in, d_out, batch, seed):
    rng = np.random.default_rng(seed)
    return rng.normal(size=(d_in, batch)), rng.uniform(size=(d_out, batch))


def test_single_edge_matches_finite_differences():
    model = {"d_in": 3, "hidden": [], "d_out": 2, "output": "sigmoid_l2"}
    chain = build_chain(model, batch_size=4, seed=0)
    chain.edges[0].initialize_weight(normal(std=0.5, seed=11))
    x, y = _data(3, 2, 4, seed=5)

    chain.step(x, y)
    analytic = chain.edges[0].nabla_weight.copy()
    numeric = _numeric_weight_grad(chain, chain.edges[0], x, y)
    assert np.allclose(analytic, numeric, atol=TOL)


@pytest.mark.parametrize(
    "hidden_type, output_type",
    [
        ("sigmoid", "sigmoid_l2"),
        ("tanh", "sigmoid_bce"),
        ("sigmoid", "linear_l2"),
        ("relu", "linear_l2"),
    ],
)
def test_multi_layer_chain_matches_finite_differences(hidden_type, output_type):
    model = {
        "d_in": 3,
        "hidden": [4, 3],
        "d_out": 2,
        "activation": hidden_type,
        "output": output_type,
        "weight_init": {"name": "normal", "std": 0.7},
    }
    chain = build_chain(model, batch_size=5, seed=2)
    for node in chain.nodes[1:]:
        node.initialize_bias(constant(0.1))
    x, y = _data(3, 2, 5, seed=9)

    chain.step(x, y)
    analytic_weights = [edge.nabla_weight.copy() for edge in chain.edges]
    analytic_biases = [node.nabla_bias.copy() for node in chain.nodes[1:]]

    for edge, analytic in zip(chain.edges, analytic_weights):
        numeric = _numeric_weight_grad(chain, edge, x, y)
        assert np.allclose(analytic, numeric, atol=TOL)
    for node, analytic in zip(chain.nodes[1:], analytic_biases):
        numeric = _numeric_bias_grad(chain, node, x, y)
        assert np.allclose(analytic, numeric, atol=TOL)
