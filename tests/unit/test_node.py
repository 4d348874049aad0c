import logging

import numpy as np
import pytest

from intellgraph.core.activations import sigmoid, sigmoid_prime
from intellgraph.core.errors import (
    IllegalTransitionError,
    MissingStrategyError,
    ShapeMismatchError,
)
from intellgraph.core.initializers import constant
from intellgraph.core.node import Node, OutputNode
from intellgraph.core.params import NodeParameter
from intellgraph.core.types import ActState
from intellgraph.training.losses import l2, l2_prime


def _sigmoid_node(features=2, batch=3):
    param = NodeParameter(0, "hidden", (features, batch)).with_activation(sigmoid, sigmoid_prime)
    return Node(param)


def _raw(features=2, batch=3):
    return np.linspace(-1.5, 1.5, features * batch).reshape(features, batch)


def test_to_init_is_always_legal():
    node = _sigmoid_node()
    node.set_activation(_raw())
    for target in (ActState.INIT, ActState.ACTIVATED, ActState.DERIVATIVE):
        node.transition(target)
        node.transition(ActState.INIT)
        assert node.state == ActState.INIT


def test_advance_to_derivative_applies_both_steps_in_order():
    z = _raw()
    direct = _sigmoid_node()
    direct.set_activation(z)
    direct.transition(ActState.DERIVATIVE)

    stepped = _sigmoid_node()
    stepped.set_activation(z)
    stepped.call_act_fxn()
    stepped.calc_act_prime()

    assert direct.state == ActState.DERIVATIVE
    assert np.allclose(direct.activation, stepped.activation)
    assert np.allclose(direct.activation, sigmoid(z) * (1.0 - sigmoid(z)))


def test_same_state_is_noop():
    z = _raw()
    node = _sigmoid_node()
    node.set_activation(z)
    node.call_act_fxn()
    node.call_act_fxn()
    assert node.is_activated()
    assert np.allclose(node.activation, sigmoid(z))


def test_backward_transition_is_rejected():
    node = _sigmoid_node()
    node.set_activation(_raw())
    node.calc_act_prime()
    before = node.activation.copy()
    with pytest.raises(IllegalTransitionError):
        node.call_act_fxn()
    assert node.state == ActState.DERIVATIVE
    assert not node.is_activated()
    assert np.array_equal(node.activation, before)


def test_missing_activation_fails_without_touching_state():
    node = Node(NodeParameter(3, "bare", (2, 3)))
    z = _raw()
    node.set_activation(z)
    with pytest.raises(MissingStrategyError):
        node.call_act_fxn()
    assert node.state == ActState.INIT
    assert np.array_equal(node.activation, z)


def test_missing_derivative_stops_after_activation():
    node = Node(NodeParameter(4, "half", (2, 3)).with_activation(sigmoid, None))
    node.set_activation(_raw())
    with pytest.raises(MissingStrategyError):
        node.calc_act_prime()
    assert node.state == ActState.ACTIVATED


def test_set_activation_checks_rows_and_fixes_batch():
    node = _sigmoid_node(features=2, batch=3)
    with pytest.raises(ShapeMismatchError):
        node.set_activation(np.zeros((3, 3)))
    node.set_activation(np.ones((2, 5)))
    assert node.batch == 5
    assert node.delta.shape == (2, 5)
    assert node.state == ActState.INIT


def test_reset_zeroes_and_resizes():
    node = _sigmoid_node(features=2, batch=3)
    node.set_activation(np.ones((2, 3)))
    node.call_act_fxn()
    node.reset(4)
    assert node.activation.shape == (2, 4)
    assert not node.activation.any()
    assert node.state == ActState.INIT


def test_bias_initialisation_broadcasts_column():
    node = _sigmoid_node(features=3, batch=2)
    node.initialize_bias(constant(0.25))
    assert node.bias.shape == (3, 1)
    assert np.allclose(node.bias, 0.25)
    with pytest.warns(RuntimeWarning):
        node.initialize_bias(None)
    assert np.allclose(node.bias, 0.25)


def test_set_bias_validates_shape():
    node = _sigmoid_node(features=2, batch=3)
    node.set_bias([1.0, 2.0])
    assert node.bias.shape == (2, 1)
    node.set_bias(np.ones((2, 3)))
    with pytest.raises(ShapeMismatchError):
        node.set_bias(np.ones((2, 2)))


def test_apply_unary_functor_resets_state():
    node = _sigmoid_node()
    node.set_activation(np.ones((2, 3)))
    node.call_act_fxn()
    node.apply_unary_functor(lambda x: 2.0 * x)
    assert node.state == ActState.INIT
    assert np.allclose(node.activation, 2.0 * sigmoid(1.0))


def test_output_node_loss_and_delta():
    param = (
        NodeParameter(1, "out", (2, 3))
        .with_activation(sigmoid, sigmoid_prime)
        .with_loss(l2, l2_prime)
    )
    node = OutputNode(param)
    node.set_activation(np.zeros((2, 3)))
    target = np.ones((2, 3))

    loss = node.calc_loss(target)
    assert np.isclose(loss, 0.5 * 6 * 0.25 / 3)
    assert node.is_activated()

    node.calc_delta(target)
    assert node.state == ActState.DERIVATIVE
    assert np.allclose(node.delta, -0.5 * 0.25)
    assert node.nabla_bias.shape == (2, 1)
    assert np.allclose(node.nabla_bias, -0.125)


def test_output_node_requires_loss_strategies():
    node = OutputNode(NodeParameter(2, "out", (1, 2)).with_activation(sigmoid, sigmoid_prime))
    with pytest.raises(MissingStrategyError):
        node.calc_loss(np.zeros((1, 2)))
    with pytest.raises(MissingStrategyError):
        node.calc_delta(np.zeros((1, 2)))


def test_output_node_rejects_target_shape():
    param = (
        NodeParameter(1, "out", (2, 3))
        .with_activation(sigmoid, sigmoid_prime)
        .with_loss(l2, l2_prime)
    )
    node = OutputNode(param)
    with pytest.raises(ShapeMismatchError):
        node.calc_loss(np.zeros((3, 2)))


def test_dump_returns_copies():
    node = _sigmoid_node()
    node.set_activation(_raw())
    dumped = node.dump()
    dumped["activation"][...] = 42.0
    assert dumped["state"] == "INIT"
    assert not np.allclose(node.activation, 42.0)
    assert set(dumped) == {"id", "name", "state", "activation", "bias", "delta"}


def test_set_activation_value_fills_and_resets_state():
    node = _sigmoid_node()
    node.set_activation(_raw())
    node.call_act_fxn()
    node.set_activation_value(0.0)
    assert node.state == ActState.INIT
    assert np.allclose(node.activation, 0.0)
    node.call_act_fxn()
    assert np.allclose(node.activation, 0.5)


def test_single_feature_node_reads_flat_values_as_a_row():
    param = (
        NodeParameter(3, "out", (1, 3))
        .with_activation(sigmoid, sigmoid_prime)
        .with_loss(l2, l2_prime)
    )
    node = OutputNode(param)
    node.set_activation(np.zeros(3))
    assert node.activation.shape == (1, 3)
    loss = node.calc_loss(np.ones(3))
    assert loss == pytest.approx(0.5 * 3 * 0.25 / 3)
    node.calc_delta(np.ones(3))
    assert node.delta.shape == (1, 3)


def test_log_state_writes_matrices(caplog):
    node = _sigmoid_node()
    node.set_activation(_raw())
    with caplog.at_level(logging.INFO, logger="intellgraph.core.node"):
        node.log_state()
    assert "Node 0 activation (INIT)" in caplog.text
    assert "bias" in caplog.text
    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="intellgraph.core.node"):
        node.log_state(logging.DEBUG)
    assert caplog.text == ""
