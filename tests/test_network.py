"""
test_network.py
~~~~~~~~~~~~~~~

Unit tests for the feed-forward network: construction, inference,
backpropagation and text serialization.
"""

import io
import pytest
import os
import sys

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mlpnet.errors import (
    ConfigurationError,
    MalformedStreamError,
    ShapeMismatchError
)
from mlpnet.matrix import Matrix
from mlpnet.network import NeuralNet, sigmoid, sigmoid_prime


XOR_SAMPLES = [
    (Matrix.column([0, 0]), Matrix.column([0])),
    (Matrix.column([0, 1]), Matrix.column([1])),
    (Matrix.column([1, 0]), Matrix.column([1])),
    (Matrix.column([1, 1]), Matrix.column([0])),
]


@pytest.fixture
def simple_network():
    """Create a simple 3-layer network for testing."""
    return NeuralNet([3, 4, 2])


@pytest.fixture
def random_network():
    """Create a randomly initialized 3-layer network."""
    return NeuralNet([3, 4, 2], init='random', seed=42)


def snapshot(net):
    return [w.copy() for w in net.weights], [b.copy() for b in net.biases]


@pytest.mark.unit
class TestActivation:
    """Test the sigmoid helpers."""

    def test_sigmoid_values(self):
        assert sigmoid(0.0) == 0.5
        assert sigmoid(50.0) == pytest.approx(1.0)
        assert sigmoid(-50.0) == pytest.approx(0.0)

    def test_sigmoid_prime_at_pre_activation(self):
        """Test that the derivative is s(z)(1 - s(z)), not an inverse."""
        assert sigmoid_prime(0.0) == 0.25
        z = 1.3
        assert sigmoid_prime(z) == pytest.approx(sigmoid(z) * (1 - sigmoid(z)))


@pytest.mark.unit
class TestConstruction:
    """Test network construction."""

    def test_layer_shapes(self, simple_network):
        """Test weight and bias shapes for layer sizes [3, 4, 2]."""
        assert simple_network.weights[0].shape == (4, 3)
        assert simple_network.weights[1].shape == (2, 4)
        assert simple_network.biases[0].shape == (4, 1)
        assert simple_network.biases[1].shape == (2, 1)
        assert simple_network.num_layers == 3

    def test_zero_initialization(self, simple_network):
        for matrix in simple_network.weights + simple_network.biases:
            assert matrix == Matrix(*matrix.shape)

    def test_random_initialization_range(self, random_network):
        for matrix in random_network.weights + random_network.biases:
            values = matrix.to_array()
            assert np.all(values >= 0.0)
            assert np.all(values < 1.0)
        assert random_network.weights[0] != Matrix(4, 3)

    def test_random_initialization_reproducible(self):
        a = NeuralNet([5, 3, 2], init='random', seed=7)
        b = NeuralNet([5, 3, 2], init='random', seed=7)
        c = NeuralNet([5, 3, 2], init='random', seed=8)
        assert a.weights == b.weights
        assert a.biases == b.biases
        assert a.weights != c.weights

    def test_explicit_generator(self):
        a = NeuralNet([2, 2], init='random', rng=np.random.default_rng(3))
        b = NeuralNet([2, 2], init='random', seed=3)
        assert a.weights == b.weights

    @pytest.mark.parametrize('layer_sizes', [[], [10], [3, 0, 2], [3, -1], [2.5, 3]])
    def test_invalid_layer_sizes(self, layer_sizes):
        with pytest.raises(ConfigurationError):
            NeuralNet(layer_sizes)

    def test_unknown_init_mode(self):
        with pytest.raises(ConfigurationError):
            NeuralNet([2, 2], init='gaussian')


@pytest.mark.unit
class TestClassify:
    """Test feed-forward inference."""

    def test_zero_network_outputs_half(self, simple_network):
        output = simple_network.classify(Matrix.column([0.3, 0.1, 0.9]))
        assert output.tolist() == [[0.5], [0.5]]

    def test_classify_is_pure(self, random_network):
        """Test that classify gives identical bits and leaves the network."""
        before = snapshot(random_network)
        inputs = Matrix.column([0.2, 0.4, 0.6])
        first = random_network.classify(inputs)
        second = random_network.classify(inputs)
        assert first == second
        assert snapshot(random_network) == before

    def test_wrong_input_shape(self, simple_network):
        with pytest.raises(ShapeMismatchError):
            simple_network.classify(Matrix.column([1, 2]))

    def test_evaluate(self):
        net = NeuralNet([1, 2])
        net.biases[0] = Matrix.column([1.0, -1.0])
        samples = [
            (Matrix.column([0]), Matrix.column([1, 0])),
            (Matrix.column([0]), Matrix.column([0, 1])),
        ]
        assert net.evaluate(samples) == 1


@pytest.mark.unit
class TestLearn:
    """Test backpropagation and the gradient step."""

    def test_single_neuron_step(self):
        """Test one hand-computed update of a 1-1 network."""
        net = NeuralNet([1, 1])
        net.learn(Matrix.column([1.0]), Matrix.column([1.0]), 1.0)
        # z = 0, a = 0.5, delta = (0.5 - 1) * 0.25
        assert net.weights[0].tolist() == [[0.125]]
        assert net.biases[0].tolist() == [[0.125]]

    def test_learn_changes_state(self, random_network):
        before = snapshot(random_network)
        random_network.learn(
            Matrix.column([0.5, 0.1, 0.9]), Matrix.column([1, 0]), 0.5
        )
        assert snapshot(random_network) != before

    def test_zero_learning_rate_keeps_state(self, random_network):
        before = snapshot(random_network)
        random_network.learn(
            Matrix.column([0.5, 0.1, 0.9]), Matrix.column([1, 0]), 0.0
        )
        assert snapshot(random_network) == before

    def test_backprop_does_not_mutate(self, random_network):
        before = snapshot(random_network)
        nabla_b, nabla_w = random_network.backprop(
            Matrix.column([0.5, 0.1, 0.9]), Matrix.column([1, 0])
        )
        assert snapshot(random_network) == before
        assert [b.shape for b in nabla_b] == [(4, 1), (2, 1)]
        assert [w.shape for w in nabla_w] == [(4, 3), (2, 4)]

    def test_gradients_match_finite_differences(self):
        """Test backprop against a numerical derivative of the cost."""
        net = NeuralNet([3, 4, 2], init='random', seed=11)
        inputs = Matrix.column([0.3, -0.7, 0.2])
        expected = Matrix.column([1, 0])
        nabla_b, nabla_w = net.backprop(inputs, expected)

        eps = 1e-6
        for params, grads in ((net.weights, nabla_w), (net.biases, nabla_b)):
            for lyr, matrix in enumerate(params):
                for row in range(matrix.height()):
                    for col in range(matrix.width()):
                        original = matrix[row, col]
                        matrix[row, col] = original + eps
                        plus = net.cost(inputs, expected)
                        matrix[row, col] = original - eps
                        minus = net.cost(inputs, expected)
                        matrix[row, col] = original
                        numeric = (plus - minus) / (2 * eps)
                        assert grads[lyr][row, col] == pytest.approx(
                            numeric, rel=1e-4, abs=1e-9
                        )

    def test_apply_gradients_matches_learn(self):
        a = NeuralNet([3, 4, 2], init='random', seed=5)
        b = NeuralNet([3, 4, 2], init='random', seed=5)
        inputs, expected = Matrix.column([1, 0, 1]), Matrix.column([0, 1])
        a.learn(inputs, expected, 0.7)
        b.apply_gradients(*b.backprop(inputs, expected), 0.7)
        assert a.weights == b.weights
        assert a.biases == b.biases

    def test_apply_gradients_wrong_count(self, simple_network):
        with pytest.raises(ValueError):
            simple_network.apply_gradients([Matrix(4, 1)], [Matrix(4, 3)], 0.1)

    def test_wrong_expected_shape(self, simple_network):
        with pytest.raises(ShapeMismatchError):
            simple_network.learn(Matrix.column([1, 2, 3]), Matrix.column([1]))

    def test_wrong_input_shape(self, simple_network):
        with pytest.raises(ShapeMismatchError):
            simple_network.learn(Matrix(3, 2), Matrix.column([1, 0]))


@pytest.mark.integration
class TestXOR:
    """Train a 2-2-1 network on XOR."""

    def total_cost(self, net):
        return sum(net.cost(x, y) for x, y in XOR_SAMPLES)

    def test_loss_decreases(self):
        net = NeuralNet([2, 2, 1], init='random', seed=0)
        losses = [self.total_cost(net)]
        for _ in range(10):
            for _ in range(200):
                for inputs, expected in XOR_SAMPLES:
                    net.learn(inputs, expected, 0.5)
            losses.append(self.total_cost(net))

        assert losses[-1] < losses[0]
        for previous, current in zip(losses, losses[1:]):
            assert current <= previous + 1e-12


@pytest.mark.unit
class TestSerialization:
    """Test the network text format."""

    def test_format(self):
        net = NeuralNet([1, 1])
        assert net.dumps() == (
            "1 2\n1.0 1.0\n\n"
            "1 1\n0.0\n\n"
            "1 1\n0.0\n\n"
        )
        assert str(net) == net.dumps()

    def test_round_trip(self, random_network):
        random_network.learn(
            Matrix.column([0.5, 0.1, 0.9]), Matrix.column([1, 0]), 0.5
        )
        loaded = NeuralNet.loads(random_network.dumps())
        assert loaded.layer_sizes == [3, 4, 2]
        assert loaded.weights == random_network.weights
        assert loaded.biases == random_network.biases

    def test_biases_written_before_weights(self):
        net = NeuralNet([2, 1])
        net.biases[0] = Matrix.column([9.0])
        net.weights[0] = Matrix.from_rows([[1.0, 2.0]])
        text = net.dumps()
        assert text.index("9.0") < text.index("1.0 2.0")

    def test_reads_integer_formatted_values(self):
        """Test loading text with integer sizes and trailing spaces."""
        text = (
            "1 3\n2 1 1 \n\n"
            "1 1\n0.5 \n\n"
            "1 1\n-2 \n\n"
            "1 2\n3 4 \n\n"
            "1 1\n1 \n\n"
        )
        net = NeuralNet.loads(text)
        assert net.layer_sizes == [2, 1, 1]
        assert net.biases[0].tolist() == [[0.5]]
        assert net.weights[0].tolist() == [[3.0, 4.0]]

    def test_read_from_stream(self, random_network):
        stream = io.StringIO()
        random_network.write(stream)
        stream.seek(0)
        assert NeuralNet.read(stream).weights == random_network.weights

    def test_truncated(self, random_network):
        text = random_network.dumps()
        with pytest.raises(MalformedStreamError):
            NeuralNet.loads(text[:len(text) // 2])

    def test_mismatched_matrices(self):
        text = "1 2\n1 1\n\n1 1\n0\n\n2 1\n0 0\n\n"
        with pytest.raises(MalformedStreamError):
            NeuralNet.loads(text)

    def test_huge_matrix_header(self):
        """Test that an oversized matrix header fails as a malformed stream."""
        text = "1 2\n2 1\n\n10000000000 10000000000\n0.5\n"
        with pytest.raises(MalformedStreamError):
            NeuralNet.loads(text)

    def test_single_layer_rejected(self):
        with pytest.raises(ConfigurationError):
            NeuralNet.loads("1 1\n3\n")

    def test_save_and_load_file(self, random_network, tmp_path):
        path = str(tmp_path / "net.txt")
        random_network.save(path)
        loaded = NeuralNet.load(path)
        assert loaded.weights == random_network.weights
        assert loaded.biases == random_network.biases
