"""
network.py
~~~~~~~~~~

A feed-forward sigmoid neural network trained by online stochastic
gradient descent.  The backpropagation follows Michael Nielsen's
network from http://neuralnetworksanddeeplearning.com/ with every
numeric step delegated to :class:`mlpnet.matrix.Matrix`.

Layer ``l`` (counting from the first non-input layer) owns a weight
matrix of shape ``layer_sizes[l + 1] x layer_sizes[l]`` and a bias
column of shape ``layer_sizes[l + 1] x 1``.

A network is not safe to train from several threads at once: ``learn``
replaces the weight and bias matrices in place.  Callers that want to
parallelise can compute gradients with ``backprop`` on each worker and
apply them from a single owner with ``apply_gradients``.
"""

import io
import logging
import numbers
from typing import Iterable, List, Optional, Sequence, TextIO, Tuple

import numpy as np

from mlpnet.errors import ConfigurationError, MalformedStreamError
from mlpnet.matrix import Matrix, iter_tokens

logger = logging.getLogger(__name__)

DEFAULT_LEARNING_RATE = 0.3
INIT_MODES = ('zero', 'random')

MatrixList = List[Matrix]


def sigmoid(x):
    """The logistic function 1 / (1 + e^-x)."""
    return 1.0 / (1.0 + np.exp(-x))


def sigmoid_prime(z):
    """Derivative of the sigmoid evaluated at the pre-activation ``z``."""
    s = sigmoid(z)
    return s * (1.0 - s)


def _validate_layer_sizes(layer_sizes: Iterable) -> List[int]:
    sizes = list(layer_sizes)
    if len(sizes) < 2:
        raise ConfigurationError(
            f"A network needs at least an input and an output layer, "
            f"got layer sizes {sizes}"
        )
    for size in sizes:
        if (isinstance(size, bool) or not isinstance(size, numbers.Integral)
                or size < 1):
            raise ConfigurationError(
                f"Layer sizes must be positive integers, got {sizes}"
            )
    return [int(size) for size in sizes]


class NeuralNet:
    """
    Multilayer perceptron with sigmoid activations.

    Args:
        layer_sizes: Widths of every layer, input first and output last
        init: ``'zero'`` fills weights and biases with 0.0; ``'random'``
            draws them uniformly from [0, 1).  Zero filling makes every
            neuron in a layer learn the same thing, so hidden layers stay
            symmetric; use ``'random'`` for anything beyond toy problems.
        seed: Seed for the generator used by ``'random'``
        rng: Generator to draw from instead of one built from ``seed``

    Raises:
        ConfigurationError: If fewer than two layers are given, a size is
            not a positive integer, or ``init`` is unknown

    Example:
        >>> net = NeuralNet([784, 30, 10], init='random', seed=7)
        >>> net.classify(Matrix(784, 1)).shape
        (10, 1)
    """

    def __init__(
        self,
        layer_sizes: Sequence[int],
        init: str = 'zero',
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.layer_sizes = _validate_layer_sizes(layer_sizes)
        if init not in INIT_MODES:
            raise ConfigurationError(
                f"init must be one of {INIT_MODES}, got {init!r}"
            )
        if init == 'random' and rng is None:
            rng = np.random.default_rng(seed)
        self.biases, self.weights = self._init_biases_and_weights(
            init, rng
        )
        logger.debug(
            f"Created network with layer sizes {self.layer_sizes} "
            f"({init} initialization)"
        )

    def _init_biases_and_weights(
        self,
        init: str,
        rng: Optional[np.random.Generator]
    ) -> Tuple[MatrixList, MatrixList]:
        biases, weights = [], []
        for lyr in range(1, len(self.layer_sizes)):
            rows = self.layer_sizes[lyr]
            cols = self.layer_sizes[lyr - 1]
            bias = Matrix(rows, 1)
            weight = Matrix(rows, cols)
            if init == 'random':
                bias = bias.apply(lambda _: rng.random())
                weight = weight.apply(lambda _: rng.random())
            biases.append(bias)
            weights.append(weight)
        return biases, weights

    @property
    def num_layers(self) -> int:
        return len(self.layer_sizes)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def classify(self, inputs: Matrix) -> Matrix:
        """
        Feed an input column through every layer.

        Args:
            inputs: Column matrix of shape layer_sizes[0] x 1

        Returns:
            Output activations of shape layer_sizes[-1] x 1
        """
        result = inputs
        for weight, bias in zip(self.weights, self.biases):
            result = (weight.dot(result) + bias).apply(sigmoid)
        return result

    def evaluate(self, samples: Iterable[Tuple[Matrix, Matrix]]) -> int:
        """
        Count samples whose strongest output matches the expected one.

        Args:
            samples: (input, expected) pairs with one-hot expected columns

        Returns:
            Number of correctly classified samples
        """
        correct = 0
        for inputs, expected in samples:
            output = self.classify(inputs).to_array()
            if int(np.argmax(output)) == int(np.argmax(expected.to_array())):
                correct += 1
        return correct

    def cost(self, inputs: Matrix, expected: Matrix) -> float:
        """Quadratic cost 0.5 * sum((output - expected)^2) for one sample."""
        error = self.classify(inputs) - expected
        return 0.5 * float(np.sum((error * error).to_array()))

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def backprop(
        self,
        inputs: Matrix,
        expected: Matrix
    ) -> Tuple[MatrixList, MatrixList]:
        """
        Compute the gradient of the cost for one training example.

        The network itself is not modified.

        Args:
            inputs: Column matrix of shape layer_sizes[0] x 1
            expected: Column matrix of shape layer_sizes[-1] x 1

        Returns:
            (nabla_b, nabla_w) lists ordered like self.biases and
            self.weights

        Raises:
            ShapeMismatchError: If inputs or expected have the wrong shape
        """
        # Forward pass, keeping every pre-activation and activation
        activation = inputs
        activations = [inputs]
        zs = []
        for weight, bias in zip(self.weights, self.biases):
            z = weight.dot(activation) + bias
            zs.append(z)
            activation = z.apply(sigmoid)
            activations.append(activation)

        # Backward pass
        last = len(self.weights) - 1
        nabla_b = [None] * len(self.biases)
        nabla_w = [None] * len(self.weights)

        delta = (activations[-1] - expected) * zs[-1].apply(sigmoid_prime)
        nabla_b[last] = delta
        nabla_w[last] = delta.dot(activations[-2].transpose())

        for lyr in range(last - 1, -1, -1):
            sp = zs[lyr].apply(sigmoid_prime)
            delta = self.weights[lyr + 1].transpose().dot(delta) * sp
            nabla_b[lyr] = delta
            nabla_w[lyr] = delta.dot(activations[lyr].transpose())

        return nabla_b, nabla_w

    def apply_gradients(
        self,
        nabla_b: Sequence[Matrix],
        nabla_w: Sequence[Matrix],
        eta: float
    ) -> None:
        """
        Take one gradient descent step.

        Args:
            nabla_b: Bias gradients in layer order
            nabla_w: Weight gradients in layer order
            eta: Learning rate
        """
        if len(nabla_b) != len(self.biases) or len(nabla_w) != len(self.weights):
            raise ValueError(
                f"Expected {len(self.weights)} gradients per kind, got "
                f"{len(nabla_b)} bias and {len(nabla_w)} weight gradients"
            )
        for lyr in range(len(self.weights)):
            self.weights[lyr] = self.weights[lyr] - (nabla_w[lyr] * eta)
            self.biases[lyr] = self.biases[lyr] - (nabla_b[lyr] * eta)

    def learn(
        self,
        inputs: Matrix,
        expected: Matrix,
        eta: float = DEFAULT_LEARNING_RATE
    ) -> None:
        """
        Update weights and biases from a single training example.

        Args:
            inputs: Column matrix of shape layer_sizes[0] x 1
            expected: Column matrix of shape layer_sizes[-1] x 1
            eta: Learning rate

        Raises:
            ShapeMismatchError: If inputs or expected have the wrong shape
        """
        nabla_b, nabla_w = self.backprop(inputs, expected)
        self.apply_gradients(nabla_b, nabla_w, eta)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def write(self, stream: TextIO) -> None:
        """
        Write layer sizes, then biases, then weights in matrix text format.

        Every block is followed by a blank line.
        """
        Matrix.from_rows([self.layer_sizes]).write(stream)
        stream.write('\n')
        for bias in self.biases:
            bias.write(stream)
            stream.write('\n')
        for weight in self.weights:
            weight.write(stream)
            stream.write('\n')

    def dumps(self) -> str:
        buffer = io.StringIO()
        self.write(buffer)
        return buffer.getvalue()

    __str__ = dumps

    @classmethod
    def read(cls, stream: TextIO) -> 'NeuralNet':
        """
        Read a network written by :meth:`write`.

        Raises:
            MalformedStreamError: If the stream is truncated, holds a
                non-numeric token, or the matrices do not fit the layer sizes
            ConfigurationError: If fewer than two layer sizes are stored
        """
        tokens = iter_tokens(stream)
        sizes = Matrix.from_tokens(tokens)
        if sizes.height() != 1:
            raise MalformedStreamError(
                f"Layer sizes must be a single row, got {sizes.height()} rows"
            )
        values = sizes.tolist()[0]
        if not all(value.is_integer() for value in values):
            raise MalformedStreamError(
                f"Layer sizes must be whole numbers, got {values}"
            )
        layer_sizes = _validate_layer_sizes(int(value) for value in values)

        count = len(layer_sizes) - 1
        biases = [Matrix.from_tokens(tokens) for _ in range(count)]
        weights = [Matrix.from_tokens(tokens) for _ in range(count)]

        for lyr in range(count):
            rows, cols = layer_sizes[lyr + 1], layer_sizes[lyr]
            if biases[lyr].shape != (rows, 1) or weights[lyr].shape != (rows, cols):
                raise MalformedStreamError(
                    f"Layer {lyr} matrices {biases[lyr].shape} and "
                    f"{weights[lyr].shape} do not match layer sizes "
                    f"{layer_sizes}"
                )

        net = cls.__new__(cls)
        net.layer_sizes = layer_sizes
        net.biases = biases
        net.weights = weights
        return net

    @classmethod
    def loads(cls, text: str) -> 'NeuralNet':
        return cls.read(io.StringIO(text))

    def save(self, path: str) -> None:
        """Write the network to a text file."""
        with open(path, 'w') as f:
            self.write(f)
        logger.info(f"Saved network {self.layer_sizes} to {path}")

    @classmethod
    def load(cls, path: str) -> 'NeuralNet':
        """Read a network from a text file."""
        with open(path) as f:
            net = cls.read(f)
        logger.info(f"Loaded network {net.layer_sizes} from {path}")
        return net
