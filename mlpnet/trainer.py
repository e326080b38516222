"""
trainer.py
~~~~~~~~~~

Epoch loop that trains a :class:`~mlpnet.network.NeuralNet` on PGM
digit images and measures how many test images it classifies
correctly.

Training and testing sets are described by list files holding one
image file name per line, relative to an image directory.
"""

import logging
import os
import time
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

import numpy as np

from mlpnet.network import DEFAULT_LEARNING_RATE, NeuralNet
from mlpnet.pgm import expected_digit_output, load_pgm

logger = logging.getLogger(__name__)

DEFAULT_TRAIN_LIST = 'TrainingSetList.txt'
DEFAULT_TEST_LIST = 'TestingSetList.txt'

# Fixed so that every run and every epoch trains in the same order
DEFAULT_SHUFFLE_SEED = 0


class Assessment(NamedTuple):
    """Outcome of classifying a testing set."""

    passed: int
    total: int

    @property
    def accuracy(self) -> float:
        return self.passed / self.total if self.total else 0.0


def read_file_list(list_file: str, limit: Optional[int] = None) -> List[str]:
    """
    Read image file names from a list file.

    Args:
        list_file: Text file with one image file name per line
        limit: Maximum number of names to return

    Returns:
        The first ``limit`` non-blank names in file order

    Raises:
        FileNotFoundError: If the list file does not exist
    """
    file_names = []
    with open(list_file) as f:
        for line in f:
            if limit is not None and len(file_names) >= limit:
                break
            name = line.strip()
            if name:
                file_names.append(name)
    return file_names


def shuffled(file_names: Sequence[str], seed: Optional[int] = None) -> List[str]:
    """Return a shuffled copy of ``file_names``."""
    names = list(file_names)
    np.random.default_rng(seed).shuffle(names)
    return names


def max_elem_index(values: Sequence[float]) -> int:
    """
    Index of the largest value; the first one wins on ties.

    >>> max_elem_index([1, 3, -1, 2])
    1
    """
    if len(values) == 0:
        raise ValueError("max_elem_index() requires a non-empty sequence")
    return int(np.argmax(values))


def train(
    net: NeuralNet,
    img_dir: str,
    file_names: Sequence[str],
    eta: float = DEFAULT_LEARNING_RATE
) -> int:
    """
    Let the network learn every image in ``file_names`` once.

    Args:
        net: Network to train
        img_dir: Directory the file names are relative to
        file_names: Image file names, labels encoded in the names
        eta: Learning rate

    Returns:
        Number of images learned
    """
    count = 0
    for img_name in file_names:
        img = load_pgm(os.path.join(img_dir, img_name))
        expected = expected_digit_output(img_name)
        net.learn(img, expected, eta)
        count += 1
    logger.debug(f"Learned {count} images from {img_dir}")
    return count


def train_from_list(
    net: NeuralNet,
    img_dir: str,
    limit: Optional[int] = None,
    list_file: str = DEFAULT_TRAIN_LIST,
    eta: float = DEFAULT_LEARNING_RATE,
    seed: Optional[int] = DEFAULT_SHUFFLE_SEED
) -> int:
    """
    Train on a shuffled subset of the images named in a list file.

    The first ``limit`` names are read and then shuffled with ``seed``,
    so a fixed seed gives the same order every epoch.

    Returns:
        Number of images learned
    """
    file_names = shuffled(read_file_list(list_file, limit), seed)
    logger.info(f"Training with {len(file_names)} images...")
    return train(net, img_dir, file_names, eta)


def assess(
    net: NeuralNet,
    img_dir: str,
    list_file: str = DEFAULT_TEST_LIST
) -> Assessment:
    """
    Classify every image in a list file and count the correct answers.

    Returns:
        Assessment with the number of correct and total images
    """
    passed = total = 0
    for img_name in read_file_list(list_file):
        img = load_pgm(os.path.join(img_dir, img_name))
        expected = expected_digit_output(img_name)
        result = net.classify(img)
        exp_idx = max_elem_index(expected.transpose().tolist()[0])
        res_idx = max_elem_index(result.transpose().tolist()[0])
        if exp_idx == res_idx:
            passed += 1
        total += 1

    assessment = Assessment(passed, total)
    logger.info(
        f"Correct classification: {passed} [{assessment.accuracy:g}% ]"
    )
    return assessment


def run(
    net: NeuralNet,
    img_dir: str,
    train_count: int = 5000,
    epochs: int = 10,
    train_list: str = DEFAULT_TRAIN_LIST,
    test_list: str = DEFAULT_TEST_LIST,
    eta: float = DEFAULT_LEARNING_RATE,
    seed: Optional[int] = DEFAULT_SHUFFLE_SEED
) -> List[Dict[str, Any]]:
    """
    Alternate training and assessment for a number of epochs.

    Args:
        net: Network to train
        img_dir: Directory holding the training and testing images
        train_count: Number of training images used per epoch
        epochs: Number of epochs
        train_list: List file naming the training images
        test_list: List file naming the testing images
        eta: Learning rate
        seed: Seed for the training order shuffle; the same seed gives
            the same order in every epoch, None draws a new order each time

    Returns:
        One history entry per epoch with the assessment and elapsed time
    """
    if epochs < 0:
        raise ValueError(f"epochs must be non-negative, got {epochs}")

    history = []
    for epoch in range(epochs):
        logger.info(f"-- Epoch #{epoch} --")
        start_time = time.perf_counter()
        train_from_list(net, img_dir, train_count, train_list, eta, seed)
        assessment = assess(net, img_dir, test_list)
        elapsed_ms = (time.perf_counter() - start_time) * 1000.0
        logger.info(f"Elapsed time = {elapsed_ms:.0f} milliseconds.")
        history.append({
            'epoch': epoch,
            'passed': assessment.passed,
            'total': assessment.total,
            'accuracy': assessment.accuracy,
            'elapsed_ms': elapsed_ms
        })
    return history
