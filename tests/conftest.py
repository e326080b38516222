"""
conftest.py
~~~~~~~~~~~

Shared fixtures: a tiny on-disk digit dataset of 2x2 PGM images.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mlpnet.pgm import save_pgm

# (file name, pixels) for 2x2 images; the label is the digit after '_'
TRAIN_IMAGES = [
    ("train-image-0_0.pgm", [255, 0, 0, 0]),
    ("train-image-1_1.pgm", [0, 255, 0, 0]),
    ("train-image-2_2.pgm", [0, 0, 255, 0]),
    ("train-image-3_3.pgm", [0, 0, 0, 255]),
]
TEST_IMAGES = [
    ("test-image-0_0.pgm", [250, 5, 0, 0]),
    ("test-image-1_1.pgm", [0, 250, 5, 0]),
    ("test-image-2_0.pgm", [240, 0, 10, 0]),
    ("test-image-3_3.pgm", [0, 0, 5, 250]),
]


@pytest.fixture
def dataset(tmp_path):
    """
    Write training and testing images plus their list files.

    Returns:
        dict with 'img_dir', 'train_list' and 'test_list' paths
    """
    img_dir = tmp_path / "images"
    img_dir.mkdir()
    for name, pixels in TRAIN_IMAGES + TEST_IMAGES:
        save_pgm(str(img_dir / name), pixels, 2, 2)

    train_list = tmp_path / "TrainingSetList.txt"
    train_list.write_text(
        "".join(name + "\n" for name, _ in TRAIN_IMAGES)
    )
    test_list = tmp_path / "TestingSetList.txt"
    test_list.write_text(
        "".join(name + "\n" for name, _ in TEST_IMAGES)
    )
    return {
        'img_dir': str(img_dir),
        'train_list': str(train_list),
        'test_list': str(test_list),
    }
