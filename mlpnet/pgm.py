"""
pgm.py
~~~~~~

Loading of ASCII (P2) PGM digit images and their expected outputs.

Image file names carry the digit they show after the last underscore,
for example ``test-image-6883_0.pgm`` is an image of a zero.
"""

import os
from typing import List, Sequence

from mlpnet.errors import PGMFormatError
from mlpnet.matrix import Matrix

NUM_DIGITS = 10


def _read_pgm_tokens(path: str) -> List[str]:
    tokens = []
    with open(path) as f:
        for line in f:
            # Everything after '#' is a comment
            tokens.extend(line.split('#', 1)[0].split())
    return tokens


def load_pgm(path: str) -> Matrix:
    """
    Load a P2 PGM file into a column matrix.

    Args:
        path: Path of the PGM file

    Returns:
        A (width * height) x 1 matrix, one row per pixel in row-major
        order, each value divided by the file's maximum grey value

    Raises:
        FileNotFoundError: If the file does not exist
        PGMFormatError: If the file is not P2 or is truncated
    """
    tokens = _read_pgm_tokens(path)
    if not tokens or tokens[0] != 'P2':
        raise PGMFormatError("Only P2 PGM format is supported")
    if len(tokens) < 4:
        raise PGMFormatError(f"Incomplete PGM header in {path}")

    try:
        width, height = int(tokens[1]), int(tokens[2])
        max_val = float(tokens[3])
        pixel_count = width * height
        pixels = [float(token) for token in tokens[4:4 + pixel_count]]
    except ValueError as e:
        raise PGMFormatError(f"Invalid value in {path}: {e}") from e

    if len(pixels) < pixel_count:
        raise PGMFormatError(
            f"Expected {pixel_count} pixels in {path}, found {len(pixels)}"
        )
    if max_val <= 0:
        raise PGMFormatError(f"Invalid maximum grey value {max_val} in {path}")

    return Matrix.column(value / max_val for value in pixels)


def save_pgm(
    path: str,
    pixels: Sequence[int],
    width: int,
    height: int,
    max_val: int = 255
) -> None:
    """
    Write grey values as a P2 PGM file, one image row per line.

    Args:
        path: Destination file
        pixels: width * height grey values in row-major order
        width: Image width
        height: Image height
        max_val: Maximum grey value written in the header
    """
    if len(pixels) != width * height:
        raise ValueError(
            f"Expected {width * height} pixels, got {len(pixels)}"
        )
    with open(path, 'w') as f:
        f.write(f"P2\n{width} {height}\n{max_val}\n")
        for row in range(height):
            values = pixels[row * width:(row + 1) * width]
            f.write(' '.join(str(int(value)) for value in values))
            f.write('\n')


def digit_label(path: str) -> int:
    """
    Extract the digit label from an image file name.

    Raises:
        ValueError: If there is no digit after the last underscore
    """
    name = os.path.basename(path)
    label_pos = name.rfind('_') + 1
    if label_pos == 0 or label_pos >= len(name) or not name[label_pos].isdigit():
        raise ValueError(f"No digit label after '_' in file name: {path}")
    return int(name[label_pos])


def expected_digit_output(path: str) -> Matrix:
    """
    Build the one-hot expected output for an image file.

    Args:
        path: Image path such as ``.../TrainingSet/test-image-6883_0.pgm``

    Returns:
        A 10 x 1 matrix with 1.0 at the labelled digit and 0.0 elsewhere
    """
    expected = Matrix(NUM_DIGITS, 1, 0.0)
    expected[digit_label(path), 0] = 1.0
    return expected
