#!/usr/bin/env python3
"""
Convert an MNIST NPZ archive into PGM image files for the trainer.

The archive must hold ``train_images``/``train_labels`` and
``test_images``/``test_labels`` with every image flattened to 784
grey values in [0, 1].

Usage:
    python scripts/convert_mnist_to_pgm.py

The script will:
1. Load data/mnist.npz
2. Write data/pgm/train-image-<n>_<label>.pgm and test-image-<n>_<label>.pgm
3. Write TrainingSetList.txt and TestingSetList.txt next to the images
"""

import os
import sys
from typing import List, Sequence

import numpy as np

from mlpnet.pgm import save_pgm

IMAGE_SIDE = 28
MAX_GREY = 255


def convert_set(
    images: np.ndarray,
    labels: Sequence[int],
    out_dir: str,
    prefix: str
) -> List[str]:
    """
    Write one PGM file per image.

    Parameters:
    -----------
    images : np.ndarray
        (n, 784) array of grey values in [0, 1]
    labels : sequence of int
        Digit shown by each image
    out_dir : str
        Directory receiving the PGM files
    prefix : str
        File name prefix, e.g. 'train' or 'test'

    Returns:
    --------
    list
        The written file names, relative to out_dir
    """
    names = []
    for index, (image, label) in enumerate(zip(images, labels)):
        name = f"{prefix}-image-{index}_{int(label)}.pgm"
        pixels = np.rint(np.asarray(image) * MAX_GREY).astype(int).tolist()
        save_pgm(os.path.join(out_dir, name), pixels,
                 IMAGE_SIDE, IMAGE_SIDE, MAX_GREY)
        names.append(name)
    return names


def write_file_list(path: str, names: Sequence[str]) -> None:
    """Write one file name per line."""
    with open(path, 'w') as f:
        for name in names:
            f.write(name + '\n')


def main():
    """Main conversion function."""
    print("=" * 60)
    print("MNIST NPZ → PGM converter")
    print("=" * 60)

    script_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(script_dir)
    data_dir = os.path.join(project_root, 'data')

    npz_path = os.path.join(data_dir, 'mnist.npz')
    out_dir = os.path.join(data_dir, 'pgm')

    if not os.path.exists(npz_path):
        print(f"❌ Error: NPZ file not found: {npz_path}")
        sys.exit(1)

    os.makedirs(out_dir, exist_ok=True)

    with np.load(npz_path) as data:
        print(f"📂 Writing training images to: {out_dir}")
        train_names = convert_set(data['train_images'], data['train_labels'],
                                  out_dir, 'train')
        print(f"📂 Writing testing images to: {out_dir}")
        test_names = convert_set(data['test_images'], data['test_labels'],
                                 out_dir, 'test')

    write_file_list(os.path.join(out_dir, 'TrainingSetList.txt'), train_names)
    write_file_list(os.path.join(out_dir, 'TestingSetList.txt'), test_names)

    print(f"✅ Wrote {len(train_names)} training and "
          f"{len(test_names)} testing images")
    print(f"\n📝 Next step:")
    print(f"   cd {out_dir} && mlpnet . 5000 10")


if __name__ == '__main__':
    main()
