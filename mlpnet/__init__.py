"""
mlpnet package
~~~~~~~~~~~~~~

A small multilayer-perceptron for handwritten digit recognition.
Contains the dense matrix primitive, the sigmoid feed-forward network,
PGM image loading, the training/assessment loop, model persistence,
and the command line driver.
"""

__version__ = "1.0.0"
