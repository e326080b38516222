"""
errors.py
~~~~~~~~~

Exceptions raised by the matrix and network code.
"""


class MLPNetError(Exception):
    """Base class for all mlpnet errors."""


class ShapeMismatchError(MLPNetError, ValueError):
    """Operands have dimensions that the operation cannot combine."""

    def __init__(self, operation: str, lhs: tuple, rhs: tuple):
        self.operation = operation
        self.lhs = lhs
        self.rhs = rhs
        super().__init__(
            f"Shape mismatch in {operation}: "
            f"{lhs[0]}x{lhs[1]} and {rhs[0]}x{rhs[1]}"
        )


class MalformedStreamError(MLPNetError, ValueError):
    """Serialized data ended early or contained a non-numeric token."""


class ConfigurationError(MLPNetError, ValueError):
    """A network cannot be built from the given parameters."""


class PGMFormatError(MLPNetError, ValueError):
    """A PGM file is not in the supported ASCII (P2) format."""
