"""
matrix.py
~~~~~~~~~

Dense 2-D matrix of float64 values used by the neural network.

Values live in a single flat numpy buffer in row-major order, so the
entry at (row, col) is stored at offset ``row * cols + col``.  Every
arithmetic operation returns a new matrix and leaves its operands
untouched.

The text format written by :meth:`Matrix.write` and read back by
:meth:`Matrix.read` is::

    <rows> <cols>
    <v00> <v01> ... <v0(cols-1)>
    ...
"""

import io
import numbers
from typing import Callable, Iterable, Iterator, List, Sequence, TextIO, Tuple

import numpy as np

from mlpnet.errors import MalformedStreamError, ShapeMismatchError

Val = np.float64


def format_value(value: float) -> str:
    """
    Convert a value to text that parses back to the identical float64.

    Args:
        value: Number to format

    Returns:
        Shortest round-trip representation of the value
    """
    return repr(float(value))


def iter_tokens(stream: TextIO) -> Iterator[str]:
    """
    Yield whitespace separated tokens from a text stream.

    Lines are pulled one at a time, so a consumer that stops early leaves
    every line after the current one unread in the stream.
    """
    for line in iter(stream.readline, ''):
        yield from line.split()


def _next_token(tokens: Iterator[str], what: str) -> str:
    try:
        return next(tokens)
    except StopIteration:
        raise MalformedStreamError(
            f"Stream ended while reading {what}"
        ) from None


def _read_dimension(tokens: Iterator[str], what: str) -> int:
    token = _next_token(tokens, what)
    try:
        value = int(token)
    except ValueError:
        raise MalformedStreamError(
            f"Expected an integer {what}, got {token!r}"
        ) from None
    if value < 0:
        raise MalformedStreamError(f"Negative {what}: {value}")
    return value


def _read_value(tokens: Iterator[str], what: str) -> float:
    token = _next_token(tokens, what)
    try:
        return float(token)
    except ValueError:
        raise MalformedStreamError(
            f"Non-numeric token {token!r} while reading {what}"
        ) from None


class Matrix:
    """
    A rows x cols grid of float64 values with value semantics.

    Args:
        rows: Number of rows (0 allowed)
        cols: Number of columns (0 allowed)
        init_value: Value every entry starts with
    """

    __slots__ = ('rows', 'cols', '_data')

    # numpy scalars on the left defer to __rmul__
    __array_ufunc__ = None

    def __init__(self, rows: int = 0, cols: int = 0, init_value: float = 0.0):
        for size in (rows, cols):
            if (isinstance(size, bool) or not isinstance(size, numbers.Integral)
                    or size < 0):
                raise ValueError(
                    f"Matrix dimensions must be non-negative integers, "
                    f"got {rows}x{cols}"
                )
        self.rows = int(rows)
        self.cols = int(cols)
        self._data = np.full(self.rows * self.cols, init_value, dtype=Val)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def _wrap(cls, rows: int, cols: int, data: np.ndarray) -> 'Matrix':
        """Build a matrix around an existing flat buffer without copying."""
        result = cls.__new__(cls)
        result.rows = rows
        result.cols = cols
        result._data = data
        return result

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> 'Matrix':
        """
        Build a matrix from a list of equally long rows.

        Raises:
            ValueError: If the rows have different lengths
        """
        height = len(rows)
        width = len(rows[0]) if height else 0
        if any(len(row) != width for row in rows):
            raise ValueError("All rows must have the same length")
        data = np.array(
            [value for row in rows for value in row], dtype=Val
        ).reshape(height * width)
        return cls._wrap(height, width, data)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'Matrix':
        """Copy a 2-D numpy array into a new matrix."""
        array = np.asarray(array, dtype=Val)
        if array.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got {array.ndim}-D")
        rows, cols = array.shape
        return cls._wrap(rows, cols, array.reshape(rows * cols).copy())

    @classmethod
    def column(cls, values: Iterable[float]) -> 'Matrix':
        """Build an n x 1 column matrix."""
        data = np.array(list(values), dtype=Val)
        return cls._wrap(data.size, 1, data)

    @classmethod
    def identity(cls, size: int) -> 'Matrix':
        """Build a size x size identity matrix."""
        return cls.from_array(np.eye(size, dtype=Val))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def height(self) -> int:
        return self.rows

    def width(self) -> int:
        return self.cols

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def empty(self) -> bool:
        """True when either dimension is zero."""
        return self.rows == 0 or self.cols == 0

    def _offset(self, index: Tuple[int, int]) -> int:
        row, col = index
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(
                f"Index ({row}, {col}) out of range for "
                f"{self.rows}x{self.cols} matrix"
            )
        return row * self.cols + col

    def __getitem__(self, index: Tuple[int, int]) -> float:
        return float(self._data[self._offset(index)])

    def __setitem__(self, index: Tuple[int, int], value: float) -> None:
        self._data[self._offset(index)] = value

    def tolist(self) -> List[List[float]]:
        """Return the entries as a list of row lists."""
        return self.to_array().tolist()

    def to_array(self) -> np.ndarray:
        """Return a 2-D numpy copy of the entries."""
        return self._data.reshape(self.rows, self.cols).copy()

    def copy(self) -> 'Matrix':
        return self._wrap(self.rows, self.cols, self._data.copy())

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _check_same_shape(self, other: 'Matrix', operation: str) -> None:
        if self.shape != other.shape:
            raise ShapeMismatchError(operation, self.shape, other.shape)

    def __add__(self, other: 'Matrix') -> 'Matrix':
        if not isinstance(other, Matrix):
            return NotImplemented
        self._check_same_shape(other, 'addition')
        return self._wrap(self.rows, self.cols, self._data + other._data)

    def __sub__(self, other: 'Matrix') -> 'Matrix':
        if not isinstance(other, Matrix):
            return NotImplemented
        self._check_same_shape(other, 'subtraction')
        return self._wrap(self.rows, self.cols, self._data - other._data)

    def __mul__(self, other) -> 'Matrix':
        # Matrix operand means Hadamard product, a number means scaling
        if isinstance(other, Matrix):
            self._check_same_shape(other, 'elementwise multiplication')
            return self._wrap(self.rows, self.cols, self._data * other._data)
        if isinstance(other, numbers.Real):
            return self._wrap(self.rows, self.cols, self._data * other)
        return NotImplemented

    def __rmul__(self, other) -> 'Matrix':
        if isinstance(other, numbers.Real):
            return self._wrap(self.rows, self.cols, other * self._data)
        return NotImplemented

    def dot(self, other: 'Matrix') -> 'Matrix':
        """
        Matrix product of this matrix and ``other``.

        Each entry is accumulated from 0.0 by adding ``self[i, k] *
        other[k, j]`` for increasing ``k``, which gives the same bits as
        the textbook triple loop.

        Args:
            other: Right operand with as many rows as this matrix has columns

        Returns:
            A self.rows x other.cols matrix

        Raises:
            ShapeMismatchError: If self.cols != other.rows
        """
        if self.cols != other.rows:
            raise ShapeMismatchError('dot', self.shape, other.shape)
        lhs = self._data.reshape(self.rows, self.cols)
        rhs = other._data.reshape(other.rows, other.cols)
        result = np.zeros((self.rows, other.cols), dtype=Val)
        for k in range(self.cols):
            result += lhs[:, k, np.newaxis] * rhs[k]
        return self._wrap(self.rows, other.cols,
                          result.reshape(self.rows * other.cols))

    def transpose(self) -> 'Matrix':
        """
        Return the transpose.

        An empty matrix comes back as an unchanged copy; its shape is
        not flipped.
        """
        if self.empty():
            return self.copy()
        flipped = self._data.reshape(self.rows, self.cols).T
        return self._wrap(self.cols, self.rows,
                          flipped.reshape(self.rows * self.cols).copy())

    def apply(self, fn: Callable[[float], float]) -> 'Matrix':
        """Return a new matrix with ``fn`` applied to every entry."""
        data = np.fromiter((fn(value) for value in self._data),
                           dtype=Val, count=self._data.size)
        return self._wrap(self.rows, self.cols, data)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(
            np.array_equal(self._data, other._data)
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"Matrix.from_rows({self.tolist()!r})"

    # ------------------------------------------------------------------
    # Text serialization
    # ------------------------------------------------------------------

    def write(self, stream: TextIO) -> None:
        """Write the matrix to a text stream in the rows/cols text format."""
        stream.write(f"{self.rows} {self.cols}\n")
        for row in self._data.reshape(self.rows, self.cols):
            stream.write(' '.join(format_value(value) for value in row))
            stream.write('\n')

    def __str__(self) -> str:
        buffer = io.StringIO()
        self.write(buffer)
        return buffer.getvalue()

    @classmethod
    def from_tokens(cls, tokens: Iterator[str]) -> 'Matrix':
        """
        Read one matrix from an iterator of text tokens.

        Raises:
            MalformedStreamError: If tokens run out or are not numeric
        """
        rows = _read_dimension(tokens, 'row count')
        cols = _read_dimension(tokens, 'column count')
        # The header is not trusted until every value has been read
        values = [
            _read_value(tokens, f"entry {offset} of a {rows}x{cols} matrix")
            for offset in range(rows * cols)
        ]
        return cls._wrap(rows, cols, np.array(values, dtype=Val))

    @classmethod
    def read(cls, stream: TextIO) -> 'Matrix':
        """Read one matrix from a text stream."""
        return cls.from_tokens(iter_tokens(stream))

    @classmethod
    def loads(cls, text: str) -> 'Matrix':
        """Read one matrix from a string."""
        return cls.read(io.StringIO(text))
