#matrix.py
import torch
import numpy as np
from errors import DimensionMismatch

class Matrix:
    """
    A dense 2-D matrix of doubles with the operations needed by the neural network.
    Backed by a float64 torch tensor, stored row-major.
    Watch out:
        - Every operation returns a new Matrix. Nothing is done in-place, so a Matrix can be shared freely.
        - The wrapped tensor is never exposed without cloning it first.
        - Shapes must match exactly, otherwise DimensionMismatch is raised. There is no broadcasting.
        - Use equal() instead of == or != if you want to see if two matrices hold the same values.
    """

    def __init__(self, data) -> None:
        if isinstance(data, torch.Tensor):
            tensor = data.detach().to(dtype=torch.float64, device='cpu').clone()
        else:
            tensor = torch.tensor(np.asarray(data, dtype=np.float64), dtype=torch.float64)
        if tensor.dim() != 2:
            raise DimensionMismatch(f"Matrix error: expected 2 dimensions, got {tensor.dim()} with shape {tuple(tensor.shape)}.")
        self._t = tensor.contiguous()

    @classmethod
    def _wrap(cls, tensor: torch.Tensor) -> 'Matrix':
        """Wrap a freshly computed tensor without copying it again."""
        result = cls.__new__(cls)
        result._t = tensor.contiguous()
        return result

    @classmethod
    def zeros(cls, rows: int, cols: int) -> 'Matrix':
        return cls._wrap(torch.zeros(rows, cols, dtype=torch.float64))

    @classmethod
    def full(cls, rows: int, cols: int, value: float) -> 'Matrix':
        return cls._wrap(torch.full((rows, cols), float(value), dtype=torch.float64))

    @classmethod
    def random(cls, rows: int, cols: int, low: float = -1., high: float = 1., generator: torch.Generator = None) -> 'Matrix':
        """
        Uniformly distributed values in [low, high).
        Pass a seeded torch.Generator for reproducible results.
        """
        r = torch.rand(rows, cols, dtype=torch.float64, generator=generator)
        return cls._wrap(r * (high - low) + low)

    # ---------------------------------------------------------------- shape

    @property
    def rows(self) -> int:
        return self._t.shape[0]

    @property
    def cols(self) -> int:
        return self._t.shape[1]

    @property
    def shape(self) -> (int, int):
        return (self.rows, self.cols)

    def num_elements(self) -> int:
        return self.rows * self.cols

    def _ensure_same_shape(self, other: 'Matrix', operation: str) -> None:
        if not isinstance(other, Matrix):
            raise TypeError(f"{operation} error: 'other' is of type {type(other)}, expected Matrix.")
        if self.shape != other.shape:
            raise DimensionMismatch(f"{operation} error: shape {self.shape} (self) vs {other.shape} (other).")

    # ---------------------------------------------------------------- access

    def get(self, row: int, col: int) -> float:
        return self._t[row, col].item()

    def tensor(self) -> torch.Tensor:
        """A copy of the underlying tensor."""
        return self._t.clone()

    def numpy(self) -> np.ndarray:
        return self._t.numpy().copy()

    def to_list(self) -> [[float]]:
        return self._t.tolist()

    def copy(self) -> 'Matrix':
        return Matrix._wrap(self._t.clone())

    def equal(self, other: 'Matrix', tol: float = 1e-12) -> bool:
        """
        Compares this Matrix with another within a tolerance. Different shapes are simply not equal.
        Not overloading __eq__ because that opens a can of worms with inheritance of __hash__.
        """
        if not isinstance(other, Matrix) or self.shape != other.shape:
            return False
        return torch.allclose(self._t, other._t, rtol=0., atol=tol, equal_nan=True)

    def __repr__(self) -> str:
        return f'Matrix({self.rows}x{self.cols})'

    # ---------------------------------------------------------------- linear algebra

    def multiply(self, other: 'Matrix') -> 'Matrix':
        """A·B"""
        if self.cols != other.rows:
            raise DimensionMismatch(f"Multiplication error: {self.shape} · {other.shape}, columns of A must equal rows of B.")
        return Matrix._wrap(self._t @ other._t)

    def multiply_transpose_b(self, other: 'Matrix') -> 'Matrix':
        """A·Bᵗ, shape (A.rows, B.rows)"""
        if self.cols != other.cols:
            raise DimensionMismatch(f"Multiplication error: {self.shape} · {other.shape}ᵗ, A and B must have the same number of columns.")
        return Matrix._wrap(self._t @ other._t.T)

    def transpose_multiply(self, other: 'Matrix') -> 'Matrix':
        """Aᵗ·B, shape (A.cols, B.cols)"""
        if self.rows != other.rows:
            raise DimensionMismatch(f"Multiplication error: {self.shape}ᵗ · {other.shape}, A and B must have the same number of rows.")
        return Matrix._wrap(self._t.T @ other._t)

    def transpose(self) -> 'Matrix':
        return Matrix._wrap(self._t.T.clone())

    def dot(self, other: 'Matrix') -> float:
        """Sum of the element-wise product. Meant for flattened weight vectors."""
        self._ensure_same_shape(other, 'Dot product')
        return torch.sum(self._t * other._t).item()

    # ---------------------------------------------------------------- element-wise

    def plus(self, other) -> 'Matrix':
        """Adds a Matrix of the same shape, or a scalar to every element."""
        if isinstance(other, (int, float)):
            return Matrix._wrap(self._t + other)
        self._ensure_same_shape(other, 'Addition')
        return Matrix._wrap(self._t + other._t)

    def minus(self, other) -> 'Matrix':
        if isinstance(other, (int, float)):
            return Matrix._wrap(self._t - other)
        self._ensure_same_shape(other, 'Subtraction')
        return Matrix._wrap(self._t - other._t)

    def element_mult(self, other: 'Matrix') -> 'Matrix':
        self._ensure_same_shape(other, 'Element-wise multiplication')
        return Matrix._wrap(self._t * other._t)

    def scale(self, s: float) -> 'Matrix':
        if not isinstance(s, (int, float)):
            raise TypeError(f"Scaling error: 's' is of type {type(s)}, expected int or float.")
        return Matrix._wrap(self._t * s)

    def negative(self) -> 'Matrix':
        return Matrix._wrap(-self._t)

    def power(self, p: float) -> 'Matrix':
        return Matrix._wrap(torch.pow(self._t, p))

    def log(self) -> 'Matrix':
        """Natural log. log(0) = -inf and log(<0) = nan are propagated, never raised."""
        return Matrix._wrap(torch.log(self._t))

    def sigmoid(self) -> 'Matrix':
        """σ(x) = 1/(1+e^-x)"""
        return Matrix._wrap(1. / (1. + torch.exp(-self._t)))

    def sigmoid_derivative(self) -> 'Matrix':
        """σ(x)(1-σ(x))"""
        s = 1. / (1. + torch.exp(-self._t))
        return Matrix._wrap(s * (1. - s))

    def sum(self) -> float:
        return torch.sum(self._t).item()

    def is_finite(self) -> bool:
        return bool(torch.isfinite(self._t).all())

    # ---------------------------------------------------------------- structure

    def prepend_column(self, value: float) -> 'Matrix':
        """One extra leading column filled with value, the original columns shift right by one."""
        column = torch.full((self.rows, 1), float(value), dtype=torch.float64)
        return Matrix._wrap(torch.cat([column, self._t], dim=1))

    def set_column(self, index: int, value: float) -> 'Matrix':
        if not 0 <= index < self.cols:
            raise DimensionMismatch(f"Column error: index {index} out of range for a matrix with {self.cols} columns.")
        result = self._t.clone()
        result[:, index] = float(value)
        return Matrix._wrap(result)

    def slice(self, row_start: int, row_end: int, col_start: int, col_end: int) -> 'Matrix':
        """Half-open extraction [row_start, row_end) x [col_start, col_end)."""
        if not (0 <= row_start <= row_end <= self.rows and 0 <= col_start <= col_end <= self.cols):
            raise DimensionMismatch(
                f"Slice error: rows [{row_start}, {row_end}) cols [{col_start}, {col_end}) out of range for shape {self.shape}.")
        return Matrix._wrap(self._t[row_start:row_end, col_start:col_end].clone())

    def reshape(self, rows: int, cols: int) -> 'Matrix':
        """Reinterprets the same row-major element sequence with a new shape."""
        if rows * cols != self.num_elements():
            raise DimensionMismatch(f"Reshape error: cannot reshape {self.shape} into ({rows}, {cols}).")
        return Matrix._wrap(self._t.reshape(rows, cols).clone())

    @staticmethod
    def flatten_and_concat(matrices: ['Matrix']) -> 'Matrix':
        """All elements of all matrices, row-major and in input order, as a single row."""
        return Matrix._wrap(torch.cat([m._t.flatten() for m in matrices]).unsqueeze(0))

    def split(self, shapes: [(int, int)]) -> ['Matrix']:
        """
        Inverse of flatten_and_concat: cut a single-row vector back into matrices of the given shapes.
        """
        if self.rows != 1:
            raise DimensionMismatch(f"Split error: expected a single row vector, got shape {self.shape}.")
        total = sum(r * c for r, c in shapes)
        if total != self.cols:
            raise DimensionMismatch(f"Split error: shapes {shapes} need {total} elements, the vector has {self.cols}.")
        result, start = [], 0
        for r, c in shapes:
            result.append(self.slice(0, 1, start, start + r * c).reshape(r, c))
            start += r * c
        return result

    # ---------------------------------------------------------------- operators

    def __add__(self, other) -> 'Matrix':
        return self.plus(other)

    def __sub__(self, other) -> 'Matrix':
        return self.minus(other)

    def __mul__(self, s: float) -> 'Matrix':
        return self.scale(s)

    def __rmul__(self, s: float) -> 'Matrix':
        return self.scale(s)

    def __neg__(self) -> 'Matrix':
        return self.negative()
