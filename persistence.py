#persistence.py
"""
Save and load matrices as binary files.
A file holds the shape and the float64 payload of one Matrix, written with torch.save.
The round trip is bit-exact.

File names used for a training session:
    weights_<i>.matrix  the weights of layer i
    a0.matrix           the biased input activation of the training set, with the pixel scale it was built with
    y.matrix            the one-hot ground truth of the training set
"""

import os
import torch
from matrix import Matrix
from errors import MissingResource

A0_FILE = 'a0.matrix'
Y_FILE = 'y.matrix'

def weights_file(i: int) -> str:
    return f'weights_{i}.matrix'

def save_matrix(matrix: Matrix, path: str, **meta) -> None:
    """meta: extra scalars stored next to the payload, e.g. the pixel scale of a cached A0"""
    torch.save({'rows': matrix.rows, 'cols': matrix.cols, 'data': matrix.tensor(), **meta}, path)

def _load_stored(path: str) -> dict:
    if not os.path.isfile(path):
        raise MissingResource(f"Matrix file '{path}' not found.")
    try:
        stored = torch.load(path, weights_only=True)
        data, rows, cols = stored['data'], stored['rows'], stored['cols']
    except Exception as e:
        # torch.load raises UnpicklingError, RuntimeError, EOFError and others depending on how the file is broken
        raise ValueError(f"Corrupt matrix file '{path}': {e}") from e
    if not isinstance(data, torch.Tensor) or tuple(data.shape) != (rows, cols) or data.dtype != torch.float64:
        raise ValueError(f"Corrupt matrix file '{path}': header says {rows}x{cols}, "
                         f"payload is {tuple(getattr(data, 'shape', ()))} {getattr(data, 'dtype', type(data))}.")
    return stored

def load_matrix(path: str) -> Matrix:
    """Raises MissingResource if the file is absent, ValueError if it isn't a matrix file."""
    return Matrix(_load_stored(path)['data'])

def load_weights(count: int, directory: str = '.') -> [Matrix]:
    """Load weights_0.matrix ... weights_<count-1>.matrix, raises MissingResource if any is absent."""
    weights = []
    for i in range(count):
        path = os.path.join(directory, weights_file(i))
        if not os.path.isfile(path):
            raise MissingResource(f"Failed to load the weight file: {path}")
        weights.append(load_matrix(path))
        print(f'Weight matrix {i} loaded from {path}')
    return weights

def save_weights(weights: [Matrix], directory: str = '.') -> None:
    os.makedirs(directory, exist_ok=True)
    for i, w in enumerate(weights):
        save_matrix(w, os.path.join(directory, weights_file(i)))

def training_set_cached(directory: str = '.') -> bool:
    return os.path.isfile(os.path.join(directory, A0_FILE)) and os.path.isfile(os.path.join(directory, Y_FILE))

def load_training_set(directory: str = '.') -> (Matrix, Matrix, float):
    """
    The cached A0 and Y, and the pixel scale A0 was built with.
    Files written before the scale was stored hold raw pixels, scale 1.
    """
    stored = _load_stored(os.path.join(directory, A0_FILE))
    pixel_scale = float(stored.get('pixel_scale', 1.))
    return Matrix(stored['data']), load_matrix(os.path.join(directory, Y_FILE)), pixel_scale

def save_session(weights: [Matrix], a0: Matrix, y: Matrix, directory: str = '.', pixel_scale: float = 1.) -> None:
    """Save the weights, and the training matrices so the next session doesn't need to decode the dataset again."""
    save_weights(weights, directory)
    save_matrix(a0, os.path.join(directory, A0_FILE), pixel_scale=float(pixel_scale))
    save_matrix(y, os.path.join(directory, Y_FILE))
