from matrix import Matrix

"""Define utility functions for arithmetic on lists of weight matrices. All of them return new matrices."""

def flatten(weights: [Matrix]) -> Matrix:
    """pack all the weights into a single row vector"""
    return Matrix.flatten_and_concat(weights)

def unflatten(vector: Matrix, shapes: [(int, int)]) -> [Matrix]:
    """unpack a single row vector into matrices of the given shapes"""
    return vector.split(shapes)

def add(a: [Matrix], b: [Matrix]) -> [Matrix]:
    """add the weights of b to the weights of a"""
    if len(a) != len(b):
        raise ValueError(f"Layer count mismatch: {len(a)} vs {len(b)}.")
    return [a_w.plus(b_w) for a_w, b_w in zip(a, b)]

def scale(a: [Matrix], s: float) -> [Matrix]:
    """scale the weights of a by s"""
    return [a_w.scale(s) for a_w in a]

def sub(a: [Matrix], b: [Matrix]) -> [Matrix]:
    """subtract the weights of b from a"""
    return add(a, scale(b, -1))

def norm(a: [Matrix]) -> float:
    """return the L2 norm of all the weights of a"""
    v = flatten(a)
    return v.dot(v) ** 0.5

def equal(a: [Matrix], b: [Matrix], tol: float = 1e-12) -> bool:
    """same number of layers, same shapes, same values within tol"""
    return len(a) == len(b) and all(a_w.equal(b_w, tol) for a_w, b_w in zip(a, b))
