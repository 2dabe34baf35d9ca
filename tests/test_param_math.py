# test_param_math.py
import pytest
from matrix import Matrix
from utils.param_math import flatten, unflatten, add, scale, sub, norm, equal

@pytest.fixture
def weights():
    return [Matrix([[1., 2., 2.]]), Matrix([[0., 4.], [0., 0.]])]

def test_flatten_unflatten(weights):
    v = flatten(weights)
    assert v.to_list() == [[1., 2., 2., 0., 4., 0., 0.]]
    assert equal(unflatten(v, [(1, 3), (2, 2)]), weights, tol=0.)

def test_arithmetic(weights):
    doubled = add(weights, weights)
    assert equal(doubled, scale(weights, 2.))
    assert equal(sub(doubled, weights), weights)
    assert norm(weights) == 5.
    # nothing was modified in place
    assert weights[0].to_list() == [[1., 2., 2.]]

def test_layer_count_mismatch(weights):
    with pytest.raises(ValueError):
        add(weights, weights[:1])
    assert not equal(weights, weights[:1])
