# conftest.py
import pytest
import numpy as np
import torch
from copy import deepcopy
from matrix import Matrix

class QuadraticComputer:
    """
    Stands in for a NetworkComputer with a known cost surface:
    J = Σ c .* (W - T)², summed over all weight matrices. The minimum is at W = T with J = 0.
    bad_region: a function of the weights that returns True where the cost should be nan.
    """
    def __init__(self, weights, targets, curvature, bad_region=None):
        self.weights = [w.copy() for w in weights]
        self.targets = targets
        self.curvature = curvature
        self.bad_region = bad_region
        self.J = None
        self._gradients = None
        self.compute_calls = 0

    def copy(self):
        return deepcopy(self)

    def weight_shapes(self):
        return [w.shape for w in self.weights]

    def get_weights(self):
        return [w.copy() for w in self.weights]

    def set_weights(self, weights):
        self.weights = [w.copy() for w in weights]

    def compute(self):
        self.compute_calls += 1
        diffs = [w.minus(t) for w, t in zip(self.weights, self.targets)]
        self.J = sum(d.power(2.).element_mult(c).sum() for d, c in zip(diffs, self.curvature))
        if self.bad_region is not None and self.bad_region(self.weights):
            self.J = float('nan')
        self._gradients = [d.element_mult(c).scale(2.) for d, c in zip(diffs, self.curvature)]

    def cost(self):
        return self.J

    def gradients(self):
        return [g.copy() for g in self._gradients]

@pytest.fixture
def quadratic():
    """Factory: quadratic(initial_weights, targets=zeros, curvature=ones, bad_region=None)"""
    def make(weights, targets=None, curvature=None, bad_region=None):
        weights = [Matrix(w) for w in weights]
        targets = [Matrix(t) for t in targets] if targets else [Matrix.zeros(*w.shape) for w in weights]
        curvature = [Matrix(c) for c in curvature] if curvature else [Matrix.full(*w.shape, 1.) for w in weights]
        return QuadraticComputer(weights, targets, curvature, bad_region)
    return make

@pytest.fixture
def xor_data():
    """The four XOR examples, as a biased input activation A0 and a ground truth Y."""
    x = np.array([[0., 0.], [0., 1.], [1., 0.], [1., 1.]])
    y = np.array([[0.], [1.], [1.], [0.]])
    return Matrix(x).prepend_column(1.), Matrix(y)

class FakeMNIST:
    """Stands in for torchvision.datasets.MNIST: six random 28x28 images labelled 0-5, nothing is downloaded."""
    calls = []

    def __init__(self, root, train=True, download=False):
        FakeMNIST.calls.append((root, train, download))
        rng = np.random.default_rng(0 if train else 1)
        self.data = torch.from_numpy(rng.integers(0, 256, (6, 28, 28)).astype(np.uint8))
        self.targets = torch.arange(6)

@pytest.fixture
def fake_mnist(monkeypatch):
    import torchvision.datasets
    FakeMNIST.calls = []
    monkeypatch.setattr(torchvision.datasets, 'MNIST', FakeMNIST)
    return FakeMNIST
