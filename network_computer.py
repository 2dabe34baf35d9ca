#network_computer.py
"""
NetworkComputer
Holds - the weights of a feed forward network with sigmoid activations
      - the biased input activation
      - the one-hot ground truth
      - the L2 regularization strength lambda

compute() runs the forward pass, the backward pass (backpropagation) and the regularized cross-entropy cost.
Afterwards the cost and the gradients can be read with cost() and gradients().

Layers are an ordered list of weight matrices. Weights[i] has shape (size of layer i+1, size of layer i + 1),
the extra column holds the bias weight. The default network has exactly two weight matrices (one hidden layer).
"""

from copy import deepcopy
from matrix import Matrix
from errors import ConfigurationError

class NetworkComputer:
    """
    Forward and backward propagation over a list of weight matrices.

    Attributes:
        Y (Matrix): Ground truth, one row per example, one column per class. None if only used for prediction.
        weights (list): Weight matrices, weights[0] maps the biased input to the first hidden layer.
        activations (list): Biased activations. activations[0] is the input with a leading column of 1.0.
        H (Matrix): Output activation, one row per example. Valid after a forward pass.
        J (float): Regularized cost. Valid after compute().
        lambda_ (float): Regularization strength. Bias columns are never regularized.

    The accessors return copies, so the internal state can't be mutated through them.
    """
    def __init__(self, weights: [Matrix], a0: Matrix = None, y: Matrix = None, lambda_: float = 1.0) -> None:
        if not weights:
            raise ConfigurationError("Cannot build a NetworkComputer without weights.")
        if lambda_ < 0:
            raise ValueError(f"Regularization error: lambda must be non-negative, got {lambda_}.")
        self.weights = [w.copy() for w in weights]
        self.activations = [None] * len(self.weights)
        self.activations[0] = a0.copy() if a0 is not None else None
        self.Y = y.copy() if y is not None else None
        self.lambda_ = float(lambda_)

        self.H = None
        self.J = 0.
        self._Z = [None] * len(self.weights)  # pre-activations of every layer
        self._gradients = None

    def copy(self) -> 'NetworkComputer':
        """Deep copy: no matrix is shared between the copy and the original."""
        return deepcopy(self)

    # ---------------------------------------------------------------- accessors

    def get_a0(self) -> Matrix:
        return self.activations[0].copy()

    def set_a0(self, a0: Matrix) -> None:
        self.activations[0] = a0.copy()

    def get_y(self) -> Matrix:
        return self.Y.copy()

    def set_y(self, y: Matrix) -> None:
        self.Y = y.copy()

    def get_weights(self) -> [Matrix]:
        return [w.copy() for w in self.weights]

    def set_weights(self, weights: [Matrix]) -> None:
        if len(weights) != len(self.weights):
            raise ConfigurationError(f"Expected {len(self.weights)} weight matrices, got {len(weights)}.")
        self.weights = [w.copy() for w in weights]

    def weight_shapes(self) -> [(int, int)]:
        return [w.shape for w in self.weights]

    def gradients(self) -> [Matrix]:
        if self._gradients is None:
            raise RuntimeError("Gradients are only available after compute().")
        return [g.copy() for g in self._gradients]

    def cost(self) -> float:
        return self.J

    def pre_activations(self) -> [Matrix]:
        """Z(i) = A(i)·W(i)ᵗ of every layer, from the last forward pass of compute()."""
        return [z.copy() if z is not None else None for z in self._Z]

    # ---------------------------------------------------------------- computation

    def compute(self) -> None:
        """Forward pass, backward pass and cost, in that order."""
        if self.activations[0] is None or self.Y is None:
            raise RuntimeError("compute() needs both the input activation and the ground truth.")
        self.H = self._forward(self.activations[0], self.activations, self._Z)
        self._backward()
        self._cost()

    def predict(self, x: Matrix) -> Matrix:
        """
        Predicts the output for raw (unbiased) input, one example per row.
        Returns the output activation transposed: one row per class, one column per example.
        Doesn't touch the training activation, the cost or the gradients.
        """
        a0 = x.prepend_column(1.0)
        activations = [None] * len(self.weights)
        activations[0] = a0
        H = self._forward(a0, activations, [None] * len(self.weights))
        return H.transpose()

    def _forward(self, a0: Matrix, activations: [Matrix], Z: [Matrix]) -> Matrix:
        """
        Z(i) = A(i)·W(i)ᵗ, and A(i+1) = [1, σ(Z(i))] for every hidden layer.
        Fills activations and Z in place, returns the output activation σ(Z(last)).
        """
        a = a0
        last = len(self.weights) - 1
        for i, w in enumerate(self.weights):
            Z[i] = a.multiply_transpose_b(w)
            h = Z[i].sigmoid()
            if i == last:
                return h
            # prepend a column of 1.0 for the bias of the next layer
            a = h.prepend_column(1.0)
            activations[i + 1] = a

    def _backward(self) -> None:
        """
        δ(L) = H - Y
        δ(l) = (δ(l+1)·W(l+1)) .* [1, σ'(Z(l))] without its first column
        ∂J/∂W(l) = δ(l+1)ᵗ·A(l) / m + (lambda/m) * W(l) with the bias column zeroed
        """
        m = self.activations[0].rows
        gradients = [None] * len(self.weights)

        delta = self.H.minus(self.Y)
        for i in reversed(range(len(self.weights))):
            grad = delta.transpose_multiply(self.activations[i]).scale(1. / m)
            # exclude the bias from regularization
            reg = self.weights[i].set_column(0, 0.).scale(self.lambda_ / m)
            gradients[i] = grad.plus(reg)

            if i > 0:
                sig_grad = self._Z[i - 1].sigmoid_derivative().prepend_column(1.0)
                t = delta.multiply(self.weights[i]).element_mult(sig_grad)
                # drop the bias column
                delta = t.slice(0, t.rows, 1, t.cols)

        self._gradients = gradients

    def cost_denominator(self) -> int:
        """The m of the cost: the column count of the biased input activation."""
        return self.activations[0].cols

    def _cost(self) -> None:
        """
        J = (-1/m) Σ[ Y.*log(H) + (1-Y).*log(1-H) ] + (lambda/2m) Σ W² over all non-bias weights
        """
        m = self.cost_denominator()
        t1 = self.Y.element_mult(self.H.log())
        t2 = self.Y.negative().plus(1.).element_mult(self.H.negative().plus(1.).log())
        J = (-1. / m) * t1.plus(t2).sum()

        reg = sum(w.slice(0, w.rows, 1, w.cols).power(2.).sum() for w in self.weights)
        self.J = J + (self.lambda_ / (2 * m)) * reg
