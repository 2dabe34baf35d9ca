#batch_descent.py
import math
from tqdm import tqdm
from minimizer import Minimizer, Termination
from network_computer import NetworkComputer
from utils.param_math import add, scale

class BatchDescent(Minimizer):
    """
    Full-batch gradient descent with a fixed learning rate.
    W(k) <- W(k) - alpha * ∂J/∂W(k), for at most max_epoch epochs.

    Stops early as soon as an epoch doesn't lower the cost by at least EPSILON,
    and restores the weights from before the last update.
    A non-finite cost counts as not lowering it.
    There is no other protection against divergence, use ConjugateGradient for that.
    """
    EPSILON = 1. / 10000

    def __init__(self, computer: NetworkComputer, max_epoch: int, alpha: float, progress: bool = True) -> None:
        if max_epoch < 0:
            raise ValueError(f"Epoch error: max_epoch must be non-negative, got {max_epoch}.")
        if alpha <= 0:
            raise ValueError(f"Learning rate error: alpha must be positive, got {alpha}.")
        self.computer = computer
        self.max_epoch = max_epoch
        self.alpha = alpha
        self.progress = progress
        self.costs = []

    def minimize(self) -> Termination:
        self.costs = []
        # weights before the most recent update
        previous = self.computer.get_weights()

        epochs = tqdm(range(self.max_epoch), desc='Batch gradient descent', disable=not self.progress)
        for epoch in epochs:
            self.computer.compute()
            cost = self.computer.cost()
            self.costs.append(cost)
            epochs.set_postfix(J=f'{cost:.10f}')

            if epoch > 0 and (not math.isfinite(cost) or cost + self.EPSILON >= self.costs[epoch - 1]):
                if self.progress:
                    tqdm.write(f'epoch #{epoch:02d}: minimum cost reached, restoring the previous weights')
                self.computer.set_weights(previous)
                epochs.close()
                return Termination.CONVERGED

            gradients = self.computer.gradients()
            previous = self.computer.get_weights()
            # Wj = Wj - alpha * ∂J/∂Wj
            self.computer.set_weights(add(previous, scale(gradients, -self.alpha)))

        return Termination.EXHAUSTED_BUDGET
