#minimizer.py
from abc import ABC, abstractmethod
from enum import Enum
import pandas as pd

class Termination(Enum):
    """Why a minimizer stopped."""
    CONVERGED = 'converged'
    STALLED = 'stalled'
    EXHAUSTED_BUDGET = 'exhausted budget'

class Minimizer(ABC):
    """
    Drives the training of a NetworkComputer.
    minimize() always leaves the best weights found in the computer, also when it stalls.
    """
    costs: [float]

    @abstractmethod
    def minimize(self) -> Termination:
        ...

    def history(self) -> pd.DataFrame:
        """The cost of every evaluation, in order."""
        return pd.DataFrame({'Epoch': range(len(self.costs)), 'Cost': pd.Series(self.costs, dtype=float)}).set_index('Epoch')
