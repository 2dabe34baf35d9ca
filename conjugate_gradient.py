#conjugate_gradient.py
"""
Nonlinear conjugate gradient minimizer.
Polak-Ribiere search directions, and a line search that brackets and then refines the step length
with quadratic and cubic interpolation until the Wolfe-Powell conditions hold.

Follows the well known fmincg routine.
(C) Copyright 1999, 2000 & 2001, Carl Edward Rasmussen.
Permission is granted for anyone to copy, use, or modify these programs and accompanying documents
for purposes of research or education, provided this copyright notice is retained,
and note is made of any changes that have been made.
Changes: works on a NetworkComputer, rejects non-finite trial costs, stops early on a vanishing gradient.

All weight matrices are packed into one row vector with Matrix.flatten_and_concat.
The minimizer evaluates trial points on its own copy of the computer,
only the final accepted point is written back into the computer it was given.
"""

import numpy as np
from tqdm import tqdm
from matrix import Matrix
from utils.param_math import flatten, unflatten
from minimizer import Minimizer, Termination
from network_computer import NetworkComputer

def _finite(z: float) -> bool:
    return bool(np.isfinite(z))

@np.errstate(all='ignore')
def _quadratic_fit(z3: float, f2: float, f3: float, d3: float) -> float:
    return float(np.float64(z3) - (0.5 * np.float64(d3) * z3 * z3) / (np.float64(d3) * z3 + f2 - f3))

@np.errstate(all='ignore')
def _cubic_fit(z3: float, f2: float, f3: float, d2: float, d3: float) -> float:
    z3, f2, f3, d2, d3 = map(np.float64, (z3, f2, f3, d2, d3))
    A = 6 * (f2 - f3) / z3 + 3 * (d2 + d3)
    B = 3 * (f3 - f2) - z3 * (d3 + 2 * d2)
    # the root may be of a negative number, that gives nan and is handled by the caller
    return float((np.sqrt(B * B - A * d2 * z3 * z3) - B) / A)

@np.errstate(all='ignore')
def _cubic_extrapolation(z3: float, f2: float, f3: float, d2: float, d3: float) -> float:
    z3, f2, f3, d2, d3 = map(np.float64, (z3, f2, f3, d2, d3))
    A = 6 * (f2 - f3) / z3 + 3 * (d2 + d3)
    B = 3 * (f3 - f2) - z3 * (d3 + 2 * d2)
    return float(-d2 * z3 * z3 / (B + np.sqrt(B * B - A * d2 * z3 * z3)))

@np.errstate(all='ignore')
def _divide(a: float, b: float) -> float:
    return float(np.float64(a) / np.float64(b))

class ConjugateGradient(Minimizer):
    """
    Minimizes the cost of a NetworkComputer with conjugate gradients.

    max_epoch > 0: at most max_epoch line searches.
    max_epoch < 0: at most |max_epoch| cost evaluations.

    Attributes:
        costs (list): The cost of every evaluation, accepted or not.
        evaluations (int): Number of cost/gradient evaluations done by the last minimize().
    """
    # extrapolate at most 3 times the current bracket
    EXT = 3.0
    # RHO and SIG are the constants of the Wolfe-Powell conditions
    RHO = 0.01
    SIG = 0.5
    # don't reevaluate within 0.1 of the limit of the current bracket
    INT = 0.1
    # max 20 evaluations per line search
    MAX = 20
    # maximum allowed slope ratio
    RATIO = 100
    # smallest positive normal double, keeps the slope ratio away from a division by zero
    REALMIN = 2.2251e-308

    def __init__(self, computer: NetworkComputer, max_epoch: int, progress: bool = True) -> None:
        if max_epoch == 0:
            raise ValueError("Epoch error: max_epoch must be non-zero.")
        self.computer = computer
        self.max_epoch = max_epoch
        self.progress = progress
        self.costs = []
        self.evaluations = 0
        self._shapes = computer.weight_shapes()
        self._trial = None

    def _evaluate(self, x: Matrix) -> (float, Matrix):
        """Cost and flattened gradient at the point x."""
        self._trial.set_weights(unflatten(x, self._shapes))
        self._trial.compute()
        f = self._trial.cost()
        self.costs.append(f)
        self.evaluations += 1
        return f, flatten(self._trial.gradients())

    def _wolfe_fails(self, f1: float, f2: float, z1: float, d1: float, d2: float) -> bool:
        # written as 'not <=' so that a nan cost fails the sufficient decrease test
        return not (f2 <= f1 + z1 * self.RHO * d1) or d2 > -self.SIG * d1

    def minimize(self) -> Termination:
        length = self.max_epoch
        budget = abs(length)
        self.costs = []
        self.evaluations = 0
        self._trial = self.computer.copy()

        x = flatten(self.computer.get_weights())
        i = 0               # run length counter
        red = 1.
        ls_failed = False   # no previous line search has failed

        progress = tqdm(total=budget, desc='Conjugate gradient', disable=not self.progress)

        f1, df1 = self._evaluate(x)
        i += 1 if length < 0 else 0
        progress.set_postfix(J=f'{f1:.10f}')

        s = df1.negative()      # search direction is steepest
        d1 = s.negative().dot(s)  # this is the slope
        z1 = red / (1. - d1)    # initial step is red/(|s|+1)

        termination = Termination.EXHAUSTED_BUDGET
        if d1 == 0:
            termination = Termination.CONVERGED

        while termination is Termination.EXHAUSTED_BUDGET and i < budget:
            i += 1 if length > 0 else 0

            # copy current values, matrices are immutable
            x0, f0, df0 = x, f1, df1
            # begin line search
            x = x.plus(s.scale(z1))
            f2, df2 = self._evaluate(x)
            i += 1 if length < 0 else 0
            d2 = df2.dot(s)
            # initialize point 3 equal to point 1
            f3, d3, z3 = f1, d1, -z1

            M = self.MAX if length > 0 else min(self.MAX, -length - i)
            success = False
            limit = -1.

            while True:
                while self._wolfe_fails(f1, f2, z1, d1, d2) and M > 0:
                    # tighten the bracket
                    limit = z1
                    if f2 > f1:
                        z2 = _quadratic_fit(z3, f2, f3, d3)
                    else:
                        z2 = _cubic_fit(z3, f2, f3, d2, d3)
                    if not _finite(z2):
                        # numerical problem, bisect
                        z2 = z3 / 2.
                    # don't accept too close to the limits
                    z2 = max(min(z2, self.INT * z3), (1 - self.INT) * z3)
                    z1 += z2
                    x = x.plus(s.scale(z2))
                    f2, df2 = self._evaluate(x)
                    M -= 1
                    i += 1 if length < 0 else 0
                    d2 = df2.dot(s)
                    # z3 is now relative to the location of z2
                    z3 -= z2

                if self._wolfe_fails(f1, f2, z1, d1, d2):
                    break   # failure
                elif d2 > self.SIG * d1:
                    success = True
                    break
                elif M == 0:
                    break   # failure

                z2 = _cubic_extrapolation(z3, f2, f3, d2, d3)
                if not _finite(z2) or z2 < 0:
                    # numerical problem or wrong sign
                    if limit < -0.5:
                        # no upper limit, extrapolate the maximum amount
                        z2 = z1 * (self.EXT - 1)
                    else:
                        z2 = (limit - z1) / 2
                elif limit > -0.5 and z2 + z1 > limit:
                    # extrapolation beyond the limit, bisect
                    z2 = (limit - z1) / 2
                elif limit < -0.5 and z2 + z1 > z1 * self.EXT:
                    # extrapolation beyond the maximum amount
                    z2 = z1 * (self.EXT - 1.)
                elif z2 < -z3 * self.INT:
                    z2 = -z3 * self.INT
                elif limit > -0.5 and z2 < (limit - z1) * (1. - self.INT):
                    # too close to the limit
                    z2 = (limit - z1) * (1. - self.INT)

                # set point 3 equal to point 2
                f3, d3, z3 = f2, d2, -z2
                z1 += z2
                x = x.plus(s.scale(z2))
                f2, df2 = self._evaluate(x)
                M -= 1
                i += 1 if length < 0 else 0
                d2 = df2.dot(s)
            # end of line search

            if success:
                f1 = f2
                # Polak-Ribiere direction: s = (df2'*df2 - df1'*df2)/(df1'*df1)*s - df2
                beta = _divide(df2.dot(df2) - df1.dot(df2), df1.dot(df1))
                if not _finite(beta):
                    beta = 0.
                s = s.scale(beta).minus(df2)
                df1, df2 = df2, df1
                d2 = df1.dot(s)
                if d2 > 0:
                    # the new slope must be negative, otherwise use steepest descent
                    s = df1.negative()
                    d2 = s.negative().dot(s)
                z1 = z1 * min(self.RATIO, _divide(d1, d2 - self.REALMIN))
                d1 = d2
                ls_failed = False
                if d1 == 0:
                    # the gradient vanished
                    termination = Termination.CONVERGED
            else:
                # restore the point from before the failed line search
                x, f1, df1 = x0, f0, df0
                # line search failed twice in a row, or we ran out of time
                if ls_failed or i > budget:
                    termination = Termination.STALLED if ls_failed else Termination.EXHAUSTED_BUDGET
                    break
                df1, df2 = df2, df1
                # try steepest descent
                s = df1.negative()
                d1 = s.negative().dot(s)
                z1 = 1. / (1. - d1)
                ls_failed = True
                if d1 == 0:
                    termination = Termination.CONVERGED

            progress.update(min(i, budget) - progress.n)
            progress.set_postfix(J=f'{f1:.10f}')

        progress.close()
        if self.progress:
            tqdm.write(f'Conjugate gradient: {termination.value} after {self.evaluations} evaluations, J = {f1:.10f}')

        self.computer.set_weights(unflatten(x, self._shapes))
        return termination
