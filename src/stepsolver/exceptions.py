import numpy as np


class StepSolverError(Exception):
    """Base class for errors raised by stepsolver."""


class ConvergenceError(StepSolverError):
    """
    Raised when `maxiter` iterations pass without the search settling on a point.

    The final (non-converged) point is kept in `x` so callers can inspect it or
    restart from it with a larger budget.
    """

    def __init__(self, x, n_iterations: int):
        self.x = x
        self.n_iterations = n_iterations
        super().__init__(f"maxiter reached without convergence (x = {np.array2string(np.asarray(x))}, "
                         f"n_iterations = {n_iterations})")


class DimensionMismatch(StepSolverError, ValueError):
    """Initial point and step sizes are both vectors but of different lengths."""


class CacheDirectionError(StepSolverError, ValueError):
    """A results cache filled while minimizing was reused for maximizing, or vice versa."""


class ObjectiveValueError(StepSolverError, ValueError):
    """The objective returned a value that cannot be ordered (NaN)."""
