from stepsolver.exceptions import (CacheDirectionError, ConvergenceError, DimensionMismatch,
                                   ObjectiveValueError, StepSolverError)
from stepsolver.optimizers.discrete import EvaluationCache, neighbor_offsets
from stepsolver.optimizers.discrete.stepwise import maximize, minimize

__all__ = [
    'minimize',
    'maximize',
    'EvaluationCache',
    'neighbor_offsets',
    'StepSolverError',
    'ConvergenceError',
    'DimensionMismatch',
    'CacheDirectionError',
    'ObjectiveValueError',
]
