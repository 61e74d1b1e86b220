from .stepwise import minimize as minimize_stepwise
from .stepwise import maximize as maximize_stepwise
from .cache import EvaluationCache
from .grid import neighbor_offsets

__all__ = [
    'minimize_stepwise',
    'maximize_stepwise',
    'EvaluationCache',
    'neighbor_offsets',
]
