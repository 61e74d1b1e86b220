# Import all optimizers from subdirectories
from .discrete import *

__all__ = []

from stepsolver.optimizers.discrete import __all__ as discrete_all
__all__.extend(discrete_all)

# Create a mapping of optimizer names to functions
OPTIMIZERS = {}

for name in __all__:
    if name.startswith('minimize_'):
        OPTIMIZERS[name] = globals()[name]

# Import any optimizer like:
# from stepsolver.optimizers import minimize_stepwise, maximize_stepwise
# Or access the mapping: from stepsolver.optimizers import OPTIMIZERS
