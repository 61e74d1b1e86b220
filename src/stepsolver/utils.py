import numpy as np
from typing import Callable, Annotated, get_origin, get_args

FIXED_PARAMETERS = ('fun', 'x0')


def check_optimizer_annotations(optimizer: Callable):
    import inspect
    sig = inspect.signature(optimizer)

    has_annotated_param = False
    for param_name, param in sig.parameters.items():
        if param_name in FIXED_PARAMETERS:
            continue

        anno = param.annotation
        if get_origin(anno) is Annotated:
            args = get_args(anno)
            if len(args) >= 2 and isinstance(args[1], Interval):
                has_annotated_param = True
                break

    if not has_annotated_param:
        raise ValueError(f"No Annotated parameters with Interval")


def check_optimizer_function(optimizer: Callable):
    from stepsolver.function_generators import fun_nonlinear as fun_generator

    n_dims = 3
    test_func, optimum_x = fun_generator.get_lattice_function_and_optimum('sphere', n_dims=n_dims)
    result_x = optimizer(fun=test_func, x0=np.zeros(n_dims))
    result_f = test_func(result_x)
    assert result_x is not None, f"Returned None"
    assert isinstance(result_x, np.ndarray), f"Didn't return numpy array"
    assert result_x.shape == (n_dims,), f"Returned wrong shape"

    assert not np.any(np.isinf(result_x)), f"Returned inf values in x estimate"
    assert not np.any(np.isnan(result_x)), f"Returned NaN values in x estimate"

    assert not np.isinf(result_f), f"Produced solution with inf function value"
    assert not np.isnan(result_f), f"Produced solution with NaN function value"
    assert np.allclose(result_x, optimum_x), f"Missed the lattice optimum {optimum_x}, got {result_x}"


class Interval:
    """
    Optuna metadata class for use with parameter annotations using typing.Annotated
    Low and high are required, and must be numeric.
    Step is optional, and should be None if log=True.
    """
    def __init__(self, low: int | float, high: int | float, step: int | float | None=None, log: bool=False):
        self.low = low
        self.high = high
        self.step = step
        self.log = log

    def __repr__(self):
        return f"Interval(low={self.low}, high={self.high}, step={self.step}, log={self.log})"
