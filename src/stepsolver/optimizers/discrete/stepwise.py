import logging
from typing import Annotated, Callable, Optional, Union

import numpy as np

from stepsolver.exceptions import ConvergenceError, DimensionMismatch, ObjectiveValueError
from stepsolver.optimizers.discrete.cache import EvaluationCache
from stepsolver.optimizers.discrete.grid import neighbor_offsets
from stepsolver.utils import Interval

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_RANGE = 1
DEFAULT_MAXITER = 10000


def broadcast_inputs(x0, dx) -> tuple[np.ndarray, np.ndarray]:
    """
    Bring the initial point and the step sizes to a common dimensionality.

    A length-1 input is repeated to the length of the other one. Both inputs of
    length 1 describe a 1-D problem.
    """
    x = np.atleast_1d(np.asarray(x0, dtype=float)).ravel()
    step = np.atleast_1d(np.asarray(dx, dtype=float)).ravel()
    if x.size == 0 or step.size == 0:
        raise ValueError("x0 and dx must not be empty")
    if x.size == 1 and step.size > 1:
        x = np.full(step.size, x[0])
    elif step.size == 1 and x.size > 1:
        step = np.full(x.size, step[0])
    elif x.size != step.size:
        raise DimensionMismatch(f"x0 has {x.size} dimensions but dx has {step.size}")
    return x, step


def _as_result(x: np.ndarray, scalar: bool):
    return float(x[0]) if scalar else x


def _wrap_cache(results_cache: Union[EvaluationCache, dict, None]) -> EvaluationCache:
    if isinstance(results_cache, EvaluationCache):
        return results_cache
    return EvaluationCache(results_cache)


def _search(fun, x0, cache: EvaluationCache, direction: str, dx, search_range, maxiter, args, kwargs):
    if search_range < 1:
        raise ValueError(f"search_range must be >= 1, got {search_range}")
    if maxiter < 1:
        raise ValueError(f"maxiter must be >= 1, got {maxiter}")

    scalar = np.ndim(x0) == 0 and np.ndim(dx) == 0
    origin, step = broadcast_inputs(x0, dx)
    n_dims = origin.size
    offsets = neighbor_offsets(n_dims, search_range)
    cache.claim(direction)

    # Candidates are always origin + integer * step so revisited points reproduce bit for bit.
    position = np.zeros(n_dims, dtype=int)
    x = origin.copy()

    for n_iter in range(1, maxiter + 1):
        lattice = position + offsets
        candidates = origin + lattice * step  # [n_offsets, n_dims]
        values = np.empty(len(candidates))
        for idx, candidate in enumerate(candidates):
            values[idx] = cache.evaluate(fun, candidate.copy(), args, kwargs)
        if np.isnan(values).any():
            bad = candidates[np.flatnonzero(np.isnan(values))[0]]
            raise ObjectiveValueError(f"objective returned NaN at x = {np.array2string(bad)}")

        # argmin returns the first minimal entry, which fixes the tie-break order.
        best = int(np.argmin(values))
        position = lattice[best]
        x = candidates[best].copy()
        logger.debug("iteration %d: x = %s, f = %g, cache size = %d", n_iter, x, values[best], len(cache))

        # A zero step freezes its dimension, so only the scaled offset decides whether we moved.
        if not (offsets[best] * step).any():
            logger.info("converged after %d iterations at x = %s", n_iter, x)
            return _as_result(x, scalar)

    raise ConvergenceError(_as_result(x, scalar), maxiter)


def minimize(
    fun: Callable[..., float],
    x0: Union[float, np.ndarray],
    results_cache: Union[EvaluationCache, dict, None] = None,
    dx: Annotated[float, Interval(low=0.01, high=1.0, log=True)] = 1.0,
    search_range: Annotated[int, Interval(low=1, high=3)] = DEFAULT_SEARCH_RANGE,
    maxiter: int = DEFAULT_MAXITER,
    args: tuple = (),
    kwargs: Optional[dict] = None,
    ret_cache: bool = False,
):
    """
    Minimizes a discrete function by nearest neighbour descent.

    Each iteration evaluates `fun` on every point of the neighbour grid around the
    current point and moves to the best one. The first grid point (in
    :func:`neighbor_offsets` order) reaching the minimal value wins. The search
    has converged once staying put wins.

    Parameters
    ----------
    fun : Callable
        Function to be minimized.
        Its signature must be ``fun(x, *args, **kwargs) -> float``.
    x0 : np.ndarray or float
        Initial guess for solution.
    results_cache : EvaluationCache or dict or None
        Pre-calculated results, updated in place. A fresh cache is used if None.
        Must only ever hold values of this `fun` in the minimizing direction.
    dx : np.ndarray or float
        Discrete steps along each dimension.
        If scalar, applies given step to all dimensions.
    search_range : int
        Number of discrete steps to be evaluated per iteration.
        E.g. `search_range = 1` means evaluating in the range ``[-1, 0, 1]``.
        Larger `search_range` avoids ending in local optimum but is slower.
    maxiter : int
        Maximum number of optimization steps.
    args : tuple
        Additional function arguments.
    kwargs : dict, optional
        Function keyword arguments.
    ret_cache : bool
        Whether to return the results cache.

    Returns
    -------
    x : np.ndarray or float
        Solution. Scalar if both `x0` and `dx` are scalars, vectorial otherwise.
    results_cache : EvaluationCache
        Results cache. Only returned if `ret_cache` is True.

    Raises
    ------
    ConvergenceError
        If `maxiter` is reached without convergence.
    DimensionMismatch
        If `x0` and `dx` are vectors of different lengths.
    """
    cache = _wrap_cache(results_cache)
    x = _search(fun, x0, cache, "minimize", dx, search_range, maxiter, args, kwargs)
    return (x, cache) if ret_cache else x


def maximize(
    fun: Callable[..., float],
    x0: Union[float, np.ndarray],
    results_cache: Union[EvaluationCache, dict, None] = None,
    dx: Annotated[float, Interval(low=0.01, high=1.0, log=True)] = 1.0,
    search_range: Annotated[int, Interval(low=1, high=3)] = DEFAULT_SEARCH_RANGE,
    maxiter: int = DEFAULT_MAXITER,
    args: tuple = (),
    kwargs: Optional[dict] = None,
    ret_cache: bool = False,
):
    """
    Maximizes a discrete function by nearest neighbour ascent.

    Same as :func:`minimize` applied to ``-fun``. The cache therefore stores negated
    values and must not be shared with a :func:`minimize` call on the same objective.
    """
    def negated(x, *fun_args, **fun_kwargs):
        return -fun(x, *fun_args, **fun_kwargs)

    cache = _wrap_cache(results_cache)
    x = _search(negated, x0, cache, "maximize", dx, search_range, maxiter, args, kwargs)
    return (x, cache) if ret_cache else x
