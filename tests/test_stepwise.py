import numpy as np
import pytest

from stepsolver import (CacheDirectionError, ConvergenceError, DimensionMismatch, EvaluationCache,
                        ObjectiveValueError, maximize, minimize, neighbor_offsets)
from stepsolver.optimizers.discrete.stepwise import broadcast_inputs


def quadratic_2d(x):
    return (x[0] - 2) ** 2 + (x[1] + 3) ** 2


def bumpy(x):
    return (x[0] - 1.3) ** 2 + 3 * np.sin(x[0]) + (x[1] + 0.7) ** 2 + 0.1 * x[0] * x[1]


class CountingObjective:
    def __init__(self, fun):
        self.fun = fun
        self.n_calls = 0

    def __call__(self, x, *args, **kwargs):
        self.n_calls += 1
        return self.fun(x, *args, **kwargs)


def test_minimize_1d_quadratic():
    x = minimize(lambda x: (x - 5) ** 2, 0.0, EvaluationCache(), 1.0)
    assert x == 5.0
    assert isinstance(x, float)


def test_minimize_2d_quadratic():
    x = minimize(quadratic_2d, np.array([0.0, 0.0]), EvaluationCache(), np.array([1.0, 1.0]))
    assert isinstance(x, np.ndarray)
    assert x.tolist() == [2.0, -3.0]


def test_maximize_1d():
    x = maximize(lambda x: -(x - 3) ** 2, 0.0, EvaluationCache(), 1.0)
    assert x == 3.0


def test_convergence_error_carries_point():
    with pytest.raises(ConvergenceError) as excinfo:
        minimize(np.abs, 10.0, EvaluationCache(), 3.0, maxiter=1)
    assert excinfo.value.x == 7.0
    assert excinfo.value.n_iterations == 1
    assert "7" in str(excinfo.value)


def test_same_problem_converges_with_budget():
    assert minimize(np.abs, 10.0, EvaluationCache(), 3.0) == 1.0


def test_first_minimal_candidate_wins_ties():
    # Left neighbour ties with staying put and comes first, so the search keeps walking left.
    flat_left = lambda x: max(float(x[0]), 0.0)
    with pytest.raises(ConvergenceError) as excinfo:
        minimize(flat_left, 0.0, EvaluationCache(), 1.0, maxiter=3)
    assert excinfo.value.x == -3.0


def test_broadcast_initial_point():
    x, step = broadcast_inputs([2.0], [0.1, 0.2, 0.3])
    assert x.tolist() == [2.0, 2.0, 2.0]
    assert step.tolist() == [0.1, 0.2, 0.3]

    seen = []

    def sphere(v):
        seen.append(v.copy())
        return float(np.sum(v ** 2))

    result = minimize(sphere, 2.0, EvaluationCache(), [1.0, 1.0, 1.0])
    assert result.shape == (3,)
    assert result.tolist() == [0.0, 0.0, 0.0]
    assert any(np.array_equal(v, [2.0, 2.0, 2.0]) for v in seen)


def test_broadcast_step_size():
    x, step = broadcast_inputs([1.0, 2.0, 3.0], 0.5)
    assert x.tolist() == [1.0, 2.0, 3.0]
    assert step.tolist() == [0.5, 0.5, 0.5]

    result = minimize(lambda v: float(np.sum((v - 1.5) ** 2)), [1.0, 2.0, 3.0], EvaluationCache(), 0.5)
    assert result.tolist() == [1.5, 1.5, 1.5]


def test_dimension_mismatch():
    with pytest.raises(DimensionMismatch):
        minimize(quadratic_2d, [0.0, 0.0], EvaluationCache(), [1.0, 1.0, 1.0])
    with pytest.raises(ValueError):
        broadcast_inputs([1.0, 2.0], [1.0, 2.0, 3.0])


def test_empty_inputs_rejected():
    with pytest.raises(ValueError):
        broadcast_inputs([], 1.0)


@pytest.mark.parametrize("kwargs", [{'search_range': 0}, {'maxiter': 0}])
def test_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        minimize(quadratic_2d, [0.0, 0.0], EvaluationCache(), 1.0, **kwargs)


def test_determinism():
    store_a, store_b = {}, {}
    x_a = minimize(bumpy, [4.0, 4.0], store_a, [0.25, 0.5], search_range=2)
    x_b = minimize(bumpy, [4.0, 4.0], store_b, [0.25, 0.5], search_range=2)

    assert np.array_equal(x_a, x_b)
    assert store_a == store_b


def test_populated_cache_avoids_new_evaluations():
    objective = CountingObjective(quadratic_2d)
    cache = EvaluationCache()
    first = minimize(objective, [0.0, 0.0], cache, 1.0)
    n_calls = objective.n_calls
    n_entries = len(cache)

    second = minimize(objective, [0.0, 0.0], cache, 1.0)

    assert np.array_equal(first, second)
    assert objective.n_calls == n_calls
    assert len(cache) == n_entries
    assert cache.misses == n_calls


def test_revisited_points_hit_cache():
    objective = CountingObjective(quadratic_2d)
    cache = EvaluationCache()
    minimize(objective, [0.0, 0.0], cache, 1.0)

    # Neighbouring iterations overlap, so there are far fewer calls than 9 per iteration.
    assert cache.hits > 0
    assert objective.n_calls == len(cache)


def test_result_is_local_minimum():
    dx = np.array([0.25, 0.5])
    x = minimize(bumpy, [4.0, 4.0], EvaluationCache(), dx, search_range=2)
    f_x = bumpy(x)

    for offset in neighbor_offsets(2, 2):
        assert bumpy(x + offset * dx) >= f_x - 1e-12


def test_result_is_local_maximum():
    fun = lambda x: -bumpy(x)
    dx = np.array([0.25, 0.5])
    x = maximize(fun, [4.0, 4.0], EvaluationCache(), dx)
    f_x = fun(x)

    for offset in neighbor_offsets(2, 1):
        assert fun(x + offset * dx) <= f_x + 1e-12


@pytest.mark.parametrize("x0,dx,search_range", [
    ([0.0, 0.0], 1.0, 1),
    ([4.0, 4.0], [0.25, 0.5], 2),
    ([-3.0, 1.0], 0.1, 1),
])
def test_maximize_is_minimize_of_negation(x0, dx, search_range):
    fun = lambda x: -bumpy(x)
    x_max = maximize(fun, x0, EvaluationCache(), dx, search_range=search_range)
    x_min = minimize(lambda x: -fun(x), x0, EvaluationCache(), dx, search_range=search_range)
    assert np.array_equal(x_max, x_min)


def test_maximize_caches_negated_values():
    store = {}
    maximize(lambda x: -(x - 3) ** 2, 0.0, store, 1.0)
    assert store[(3.0,)] == 0.0
    assert store[(2.0,)] == 1.0


def test_cache_cannot_switch_direction():
    cache = EvaluationCache()
    minimize(quadratic_2d, [0.0, 0.0], cache, 1.0)
    with pytest.raises(CacheDirectionError):
        maximize(quadratic_2d, [0.0, 0.0], cache, 1.0)


def test_nan_objective_rejected():
    def partly_undefined(x):
        return float('nan') if x[0] > 0.5 else -x[0]

    with pytest.raises(ObjectiveValueError):
        minimize(partly_undefined, 0.0, EvaluationCache(), 1.0)


def test_infinite_values_are_ordinary():
    walled = lambda x: np.inf if x[0] < 0 else (x[0] - 2) ** 2
    assert minimize(walled, 0.0, EvaluationCache(), 1.0) == 2.0


def test_args_and_kwargs_are_passed_through():
    def shifted(x, center, scale=1.0):
        return scale * (x[0] - center) ** 2

    x = minimize(shifted, 0.0, EvaluationCache(), 1.0, args=(4.0,), kwargs={'scale': 2.0})
    assert x == 4.0


def test_ret_cache():
    x, cache = minimize(quadratic_2d, [0.0, 0.0], dx=1.0, ret_cache=True)
    assert x.tolist() == [2.0, -3.0]
    assert isinstance(cache, EvaluationCache)
    assert cache.direction == "minimize"
    assert cache[[2.0, -3.0]] == 0.0


def test_plain_dict_cache_is_filled():
    store = {}
    minimize(lambda x: (x - 5) ** 2, 0.0, store, 1.0)
    assert store[(5.0,)] == 0.0
    assert all(len(key) == 1 for key in store)


def test_zero_step_freezes_dimension():
    fun = lambda x: (x[0] - 2) ** 2 + (x[1] - 5) ** 2
    x = minimize(fun, [0.0, 0.0], EvaluationCache(), [1.0, 0.0])
    assert x.tolist() == [2.0, 0.0]


def test_larger_search_range_jumps_further():
    # Unit steps stop in the dip at 1; a range of 3 sees the deeper minimum at 4.
    values = {0: 5.0, 1: 3.0, 2: 4.0, 3: 2.0, 4: 0.0, -1: 6.0}
    fun = lambda x: values.get(int(x[0]), 10.0)

    assert minimize(fun, 0.0, EvaluationCache(), 1.0) == 1.0
    assert minimize(fun, 0.0, EvaluationCache(), 1.0, search_range=3) == 4.0


@pytest.mark.parametrize("x0,dx,kwargs", [
    ([0.0, 0.0], [1.0, 1.0, 1.0], {}),
    ([0.0, 0.0], 1.0, {'search_range': 0}),
    ([0.0, 0.0], 1.0, {'maxiter': 0}),
])
def test_rejected_call_leaves_cache_unclaimed(x0, dx, kwargs):
    cache = EvaluationCache()
    with pytest.raises(ValueError):
        minimize(quadratic_2d, x0, cache, dx, **kwargs)
    assert cache.direction is None

    x = maximize(lambda x: -quadratic_2d(x), [0.0, 0.0], cache, 1.0)
    assert x.tolist() == [2.0, -3.0]
    assert cache.direction == "maximize"


def test_result_does_not_view_candidate_matrix():
    x = minimize(quadratic_2d, [0.0, 0.0], EvaluationCache(), 1.0)
    assert x.base is None

    with pytest.raises(ConvergenceError) as excinfo:
        minimize(quadratic_2d, [0.0, 0.0], EvaluationCache(), 1.0, maxiter=1)
    assert excinfo.value.x.base is None
