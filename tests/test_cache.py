import numpy as np
import pytest

from stepsolver.exceptions import CacheDirectionError
from stepsolver.optimizers.discrete.cache import EvaluationCache, to_key


def test_keys_compare_by_value():
    cache = EvaluationCache()
    cache[np.array([1.0, 2.0])] = 3.0

    assert np.array([1.0, 2.0]) in cache
    assert cache[[1.0, 2.0]] == 3.0
    assert np.array([2.0, 1.0]) not in cache
    assert len(cache) == 1


def test_key_is_float_tuple():
    assert to_key(np.array([1, 2])) == (1.0, 2.0)
    assert to_key(3.5) == (3.5,)


def test_evaluate_counts_hits_and_misses():
    calls = []

    def fun(x):
        calls.append(x.copy())
        return float(np.sum(x))

    cache = EvaluationCache()
    assert cache.evaluate(fun, np.array([1.0, 1.0])) == 2.0
    assert cache.evaluate(fun, np.array([1.0, 1.0])) == 2.0
    assert cache.evaluate(fun, np.array([0.0, 1.0])) == 1.0

    assert len(calls) == 2
    assert cache.misses == 2
    assert cache.hits == 1


def test_evaluate_passes_extra_arguments():
    cache = EvaluationCache()
    value = cache.evaluate(lambda x, a, scale=1.0: scale * (x[0] + a), np.array([2.0]), args=(1.0,),
                           kwargs={'scale': 10.0})
    assert value == 30.0


def test_evaluate_accepts_size_one_array_results():
    cache = EvaluationCache()
    value = cache.evaluate(lambda x: (x - 5) ** 2, np.array([3.0]))
    assert value == 4.0
    assert isinstance(value, float)


def test_backing_dict_receives_entries():
    store = {}
    cache = EvaluationCache(store)
    cache.evaluate(lambda x: 7.0, np.array([1.0, 2.0]))

    assert store == {(1.0, 2.0): 7.0}


def test_direction_is_claimed_once():
    cache = EvaluationCache()
    cache.claim("minimize")
    cache.claim("minimize")

    with pytest.raises(CacheDirectionError):
        cache.claim("maximize")
    assert cache.direction == "minimize"


def test_delete_entry():
    cache = EvaluationCache()
    cache[[1.0]] = 1.0
    del cache[[1.0]]
    assert len(cache) == 0
