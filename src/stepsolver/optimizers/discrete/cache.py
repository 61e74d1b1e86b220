from collections.abc import MutableMapping
from typing import Iterator, Optional

import numpy as np

from stepsolver.exceptions import CacheDirectionError

Key = tuple[float, ...]


def to_key(x) -> Key:
    """Exact-value key for a vector: the tuple of its components as Python floats."""
    return tuple(float(v) for v in np.ravel(x))


class EvaluationCache(MutableMapping):
    """
    Memo of objective values keyed by the exact point they were computed at.

    Points are compared component by component with exact float equality, so two
    arrays holding the same values share one entry regardless of identity. Entries
    are never evicted; the cache only grows.

    A cache serves one objective in one direction. The first optimizer call that
    uses it records its direction in `direction`, and a later call in the opposite
    direction raises :class:`CacheDirectionError`, because the maximizer stores
    negated values.

    Parameters
    ----------
    data : dict, optional
        Backing store. When given, entries are written into this dict, keyed by
        float tuples, so the caller can keep using it directly.
    """

    def __init__(self, data: Optional[dict] = None):
        self._data = {} if data is None else data
        self.direction: Optional[str] = None
        self.hits = 0
        self.misses = 0

    def __getitem__(self, x) -> float:
        return self._data[to_key(x)]

    def __setitem__(self, x, value: float):
        self._data[to_key(x)] = np.asarray(value, dtype=float).item()

    def __delitem__(self, x):
        del self._data[to_key(x)]

    def __contains__(self, x) -> bool:
        return to_key(x) in self._data

    def __iter__(self) -> Iterator[Key]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        return (f"{type(self).__name__}(n_entries={len(self)}, direction={self.direction!r}, "
                f"hits={self.hits}, misses={self.misses})")

    def claim(self, direction: str):
        """Bind the cache to `direction` on first use; refuse the opposite one afterwards."""
        if self.direction is None:
            self.direction = direction
        elif self.direction != direction:
            raise CacheDirectionError(
                f"cache holds values from a {self.direction!r} run and cannot be used to {direction}; "
                f"use a separate cache per direction")

    def evaluate(self, fun, x, args=(), kwargs=None) -> float:
        """Return the cached value at `x`, calling ``fun(x, *args, **kwargs)`` on a miss."""
        key = to_key(x)
        try:
            value = self._data[key]
        except KeyError:
            value = np.asarray(fun(x, *args, **(kwargs or {})), dtype=float).item()
            self._data[key] = value
            self.misses += 1
        else:
            self.hits += 1
        return value
