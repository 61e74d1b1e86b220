import numpy as np


def neighbor_offsets(n_dims: int, search_range: int = 1) -> np.ndarray:
    """
    Build the table of integer step offsets evaluated around a point.

    Every combination of per-dimension offsets in ``[-search_range, search_range]``
    appears exactly once. Rows are ordered like a mixed-radix counter of base
    ``2 * search_range + 1`` whose most significant digit is dimension 0, so the
    first dimension varies slowest.

    Parameters
    ----------
    n_dims : int
        Number of dimensions.
    search_range : int
        Number of discrete steps explored in each direction.
        E.g. `search_range = 1` gives offsets in ``[-1, 0, 1]``.

    Returns
    -------
    np.ndarray
        Integer array of shape ``((2 * search_range + 1) ** n_dims, n_dims)``.
    """
    if n_dims < 1:
        raise ValueError(f"n_dims must be >= 1, got {n_dims}")
    if search_range < 1:
        raise ValueError(f"search_range must be >= 1, got {search_range}")

    base = 2 * search_range + 1
    n_rows = base ** n_dims
    rows = np.arange(n_rows)[:, None]
    place = base ** np.arange(n_dims - 1, -1, -1)[None, :]
    return (rows // place) % base - search_range

