import numpy as np
from typing import Callable, Optional

OPTIMUM_VALUE = 1.0


def generate_lattice_transformation(n_dims: int, rng: np.random.Generator):
    """Random integer shift and per-dimension integer weights; keeps integer optima on the integer lattice."""
    shift_range = (-5, 5)
    weight_range = (1, 3)
    shift = rng.integers(shift_range[0], shift_range[1], endpoint=True, size=n_dims).astype(float)
    weights = rng.integers(weight_range[0], weight_range[1], endpoint=True, size=n_dims).astype(float)
    return weights, shift


def generate_transformed_function(func_z: Callable[[np.ndarray], float], optimum_z: np.ndarray,
                                  seed: Optional[int] = None):
    n_dims = len(optimum_z)
    rng = np.random.default_rng(seed)
    weights, shift = generate_lattice_transformation(n_dims, rng)
    optimum_x = optimum_z + shift

    def transformed_func(x: list[float]) -> float:
        x = np.asarray(x, dtype=float)
        z = weights * (x - optimum_x) + optimum_z
        return float(func_z(z)) + OPTIMUM_VALUE

    return transformed_func, optimum_x


def rastrigin(x):
    A = 10.0
    return A * len(x) + np.sum(x ** 2 - A * np.cos(2 * np.pi * x))


def sphere(x):
    return np.sum(x ** 2)


def rosenbrock(x):
    return np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1 - x[:-1]) ** 2)


def griewank(z: np.ndarray) -> float:
    n_dims = len(z)
    sum_sq = np.sum(z**2)
    prod_cos = np.prod(np.cos(z / np.sqrt(np.arange(1, n_dims + 1))))
    return 1 + sum_sq / 4000 - prod_cos


# Optima sit at integer points so a unit-step search can land on them exactly.
FUNCTIONS_AND_OPTIMA = {
    "sphere": (sphere, lambda n_dims: np.zeros(n_dims)),
    "rastrigin": (rastrigin, lambda n_dims: np.zeros(n_dims)),
    "griewank": (griewank, lambda n_dims: np.zeros(n_dims)),
    "rosenbrock": (rosenbrock, lambda n_dims: np.ones(n_dims)),
}


def get_lattice_function_and_optimum(func_name: str, n_dims: int, seed: Optional[int] = None):
    """
    Shifted and weighted benchmark function whose minimizer lies on the integer lattice.

    The minimal value is always `OPTIMUM_VALUE`, never zero, so relative errors stay finite.
    With `func_name='sphere'` the minimizer is found exactly by unit steps;
    other functions may leave a discrete search in a local optimum.
    """
    func_z, optimum_gen = FUNCTIONS_AND_OPTIMA[func_name]
    optimum_z = optimum_gen(n_dims)
    return generate_transformed_function(func_z, optimum_z, seed=seed)


def visualize_function(func_x: Callable, optimum: np.ndarray = None, found: np.ndarray = None,
                       title: str = "Function Visualization", save_path: str | None = None):
    import matplotlib.pyplot as plt

    plot_range = (-6.0, 6.0)
    x1_range = np.linspace(plot_range[0], plot_range[1], 100)
    x2_range = np.linspace(plot_range[0], plot_range[1], 100)
    X1, X2 = np.meshgrid(x1_range, x2_range)
    Y = np.zeros_like(X1)
    for i in range(X1.shape[0]):
        for j in range(X1.shape[1]):
            Y[i, j] = func_x(np.array([X1[i, j], X2[i, j]]))

    plt.figure(figsize=(10, 10))
    plt.contour(X1, X2, Y, levels=100)

    if optimum is not None:
        plt.scatter(optimum[0], optimum[1], color="red", label="optimum")
    if found is not None:
        plt.scatter(found[0], found[1], color="black", marker="x", s=100, label="stepwise result")
    if optimum is not None or found is not None:
        plt.legend()

    plt.colorbar()
    plt.title(title)
    if save_path is not None:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
    else:
        plt.show()
