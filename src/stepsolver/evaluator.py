import logging
from inspect import signature
from typing import Annotated, Callable, get_origin, get_args
import time

import click
import matplotlib.pyplot as plt
import numpy as np
import optuna

from stepsolver.exceptions import StepSolverError
from stepsolver.function_generators import fun_nonlinear as fun_generator
from stepsolver.optimizers import OPTIMIZERS
from stepsolver.optimizers.discrete import EvaluationCache
from stepsolver.utils import FIXED_PARAMETERS, Interval

logger = logging.getLogger(__name__)

# Parameters the tuner never touches; they keep their defaults unless overridden.
UNTUNED_PARAMETERS = FIXED_PARAMETERS + ('results_cache', 'args', 'kwargs', 'ret_cache')


def setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    if not debug:
        logging.getLogger("stepsolver.optimizers").setLevel(logging.WARNING)
        optuna.logging.set_verbosity(optuna.logging.WARNING)


def generate_test_functions(n_samples, n_dims, function_names=None,
                            seed: int | None = None) -> list[tuple[Callable, np.ndarray]]:
    # Generate a list of [function, optimum] pairs
    function_names = function_names or fun_generator.FUNCTIONS_AND_OPTIMA.keys()
    rng = np.random.default_rng(seed)
    output_functions_and_optima = []
    for func_name in function_names:
        for _ in range(n_samples):
            func, optimum_x = fun_generator.get_lattice_function_and_optimum(
                func_name, n_dims=n_dims, seed=int(rng.integers(2**31)))
            output_functions_and_optima.append((func, optimum_x))
    return output_functions_and_optima


def multivariate_model_runner(minimizer: Callable, func_optima_tuples: list[tuple[Callable, np.ndarray]],
                              **kwargs) -> tuple[float, float, float]:
    """
    Return the mean log relative error, the mean number of objective evaluations and the
    elapsed time of `minimizer` over a set of test functions.

    A run that fails to converge counts with the point it stopped at.
    Kwargs are forwarded to the minimizer (Optuna trial.suggest_* values when tuning).
    """
    log_rel_errors = []
    n_evaluations = []
    time_start = time.time()

    for test_func, optimum in func_optima_tuples:
        denominator = np.abs(test_func(optimum))
        assert denominator > 1e-3, "Optimal value should not be near-zero"
        cache = EvaluationCache()
        try:
            x_hat = minimizer(fun=test_func, x0=np.zeros(len(optimum)), results_cache=cache, **kwargs)
        except StepSolverError as e:
            logger.warning("%s did not finish: %s", getattr(minimizer, '__name__', minimizer), e)
            x_hat = getattr(e, 'x', np.zeros(len(optimum)))
        numerator = np.abs(test_func(x_hat) - test_func(optimum))
        rel_error = numerator / denominator
        if rel_error <= 1e-12:
            log_rel_errors.append(-12)  # Avoid log-zero issues when very small numbers
        else:
            log_rel_errors.append(np.log10(rel_error))
        n_evaluations.append(cache.misses)

    time_elapsed = time.time() - time_start
    logger.info("Trial with params %s took %.2fs, mean log rel errors: %.3f, mean evaluations: %.1f",
                kwargs, time_elapsed, np.mean(log_rel_errors), np.mean(n_evaluations))

    return float(np.mean(log_rel_errors)), float(np.mean(n_evaluations)), time_elapsed


def univariate_model_runner(**kwargs):
    # Every tenfold increase in evaluations costs as much as a tenfold larger error.
    log_rel_error, n_evaluations, _ = multivariate_model_runner(**kwargs)
    return log_rel_error + np.log10(max(n_evaluations, 1.0))


def make_optuna_objective(minimizer_to_test: Callable,
                          func_optima_tuples: list[tuple[Callable, np.ndarray]]) -> Callable:
    sig = signature(minimizer_to_test)

    # The term "trial" is magic used by Optuna
    def optuna_loss(trial):
        kwargs = {'minimizer': minimizer_to_test, 'func_optima_tuples': func_optima_tuples}
        for name, param in sig.parameters.items():
            if name in UNTUNED_PARAMETERS:
                continue
            anno = param.annotation
            if get_origin(anno) is Annotated:
                base_type, meta = get_args(anno)
                if isinstance(meta, Interval):
                    if base_type is int:
                        if meta.log:
                            step = None
                        else:
                            step = meta.step if meta.step is not None else 1
                        kwargs[name] = trial.suggest_int(name, meta.low, meta.high,
                                                         step=step, log=meta.log)
                    else:
                        if meta.log:
                            step = None
                        else:
                            step = meta.step if meta.step is not None else (meta.high - meta.low) / 100
                        kwargs[name] = trial.suggest_float(name, meta.low, meta.high,
                                                           step=step, log=meta.log)
                elif isinstance(meta, list) and base_type is str:
                    kwargs[name] = trial.suggest_categorical(name, meta)
                else:
                    raise ValueError(f"Unsupported metadata for {name}: {meta}")
            else:
                kwargs[name] = param.default

        return univariate_model_runner(**kwargs)

    return optuna_loss


def tune_minimizer(minimizer_to_test: Callable, func_optima_tuples: list[tuple[Callable, np.ndarray]],
                   n_trials: int = 50, seed: int | None = None):
    """
    Tune the minimizer using Optuna.

    :param minimizer_to_test: The minimizer function to tune.
    :param func_optima_tuples: Test functions and their optima to tune on.
    :param n_trials: Number of trials for tuning.
    :param seed: Seed of the Optuna sampler.
    :return: The best parameters found by Optuna.
    """
    objective = make_optuna_objective(minimizer_to_test, func_optima_tuples=func_optima_tuples)
    study = optuna.create_study(direction="minimize", sampler=optuna.samplers.TPESampler(seed=seed))
    study.optimize(objective, n_trials=n_trials)
    return study.best_params


def benchmark_search_ranges(n_test_functions: int = 2, n_dims: int = 2, search_ranges=(1, 2, 3),
                            dx: float = 1.0, maxiter: int = 1000, optimizer_names: list[str] | None = None,
                            save_path: str | None = None, seed: int | None = None, show: bool = True):
    """
    Run each optimizer with each search range over the same test functions and plot
    error against evaluation count.

    Returns one result dict per (optimizer, search range) pair.
    """
    test_functions = generate_test_functions(n_samples=n_test_functions, n_dims=n_dims, seed=seed)
    optimizer_names = optimizer_names or list(OPTIMIZERS.keys())

    results = []
    for name in optimizer_names:
        if name not in OPTIMIZERS:
            logger.warning("Optimizer '%s' not found, skipping...", name)
            continue
        for search_range in search_ranges:
            log_rel_error, n_evaluations, time_elapsed = multivariate_model_runner(
                minimizer=OPTIMIZERS[name], func_optima_tuples=test_functions,
                dx=dx, search_range=search_range, maxiter=maxiter)
            results.append({
                'name': name,
                'search_range': search_range,
                'log_rel_error': log_rel_error,
                'n_evaluations': n_evaluations,
                'time_elapsed': time_elapsed,
            })

    if results:
        create_benchmark_plot(results, save_path=save_path, show=show)
    return results


def create_benchmark_plot(results, save_path: str | None = None, show: bool = True):
    """Create a scatter plot of error against objective evaluations."""
    log_errors = [r['log_rel_error'] for r in results]
    evaluations = [r['n_evaluations'] for r in results]

    plt.figure(figsize=(12, 8))
    plt.scatter(evaluations, log_errors, s=100, alpha=0.7)

    for r in results:
        plt.annotate(f"{r['name'].replace('minimize_', '')} r={r['search_range']}",
                     (r['n_evaluations'], r['log_rel_error']),
                     xytext=(5, 5), textcoords='offset points',
                     fontsize=9, alpha=0.8)

    plt.xscale('log')
    plt.xlabel('Objective evaluations (mean per function)')
    plt.ylabel('Log Relative Error')
    plt.title('Stepwise Search Performance\n(Lower and Left is Better)')
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    if save_path is not None:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        logger.info("Plot saved as '%s'", save_path)
    if show:
        plt.show()
    plt.close()


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
def cli(debug):
    setup_logging(debug)


@cli.command()
def list_optimizers():
    """List all available optimizers."""
    click.echo("Available optimizers:")
    click.echo("-" * 40)
    for i, name in enumerate(sorted(OPTIMIZERS.keys()), 1):
        algo_name = name.replace('minimize_', '').replace('_', ' ').title()
        click.echo(f"{i:2d}. {name:25} ({algo_name})")
    click.echo(f"\nTotal: {len(OPTIMIZERS)} optimizers")


@cli.command()
@click.option('--n-trials', default=50, help='Number of trials for hyperparameter tuning')
@click.option('--optimizer', type=click.Choice(list(OPTIMIZERS.keys())),
              default='minimize_stepwise', help='Which optimizer to tune')
@click.option('--n-tune-functions', default=2, help='Number of functions per benchmark type to tune on')
@click.option('--n-dims', default=2, help='Number of dimensions for the test functions')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
def tune(n_trials, optimizer, n_tune_functions, n_dims, seed):
    """Tune hyperparameters for a specific optimizer."""
    tune_functions = generate_test_functions(n_samples=n_tune_functions, n_dims=n_dims, seed=seed)
    best_params = tune_minimizer(minimizer_to_test=OPTIMIZERS[optimizer], func_optima_tuples=tune_functions,
                                 n_trials=n_trials, seed=seed)

    click.echo(f"Best parameters found for {optimizer}:")
    for param, value in best_params.items():
        click.echo(f"  {param}: {value}")


@cli.command()
@click.option('--n-test-functions', default=2, help='Number of functions per benchmark type')
@click.option('--n-dims', default=2, help='Number of dimensions for the test functions')
@click.option('--search-ranges', default='1,2,3', help='Comma separated search ranges to compare')
@click.option('--dx', default=1.0, help='Step size along every dimension')
@click.option('--maxiter', default=1000, help='Maximum number of iterations per run')
@click.option('--save-path', default=None, help='Path to save the plot')
@click.option('--show/--no-show', default=True, help='Display the plot window')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
@click.option('--optimizers', multiple=True, type=click.Choice(list(OPTIMIZERS.keys())),
              help='Specific optimizers to test (can specify multiple times). If not specified, test all optimizers.')
def benchmark(n_test_functions, n_dims, search_ranges, dx, maxiter, save_path, show, seed, optimizers):
    """Benchmark optimizers over several search ranges and create a scatter plot."""
    ranges = [int(r) for r in search_ranges.split(',') if r.strip()]
    results = benchmark_search_ranges(n_test_functions=n_test_functions, n_dims=n_dims, search_ranges=ranges,
                                      dx=dx, maxiter=maxiter, optimizer_names=list(optimizers) or None,
                                      save_path=save_path, seed=seed, show=show)

    click.echo("BENCHMARK SUMMARY")
    for result in sorted(results, key=lambda x: (x['log_rel_error'], x['n_evaluations'])):
        click.echo(f"{result['name']:20} | search_range: {result['search_range']:2d} "
                   f"| log_rel_error: {result['log_rel_error']:8.3f} "
                   f"| evaluations: {result['n_evaluations']:9.1f} | time: {result['time_elapsed']:6.2f}s")


@cli.command()
@click.option('--function', 'func_name', type=click.Choice(list(fun_generator.FUNCTIONS_AND_OPTIMA.keys())),
              default='sphere', help='Benchmark function to draw')
@click.option('--dx', default=1.0, help='Step size along every dimension')
@click.option('--search-range', default=1, help='Number of steps explored in each direction')
@click.option('--save-path', default=None, help='Path to save the plot instead of showing it')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
def visualize(func_name, dx, search_range, save_path, seed):
    """Draw a 2-D benchmark function with its optimum and the stepwise result."""
    func, optimum = fun_generator.get_lattice_function_and_optimum(func_name, n_dims=2, seed=seed)
    minimizer = OPTIMIZERS['minimize_stepwise']
    try:
        found = minimizer(fun=func, x0=np.zeros(2), dx=dx, search_range=search_range)
    except StepSolverError as e:
        click.echo(f"Search did not finish: {e}")
        found = getattr(e, 'x', None)
    click.echo(f"optimum: {optimum}, found: {found}")
    fun_generator.visualize_function(func, optimum=optimum, found=found, title=f"{func_name} function",
                                     save_path=save_path)


if __name__ == '__main__':
    cli()
