"""Fit two-component mixtures by EM and compare against sklearn."""

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array
from sklearn.mixture import GaussianMixture  # pyright: ignore[reportMissingTypeStubs]

from twomix import (
    ComponentParameters,
    FitConfig,
    FitResult,
    UnderflowPolicy,
    density,
    fit,
    initialize,
    sample,
)

from ..shared import example_parser, example_paths, get_plot_range, jax_cli
from .types import MixtureResults, ScenarioResults

# name -> (means, stds, weights, sample size)
SCENARIOS: dict[
    str,
    tuple[tuple[float, float], tuple[float, float], tuple[float, float], int],
] = {
    "overlapping": ((1.0, 1.5), (0.5, 0.5), (0.5, 0.5), 500),
    "separated": ((0.0, 10.0), (0.1, 0.1), (0.5, 0.5), 200),
    "unbalanced": ((-2.0, 1.0), (0.8, 1.5), (0.25, 0.75), 800),
}


### Validation ###


def sklearn_fit(
    xs: Array, config: FitConfig, seed: int
) -> tuple[GaussianMixture, ComponentParameters]:
    """Reference fit with sklearn, with components ordered by mean."""
    gmm = GaussianMixture(
        n_components=2,
        covariance_type="full",
        tol=config.tol,
        max_iter=config.max_iter,
        random_state=seed,
    )
    gmm.fit(np.asarray(xs)[:, None])

    order = np.argsort(gmm.means_.ravel())
    params = ComponentParameters(
        means=jnp.asarray(gmm.means_.ravel()[order]),
        stds=jnp.asarray(np.sqrt(gmm.covariances_.ravel()[order])),
        weights=jnp.asarray(gmm.weights_[order]),
    )
    return gmm, params


### Analysis ###


def compute_scenario(
    key: Array, name: str, config: FitConfig, seed: int
) -> ScenarioResults:
    means, stds, weights, n = SCENARIOS[name]
    gt_params = ComponentParameters.from_pairs(means, stds, weights)

    key_sample, key_fit = jax.random.split(key)
    xs, _ = sample(key_sample, gt_params, n)

    init_params = initialize(
        key_fit,
        xs,
        n_attempts=config.init_attempts,
        fallback=config.init_fallback,
        max_iter=config.kmeans_iter,
    )
    result: FitResult = fit(xs, config, initial=init_params)
    gmm, sk_params = sklearn_fit(xs, config, seed)

    plot_xs = get_plot_range(xs)
    sk_dens = np.exp(gmm.score_samples(np.asarray(plot_xs)[:, None]))

    fitted = jnp.sort(result.params.means)
    print(
        f"{name}: {result.status.value} after {result.iterations} iterations, "
        f"log likelihood {result.log_likelihood:.4f}"
    )
    print(
        f"  means {fitted.tolist()} (sklearn {sk_params.means.tolist()}, "
        f"max difference {float(jnp.max(jnp.abs(fitted - sk_params.means))):.2e})"
    )
    if result.n_underflow > 0:
        print(f"  clamped {result.n_underflow} underflowing observations")
    if result.failure is not None:
        print(f"  failure: {result.failure}")

    return ScenarioResults(
        name=name,
        sample=xs.tolist(),
        plot_xs=plot_xs.tolist(),
        ground_truth=gt_params.as_dict(),
        initial=init_params.as_dict(),
        fit=result.summary(),
        sklearn=sk_params.as_dict(),
        sklearn_converged=bool(gmm.converged_),
        sklearn_iterations=int(gmm.n_iter_),
        ground_truth_densities=density(gt_params, plot_xs).tolist(),
        fitted_densities=density(result.params, plot_xs).tolist(),
        sklearn_densities=sk_dens.tolist(),
        training_lls=list(result.history),
    )


### Main ###


def main():
    parser = example_parser("Fit two-component Gaussian mixtures by EM")
    parser.add_argument("--tol", type=float, default=1e-5, help="Convergence threshold")
    parser.add_argument("--max-iter", type=int, default=100, help="Iteration cap")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument(
        "--clamp-underflow",
        action="store_true",
        help="Clamp underflowing densities instead of failing",
    )
    args = jax_cli(parser)
    paths = example_paths(__file__)

    config = FitConfig(
        tol=args.tol,
        max_iter=args.max_iter,
        underflow_policy=(
            UnderflowPolicy.CLAMP if args.clamp_underflow else UnderflowPolicy.RAISE
        ),
    )

    keys = jax.random.split(jax.random.PRNGKey(args.seed), len(SCENARIOS))
    scenarios = [
        compute_scenario(key, name, config, args.seed)
        for key, name in zip(keys, SCENARIOS)
    ]

    paths.save_analysis(
        MixtureResults(tol=args.tol, max_iter=args.max_iter, scenarios=scenarios)
    )
    print(f"\nResults saved to {paths.analysis_path}")


if __name__ == "__main__":
    main()
