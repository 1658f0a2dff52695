"""Maximization step: responsibility-weighted re-estimation of the components."""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array

from .errors import CollapsedComponent, InvalidParameter
from .parameters import N_COMPONENTS, ComponentParameters

DEFAULT_MIN_EFFECTIVE_COUNT = 1e-10


@jax.jit
def _weighted_moments(sample: Array, responsibilities: Array) -> tuple[Array, Array, Array]:
    """Effective counts, weighted means and weighted variances per component.

    Each quantity is a sum over per-point contributions, so the result does not depend on how the points are grouped.
    """
    counts = jnp.sum(responsibilities, axis=0)
    means = jnp.sum(responsibilities * sample[:, None], axis=0) / counts
    sq_devs = responsibilities * (sample[:, None] - means) ** 2
    variances = jnp.sum(sq_devs, axis=0) / counts
    return counts, means, variances


def maximization_step(
    sample: Array,
    responsibilities: Array,
    min_effective_count: float = DEFAULT_MIN_EFFECTIVE_COUNT,
) -> ComponentParameters:
    """Re-estimate component parameters from soft assignments.

    For component $k$ with effective count $N_k = \\sum_i r_{ik}$:

    $$\\mu_k = \\frac{1}{N_k}\\sum_i r_{ik} x_i, \\quad \\sigma_k^2 = \\frac{1}{N_k}\\sum_i r_{ik}(x_i - \\mu_k)^2, \\quad \\alpha_k = \\frac{N_k}{N_1 + N_2}.$$

    Normalizing the weights by $N_1 + N_2$ (which equals $n$ up to rounding) makes them sum to one.

    Args:
        sample: Observations of shape (n,).
        responsibilities: Membership probabilities of shape (n, 2).
        min_effective_count: Effective counts at or below this value count as collapsed.

    Returns:
        Updated parameters. A standard deviation may be zero if a component concentrates on identical observations; the next E-step rejects such parameters.

    Raises:
        InvalidParameter: If `responsibilities` does not match the sample's shape.
        CollapsedComponent: If a component's effective count vanishes, or is too small for its weight to be distinguished from zero in the sample's precision.
    """
    if responsibilities.shape != (sample.shape[0], N_COMPONENTS):
        raise InvalidParameter(
            f"Responsibilities must have shape ({sample.shape[0]}, {N_COMPONENTS}), got {responsibilities.shape}"
        )

    counts, means, variances = _weighted_moments(sample, responsibilities)
    for k in range(N_COMPONENTS):
        count = float(counts[k])
        if not count > min_effective_count:
            raise CollapsedComponent(k + 1, count)

    weights = counts / jnp.sum(counts)
    # In low precision the dominant weight rounds to one before the count reaches the threshold
    if not bool(jnp.all((weights > 0) & (weights < 1))):
        k = int(jnp.argmin(counts))
        raise CollapsedComponent(k + 1, float(counts[k]))

    return ComponentParameters(
        means=means,
        stds=jnp.sqrt(variances),
        weights=weights,
    )
