"""Initial parameter estimates from a hard partition of the sample.

The default partition is a seeded 1-D $k$-means with two centres. When $k$-means leaves a group too small to estimate a standard deviation, callers may retry with another key or fall back to splitting the sorted sample into halves.

Per-group standard deviations use the population estimator (``ddof=0``), the same estimator the M-step applies with hard responsibilities.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array

from .errors import DegenerateInitialization
from .parameters import N_COMPONENTS, ComponentParameters

MIN_GROUP_SIZE = 2


def _assign(sample: Array, centres: Array) -> Array:
    distances = jnp.abs(sample[:, None] - centres[None, :])
    return jnp.argmin(distances, axis=1)


def _update_centres(sample: Array, labels: Array, centres: Array) -> Array:
    one_hot = jax.nn.one_hot(labels, N_COMPONENTS, dtype=sample.dtype)
    counts = jnp.sum(one_hot, axis=0)
    sums = jnp.sum(one_hot * sample[:, None], axis=0)
    # Empty groups keep their previous centre
    return jnp.where(counts > 0, sums / jnp.maximum(counts, 1), centres)


@jax.jit
def kmeans(key: Array, sample: Array, max_iter: int = 100) -> tuple[Array, Array]:
    """Lloyd's algorithm with two centres on a 1-D sample.

    The initial centres are two distinct observations chosen with `key`. Iteration stops once no label changes or after `max_iter` updates.

    Args:
        key: Random key selecting the initial centres.
        sample: Observations of shape (n,).
        max_iter: Maximum number of centre updates.

    Returns:
        Zero-based labels of shape (n,) and centres of shape (2,).
    """
    idxs = jax.random.choice(key, sample.shape[0], shape=(N_COMPONENTS,), replace=False)
    centres = sample[idxs]
    labels = _assign(sample, centres)

    def cond_fn(val: tuple[Array, Array, Array, Array]) -> Array:
        step, _, _, changed = val
        return (step < max_iter) & changed

    def body_fn(
        val: tuple[Array, Array, Array, Array],
    ) -> tuple[Array, Array, Array, Array]:
        step, centres, labels, _ = val
        centres = _update_centres(sample, labels, centres)
        new_labels = _assign(sample, centres)
        return step + 1, centres, new_labels, jnp.any(new_labels != labels)

    init_val = (jnp.array(0), centres, labels, jnp.array(True))
    _, centres, labels, _ = jax.lax.while_loop(cond_fn, body_fn, init_val)
    return labels, centres


def parameters_from_labels(sample: Array, labels: Array) -> ComponentParameters:
    """Estimate component parameters from a hard assignment.

    Raises:
        DegenerateInitialization: If a group has fewer than two members or zero spread.
    """
    one_hot = jax.nn.one_hot(labels, N_COMPONENTS, dtype=sample.dtype)
    counts = jnp.sum(one_hot, axis=0)
    if bool(jnp.any(counts < MIN_GROUP_SIZE)):
        raise DegenerateInitialization(
            f"Initial groups need at least {MIN_GROUP_SIZE} members, got sizes {[int(c) for c in counts]}"
        )

    means = jnp.sum(one_hot * sample[:, None], axis=0) / counts
    variances = jnp.sum(one_hot * (sample[:, None] - means) ** 2, axis=0) / counts
    stds = jnp.sqrt(variances)
    if not bool(jnp.all(stds > 0)):
        raise DegenerateInitialization(
            f"Initial groups have zero spread (standard deviations {stds.tolist()})"
        )

    return ComponentParameters(
        means=means, stds=stds, weights=counts / sample.shape[0]
    )


def kmeans_initialization(
    key: Array, sample: Array, max_iter: int = 100
) -> ComponentParameters:
    """Initial parameters from a seeded $k$-means partition, ordered by increasing mean."""
    labels, centres = kmeans(key, sample, max_iter)
    # Canonical order so equal keys give equal parameters regardless of centre draw order
    labels = jnp.where(centres[0] > centres[1], 1 - labels, labels)
    return parameters_from_labels(sample, labels)


def sorted_halves_initialization(sample: Array) -> ComponentParameters:
    """Initial parameters from the lower and upper halves of the sorted sample.

    With an odd sample size the upper group receives the extra observation.
    """
    n = sample.shape[0]
    upper = jnp.argsort(sample)[n // 2 :]
    labels = jnp.zeros(n, dtype=jnp.int32).at[upper].set(1)
    return parameters_from_labels(sample, labels)


def initialize(
    key: Array,
    sample: Array,
    n_attempts: int = 5,
    fallback: bool = True,
    max_iter: int = 100,
) -> ComponentParameters:
    """Initial parameters by $k$-means, retried with fresh keys.

    Args:
        key: Random key; split into one key per attempt.
        sample: Observations of shape (n,).
        n_attempts: Number of $k$-means attempts before giving up.
        fallback: Whether to use `sorted_halves_initialization` after all attempts fail.
        max_iter: Maximum $k$-means updates per attempt.

    Raises:
        DegenerateInitialization: If every attempt (and the fallback, when enabled) is degenerate.
    """
    error: DegenerateInitialization | None = None
    for attempt_key in jax.random.split(key, max(n_attempts, 1)):
        try:
            return kmeans_initialization(attempt_key, sample, max_iter)
        except DegenerateInitialization as err:
            error = err
    if fallback:
        return sorted_halves_initialization(sample)
    raise DegenerateInitialization(
        f"All {max(n_attempts, 1)} k-means initializations were degenerate"
    ) from error
