"""Parameters of a two-component univariate Gaussian mixture.

A mixture is described by three length-2 arrays: component means $\\mu_k$, standard deviations $\\sigma_k$, and mixing weights $\\alpha_k$. The density of the mixture is

$$p(x) = \\sum_{k=1}^2 \\alpha_k \\mathcal{N}(x; \\mu_k, \\sigma_k^2).$$

Component identity is arbitrary, so the module also provides the label mirror `ComponentParameters.swap`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jax
import jax.numpy as jnp
from jax import Array
from jax.scipy import stats
from jax.scipy.special import logsumexp

from .errors import InvalidParameter, InvalidSample

N_COMPONENTS = 2

WEIGHT_ATOL = 1e-6
"""Tolerance on $\\alpha_1 + \\alpha_2 = 1$ when validating parameters."""


def as_sample(xs: Any) -> Array:
    """Convert observations to a 1-D floating point sample.

    Raises:
        InvalidSample: If the sample is not one dimensional, has fewer than two observations, or contains non-finite values.
    """
    sample = jnp.asarray(xs, dtype=jnp.result_type(float))
    if sample.ndim != 1:
        raise InvalidSample(f"Sample must be one dimensional, got shape {sample.shape}")
    if sample.shape[0] < 2:
        raise InvalidSample(
            f"Sample needs at least 2 observations, got {sample.shape[0]}"
        )
    if not bool(jnp.all(jnp.isfinite(sample))):
        raise InvalidSample("Sample contains non-finite values")
    return sample


@jax.tree_util.register_pytree_node_class
@dataclass(frozen=True)
class ComponentParameters:
    """Means, standard deviations and mixing weights of both components.

    Registered as a pytree so it can be passed through `jax.jit` and `jax.vmap`.
    """

    # Fields

    means: Array
    """Component means, shape (2,)."""

    stds: Array
    """Component standard deviations, shape (2,)."""

    weights: Array
    """Mixing weights, shape (2,), summing to one."""

    # Constructors

    @classmethod
    def from_pairs(
        cls,
        means: tuple[float, float],
        stds: tuple[float, float],
        weights: tuple[float, float] = (0.5, 0.5),
    ) -> ComponentParameters:
        """Build parameters from per-component pairs."""
        dtype = jnp.result_type(float)
        return cls(
            means=jnp.asarray(means, dtype=dtype),
            stds=jnp.asarray(stds, dtype=dtype),
            weights=jnp.asarray(weights, dtype=dtype),
        )

    # Pytree

    def tree_flatten(self) -> tuple[tuple[Array, Array, Array], None]:
        return (self.means, self.stds, self.weights), None

    @classmethod
    def tree_unflatten(
        cls, aux_data: None, children: tuple[Array, Array, Array]
    ) -> ComponentParameters:
        return cls(*children)

    # Properties

    @property
    def variances(self) -> Array:
        return self.stds**2

    # Methods

    def swap(self) -> ComponentParameters:
        """Exchange the labels of the two components."""
        return ComponentParameters(
            means=self.means[::-1],
            stds=self.stds[::-1],
            weights=self.weights[::-1],
        )

    def validate(self) -> None:
        """Check that the parameters describe a proper mixture.

        Raises:
            InvalidParameter: If any array has the wrong shape, a value is non-finite, a standard deviation is not strictly positive, or the weights are not a probability vector with entries in (0, 1).
        """
        for name in ("means", "stds", "weights"):
            value = getattr(self, name)
            if jnp.shape(value) != (N_COMPONENTS,):
                raise InvalidParameter(
                    f"{name} must have shape ({N_COMPONENTS},), got {jnp.shape(value)}"
                )
            if not bool(jnp.all(jnp.isfinite(value))):
                raise InvalidParameter(f"{name} contains non-finite values: {value}")
        if not bool(jnp.all(self.stds > 0)):
            raise InvalidParameter(
                f"Standard deviations must be positive, got {self.stds}"
            )
        if not bool(jnp.all((self.weights > 0) & (self.weights < 1))):
            raise InvalidParameter(f"Weights must lie in (0, 1), got {self.weights}")
        if abs(float(jnp.sum(self.weights)) - 1.0) > WEIGHT_ATOL:
            raise InvalidParameter(f"Weights must sum to 1, got {self.weights}")

    def as_dict(self) -> dict[str, float]:
        """Flatten into named scalars, e.g. for JSON output."""
        out: dict[str, float] = {}
        for k in range(N_COMPONENTS):
            out[f"mu_{k + 1}"] = float(self.means[k])
            out[f"sigma_{k + 1}"] = float(self.stds[k])
            out[f"alpha_{k + 1}"] = float(self.weights[k])
        return out


# Densities


def weighted_log_densities(params: ComponentParameters, xs: Array) -> Array:
    """Log of $\\alpha_k \\mathcal{N}(x_i; \\mu_k, \\sigma_k^2)$ for every observation and component.

    Returns:
        Array of shape (n, 2).
    """
    xs = jnp.atleast_1d(xs)
    log_pdf = stats.norm.logpdf(xs[:, None], params.means, params.stds)
    return log_pdf + jnp.log(params.weights)


def log_density(params: ComponentParameters, xs: Array) -> Array:
    """Mixture log-density at each point of `xs`."""
    return logsumexp(weighted_log_densities(params, xs), axis=1)


def density(params: ComponentParameters, xs: Array) -> Array:
    """Mixture density at each point of `xs`."""
    return jnp.exp(log_density(params, xs))


def assign(params: ComponentParameters, xs: Array) -> Array:
    """Zero-based label of the most responsible component for each point."""
    return jnp.argmax(weighted_log_densities(params, xs), axis=1)


def sample(key: Array, params: ComponentParameters, n: int) -> tuple[Array, Array]:
    """Draw `n` observations from the mixture.

    Returns:
        The observations and the (zero-based) component label of each.
    """
    key_z, key_x = jax.random.split(key)
    labels = jax.random.choice(key_z, N_COMPONENTS, shape=(n,), p=params.weights)
    noise = jax.random.normal(key_x, shape=(n,), dtype=params.means.dtype)
    return params.means[labels] + params.stds[labels] * noise, labels
