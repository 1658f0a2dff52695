"""Expectation step: posterior component memberships and sample log-likelihood.

For each observation $x_i$ the unnormalized component weights are $w_{ik} = \\alpha_k \\mathcal{N}(x_i; \\mu_k, \\sigma_k^2)$, the normalizer is $Z_i = \\sum_k w_{ik}$, and the responsibilities are $r_{ik} = w_{ik} / Z_i$. The log-likelihood of the sample is $\\ell = \\sum_i \\log Z_i$.

Everything is computed in log space, so responsibilities stay well defined when $Z_i$ itself is not representable. An observation *underflows* when $Z_i$ falls below a floor (by default the smallest positive normal number of the sample's dtype). What happens next is governed by `UnderflowPolicy`:

- `RAISE`: the step fails with `NumericalUnderflow`.
- `CLAMP`: $\\log Z_i$ is clamped to $\\log$ of the floor in the log-likelihood, responsibilities keep their log-space values (or fall back to the mixing weights if both component densities are zero), and the number of clamped observations is reported.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import jax
import jax.numpy as jnp
from jax import Array
from jax.scipy.special import logsumexp

from .errors import NumericalUnderflow
from .parameters import ComponentParameters, weighted_log_densities


class UnderflowPolicy(Enum):
    """How the E-step treats observations whose mixture density underflows."""

    RAISE = "raise"
    CLAMP = "clamp"


@dataclass(frozen=True)
class Expectation:
    """Output of one E-step."""

    responsibilities: Array
    """Posterior membership probabilities, shape (n, 2); rows sum to one."""

    log_normalizers: Array
    """Per-observation $\\log Z_i$ (clamped where the policy allows), shape (n,)."""

    log_likelihood: float
    """Total sample log-likelihood $\\sum_i \\log Z_i$."""

    n_underflow: int
    """Number of observations whose normalizer fell below the floor."""


def _point_expectation(
    params: ComponentParameters, x: Array, log_floor: Array
) -> tuple[Array, Array, Array]:
    log_w = weighted_log_densities(params, x)[0]
    log_z = logsumexp(log_w)
    # Both densities can be exactly zero; fall back to the prior
    resolved = jnp.isfinite(log_z)
    posterior = jnp.exp(log_w - jnp.where(resolved, log_z, 0.0))
    resp = jnp.where(resolved, posterior, params.weights)
    return resp, jnp.maximum(log_z, log_floor), log_z < log_floor


@jax.jit
def _expectation_kernel(
    params: ComponentParameters, sample: Array, log_floor: Array
) -> tuple[Array, Array, Array]:
    resps, log_zs, underflows = jax.vmap(_point_expectation, in_axes=(None, 0, None))(
        params, sample, log_floor
    )
    return resps, log_zs, jnp.sum(underflows)


def default_floor(sample: Array) -> float:
    """Smallest positive normal number representable in the sample's dtype."""
    return float(jnp.finfo(sample.dtype).tiny)


def expectation_step(
    sample: Array,
    params: ComponentParameters,
    policy: UnderflowPolicy = UnderflowPolicy.RAISE,
    floor: float | None = None,
) -> Expectation:
    """Compute responsibilities and the sample log-likelihood.

    Args:
        sample: Observations of shape (n,).
        params: Current component parameters.
        policy: Treatment of observations whose mixture density underflows.
        floor: Underflow threshold for the normalizer; defaults to `default_floor`.

    Returns:
        Responsibilities, per-point log normalizers, total log-likelihood and underflow count.

    Raises:
        InvalidParameter: If `params` is not a valid mixture (e.g. a non-positive standard deviation).
        NumericalUnderflow: If some observation underflows and `policy` is `RAISE`.
    """
    params.validate()
    if floor is None:
        floor = default_floor(sample)
    log_floor = jnp.log(jnp.asarray(floor, dtype=sample.dtype))

    resps, log_zs, n_underflow = _expectation_kernel(params, sample, log_floor)
    n_underflow = int(n_underflow)
    if n_underflow > 0 and policy is UnderflowPolicy.RAISE:
        raise NumericalUnderflow(n_underflow, floor)

    return Expectation(
        responsibilities=resps,
        log_normalizers=log_zs,
        log_likelihood=float(jnp.sum(log_zs)),
        n_underflow=n_underflow,
    )
