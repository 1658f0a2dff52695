"""Expectation-maximization driver for the two-component mixture.

A fit moves through the states

    INIT -> ITERATING -> CONVERGED | EXHAUSTED | FAILED | CANCELLED

INIT initializes the parameters and runs one E-step. Each ITERATING step runs an M-step on the current responsibilities and an E-step on the new parameters, producing a new immutable `FitState`. Whether to stop is decided by `next_status`, a pure function of two consecutive snapshots.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import jax
from jax import Array

from .errors import MixtureError, NotConverged
from .expectation import Expectation, UnderflowPolicy, expectation_step
from .initialization import initialize
from .maximization import DEFAULT_MIN_EFFECTIVE_COUNT, maximization_step
from .parameters import ComponentParameters, as_sample


class FitStatus(Enum):
    """State of a fit; every value except `ITERATING` is terminal."""

    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FitConfig:
    """Settings for a single EM fit."""

    tol: float = 1e-5
    """Convergence threshold on the absolute log-likelihood change."""

    max_iter: int = 100
    """Maximum number of M/E cycles."""

    underflow_policy: UnderflowPolicy = UnderflowPolicy.RAISE
    underflow_floor: float | None = None
    """Normalizer floor for underflow detection; `None` uses the dtype's smallest normal."""

    min_effective_count: float = DEFAULT_MIN_EFFECTIVE_COUNT
    """Effective counts at or below this value make a component collapse."""

    init_attempts: int = 5
    """Number of seeded $k$-means attempts."""

    init_fallback: bool = True
    """Fall back to the sorted-halves split when every $k$-means attempt is degenerate."""

    kmeans_iter: int = 100

    def __post_init__(self):
        if not self.tol > 0:
            raise ValueError(f"tol must be positive, got {self.tol}")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {self.max_iter}")
        if self.init_attempts < 1:
            raise ValueError(
                f"init_attempts must be at least 1, got {self.init_attempts}"
            )


@dataclass(frozen=True)
class FitState:
    """Snapshot of a fit after a completed E-step."""

    params: ComponentParameters
    """Parameters the E-step was evaluated at."""

    expectation: Expectation
    history: tuple[float, ...]
    """Log-likelihood after every completed E-step, oldest first."""

    iteration: int
    """Number of completed M/E cycles (0 after INIT)."""

    n_underflow: int
    """Underflowed observations, summed over all E-steps."""

    @property
    def log_likelihood(self) -> float:
        return self.history[-1]


@dataclass(frozen=True)
class FitResult:
    """Outcome of a fit.

    On `FAILED` and `CANCELLED` the parameters and history are those of the last completed snapshot.
    """

    status: FitStatus
    params: ComponentParameters
    history: tuple[float, ...]
    iterations: int
    n_underflow: int
    responsibilities: Array
    failure: MixtureError | None = None

    @classmethod
    def from_state(
        cls, state: FitState, status: FitStatus, failure: MixtureError | None = None
    ) -> FitResult:
        return cls(
            status=status,
            params=state.params,
            history=state.history,
            iterations=state.iteration,
            n_underflow=state.n_underflow,
            responsibilities=state.expectation.responsibilities,
            failure=failure,
        )

    @property
    def converged(self) -> bool:
        return self.status is FitStatus.CONVERGED

    @property
    def log_likelihood(self) -> float:
        return self.history[-1]

    def raise_for_status(self, allow_unconverged: bool = False) -> FitResult:
        """Raise unless the fit converged.

        Args:
            allow_unconverged: Accept `EXHAUSTED` and `CANCELLED` results.

        Raises:
            MixtureError: The stored failure of a `FAILED` fit.
            NotConverged: For `EXHAUSTED` or `CANCELLED` fits unless allowed.
        """
        if self.failure is not None:
            raise self.failure
        if not self.converged and not allow_unconverged:
            raise NotConverged(
                f"Fit ended {self.status.value} after {self.iterations} iterations"
            )
        return self

    def summary(self) -> dict[str, Any]:
        """JSON-friendly description of the result."""
        return {
            "status": self.status.value,
            "iterations": self.iterations,
            "log_likelihood": self.log_likelihood,
            "n_underflow": self.n_underflow,
            "failure": None if self.failure is None else type(self.failure).__name__,
            **self.params.as_dict(),
        }


# Decisions


def has_converged(previous: FitState, current: FitState, tol: float) -> bool:
    """Whether the log-likelihood changed by less than `tol` between snapshots."""
    return abs(previous.log_likelihood - current.log_likelihood) < tol


def next_status(previous: FitState, current: FitState, config: FitConfig) -> FitStatus:
    """Status after moving from `previous` to `current`."""
    if has_converged(previous, current, config.tol):
        return FitStatus.CONVERGED
    if current.iteration >= config.max_iter:
        return FitStatus.EXHAUSTED
    return FitStatus.ITERATING


# Transitions


def initial_state(
    sample: Array, params: ComponentParameters, config: FitConfig
) -> FitState:
    """Run the INIT E-step on the initial parameters."""
    expectation = expectation_step(
        sample, params, config.underflow_policy, config.underflow_floor
    )
    return FitState(
        params=params,
        expectation=expectation,
        history=(expectation.log_likelihood,),
        iteration=0,
        n_underflow=expectation.n_underflow,
    )


def em_iteration(sample: Array, state: FitState, config: FitConfig) -> FitState:
    """One M-step followed by one E-step; `state` is left untouched."""
    params = maximization_step(
        sample, state.expectation.responsibilities, config.min_effective_count
    )
    expectation = expectation_step(
        sample, params, config.underflow_policy, config.underflow_floor
    )
    return FitState(
        params=params,
        expectation=expectation,
        history=(*state.history, expectation.log_likelihood),
        iteration=state.iteration + 1,
        n_underflow=state.n_underflow + expectation.n_underflow,
    )


# Fitting


def fit(
    xs: Any,
    config: FitConfig = FitConfig(),
    key: Array | None = None,
    initial: ComponentParameters | None = None,
    should_stop: Callable[[FitState], bool] | None = None,
) -> FitResult:
    """Fit a two-component Gaussian mixture by EM.

    Args:
        xs: Observations; converted with `as_sample`.
        config: Fit settings.
        key: Random key for the $k$-means initialization; defaults to `PRNGKey(0)`. Ignored when `initial` is given.
        initial: Initial parameters, bypassing the initializer.
        should_stop: Polled with the latest snapshot before every iteration; returning `True` cancels the fit.

    Returns:
        The fit result. `FAILED` results carry the E- or M-step failure.

    Raises:
        InvalidSample: If `xs` is not a usable sample.
        DegenerateInitialization: If no usable initial partition was found.
        MixtureError: If the INIT E-step fails on the initial parameters.
    """
    sample = as_sample(xs)
    if initial is None:
        if key is None:
            key = jax.random.PRNGKey(0)
        initial = initialize(
            key,
            sample,
            n_attempts=config.init_attempts,
            fallback=config.init_fallback,
            max_iter=config.kmeans_iter,
        )

    state = initial_state(sample, initial, config)
    while True:
        if should_stop is not None and should_stop(state):
            return FitResult.from_state(state, FitStatus.CANCELLED)
        try:
            new_state = em_iteration(sample, state, config)
        except MixtureError as err:
            return FitResult.from_state(state, FitStatus.FAILED, failure=err)
        status = next_status(state, new_state, config)
        state = new_state
        if status is not FitStatus.ITERATING:
            return FitResult.from_state(state, status)


def fit_restarts(
    key: Array,
    xs: Any,
    n_restarts: int = 5,
    config: FitConfig = FitConfig(),
) -> FitResult:
    """Fit from several seeded initializations and keep the best.

    The best result is the non-failed fit with the highest final log-likelihood. If every restart failed, the first result is returned.
    """
    if n_restarts < 1:
        raise ValueError(f"n_restarts must be at least 1, got {n_restarts}")
    sample = as_sample(xs)
    results = [
        fit(sample, config, key=restart_key)
        for restart_key in jax.random.split(key, n_restarts)
    ]
    candidates = [r for r in results if r.status is not FitStatus.FAILED]
    if not candidates:
        return results[0]
    return max(candidates, key=lambda r: r.log_likelihood)
