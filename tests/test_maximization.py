"""Tests for the maximization step."""

import jax
import jax.numpy as jnp
import pytest
from jax import Array

from twomix import (
    CollapsedComponent,
    ComponentParameters,
    InvalidParameter,
    expectation_step,
    maximization_step,
)

jax.config.update("jax_platform_name", "cpu")
jax.config.update("jax_enable_x64", True)

# Tolerances
RTOL = 1e-10
ATOL = 1e-12

# Test parameters
SAMPLE_SIZE = 200


@pytest.fixture
def key() -> Array:
    """Random key for tests."""
    return jax.random.PRNGKey(42)


@pytest.fixture
def sample(key: Array) -> Array:
    return 2.0 * jax.random.normal(key, (SAMPLE_SIZE,))


@pytest.fixture
def responsibilities(key: Array) -> Array:
    """Random rows on the probability simplex."""
    probs = jax.random.uniform(jax.random.fold_in(key, 1), (SAMPLE_SIZE,))
    return jnp.stack([probs, 1 - probs], axis=1)


class TestWeightedEstimates:
    """Test responsibility-weighted parameter estimates."""

    def test_matches_weighted_moments(self, sample: Array, responsibilities: Array) -> None:
        params = maximization_step(sample, responsibilities)

        for k in range(2):
            r = responsibilities[:, k]
            n_k = jnp.sum(r)
            mean = jnp.average(sample, weights=r)
            var = jnp.average((sample - mean) ** 2, weights=r)
            assert jnp.allclose(params.means[k], mean, rtol=RTOL, atol=ATOL)
            assert jnp.allclose(params.stds[k], jnp.sqrt(var), rtol=RTOL, atol=ATOL)
            assert jnp.allclose(params.weights[k], n_k / SAMPLE_SIZE, rtol=RTOL, atol=ATOL)

    def test_weights_sum_to_one(self, sample: Array, responsibilities: Array) -> None:
        params = maximization_step(sample, responsibilities)
        assert float(jnp.sum(params.weights)) == pytest.approx(1.0, abs=1e-15)
        params.validate()

    def test_hard_assignments_give_group_statistics(self) -> None:
        sample = jnp.array([1.0, 2.0, 3.0, 10.0, 12.0])
        resps = jnp.array([[1.0, 0.0]] * 3 + [[0.0, 1.0]] * 2)
        params = maximization_step(sample, resps)
        assert jnp.allclose(params.means, jnp.array([2.0, 11.0]), rtol=RTOL, atol=ATOL)
        assert jnp.allclose(
            params.stds, jnp.array([jnp.sqrt(2.0 / 3.0), 1.0]), rtol=RTOL, atol=ATOL
        )
        assert jnp.allclose(params.weights, jnp.array([0.6, 0.4]), rtol=RTOL, atol=ATOL)

    def test_order_independent(
        self, key: Array, sample: Array, responsibilities: Array
    ) -> None:
        perm = jax.random.permutation(jax.random.fold_in(key, 2), SAMPLE_SIZE)
        params = maximization_step(sample, responsibilities)
        permuted = maximization_step(sample[perm], responsibilities[perm])
        assert jnp.allclose(params.means, permuted.means, rtol=RTOL, atol=ATOL)
        assert jnp.allclose(params.stds, permuted.stds, rtol=RTOL, atol=ATOL)
        assert jnp.allclose(params.weights, permuted.weights, rtol=RTOL, atol=ATOL)

    def test_label_symmetry(self, sample: Array, responsibilities: Array) -> None:
        params = maximization_step(sample, responsibilities)
        mirrored = maximization_step(sample, responsibilities[:, ::-1])
        assert jnp.array_equal(mirrored.means, params.swap().means)
        assert jnp.array_equal(mirrored.stds, params.swap().stds)


class TestFailures:
    """Test collapse and shape errors."""

    def test_collapsed_component(self, sample: Array) -> None:
        resps = jnp.stack([jnp.ones(SAMPLE_SIZE), jnp.zeros(SAMPLE_SIZE)], axis=1)
        with pytest.raises(CollapsedComponent) as info:
            maximization_step(sample, resps)
        assert info.value.component == 2
        assert info.value.effective_count == 0.0

    def test_collapse_threshold(self, sample: Array) -> None:
        resps = jnp.stack(
            [jnp.full(SAMPLE_SIZE, 1 - 1e-6), jnp.full(SAMPLE_SIZE, 1e-6)], axis=1
        )
        maximization_step(sample, resps)
        with pytest.raises(CollapsedComponent):
            maximization_step(sample, resps, min_effective_count=1e-3)

    def test_collapse_in_single_precision(self, key: Array) -> None:
        # The starved weight is representable but its complement rounds to one
        n = 500
        sample = jax.random.normal(key, (n,), dtype=jnp.float32)
        starved = jnp.full(n, 2e-8, dtype=jnp.float32)
        resps = jnp.stack([1 - starved, starved], axis=1)
        assert resps.dtype == jnp.float32

        with pytest.raises(CollapsedComponent) as info:
            maximization_step(sample, resps)
        assert info.value.component == 2
        assert info.value.effective_count == pytest.approx(1e-5, rel=1e-3)

    def test_shape_mismatch(self, sample: Array) -> None:
        with pytest.raises(InvalidParameter):
            maximization_step(sample, jnp.ones((SAMPLE_SIZE, 3)) / 3)
        with pytest.raises(InvalidParameter):
            maximization_step(sample[:-1], jnp.ones((SAMPLE_SIZE, 2)) / 2)

    def test_zero_spread_rejected_by_next_expectation(self) -> None:
        sample = jnp.array([0.0, 0.0, 0.0, 0.0, 1.0, 2.0, 3.0])
        params = ComponentParameters.from_pairs((0.0, 2.0), (1e-3, 1.0))
        resps = expectation_step(sample, params).responsibilities

        updated = maximization_step(sample, resps)
        assert updated.stds[0] == 0.0
        with pytest.raises(InvalidParameter):
            expectation_step(sample, updated)
