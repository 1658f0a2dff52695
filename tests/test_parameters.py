"""Tests for mixture parameters, densities and sampling."""

import jax
import jax.numpy as jnp
import pytest
from jax import Array
from jax.scipy import stats
from jax.scipy.integrate import trapezoid

from twomix import (
    ComponentParameters,
    InvalidParameter,
    InvalidSample,
    as_sample,
    assign,
    density,
    log_density,
    sample,
    weighted_log_densities,
)

jax.config.update("jax_platform_name", "cpu")
jax.config.update("jax_enable_x64", True)

# Tolerances
RTOL = 1e-10
ATOL = 1e-12


@pytest.fixture
def params() -> ComponentParameters:
    """Asymmetric two-component mixture."""
    return ComponentParameters.from_pairs((-1.0, 2.0), (0.5, 1.5), (0.3, 0.7))


class TestSample:
    """Test conversion and validation of observations."""

    def test_converts_lists(self) -> None:
        xs = as_sample([1, 2, 3])
        assert xs.shape == (3,)
        assert jnp.issubdtype(xs.dtype, jnp.floating)

    @pytest.mark.parametrize("xs", [[], [1.0]])
    def test_rejects_short_samples(self, xs: list[float]) -> None:
        with pytest.raises(InvalidSample):
            as_sample(xs)

    def test_rejects_non_finite(self) -> None:
        with pytest.raises(InvalidSample):
            as_sample([0.0, jnp.nan, 1.0])
        with pytest.raises(InvalidSample):
            as_sample([0.0, jnp.inf, 1.0])

    def test_rejects_matrices(self) -> None:
        with pytest.raises(InvalidSample):
            as_sample([[0.0, 1.0], [2.0, 3.0]])


class TestComponentParameters:
    """Test parameter construction and validation."""

    def test_validate_accepts_mixture(self, params: ComponentParameters) -> None:
        params.validate()

    @pytest.mark.parametrize("stds", [(0.0, 1.0), (1.0, -2.0), (jnp.nan, 1.0)])
    def test_validate_rejects_stds(self, stds: tuple[float, float]) -> None:
        bad = ComponentParameters.from_pairs((0.0, 1.0), stds)
        with pytest.raises(InvalidParameter):
            bad.validate()

    @pytest.mark.parametrize("weights", [(0.5, 0.6), (0.0, 1.0), (1.2, -0.2)])
    def test_validate_rejects_weights(self, weights: tuple[float, float]) -> None:
        bad = ComponentParameters.from_pairs((0.0, 1.0), (1.0, 1.0), weights)
        with pytest.raises(InvalidParameter):
            bad.validate()

    def test_validate_rejects_shapes(self) -> None:
        bad = ComponentParameters(
            means=jnp.zeros(3), stds=jnp.ones(3), weights=jnp.ones(3) / 3
        )
        with pytest.raises(InvalidParameter):
            bad.validate()

    def test_swap(self, params: ComponentParameters) -> None:
        swapped = params.swap()
        assert jnp.array_equal(swapped.means, params.means[::-1])
        assert jnp.array_equal(swapped.stds, params.stds[::-1])
        assert jnp.array_equal(swapped.weights, params.weights[::-1])
        assert jnp.array_equal(swapped.swap().means, params.means)

    def test_as_dict(self, params: ComponentParameters) -> None:
        flat = params.as_dict()
        assert set(flat) == {"mu_1", "sigma_1", "alpha_1", "mu_2", "sigma_2", "alpha_2"}
        assert flat["mu_1"] == pytest.approx(-1.0)
        assert flat["sigma_2"] == pytest.approx(1.5)
        assert flat["alpha_2"] == pytest.approx(0.7)

    def test_pytree_round_trip(self, params: ComponentParameters) -> None:
        leaves, treedef = jax.tree_util.tree_flatten(params)
        assert len(leaves) == 3
        rebuilt = jax.tree_util.tree_unflatten(treedef, leaves)
        assert isinstance(rebuilt, ComponentParameters)
        assert jnp.array_equal(rebuilt.stds, params.stds)


class TestDensity:
    """Test mixture densities against scipy-style references."""

    def test_log_density(self, params: ComponentParameters) -> None:
        xs = jnp.linspace(-4.0, 6.0, 51)
        expected = jnp.log(
            0.3 * stats.norm.pdf(xs, -1.0, 0.5) + 0.7 * stats.norm.pdf(xs, 2.0, 1.5)
        )
        assert jnp.allclose(log_density(params, xs), expected, rtol=RTOL, atol=ATOL)

    def test_weighted_log_densities(self, params: ComponentParameters) -> None:
        xs = jnp.array([-1.0, 0.5, 2.0])
        log_w = weighted_log_densities(params, xs)
        assert log_w.shape == (3, 2)
        expected = jnp.log(0.7 * stats.norm.pdf(xs, 2.0, 1.5))
        assert jnp.allclose(log_w[:, 1], expected, rtol=RTOL, atol=ATOL)

    def test_density_integrates_to_one(self, params: ComponentParameters) -> None:
        xs = jnp.linspace(-10.0, 12.0, 20001)
        total = trapezoid(density(params, xs), xs)
        assert jnp.allclose(total, 1.0, atol=1e-6)

    def test_assign(self, params: ComponentParameters) -> None:
        labels = assign(params, jnp.array([-1.0, 2.0, 5.0]))
        assert labels.tolist() == [0, 1, 1]


class TestSampling:
    """Test drawing labelled observations."""

    def test_sample_statistics(self, params: ComponentParameters) -> None:
        key: Array = jax.random.PRNGKey(0)
        xs, labels = sample(key, params, 20000)
        assert xs.shape == (20000,)
        assert labels.shape == (20000,)

        frac = jnp.mean(labels == 1)
        assert jnp.abs(frac - 0.7) < 0.02

        for k in range(2):
            group = xs[labels == k]
            assert jnp.abs(jnp.mean(group) - params.means[k]) < 0.05
            assert jnp.abs(jnp.std(group) - params.stds[k]) < 0.05

    def test_sample_is_seeded(self, params: ComponentParameters) -> None:
        key = jax.random.PRNGKey(3)
        xs1, _ = sample(key, params, 100)
        xs2, _ = sample(key, params, 100)
        assert jnp.array_equal(xs1, xs2)
