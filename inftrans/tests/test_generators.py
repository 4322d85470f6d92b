"""
Test the support generator registry.

Verifies that:
1. Built-in generators are registered for every domain kind
2. Dispatch picks the domain default for None / ALL
3. Sampling is reproducible when seeded
4. Unknown combinations fail with a descriptive error
"""

import warnings

import numpy as np
import pytest
from scipy import stats

from inftrans.errors import ValidationError, UnsupportedCombinationError
from inftrans.model.domains import (
    IntervalDomain, UniDistributionDomain, MultiDistributionDomain, CollectionDomain,
    INTERVAL, UNIVARIATE_DISTRIBUTION, MULTIVARIATE_DISTRIBUTION, COLLECTION,
)
from inftrans.model.labels import (
    ALL, PUBLIC, UNIFORM_GRID, MC_SAMPLE, WEIGHTED_SAMPLE, MIXTURE,
)
from inftrans.supports import generators
from inftrans.supports.generators import (
    generate_support_values, register_support_generator, is_generator_registered,
    list_registered_generators,
)
from inftrans.utils.config import set_default_num_supports


def test_builtin_generators_registered():
    """Test that all built-in (domain kind, method) pairs are registered."""
    expected = [
        (INTERVAL, UNIFORM_GRID), (INTERVAL, MC_SAMPLE),
        (UNIVARIATE_DISTRIBUTION, WEIGHTED_SAMPLE), (UNIVARIATE_DISTRIBUTION, MC_SAMPLE),
        (MULTIVARIATE_DISTRIBUTION, WEIGHTED_SAMPLE),
        (COLLECTION, UNIFORM_GRID), (COLLECTION, MC_SAMPLE),
        (COLLECTION, WEIGHTED_SAMPLE), (COLLECTION, MIXTURE),
    ]
    for pair in expected:
        assert is_generator_registered(*pair), f"{pair} not registered"
    assert set(expected) <= set(list_registered_generators())


class TestIntervalGenerators:

    def test_uniform_grid_end_to_end(self):
        """Test: [0, 10], uniform grid, 5 supports, 6 digits."""
        values, label = generate_support_values(
            IntervalDomain(0, 10), UNIFORM_GRID, num_supports=5, sig_digits=6)
        np.testing.assert_array_equal(values, [0.0, 2.5, 5.0, 7.5, 10.0])
        assert label == UNIFORM_GRID

    def test_default_method_dispatch(self):
        dom = IntervalDomain(0, 1)
        for method in (None, ALL):
            values, label = generate_support_values(dom, method, num_supports=3)
            assert label == UNIFORM_GRID
            np.testing.assert_array_equal(values, [0.0, 0.5, 1.0])

    def test_default_count_from_config(self):
        values, _ = generate_support_values(IntervalDomain(0, 1))
        assert values.shape == (10,)
        set_default_num_supports(4)
        values, _ = generate_support_values(IntervalDomain(0, 1))
        assert values.shape == (4,)

    def test_rounding(self):
        values, _ = generate_support_values(IntervalDomain(0, 1), UNIFORM_GRID,
                                            num_supports=4, sig_digits=3)
        np.testing.assert_array_equal(values, [0.0, 0.333, 0.667, 1.0])

    def test_mc_sample_in_bounds_and_seeded(self):
        dom = IntervalDomain(-2.0, 3.0)
        a, label = generate_support_values(dom, MC_SAMPLE, num_supports=50, random_state=7)
        b, _ = generate_support_values(dom, MC_SAMPLE, num_supports=50, random_state=7)
        assert label == MC_SAMPLE
        assert np.all((a >= -2.0) & (a <= 3.0))
        np.testing.assert_array_equal(a, b)

    def test_invalid_counts(self):
        with pytest.raises(ValidationError, match="num_supports"):
            generate_support_values(IntervalDomain(0, 1), num_supports=0)
        with pytest.raises(ValidationError, match="sig_digits"):
            generate_support_values(IntervalDomain(0, 1), num_supports=2, sig_digits=0)


class TestDistributionGenerators:

    def test_univariate_weighted_sample(self):
        dom = UniDistributionDomain(stats.norm(loc=5.0, scale=0.1))
        values, label = generate_support_values(dom, num_supports=20, random_state=3)
        assert label == WEIGHTED_SAMPLE
        assert values.shape == (20,)
        assert abs(values.mean() - 5.0) < 0.1

    def test_univariate_mc_warns_once(self):
        dom = UniDistributionDomain(stats.uniform(0, 1))
        with pytest.warns(UserWarning, match="Monte-Carlo supports"):
            values, label = generate_support_values(dom, MC_SAMPLE, num_supports=5)
        assert label == MC_SAMPLE
        assert values.shape == (5,)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            generate_support_values(dom, MC_SAMPLE, num_supports=5)
        assert not [w for w in caught if "Monte-Carlo supports" in str(w.message)]

    def test_multivariate_one_sample_per_column(self):
        dist = stats.multivariate_normal(mean=[0.0, 10.0])
        dom = MultiDistributionDomain(dist)
        values, label = generate_support_values(dom, num_supports=4, random_state=1)
        assert label == WEIGHTED_SAMPLE
        assert values.shape == (2, 4)
        expected = dist.rvs(size=4, random_state=np.random.default_rng(1)).T
        np.testing.assert_allclose(values, expected, rtol=1e-9)
        assert np.all(values[1] > values[0])

    def test_matrix_distribution_flattened(self):
        dist = stats.matrix_normal(mean=np.arange(6.0).reshape(2, 3))
        dom = MultiDistributionDomain(dist)
        values, _ = generate_support_values(dom, num_supports=4, random_state=1)
        assert values.shape == (6, 4)
        draws = dist.rvs(size=4, random_state=np.random.default_rng(1))
        np.testing.assert_allclose(values, draws.reshape(4, 6).T, rtol=1e-9)
        np.testing.assert_allclose(values[:, 0], draws[0].ravel(), rtol=1e-9)

    def test_single_multivariate_draw(self):
        dom = MultiDistributionDomain(stats.multivariate_normal(mean=[0.0, 0.0, 0.0]))
        values, _ = generate_support_values(dom, num_supports=1, random_state=1)
        assert values.shape == (3, 1)


class TestCollectionGenerator:

    def test_interval_collection_grid(self):
        dom = CollectionDomain([IntervalDomain(0, 1), IntervalDomain(0, 2)])
        values, label = generate_support_values(dom, num_supports=3)
        assert label == UNIFORM_GRID
        np.testing.assert_array_equal(values, [[0.0, 0.5, 1.0], [0.0, 1.0, 2.0]])
        assert values.flags['C_CONTIGUOUS']

    def test_mixture_uses_sub_defaults(self):
        dom = CollectionDomain([IntervalDomain(0, 1), UniDistributionDomain(stats.norm())])
        values, label = generate_support_values(dom, num_supports=5, random_state=2)
        assert label == MIXTURE
        assert values.shape == (2, 5)
        np.testing.assert_array_equal(values[0], [0.0, 0.25, 0.5, 0.75, 1.0])

    def test_collection_method_applies_to_all(self):
        dom = CollectionDomain([IntervalDomain(0, 1), IntervalDomain(5, 6)])
        values, label = generate_support_values(dom, MC_SAMPLE, num_supports=8, random_state=4)
        assert label == MC_SAMPLE
        assert np.all((values[1] >= 5) & (values[1] <= 6))


class TestUnsupportedCombinations:

    def test_interval_weighted_sample(self):
        with pytest.raises(UnsupportedCombinationError, match="IntervalDomain") as exc:
            generate_support_values(IntervalDomain(0, 1), WEIGHTED_SAMPLE, num_supports=3)
        assert "WeightedSample" in str(exc.value)
        assert isinstance(exc.value, NotImplementedError)

    def test_selector_method_is_not_generated(self):
        with pytest.raises(UnsupportedCombinationError):
            generate_support_values(IntervalDomain(0, 1), PUBLIC, num_supports=3)

    def test_register_custom_domain(self):
        """Test the extension seam: a new domain kind plus its generator."""

        class GridOfTwo:
            domain_kind = 'grid_of_two'
            default_method = UNIFORM_GRID

        def gen(domain, method, num_supports, sig_digits, rng):
            return np.full(num_supports, 2.0)

        try:
            register_support_generator('grid_of_two', UNIFORM_GRID, gen)
            values, label = generate_support_values(GridOfTwo(), num_supports=3)
            np.testing.assert_array_equal(values, [2.0, 2.0, 2.0])
        finally:
            generators._GENERATOR_REGISTRY.pop(('grid_of_two', UNIFORM_GRID), None)

    def test_cannot_register_selector(self):
        with pytest.raises(ValueError, match="selector"):
            register_support_generator(INTERVAL, ALL, lambda *args: None)
