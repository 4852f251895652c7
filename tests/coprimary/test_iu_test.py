"""Tests for the intersection-union t-test routine."""

import math

import numpy as np
import pytest
from scipy.stats import multivariate_normal, nct
from scipy.stats import t as t_dist

from pycrtdesign.coprimary import iu_power, iu_sample_size
from pycrtdesign.coprimary._iu_test import _bvn_cdf


def _iu_kwargs(**overrides):
    kw = dict(
        betas=(0.1, 0.1),
        deltas=(0.0, 0.0),
        variances=(0.23, 0.25),
        rho01=np.array([[0.025, 0.01], [0.01, 0.025]]),
        rho2=np.array([[1.0, 0.05], [0.05, 1.0]]),
        r=0.5,
        alpha=0.05,
    )
    kw.update(overrides)
    return kw


class TestBivariateNormalCdf:
    """Owen's T evaluation of the bivariate normal CDF."""

    @pytest.mark.parametrize(
        "h, k, rho",
        [
            (0.3, -0.5, 0.4),
            (-1.2, 0.7, -0.6),
            (1.0, 1.0, 0.9),
            (-0.4, -0.9, 0.2),
            (0.0, 0.8, 0.3),
            (-0.8, 0.0, 0.3),
        ],
    )
    def test_matches_scipy(self, h, k, rho):
        expected = multivariate_normal(mean=[0.0, 0.0], cov=[[1.0, rho], [rho, 1.0]]).cdf([h, k])
        assert float(_bvn_cdf(h, k, rho)) == pytest.approx(expected, abs=1e-4)

    def test_origin(self):
        rho = 0.5
        expected = 0.25 + math.asin(rho) / (2.0 * math.pi)
        assert float(_bvn_cdf(0.0, 0.0, rho)) == pytest.approx(expected, abs=1e-12)

    def test_independent_is_product(self):
        val = float(_bvn_cdf(0.5, -0.3, 0.0))
        assert val == pytest.approx(0.691462 * 0.382089, abs=1e-5)

    def test_vectorized(self):
        out = _bvn_cdf(np.array([-1.0, 0.0, 1.0]), np.array([0.5, 0.5, 0.5]), 0.3)
        assert out.shape == (3,)
        assert np.all(np.diff(out) > 0)


class TestIuPower:
    """Power of the intersection-union test."""

    def test_range(self):
        p = iu_power(m=50, n_total=20, **_iu_kwargs())
        assert 0.0 < p < 1.0

    def test_increases_with_clusters(self):
        powers = [iu_power(m=50, n_total=n, **_iu_kwargs()) for n in range(6, 60, 4)]
        assert all(a < b for a, b in zip(powers, powers[1:]))

    def test_increases_with_cluster_size(self):
        powers = [iu_power(m=m, n_total=20, **_iu_kwargs()) for m in (5, 10, 20, 40, 80)]
        assert all(a < b for a, b in zip(powers, powers[1:]))

    def test_dominant_endpoint_reduces_to_t_test(self):
        """With a huge second effect, power is the one-sided t-test power of endpoint 1."""
        m, n_total = 50, 20
        p = iu_power(m=m, n_total=n_total, **_iu_kwargs(betas=(0.1, 100.0)))

        omega11 = 0.23 * (1.0 + (m - 1.0) * 0.025) / (m * 0.25)
        ncp = math.sqrt(n_total) * 0.1 / math.sqrt(omega11)
        df = n_total - 4
        expected = nct.sf(t_dist.ppf(0.95, df), df, ncp)
        assert p == pytest.approx(expected, abs=1e-3)

    def test_no_effect_below_alpha(self):
        p = iu_power(m=50, n_total=40, **_iu_kwargs(betas=(0.0, 0.0)))
        assert p < 0.05

    def test_no_residual_df(self):
        assert iu_power(m=50, n_total=4, **_iu_kwargs()) == 0.0

    def test_deterministic(self):
        p1 = iu_power(m=37, n_total=18, **_iu_kwargs())
        p2 = iu_power(m=37, n_total=18, **_iu_kwargs())
        assert p1 == p2

    def test_only_two_outcomes(self):
        with pytest.raises(ValueError, match="two co-primary"):
            iu_power(m=50, n_total=20, n_outcomes=3, **_iu_kwargs())

    def test_invalid_proportion(self):
        with pytest.raises(ValueError, match="proportion"):
            iu_power(m=50, n_total=20, **_iu_kwargs(r=1.0))


class TestIuSampleSize:
    """Total clusters of the intersection-union test."""

    def test_minimal_total(self):
        n = iu_sample_size(m=50, power=0.8, **_iu_kwargs())
        assert n is not None
        assert iu_power(m=50, n_total=n, **_iu_kwargs()) >= 0.8
        assert iu_power(m=50, n_total=n - 1, **_iu_kwargs()) < 0.8

    def test_unreachable(self):
        n = iu_sample_size(m=50, power=0.8, max_search=500, **_iu_kwargs(betas=(0.0, 0.1)))
        assert n is None
