"""Intersection-union t-test power and sample size for co-primary endpoints.

Power of the conjunctive test that rejects only when every endpoint-specific
one-sided t-test rejects, for a cluster randomized trial with constant
cluster size (Yang et al., "Sample size calculation for cluster randomized
trials with co-primary endpoints").

For outcomes k, l with total variances v_k, ICC matrix rho01 and
intra-subject correlation matrix rho2, the scaled covariance of the effect
estimators is

    Omega_kl = sqrt(v_k v_l) * (rho2_kl + (m - 1) * rho01_kl) / (m * sigma_z^2)

with sigma_z^2 = r * (1 - r) the variance of the treatment indicator. The
test statistics follow a noncentral multivariate t with N - 2K df,
correlation cov2cor(Omega) and noncentrality
sqrt(N) * (beta_k - delta_k) / sqrt(Omega_kk).
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.special import owens_t
from scipy.stats import chi2, norm
from scipy.stats import t as t_dist

from pycrtdesign.coprimary._common import _search_min_integer

_N_QUAD = 96
_QUAD_X, _QUAD_W = np.polynomial.legendre.leggauss(_N_QUAD)
# Nodes and weights on (0, 1)
_QUAD_U = 0.5 * (_QUAD_X + 1.0)
_QUAD_W = 0.5 * _QUAD_W


# ---------------------------------------------------------------------------
# Bivariate normal and t orthant probabilities
# ---------------------------------------------------------------------------

def _bvn_cdf(h: ArrayLike, k: ArrayLike, rho: float) -> NDArray[np.floating]:
    """P(X <= h, Y <= k) for a standard bivariate normal with correlation rho.

    Uses Owen's T function (Owen 1956):

        Phi2(h, k) = Phi(h)/2 + Phi(k)/2 - T(h, a_h) - T(k, a_k) - c

    with a_h = (k - rho h) / (h sqrt(1 - rho^2)) and c = 1/2 when h and k
    straddle zero.
    """
    h = np.asarray(h, dtype=np.float64)
    k = np.asarray(k, dtype=np.float64)

    if rho >= 1.0 - 1e-12:
        return norm.cdf(np.minimum(h, k))
    if rho <= -1.0 + 1e-12:
        return np.maximum(norm.cdf(h) + norm.cdf(k) - 1.0, 0.0)
    if rho == 0.0:
        return norm.cdf(h) * norm.cdf(k)

    s = math.sqrt(1.0 - rho * rho)
    h_zero = h == 0.0
    k_zero = k == 0.0

    a_h = (k - rho * h) / np.where(h_zero, 1.0, h * s)
    a_k = (h - rho * k) / np.where(k_zero, 1.0, k * s)
    # T(0, +-inf) = +-1/4
    t_h = np.where(h_zero, 0.25 * np.sign(k), owens_t(h, np.where(h_zero, 0.0, a_h)))
    t_k = np.where(k_zero, 0.25 * np.sign(h), owens_t(k, np.where(k_zero, 0.0, a_k)))

    hk = h * k
    c = np.where((hk < 0.0) | ((hk == 0.0) & (h + k < 0.0)), 0.5, 0.0)

    out = 0.5 * norm.cdf(h) + 0.5 * norm.cdf(k) - t_h - t_k - c
    out = np.where(h_zero & k_zero, 0.25 + math.asin(rho) / (2.0 * math.pi), out)
    return np.clip(out, 0.0, 1.0)


def _bvt_upper_orthant(
    crit: float, delta: NDArray[np.floating], rho: float, df: float,
) -> float:
    """P(T_1 > crit, T_2 > crit) for a noncentral bivariate t.

    T_k = (Z_k + delta_k) / S with S = sqrt(W / df), W ~ chi2(df). The
    mixing variable is integrated out on its quantile scale by
    Gauss-Legendre quadrature, which keeps the result deterministic.
    """
    if df > 1e5:
        return float(_bvn_cdf(delta[0] - crit, delta[1] - crit, rho))

    s = np.sqrt(chi2.ppf(_QUAD_U, df) / df)
    vals = _bvn_cdf(delta[0] - crit * s, delta[1] - crit * s, rho)
    return float(np.clip(np.dot(_QUAD_W, vals), 0.0, 1.0))


# ---------------------------------------------------------------------------
# Public routines
# ---------------------------------------------------------------------------

def _scaled_covariance(
    variances: NDArray[np.floating],
    rho01: NDArray[np.floating],
    rho2: NDArray[np.floating],
    m: float,
    sigmaz_square: float,
) -> NDArray[np.floating]:
    sd = np.sqrt(variances)
    return np.outer(sd, sd) * (rho2 + (m - 1.0) * rho01) / (m * sigmaz_square)


def iu_power(
    betas: Sequence[float],
    m: float,
    deltas: Sequence[float],
    variances: Sequence[float],
    rho01: ArrayLike,
    rho2: ArrayLike,
    r: float,
    n_total: float,
    alpha: float = 0.05,
    n_outcomes: int = 2,
) -> float:
    """Power of the intersection-union t-test.

    Parameters
    ----------
    betas : sequence of float
        Effect size of each outcome.
    m : float
        Individuals per cluster.
    deltas : sequence of float
        Effect under the null for each outcome (usually zeros).
    variances : sequence of float
        Total variance of each outcome.
    rho01 : array_like
        ``(K, K)`` matrix: ICCs on the diagonal, inter-subject
        between-outcome correlations off the diagonal.
    rho2 : array_like
        ``(K, K)`` matrix: ones on the diagonal, intra-subject
        between-outcome correlations off the diagonal.
    r : float
        Proportion of clusters randomized to treatment (0.5 for equal
        allocation).
    n_total : float
        Total number of clusters across both arms.
    alpha : float
        One-sided significance level of each endpoint test.
    n_outcomes : int
        Number of outcomes K; only 2 is supported.

    Returns
    -------
    float
        Unrounded power in [0, 1]; 0 when ``n_total - 2K < 1``.
    """
    if n_outcomes != 2:
        raise ValueError(f"only two co-primary outcomes are supported, got {n_outcomes}")
    if not (0.0 < r < 1.0):
        raise ValueError(f"r must be a proportion in (0, 1), got {r}")

    df = n_total - 2.0 * n_outcomes
    if df < 1.0:
        return 0.0

    betas_arr = np.asarray(betas, dtype=np.float64)
    deltas_arr = np.asarray(deltas, dtype=np.float64)
    omega = _scaled_covariance(
        np.asarray(variances, dtype=np.float64),
        np.asarray(rho01, dtype=np.float64),
        np.asarray(rho2, dtype=np.float64),
        m,
        r * (1.0 - r),
    )
    sd = np.sqrt(np.diag(omega))
    w_cor = omega[0, 1] / (sd[0] * sd[1])
    mean = math.sqrt(n_total) * (betas_arr - deltas_arr) / sd

    crit = float(t_dist.ppf(1.0 - alpha, df))
    return _bvt_upper_orthant(crit, mean, w_cor, df)


def iu_sample_size(
    betas: Sequence[float],
    m: float,
    power: float,
    deltas: Sequence[float],
    variances: Sequence[float],
    rho01: ArrayLike,
    rho2: ArrayLike,
    r: float,
    alpha: float = 0.05,
    n_outcomes: int = 2,
    max_search: int = 1_000_000,
) -> int | None:
    """Total clusters needed by the intersection-union t-test.

    Returns the smallest total ``N`` with ``iu_power(..., n_total=N) >=
    power``, or ``None`` if no ``N <= max_search`` reaches it.
    """
    return _search_min_integer(
        func=lambda n: iu_power(
            betas, m, deltas, variances, rho01, rho2, r, n, alpha, n_outcomes,
        ),
        target=power,
        lo=2 * n_outcomes + 1,
        hi=max(max_search, 2 * n_outcomes + 1),
    )
