"""Method 4: disjunctive 2-df test.

Wald test of H0: beta1 = beta2 = 0 against the alternative that either
effect is nonzero, with noncentrality

    ncp = b' Sigma^{-1} b

where Sigma is the covariance of the two effect estimators. The reference
distribution is chi-squared with 2 df, or F with (2, N - 4) df where N is
the total number of clusters.
"""

from __future__ import annotations

import logging

from scipy.stats import chi2, ncx2

from pycrtdesign.coprimary._common import (
    INFEASIBLE,
    InfeasibleDesignError,
    _ceil_count,
    _effect_covariance,
    _search_min_integer,
)
from pycrtdesign.coprimary._ncp import f_power, solve_ncp

logger = logging.getLogger(__name__)

_N_OUTCOMES = 2


def _disj_2df_ncp(
    K: float,
    m: float,
    beta1: float,
    beta2: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
    r: float,
) -> float:
    var1, var2, cov12 = _effect_covariance(
        K, m, var_y1, var_y2, rho01, rho02, rho1, rho2, r,
    )
    det = var1 * var2 - cov12 ** 2
    if det <= 0.0:
        raise InfeasibleDesignError(
            "Covariance of the effect estimators is singular; check rho1, rho2"
        )
    return (beta1 ** 2 * var2 - 2.0 * beta1 * beta2 * cov12 + beta2 ** 2 * var1) / det


def _denominator_df(K: float, r: float) -> float:
    """Residual df: total clusters minus one fixed effect per arm and outcome."""
    return K * (1.0 + r) - 2.0 * _N_OUTCOMES


def _disj_2df_power(ncp: float, K: float, alpha: float, dist: str, r: float) -> float:
    if dist == "F":
        df2 = _denominator_df(K, r)
        if df2 < 1.0:
            return 0.0
        return f_power(ncp, alpha, _N_OUTCOMES, df2)
    return float(ncx2.sf(chi2.isf(alpha, _N_OUTCOMES), _N_OUTCOMES, ncp))


def disj_2df_power(
    K: int,
    m: int,
    *,
    alpha: float = 0.05,
    beta1: float,
    beta2: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
    r: float = 1.0,
    dist: str = "Chi2",
) -> float:
    """Power of the disjunctive 2-df test, rounded to 4 decimals.

    Parameters
    ----------
    dist : str
        ``'Chi2'`` (default) or ``'F'``. Under ``'F'`` power is 0 when
        fewer than 5 clusters are available in total.
    """
    ncp = _disj_2df_ncp(K, m, beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r)
    return round(_disj_2df_power(ncp, K, alpha, dist, r), 4)


def disj_2df_clusters(
    power: float,
    m: int,
    *,
    alpha: float = 0.05,
    beta1: float,
    beta2: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
    r: float = 1.0,
    dist: str = "Chi2",
    max_search: int = 1_000_000,
) -> int | float:
    """Treatment-arm clusters for the disjunctive 2-df test.

    Under ``'Chi2'`` the noncentrality parameter is proportional to K and
    K has a closed form. Under ``'F'`` the denominator df also depends on
    K, so the smallest K reaching *power* is searched for.
    """
    unit_ncp = _disj_2df_ncp(1.0, m, beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r)
    if unit_ncp <= 0.0:
        raise InfeasibleDesignError("Cannot solve for K when beta1 = beta2 = 0")

    ncp = solve_ncp(alpha, power, df=_N_OUTCOMES)
    k_chi2 = _ceil_count(ncp / unit_ncp)
    if dist != "F":
        return k_chi2

    # The F test is never more powerful than its chi-squared limit
    logger.debug("searching K for the F-based 2-df test from K = %d", k_chi2)
    result = _search_min_integer(
        func=lambda x: _disj_2df_power(x * unit_ncp, x, alpha, dist, r),
        target=power,
        lo=k_chi2,
        hi=max(k_chi2, max_search),
    )
    return INFEASIBLE if result is None else result


def disj_2df_cluster_size(
    power: float,
    K: int,
    *,
    alpha: float = 0.05,
    beta1: float,
    beta2: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
    r: float = 1.0,
    dist: str = "Chi2",
    max_search: int = 1_000_000,
) -> int | float:
    """Cluster size for the disjunctive 2-df test.

    Returns the first ``m`` reaching *power*, or ``INFEASIBLE`` if no
    ``m <= max_search`` does.
    """
    result = _search_min_integer(
        func=lambda x: _disj_2df_power(
            _disj_2df_ncp(K, x, beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r),
            K, alpha, dist, r,
        ),
        target=power,
        lo=1,
        hi=max_search,
    )
    return INFEASIBLE if result is None else result
