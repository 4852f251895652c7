"""Method 3: single 1-df combined test.

Combines the standardized endpoint statistics Z_k = beta_hat_k / SE_k into
one test (Pocock, Geller & Tsiatis 1987; O'Brien 1984). With two endpoints
the GLS weights are proportional to (1, 1), so

    ncp = (mu_1 + mu_2)^2 / (2 * (1 + rho_z))

with mu_k = beta_k / SE_k and rho_z the correlation of the estimators.
"""

from __future__ import annotations

import numpy as np
from scipy.stats import chi2, ncx2

from pycrtdesign.coprimary._common import (
    INFEASIBLE,
    InfeasibleDesignError,
    _ceil_count,
    _effect_covariance,
    _scan_min_integer,
)
from pycrtdesign.coprimary._ncp import solve_ncp


def _single_1df_ncp(
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
    mu1 = beta1 / np.sqrt(var1)
    mu2 = beta2 / np.sqrt(var2)
    rho_z = cov12 / np.sqrt(var1 * var2)
    if np.any(1.0 + rho_z <= 0.0):
        raise InfeasibleDesignError(
            "Standardized endpoint statistics are perfectly negatively "
            "correlated; their sum has no variance"
        )
    return (mu1 + mu2) ** 2 / (2.0 * (1.0 + rho_z))


def _single_1df_power(ncp: float, alpha: float) -> float:
    return float(ncx2.sf(chi2.isf(alpha, 1), 1, ncp))


def single_1df_power(
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
) -> float:
    """Power of the single 1-df combined test, rounded to 4 decimals."""
    ncp = _single_1df_ncp(K, m, beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r)
    return round(_single_1df_power(ncp, alpha), 4)


def single_1df_clusters(
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
) -> int:
    """Treatment-arm clusters for the single 1-df combined test.

    The noncentrality parameter is proportional to K, so
    ``K = ceil(ncp* / ncp(K = 1))``.
    """
    unit_ncp = _single_1df_ncp(1.0, m, beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r)
    if unit_ncp <= 0.0:
        raise InfeasibleDesignError("Cannot solve for K when the combined effect is 0")

    ncp = solve_ncp(alpha, power, df=1)
    return _ceil_count(ncp / unit_ncp)


def single_1df_cluster_size(
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
    max_search: int = 1_000_000,
) -> int | float:
    """Cluster size for the single 1-df combined test.

    Returns the first ``m`` reaching *power*, or ``INFEASIBLE`` if no
    ``m <= max_search`` does. Power need not increase with m: with effects
    of opposite sign and unequal ICCs the standardized sum can shrink
    before it grows, so every m is checked in order.
    """
    cv = chi2.isf(alpha, 1)
    result = _scan_min_integer(
        func=lambda x: ncx2.sf(
            cv, 1,
            _single_1df_ncp(K, x, beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r),
        ),
        target=power,
        lo=1,
        hi=max_search,
    )
    return INFEASIBLE if result is None else result
