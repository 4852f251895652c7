"""Method 2: combined outcomes.

The two endpoint effects are summed into a single outcome and the trial is
sized as a single-endpoint cluster randomized trial on that outcome.
"""

from __future__ import annotations

import math

from scipy.stats import chi2, ncx2

from pycrtdesign.coprimary._common import InfeasibleDesignError, _ceil_count
from pycrtdesign.coprimary._ncp import solve_ncp


def _combined_outcome_params(
    beta1: float,
    beta2: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
) -> tuple[float, float, float]:
    """Effect, variance and ICC of the combined outcome.

    The combined variance is rounded to two decimals before use; the ICC
    is normalized by the unrounded variance.
    """
    beta_c = beta1 + beta2
    var_yc = round(var_y1 + var_y2 + 2.0 * rho2 * math.sqrt(var_y1) * math.sqrt(var_y2), 2)
    rho0_c = (
        (rho01 * var_y1 + rho02 * var_y2 + 2.0 * rho1 * math.sqrt(var_y1 * var_y2))
        / (var_y1 + var_y2 + 2.0 * rho2 * math.sqrt(var_y1 * var_y2))
    )
    return beta_c, var_yc, rho0_c


def comb_outcome_power(
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
    """Power of the combined outcomes approach.

    Parameters
    ----------
    K : int
        Clusters in the treatment arm (``r * K`` in control).
    m : int
        Individuals per cluster.
    alpha : float
        Type I error rate (default 0.05).
    beta1, beta2 : float
        Effect sizes of the two endpoints.
    var_y1, var_y2 : float
        Total variances of the two endpoints.
    rho01, rho02 : float
        Intra-cluster correlation of each endpoint.
    rho1 : float
        Inter-subject correlation between endpoints.
    rho2 : float
        Intra-subject correlation between endpoints.
    r : float
        Allocation ratio (default 1).

    Returns
    -------
    float
        Power rounded to 4 decimals.
    """
    beta_c, var_yc, rho0_c = _combined_outcome_params(
        beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2,
    )
    cv = chi2.isf(alpha, 1)
    ncp = beta_c ** 2 / ((1.0 + 1.0 / r) * (var_yc / (K * m)) * (1.0 + (m - 1.0) * rho0_c))
    return round(1.0 - float(ncx2.cdf(cv, 1, ncp)), 4)


def comb_outcome_clusters(
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
    """Treatment-arm clusters needed by the combined outcomes approach."""
    beta_c, var_yc, rho0_c = _combined_outcome_params(
        beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2,
    )
    if beta_c ** 2 == 0.0:
        raise InfeasibleDesignError("Cannot solve for K when beta1 + beta2 = 0")

    ncp = solve_ncp(alpha, power, df=1)
    return _ceil_count(
        (1.0 + 1.0 / r) * ncp * var_yc * (1.0 + (m - 1.0) * rho0_c) / (m * beta_c ** 2)
    )


def comb_outcome_cluster_size(
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
) -> int:
    """Cluster size needed by the combined outcomes approach.

    Raises
    ------
    InfeasibleDesignError
        If ``K`` clusters cannot reach *power* at any cluster size (the
        closed-form denominator is not positive).
    """
    beta_c, var_yc, rho0_c = _combined_outcome_params(
        beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2,
    )
    ncp = solve_ncp(alpha, power, df=1)
    c = (1.0 + 1.0 / r) * ncp * var_yc

    denom = beta_c ** 2 * K - c * rho0_c
    if denom <= 0.0:
        raise InfeasibleDesignError(
            f"K = {K} clusters per arm cannot reach power {power} with the "
            f"combined outcome at any cluster size"
        )
    return _ceil_count(c * (1.0 - rho0_c) / denom)
