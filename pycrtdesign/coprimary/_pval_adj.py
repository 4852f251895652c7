"""Method 1: p-value adjustments for multiple testing.

Each endpoint is tested on its own with a 1-df Wald test at an adjusted
significance level. The design must power both endpoints, so the final
power is the smaller endpoint power and the final K or m the larger
endpoint requirement.

Adjusted levels for two endpoints:
    Bonferroni:  alpha / 2
    Sidak:       1 - (1 - alpha)^(1/2)
    D/AP:        1 - (1 - alpha)^(1 / 2^(1 - rho2))   (Dubey / Armitage-Parmar)
"""

from __future__ import annotations

from scipy.stats import chi2, ncx2

from pycrtdesign.coprimary._common import (
    InfeasibleDesignError,
    _ceil_count,
    _effect_covariance,
)
from pycrtdesign.coprimary._ncp import solve_ncp

ADJUSTMENTS = ("bonferroni", "sidak", "dap")

ADJUSTMENT_LABELS = {
    "bonferroni": "a. Bonferroni",
    "sidak": "b. Sidak",
    "dap": "c. D/AP",
}


def adjusted_alpha(alpha: float, adjustment: str, rho2: float = 0.0) -> float:
    """Per-endpoint significance level for two endpoints.

    Parameters
    ----------
    alpha : float
        Family-wise type I error rate.
    adjustment : str
        ``'bonferroni'``, ``'sidak'`` or ``'dap'``.
    rho2 : float
        Correlation between the endpoints, used by D/AP only.
    """
    if adjustment == "bonferroni":
        return alpha / 2.0
    if adjustment == "sidak":
        return 1.0 - (1.0 - alpha) ** (1.0 / 2.0)
    if adjustment == "dap":
        return 1.0 - (1.0 - alpha) ** (1.0 / 2.0 ** (1.0 - rho2))
    raise ValueError(f"adjustment must be one of {ADJUSTMENTS}, got {adjustment!r}")


def pval_adj_power(
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
) -> dict[str, float]:
    """Power under each p-value adjustment.

    *rho1* is accepted for a uniform signature but does not enter the
    endpoint-specific tests.

    Returns
    -------
    dict
        ``{'bonferroni': ..., 'sidak': ..., 'dap': ...}``, each the smaller
        of the two endpoint powers, rounded to 4 decimals.
    """
    var1, var2, _ = _effect_covariance(
        K, m, var_y1, var_y2, rho01, rho02, rho1, rho2, r,
    )
    ncp1 = beta1 ** 2 / var1
    ncp2 = beta2 ** 2 / var2

    out = {}
    for adj in ADJUSTMENTS:
        cv = chi2.isf(adjusted_alpha(alpha, adj, rho2), 1)
        power1 = round(float(ncx2.sf(cv, 1, ncp1)), 4)
        power2 = round(float(ncx2.sf(cv, 1, ncp2)), 4)
        out[adj] = min(power1, power2)
    return out


def pval_adj_clusters(
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
) -> dict[str, int]:
    """Treatment-arm clusters under each p-value adjustment."""
    if beta1 ** 2 == 0.0 or beta2 ** 2 == 0.0:
        raise InfeasibleDesignError("Cannot solve for K when either effect size is 0")

    out = {}
    for adj in ADJUSTMENTS:
        ncp = solve_ncp(adjusted_alpha(alpha, adj, rho2), power, df=1)
        k1 = _ceil_count(
            ncp * var_y1 * (1.0 + (m - 1.0) * rho01) * (1.0 + 1.0 / r) / (m * beta1 ** 2)
        )
        k2 = _ceil_count(
            ncp * var_y2 * (1.0 + (m - 1.0) * rho02) * (1.0 + 1.0 / r) / (m * beta2 ** 2)
        )
        out[adj] = max(k1, k2)
    return out


def _endpoint_cluster_size(
    ncp: float, K: int, beta: float, var_y: float, rho0: float, r: float,
) -> int:
    c = ncp * var_y * (1.0 + 1.0 / r)
    denom = beta ** 2 * K - c * rho0
    if denom <= 0.0:
        raise InfeasibleDesignError(
            f"K = {K} clusters per arm cannot power an endpoint with effect "
            f"{beta} at any cluster size"
        )
    return _ceil_count(c * (1.0 - rho0) / denom)


def pval_adj_cluster_size(
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
) -> dict[str, int]:
    """Cluster size under each p-value adjustment."""
    out = {}
    for adj in ADJUSTMENTS:
        ncp = solve_ncp(adjusted_alpha(alpha, adj, rho2), power, df=1)
        out[adj] = max(
            _endpoint_cluster_size(ncp, K, beta1, var_y1, rho01, r),
            _endpoint_cluster_size(ncp, K, beta2, var_y2, rho02, r),
        )
    return out
