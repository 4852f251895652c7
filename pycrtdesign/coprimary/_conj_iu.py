"""Method 5: conjunctive intersection-union test.

Both endpoint-specific tests must reject. Power and total cluster counts
come from the intersection-union t-test routine in ``_iu_test``; the
cluster size has no inverse there and is found by searching over m.
"""

from __future__ import annotations

import logging

import numpy as np

from pycrtdesign.coprimary._common import INFEASIBLE, _ceil_count, _search_min_integer
from pycrtdesign.coprimary._iu_test import iu_power, iu_sample_size

logger = logging.getLogger(__name__)


def _iu_args(
    beta1: float,
    beta2: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
    r: float,
) -> dict:
    """Arguments of the IU routine shared by power, K and m."""
    return {
        "betas": (beta1, beta2),
        "deltas": (0.0, 0.0),
        "variances": (var_y1, var_y2),
        "rho01": np.array([[rho01, rho1], [rho1, rho02]]),
        "rho2": np.array([[1.0, rho2], [rho2, 1.0]]),
        # proportion of clusters in the treatment arm; 0.5 when r = 1
        "r": 1.0 / (1.0 + r),
        "n_outcomes": 2,
    }


def conj_iu_power(
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
    """Power of the conjunctive IU test, rounded to 4 decimals.

    The IU routine works with total clusters, ``N = K + r * K``.
    """
    args = _iu_args(beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r)
    return round(iu_power(m=m, n_total=K * (1.0 + r), alpha=alpha, **args), 4)


def conj_iu_clusters(
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
    max_search: int = 1_000_000,
) -> int | float:
    """Treatment-arm clusters for the conjunctive IU test.

    The IU routine returns total clusters N; the treatment arm gets
    ``ceil(N / (1 + r))``, i.e. ``ceil(N / 2)`` under equal allocation.
    """
    args = _iu_args(beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r)
    n_total = iu_sample_size(m=m, power=power, alpha=alpha, max_search=max_search, **args)
    if n_total is None:
        logger.debug("no total cluster count <= %d reaches power %.4f", max_search, power)
        return INFEASIBLE
    return _ceil_count(n_total / (1.0 + r))


def conj_iu_cluster_size(
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
    """Cluster size for the conjunctive IU test.

    Power is non-decreasing in m for fixed K, so the first m reaching
    *power* is located by doubling and bisection rather than a unit-step
    scan. Returns ``INFEASIBLE`` if no ``m <= max_search`` reaches it,
    e.g. when both effect sizes are 0.
    """
    args = _iu_args(beta1, beta2, var_y1, var_y2, rho01, rho02, rho1, rho2, r)
    n_total = K * (1.0 + r)
    result = _search_min_integer(
        func=lambda x: iu_power(m=x, n_total=n_total, alpha=alpha, **args),
        target=power,
        lo=1,
        hi=max_search,
    )
    if result is None:
        logger.debug("no cluster size <= %d reaches power %.4f", max_search, power)
        return INFEASIBLE
    return result
