"""Noncentrality parameter lookup for chi-squared and F tests.

Inverts the upper-tail probability of a noncentral chi-squared (or F)
distribution at the central critical value.
"""

from __future__ import annotations

import math

from scipy.stats import chi2, ncf, ncx2
from scipy.stats import f as f_dist

from pycrtdesign.coprimary._common import NumericalConvergenceError, _solve_parameter

_MAX_NCP = 1e6


def chi2_power(ncp: float, alpha: float, df: float) -> float:
    """P(chi2(df, ncp) > upper-alpha critical value of chi2(df))."""
    crit = chi2.isf(alpha, df)
    return float(ncx2.sf(crit, df, ncp))


def f_power(ncp: float, alpha: float, df1: float, df2: float) -> float:
    """P(F(df1, df2, ncp) > upper-alpha critical value of F(df1, df2))."""
    crit = f_dist.isf(alpha, df1, df2)
    pwr = float(ncf.sf(crit, df1, df2, ncp))

    # Guard against NaN for extreme ncp
    if math.isnan(pwr):
        pwr = 1.0 if ncp > 50.0 else 0.0

    return pwr


def solve_ncp(
    alpha: float,
    power: float,
    df: float,
    dist: str = "Chi2",
    df2: float | None = None,
) -> float:
    """Noncentrality parameter achieving *power* at level *alpha*.

    Parameters
    ----------
    alpha : float
        Significance level in (0, 1).
    power : float
        Target power in (0, 1).
    df : float
        Degrees of freedom (numerator df for ``dist='F'``), >= 1.
    dist : str
        ``'Chi2'`` or ``'F'``.
    df2 : float or None
        Denominator degrees of freedom, required for ``dist='F'``.

    Returns
    -------
    float
        ``lambda >= 0``. When ``power <= alpha`` every ``lambda >= 0``
        attains the target and 0 is returned.

    Raises
    ------
    NumericalConvergenceError
        If no root is found below the search ceiling.

    Examples
    --------
    >>> round(solve_ncp(0.05, 0.80, 1), 2)
    7.85
    """
    if dist == "Chi2":
        func = lambda ncp: chi2_power(ncp, alpha, df)
    elif dist == "F":
        if df2 is None or df2 < 1.0:
            raise ValueError(f"df2 must be >= 1 for the F distribution, got {df2}")
        func = lambda ncp: f_power(ncp, alpha, df, df2)
    else:
        raise ValueError(f"dist must be 'Chi2' or 'F', got {dist!r}")

    if power <= func(0.0):
        return 0.0

    # Grow the bracket until it straddles the target
    hi = 10.0
    while func(hi) < power:
        hi *= 2.0
        if hi > _MAX_NCP:
            raise NumericalConvergenceError(
                f"No noncentrality parameter below {_MAX_NCP:g} reaches "
                f"power {power} (alpha = {alpha}, df = {df})"
            )

    return _solve_parameter(func, power, (0.0, hi))
