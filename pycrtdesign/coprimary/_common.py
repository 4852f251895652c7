"""Shared result types, errors and helpers for co-primary endpoint designs."""

from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import numpy as np
from scipy.optimize import brentq

logger = logging.getLogger(__name__)

#: Sentinel for a target that cannot be reached within the search ceiling.
INFEASIBLE = math.inf

VALID_OUTPUTS = ("power", "K", "m")
VALID_DISTS = ("Chi2", "F")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class DesignError(Exception):
    """Base class for all design calculation errors."""


class ValidationError(DesignError, ValueError):
    """Inconsistent solve mode or out-of-domain input."""


class NumericalConvergenceError(DesignError, ArithmeticError):
    """A root-finder could not bracket or converge on a solution."""


class InfeasibleDesignError(DesignError, ValueError):
    """The requested target cannot be met for the given parameters."""


def is_infeasible(value: float | int | None) -> bool:
    """True if *value* is the ``INFEASIBLE`` sentinel."""
    return isinstance(value, float) and math.isinf(value)


# ---------------------------------------------------------------------------
# Inputs and configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DesignConfig:
    """Global design settings, validated once per dispatcher call.

    Attributes
    ----------
    alpha : float
        Type I error rate (default 0.05).
    r : float
        Allocation ratio, ``K2 = r * K1`` (default 1).
    dist : str
        Reference distribution of the disjunctive 2-df test,
        ``'Chi2'`` or ``'F'`` (default ``'Chi2'``).
    max_search : int
        Ceiling for every iterative cluster count / cluster size search
        (default 1,000,000).
    """

    alpha: float = 0.05
    r: float = 1.0
    dist: str = "Chi2"
    max_search: int = 1_000_000


DEFAULT_CONFIG = DesignConfig()


@dataclass(frozen=True)
class DesignInput:
    """One design problem. Exactly one of K, m, power is ``None``."""

    K: int | None
    m: int | None
    power: float | None
    beta1: float
    beta2: float
    var_y1: float
    var_y2: float
    rho01: float
    rho02: float
    rho1: float
    rho2: float

    def nuisance(self) -> dict[str, float]:
        """Keyword arguments shared by every method kernel."""
        return {
            "beta1": self.beta1,
            "beta2": self.beta2,
            "var_y1": self.var_y1,
            "var_y2": self.var_y2,
            "rho01": self.rho01,
            "rho02": self.rho02,
            "rho1": self.rho1,
            "rho2": self.rho2,
        }


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DesignRow:
    """One labelled row of a design report."""

    method: str
    values: tuple[float | int | None, ...]


@dataclass(frozen=True)
class DesignReport:
    """Consolidated comparison of all design methods.

    ``columns`` always starts with ``'Design Method'``; each row carries
    one value per remaining column. Umbrella rows hold ``None``;
    unreachable targets hold ``INFEASIBLE``.
    """

    output: str
    columns: tuple[str, ...]
    rows: tuple[DesignRow, ...]
    alpha: float
    dist: str
    r: float

    def __getitem__(self, method: str) -> tuple[float | int | None, ...]:
        for row in self.rows:
            if row.method == method:
                return row.values
        raise KeyError(method)

    @property
    def methods(self) -> list[str]:
        return [row.method for row in self.rows]

    def column(self, name: str) -> list[float | int | None]:
        """All values of one output column, in row order."""
        if name not in self.columns[1:]:
            raise KeyError(name)
        idx = self.columns.index(name) - 1
        return [row.values[idx] for row in self.rows]

    def to_dict(self) -> dict[str, list]:
        """Column-oriented mapping, suitable for ``pandas.DataFrame``."""
        out: dict[str, list] = {self.columns[0]: self.methods}
        for name in self.columns[1:]:
            out[name] = self.column(name)
        return out

    def summary(self) -> str:
        """Human-readable table, similar to R's tibble print."""
        cells = [list(self.columns)]
        for row in self.rows:
            cells.append([row.method] + [_format_value(v) for v in row.values])
        widths = [max(len(line[i]) for line in cells) for i in range(len(self.columns))]

        lines = [
            f"Hybrid type 2 cluster randomized trial design (output = {self.output})",
            f"alpha = {self.alpha}; r = {self.r}; dist = {self.dist}",
            "",
        ]
        for i, line in enumerate(cells):
            first = line[0].ljust(widths[0])
            rest = [cell.rjust(w) for cell, w in zip(line[1:], widths[1:])]
            lines.append("  ".join([first] + rest))
            if i == 0:
                lines.append("  ".join("-" * w for w in widths))
        return "\n".join(lines)


def _format_value(value: float | int | None) -> str:
    if value is None:
        return "NA"
    if is_infeasible(value):
        return "Inf"
    if isinstance(value, float):
        return f"{value:.4f}"
    return str(value)


# ---------------------------------------------------------------------------
# Shared validation
# ---------------------------------------------------------------------------

def _is_real(x: object) -> bool:
    return isinstance(x, numbers.Real) and not isinstance(x, bool)


def _check_count(value: object, name: str) -> int:
    """Validate a positive whole number (integral floats accepted)."""
    if not _is_real(value) or not math.isfinite(value):
        raise ValidationError(f"'{name}' must be a positive whole number, got {value!r}")
    if value < 1 or value != math.floor(value):
        raise ValidationError(f"'{name}' must be a positive whole number, got {value!r}")
    return int(value)


def _check_power(value: object) -> float:
    if not _is_real(value) or not (0.0 < value < 1.0):
        raise ValidationError(f"'power' must be a number in (0, 1), got {value!r}")
    return float(value)


def _check_design_args(
    *,
    output: str,
    power: float | None,
    K: int | float | None,
    m: int | float | None,
) -> tuple[float | None, int | None, int | None]:
    """Validate the solve mode. Return normalized ``(power, K, m)``.

    Rules
    -----
    - *output* must be ``'power'``, ``'K'`` or ``'m'``.
    - The parameter named by *output* must be ``None``.
    - The other two must be supplied: *power* in (0, 1), *K* and *m*
      positive whole numbers.

    Raises
    ------
    ValidationError
        On any validation failure.
    """
    if output not in VALID_OUTPUTS:
        raise ValidationError(
            f"unsupported mode: 'output' must be one of {VALID_OUTPUTS}, got {output!r}"
        )

    given = {"power": power, "K": K, "m": m}
    if given[output] is not None:
        raise ValidationError(
            f"'{output}' cannot be defined if desired study design output is '{output}'"
        )
    for name, value in given.items():
        if name != output and value is None:
            raise ValidationError(f"Must define '{name}' in order to calculate {output}")

    return (
        None if power is None else _check_power(power),
        None if K is None else _check_count(K, "K"),
        None if m is None else _check_count(m, "m"),
    )


def _check_nuisance(params: Mapping[str, object]) -> None:
    """Validate the effect, variance and correlation parameters."""
    for name, value in params.items():
        if not _is_real(value) or not math.isfinite(value):
            raise ValidationError(f"'{name}' must be a finite number, got {value!r}")

    for name in ("var_y1", "var_y2"):
        if params[name] <= 0:
            raise ValidationError(f"'{name}' must be > 0, got {params[name]}")
    for name in ("rho01", "rho02"):
        if not (0.0 <= params[name] < 1.0):
            raise ValidationError(f"'{name}' must be in [0, 1), got {params[name]}")
    for name in ("rho1", "rho2"):
        if not (-1.0 < params[name] < 1.0):
            raise ValidationError(f"'{name}' must be in (-1, 1), got {params[name]}")

    rho01, rho02 = params["rho01"], params["rho02"]
    rho1, rho2 = params["rho1"], params["rho2"]
    # between-cluster and within-cluster correlation matrices must be PSD
    if rho1 ** 2 > rho01 * rho02:
        raise ValidationError(
            f"'rho1' = {rho1} is incompatible with rho01 = {rho01} and "
            f"rho02 = {rho02}: rho1 ** 2 must be <= rho01 * rho02"
        )
    if (rho2 - rho1) ** 2 > (1.0 - rho01) * (1.0 - rho02):
        raise ValidationError(
            f"'rho2' = {rho2} is incompatible with rho1 = {rho1}, "
            f"rho01 = {rho01} and rho02 = {rho02}: (rho2 - rho1) ** 2 must be "
            f"<= (1 - rho01) * (1 - rho02)"
        )


def _check_config(config: DesignConfig) -> None:
    """Validate global settings before any kernel runs."""
    if not _is_real(config.alpha) or not (0.0 < config.alpha < 1.0):
        raise ValidationError(f"'alpha' must be in (0, 1), got {config.alpha!r}")
    if not _is_real(config.r) or not math.isfinite(config.r) or config.r <= 0:
        raise ValidationError(f"'r' must be > 0, got {config.r!r}")
    if config.dist not in VALID_DISTS:
        raise ValidationError(
            f"'dist' parameter must either be 'Chi2' or 'F', got {config.dist!r}"
        )
    _check_count(config.max_search, "max_search")


# ---------------------------------------------------------------------------
# Shared design quantities
# ---------------------------------------------------------------------------

def _ceil_count(x: float) -> int:
    """Round a sample size upward; never fewer than one."""
    return max(1, math.ceil(x))


def _effect_covariance(
    K: float,
    m: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
    r: float,
) -> tuple[float, float, float]:
    """Variances and covariance of the two treatment effect estimators.

    For ``K`` treatment clusters, ``r * K`` control clusters and cluster
    size ``m``:

        Var_k  = varYk * (1 + (m - 1) * rho0k) * (1 + 1/r) / (K * m)
        Cov_12 = sqrt(varY1 * varY2) * (rho2 + (m - 1) * rho1) * (1 + 1/r) / (K * m)
    """
    f = (1.0 + 1.0 / r) / (K * m)
    var1 = var_y1 * (1.0 + (m - 1.0) * rho01) * f
    var2 = var_y2 * (1.0 + (m - 1.0) * rho02) * f
    cov12 = math.sqrt(var_y1 * var_y2) * (rho2 + (m - 1.0) * rho1) * f
    return var1, var2, cov12


# ---------------------------------------------------------------------------
# Shared root-finding
# ---------------------------------------------------------------------------

def _solve_parameter(
    func: Callable[[float], float],
    target: float,
    bracket: tuple[float, float],
    *,
    xtol: float = 1e-10,
    maxiter: int = 1000,
) -> float:
    """Solve ``func(x) == target`` via Brent's method.

    Parameters
    ----------
    func : callable
        Monotonic function of one variable (e.g. computes power as f(ncp)).
    target : float
        Target value (e.g. desired power).
    bracket : tuple
        ``(lower, upper)`` bracket. ``func(lower) - target`` and
        ``func(upper) - target`` must have opposite signs.

    Raises
    ------
    NumericalConvergenceError
        If the bracket does not straddle the target, or Brent's method
        fails to converge.
    """
    lo, hi = bracket
    f_lo = func(lo) - target
    f_hi = func(hi) - target

    if math.isnan(f_lo) or math.isnan(f_hi) or f_lo * f_hi > 0:
        raise NumericalConvergenceError(
            f"Cannot solve: target {target:.6f} is outside achievable range "
            f"[{func(lo):.6f}, {func(hi):.6f}] on [{lo}, {hi}]"
        )

    try:
        return brentq(lambda x: func(x) - target, lo, hi, xtol=xtol, maxiter=maxiter)
    except RuntimeError as exc:
        raise NumericalConvergenceError(str(exc)) from exc


def _search_min_integer(
    func: Callable[[int], float],
    target: float,
    lo: int,
    hi: int,
) -> int | None:
    """Smallest integer ``n`` in ``[lo, hi]`` with ``func(n) >= target``.

    *func* must be non-decreasing in ``n``. The bound is grown by doubling
    from *lo*, then narrowed by bisection, so the result is the same first
    integer a linear scan from *lo* would find.

    Returns ``None`` if ``func(hi) < target``.
    """
    if func(lo) >= target:
        return lo

    below = lo
    upper = lo
    while True:
        upper = min(2 * upper, hi)
        if func(upper) >= target:
            break
        if upper >= hi:
            logger.debug("search exhausted at %d without reaching %.4f", hi, target)
            return None
        below = upper

    # invariant: func(below) < target <= func(upper)
    while upper - below > 1:
        mid = (below + upper) // 2
        if func(mid) >= target:
            upper = mid
        else:
            below = mid
    return upper


def _scan_min_integer(
    func: Callable[[np.ndarray], np.ndarray],
    target: float,
    lo: int,
    hi: int,
    *,
    chunk: int = 4096,
) -> int | None:
    """Smallest integer ``n`` in ``[lo, hi]`` with ``func(n) >= target``.

    Unit-step scan for functions that need not be monotone. *func* is
    called on integer arrays of up to *chunk* consecutive values and must
    return an array of the same length.

    Returns ``None`` if no integer in the range reaches *target*.
    """
    for start in range(lo, hi + 1, chunk):
        n = np.arange(start, min(start + chunk, hi + 1))
        hits = np.flatnonzero(np.asarray(func(n)) >= target)
        if hits.size:
            return int(n[hits[0]])
    logger.debug("scan exhausted at %d without reaching %.4f", hi, target)
    return None
