"""Design dispatcher: solve for power, K or m under all five methods.

Validates the solve mode and inputs once, then evaluates every registered
design method with the same parameters and assembles a single report.
"""

from __future__ import annotations

import inspect
import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from pycrtdesign.coprimary._comb_outcome import (
    comb_outcome_cluster_size,
    comb_outcome_clusters,
    comb_outcome_power,
)
from pycrtdesign.coprimary._common import (
    DEFAULT_CONFIG,
    INFEASIBLE,
    DesignConfig,
    DesignInput,
    DesignReport,
    DesignRow,
    InfeasibleDesignError,
    _check_config,
    _check_design_args,
    _check_nuisance,
    is_infeasible,
)
from pycrtdesign.coprimary._conj_iu import (
    conj_iu_cluster_size,
    conj_iu_clusters,
    conj_iu_power,
)
from pycrtdesign.coprimary._disj_2df import (
    disj_2df_cluster_size,
    disj_2df_clusters,
    disj_2df_power,
)
from pycrtdesign.coprimary._pval_adj import (
    ADJUSTMENT_LABELS,
    pval_adj_cluster_size,
    pval_adj_clusters,
    pval_adj_power,
)
from pycrtdesign.coprimary._single_1df import (
    single_1df_cluster_size,
    single_1df_clusters,
    single_1df_power,
)

logger = logging.getLogger(__name__)

# Config fields a kernel receives only if its signature declares them
_OPTIONAL_CONFIG = ("dist", "max_search")

_COLUMNS = {
    "power": ("Design Method", "Power"),
    "K": ("Design Method", "K1", "K2"),
    "m": ("Design Method", "m"),
}


# ---------------------------------------------------------------------------
# Method registry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DesignMethod:
    """One design method: its report label and three solvers.

    ``variants`` maps the keys of a method that returns several results
    (one per sub-variant) to their report labels; such a method gets an
    umbrella row followed by one row per variant.
    """

    label: str
    power: Callable[..., object]
    clusters: Callable[..., object]
    cluster_size: Callable[..., object]
    variants: Mapping[str, str] | None = None

    def solver(self, output: str) -> Callable[..., object]:
        return {"power": self.power, "K": self.clusters, "m": self.cluster_size}[output]


METHODS: tuple[DesignMethod, ...] = (
    DesignMethod(
        "1. P-Value Adjustments",
        pval_adj_power, pval_adj_clusters, pval_adj_cluster_size,
        variants=ADJUSTMENT_LABELS,
    ),
    DesignMethod(
        "2. Combined Outcomes",
        comb_outcome_power, comb_outcome_clusters, comb_outcome_cluster_size,
    ),
    DesignMethod(
        "3. Single 1-df Combined Test",
        single_1df_power, single_1df_clusters, single_1df_cluster_size,
    ),
    DesignMethod(
        "4. Disjunctive 2-df Test",
        disj_2df_power, disj_2df_clusters, disj_2df_cluster_size,
    ),
    DesignMethod(
        "5. Conjunctive IU Test",
        conj_iu_power, conj_iu_clusters, conj_iu_cluster_size,
    ),
)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def _known_args(output: str, design: DesignInput) -> dict[str, float | int]:
    if output == "power":
        return {"K": design.K, "m": design.m}
    if output == "K":
        return {"power": design.power, "m": design.m}
    return {"power": design.power, "K": design.K}


def _evaluate(
    method: DesignMethod, output: str, design: DesignInput, config: DesignConfig,
):
    solver = method.solver(output)
    accepted = inspect.signature(solver).parameters
    kwargs = {
        **_known_args(output, design),
        **design.nuisance(),
        "alpha": config.alpha,
        "r": config.r,
    }
    for name in _OPTIONAL_CONFIG:
        if name in accepted:
            kwargs[name] = getattr(config, name)

    logger.debug("evaluating %s (%s)", method.label, solver.__name__)
    try:
        return solver(**kwargs)
    except InfeasibleDesignError as exc:
        logger.warning("%s: %s", method.label, exc)
        if method.variants is not None:
            return {key: INFEASIBLE for key in method.variants}
        return INFEASIBLE


def _row_values(output: str, value, r: float) -> tuple:
    if output != "K":
        return (value,)
    if is_infeasible(value):
        return (value, INFEASIBLE)
    # round away representation error before taking the ceiling of r * K1
    return (value, math.ceil(round(r * value, 10)))


def evaluate_design(
    output: str, design: DesignInput, config: DesignConfig = DEFAULT_CONFIG,
) -> DesignReport:
    """Evaluate every registered method on an already validated design."""
    n_values = len(_COLUMNS[output]) - 1
    rows = []
    for method in METHODS:
        result = _evaluate(method, output, design, config)
        if method.variants is None:
            rows.append(DesignRow(method.label, _row_values(output, result, config.r)))
            continue
        rows.append(DesignRow(method.label, (None,) * n_values))
        for key, label in method.variants.items():
            rows.append(DesignRow(label, _row_values(output, result[key], config.r)))

    return DesignReport(
        output=output,
        columns=_COLUMNS[output],
        rows=tuple(rows),
        alpha=config.alpha,
        dist=config.dist,
        r=config.r,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_hybrid2_design(
    output: str,
    power: float | None = None,
    K: int | None = None,
    m: int | None = None,
    *,
    beta1: float,
    beta2: float,
    var_y1: float,
    var_y2: float,
    rho01: float,
    rho02: float,
    rho1: float,
    rho2: float,
    alpha: float = DEFAULT_CONFIG.alpha,
    dist: str = DEFAULT_CONFIG.dist,
    r: float = DEFAULT_CONFIG.r,
    max_search: int = DEFAULT_CONFIG.max_search,
) -> DesignReport:
    """Power, clusters per arm or cluster size under all five design methods.

    Exactly the parameter named by ``output`` must be left as ``None``.

    Parameters
    ----------
    output : str
        ``'power'``, ``'K'`` or ``'m'``: the quantity to solve for.
    power : float or None
        Desired power, in (0, 1).
    K : int or None
        Clusters in the treatment arm (``r * K`` in control).
    m : int or None
        Individuals per cluster.
    beta1, beta2 : float
        Effect sizes of the two endpoints.
    var_y1, var_y2 : float
        Total variances of the two endpoints (> 0).
    rho01, rho02 : float
        Intra-cluster correlation of each endpoint, in [0, 1).
    rho1 : float
        Correlation between the endpoints for two individuals in the same
        cluster.
    rho2 : float
        Correlation between the endpoints within an individual.
    alpha : float
        Type I error rate (default 0.05).
    dist : str
        Reference distribution of the disjunctive 2-df test, ``'Chi2'``
        (default) or ``'F'``.
    r : float
        Allocation ratio, ``K2 = r * K1`` (default 1).
    max_search : int
        Ceiling of the iterative K and m searches (default 1,000,000).

    Returns
    -------
    DesignReport
        Eight rows in fixed order; columns ``Power``, ``K1``/``K2`` or
        ``m`` depending on *output*. Targets that cannot be met hold
        ``INFEASIBLE``.

    Raises
    ------
    ValidationError
        If the solve mode or any parameter is invalid. Raised before any
        calculation.
    NumericalConvergenceError
        If a noncentrality parameter cannot be found.

    Examples
    --------
    >>> rep = run_hybrid2_design("K", power=0.8, m=300, beta1=0.1, beta2=0.1,
    ...                          var_y1=0.23, var_y2=0.25, rho01=0.025,
    ...                          rho02=0.025, rho1=0.01, rho2=0.05)
    >>> rep.columns
    ('Design Method', 'K1', 'K2')
    """
    power, K, m = _check_design_args(output=output, power=power, K=K, m=m)
    config = DesignConfig(alpha=alpha, r=r, dist=dist, max_search=max_search)
    _check_config(config)

    design = DesignInput(
        K=K, m=m, power=power,
        beta1=beta1, beta2=beta2,
        var_y1=var_y1, var_y2=var_y2,
        rho01=rho01, rho02=rho02,
        rho1=rho1, rho2=rho2,
    )
    _check_nuisance(design.nuisance())

    logger.debug("solving for %s with %s", output, config)
    return evaluate_design(output, design, config)
