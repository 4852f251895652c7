"""
Power and sample size for cluster randomized trials with two co-primary endpoints.

Hybrid type 2 trials evaluate an implementation outcome and an effectiveness
outcome together. This module solves for power, clusters per arm (K) or
cluster size (m) under five analysis strategies and compares them side by
side.

Methods: p-value adjustments (Bonferroni, Sidak, D/AP), combined outcomes,
single 1-df combined test, disjunctive 2-df test, conjunctive
intersection-union test.
"""

from pycrtdesign.coprimary._common import (
    DEFAULT_CONFIG,
    INFEASIBLE,
    DesignConfig,
    DesignError,
    DesignInput,
    DesignReport,
    DesignRow,
    InfeasibleDesignError,
    NumericalConvergenceError,
    ValidationError,
    is_infeasible,
)
from pycrtdesign.coprimary._ncp import solve_ncp
from pycrtdesign.coprimary._pval_adj import (
    pval_adj_power,
    pval_adj_clusters,
    pval_adj_cluster_size,
)
from pycrtdesign.coprimary._comb_outcome import (
    comb_outcome_power,
    comb_outcome_clusters,
    comb_outcome_cluster_size,
)
from pycrtdesign.coprimary._single_1df import (
    single_1df_power,
    single_1df_clusters,
    single_1df_cluster_size,
)
from pycrtdesign.coprimary._disj_2df import (
    disj_2df_power,
    disj_2df_clusters,
    disj_2df_cluster_size,
)
from pycrtdesign.coprimary._conj_iu import (
    conj_iu_power,
    conj_iu_clusters,
    conj_iu_cluster_size,
)
from pycrtdesign.coprimary._iu_test import iu_power, iu_sample_size
from pycrtdesign.coprimary._dispatch import (
    METHODS,
    DesignMethod,
    evaluate_design,
    run_hybrid2_design,
)

__all__ = [
    "DEFAULT_CONFIG",
    "INFEASIBLE",
    "DesignConfig",
    "DesignError",
    "DesignInput",
    "DesignReport",
    "DesignRow",
    "InfeasibleDesignError",
    "NumericalConvergenceError",
    "ValidationError",
    "is_infeasible",
    "solve_ncp",
    "pval_adj_power",
    "pval_adj_clusters",
    "pval_adj_cluster_size",
    "comb_outcome_power",
    "comb_outcome_clusters",
    "comb_outcome_cluster_size",
    "single_1df_power",
    "single_1df_clusters",
    "single_1df_cluster_size",
    "disj_2df_power",
    "disj_2df_clusters",
    "disj_2df_cluster_size",
    "conj_iu_power",
    "conj_iu_clusters",
    "conj_iu_cluster_size",
    "iu_power",
    "iu_sample_size",
    "METHODS",
    "DesignMethod",
    "evaluate_design",
    "run_hybrid2_design",
]
