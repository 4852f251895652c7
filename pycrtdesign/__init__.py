"""
PyCRTDesign: study design for hybrid type 2 cluster randomized trials.

Computes power, number of clusters per arm or cluster size for cluster
randomized trials with two co-primary endpoints, comparing five design
methods in one table.

Usage:
    from pycrtdesign import run_hybrid2_design
    from pycrtdesign import coprimary
"""

__version__ = "0.1.0"

from pycrtdesign import coprimary
from pycrtdesign.coprimary import run_hybrid2_design

__all__ = [
    "__version__",
    "coprimary",
    "run_hybrid2_design",
]
