"""Statistical utilities for ambient contribution estimates."""

from ambientcontrib.stats.null import lower_tail_pvalue
from ambientcontrib.stats.scoring import bh_fdr, simes_pvalue
from ambientcontrib.stats.search import combined_pvalue, max_scaling

__all__ = [
    "lower_tail_pvalue",
    "bh_fdr",
    "simes_pvalue",
    "combined_pvalue",
    "max_scaling",
]
