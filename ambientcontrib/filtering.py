"""Consumer-side filtering of genes by estimated ambient contribution."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from ambientcontrib.core.types import ContributionEstimate

DEFAULT_CONTAMINATION_THRESHOLD = 0.10


def _values(estimate: ContributionEstimate | pd.DataFrame) -> pd.DataFrame:
    if isinstance(estimate, ContributionEstimate):
        return estimate.values
    if isinstance(estimate, pd.DataFrame):
        return estimate
    raise TypeError(
        f"expected ContributionEstimate or DataFrame, got {type(estimate).__name__}."
    )


def _proportions(estimate: ContributionEstimate | pd.DataFrame) -> pd.DataFrame:
    if isinstance(estimate, ContributionEstimate) and estimate.mode != "proportion":
        raise ValueError(
            f"ambient filtering needs proportion estimates, got mode='{estimate.mode}'."
        )
    return _values(estimate)


def mean_contribution(estimate: ContributionEstimate | pd.DataFrame) -> pd.Series:
    """Per-gene mean across samples, ignoring missing values."""
    values = _values(estimate).astype(float)
    return values.mean(axis=1, skipna=True).rename("mean_contribution")


def flag_ambient_genes(
    estimate: ContributionEstimate | pd.DataFrame,
    threshold: float = DEFAULT_CONTAMINATION_THRESHOLD,
) -> pd.Series:
    """Genes whose mean contribution exceeds `threshold`.

    Genes without any defined estimate are not flagged.
    """
    thr = float(threshold)
    if not np.isfinite(thr) or thr < 0.0:
        raise ValueError("threshold must be a finite non-negative number.")
    mean = mean_contribution(_proportions(estimate))
    return (mean > thr).rename("ambient")


def drop_ambient_genes(
    counts: pd.DataFrame,
    estimate: ContributionEstimate | pd.DataFrame,
    threshold: float = DEFAULT_CONTAMINATION_THRESHOLD,
) -> pd.DataFrame:
    flags = flag_ambient_genes(estimate, threshold)
    if not flags.index.equals(counts.index):
        raise ValueError("counts and estimate must share the same gene index.")
    return counts.loc[~flags.to_numpy()]


def summarize_contribution(
    estimate: ContributionEstimate | pd.DataFrame,
    threshold: float = DEFAULT_CONTAMINATION_THRESHOLD,
) -> pd.DataFrame:
    values = _proportions(estimate)
    out: dict[str, Any] = {
        "mean_contribution": mean_contribution(values),
        "max_contribution": values.max(axis=1, skipna=True),
        "n_defined": values.notna().sum(axis=1).astype(int),
        "ambient": flag_ambient_genes(values, threshold),
    }
    table = pd.DataFrame(out, index=values.index)
    table.index.name = values.index.name or "gene"
    return table
