"""Build count and ambient matrices from per-cell AnnData objects."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
import scipy.sparse as sp

DEFAULT_AMBIENT_LOWER = 100


def _get_counts(adata, layer: str | None) -> Any:
    if layer is None:
        return adata.X
    if layer not in adata.layers:
        raise KeyError(f"adata.layers['{layer}'] not found.")
    return adata.layers[layer]


def _sum_rows(matrix: Any, rows: np.ndarray) -> np.ndarray:
    sub = matrix[rows]
    if sp.issparse(sub):
        return np.asarray(sub.sum(axis=0)).ravel().astype(float)
    return np.asarray(sub, dtype=float).sum(axis=0)


def _row_totals(matrix: Any) -> np.ndarray:
    if sp.issparse(matrix):
        return np.asarray(matrix.sum(axis=1)).ravel().astype(float)
    return np.asarray(matrix, dtype=float).sum(axis=1)


def _sample_labels(adata, sample_col: str) -> np.ndarray:
    if sample_col not in adata.obs.columns:
        raise KeyError(f"adata.obs['{sample_col}'] not found.")
    labels = adata.obs[sample_col]
    if labels.isna().any():
        raise ValueError(f"adata.obs['{sample_col}'] contains missing sample labels.")
    return labels.astype(str).to_numpy()


def aggregate_pseudobulk(
    adata,
    sample_col: str,
    *,
    label_col: str | None = None,
    label: str | None = None,
    layer: str | None = None,
) -> pd.DataFrame:
    """Sum per-cell counts into a genes x samples pseudo-bulk frame.

    With `label_col` and `label`, only cells carrying that label are summed.
    Samples keep their first-seen order; samples with no selected cells are
    dropped.
    """
    if (label_col is None) != (label is None):
        raise ValueError("label_col and label must be given together.")

    samples = _sample_labels(adata, sample_col)
    keep = np.ones(samples.size, dtype=bool)
    if label_col is not None:
        if label_col not in adata.obs.columns:
            raise KeyError(f"adata.obs['{label_col}'] not found.")
        keep = (adata.obs[label_col].astype(str) == str(label)).to_numpy()
        if not keep.any():
            raise ValueError(f"No cells carry {label_col}='{label}'.")

    matrix = _get_counts(adata, layer)
    order = pd.unique(samples[keep])
    columns = {
        sample: _sum_rows(matrix, np.flatnonzero(keep & (samples == sample)))
        for sample in order
    }
    out = pd.DataFrame(columns, index=pd.Index(adata.var_names.astype(str), name="gene"))
    return out


def estimate_ambient_profile(
    raw_adata,
    sample_col: str,
    *,
    lower: float = DEFAULT_AMBIENT_LOWER,
    layer: str | None = None,
) -> pd.DataFrame:
    """Sum counts of presumed-empty barcodes (total count <= `lower`) per sample."""
    if float(lower) < 0.0:
        raise ValueError("lower must be non-negative.")

    samples = _sample_labels(raw_adata, sample_col)
    matrix = _get_counts(raw_adata, layer)
    empty = _row_totals(matrix) <= float(lower)

    columns: dict[str, np.ndarray] = {}
    for sample in pd.unique(samples):
        rows = np.flatnonzero(empty & (samples == sample))
        if rows.size == 0:
            raise ValueError(
                f"Sample '{sample}' has no barcodes with total count <= {lower}."
            )
        columns[sample] = _sum_rows(matrix, rows)
    return pd.DataFrame(columns, index=pd.Index(raw_adata.var_names.astype(str), name="gene"))
