"""Input coercion and axis alignment for count and ambient matrices."""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np
import pandas as pd
import scipy.sparse as sp

from ambientcontrib.core.errors import DimensionMismatch, InvalidControlSet


def _check_nonnegative(name: str, arr: np.ndarray) -> np.ndarray:
    if not np.isfinite(arr).all():
        raise ValueError(f"{name} must be finite.")
    if np.any(arr < 0.0):
        raise ValueError(f"{name} must be non-negative.")
    return arr


def as_count_frame(counts: Any) -> pd.DataFrame:
    """Return counts as a float genes x samples frame, validating values."""
    if isinstance(counts, pd.DataFrame):
        frame = counts.astype(float)
    else:
        if sp.issparse(counts):
            arr = counts.toarray()
        else:
            arr = np.asarray(counts)
        if arr.ndim != 2:
            raise ValueError(f"counts must be 2-D (genes x samples), got shape {arr.shape}.")
        frame = pd.DataFrame(arr.astype(float))
    if frame.shape[0] == 0 or frame.shape[1] == 0:
        raise ValueError("counts must contain at least one gene and one sample.")
    if not frame.index.is_unique:
        raise ValueError("counts gene labels must be unique.")
    values = _check_nonnegative("counts", frame.to_numpy())
    if not np.array_equal(values, np.round(values)):
        raise ValueError("counts must be whole numbers.")
    return frame


def align_ambient(ambient: Any, counts: pd.DataFrame) -> np.ndarray:
    """Broadcast `ambient` onto the shape of `counts` or fail.

    A vector (Series, 1-D array, single-column frame or `(n_genes, 1)` array)
    is repeated across samples. Labelled inputs must carry the counts' gene
    labels in the same order; a labelled multi-column frame must also carry
    the same sample columns.
    """
    n_genes, n_samples = counts.shape

    if isinstance(ambient, pd.Series):
        if not ambient.index.equals(counts.index):
            raise DimensionMismatch(
                "ambient gene labels do not match counts gene labels (identity and order)."
            )
        arr = ambient.to_numpy(dtype=float)[:, None]
    elif isinstance(ambient, pd.DataFrame):
        if not ambient.index.equals(counts.index):
            raise DimensionMismatch(
                "ambient gene labels do not match counts gene labels (identity and order)."
            )
        if ambient.shape[1] != 1 and not ambient.columns.equals(counts.columns):
            raise DimensionMismatch(
                "ambient sample columns do not match counts sample columns."
            )
        arr = ambient.to_numpy(dtype=float)
    else:
        if sp.issparse(ambient):
            arr = np.asarray(ambient.toarray(), dtype=float)
        else:
            arr = np.asarray(ambient, dtype=float)
        if arr.ndim == 1:
            arr = arr[:, None]
        if arr.ndim != 2:
            raise DimensionMismatch(f"ambient must be 1-D or 2-D, got shape {arr.shape}.")

    if arr.shape[0] != n_genes:
        raise DimensionMismatch(
            f"ambient has {arr.shape[0]} genes but counts has {n_genes}."
        )
    if arr.shape[1] == 1 and n_samples != 1:
        arr = np.repeat(arr, n_samples, axis=1)
    elif arr.shape[1] != n_samples:
        raise DimensionMismatch(
            f"ambient has {arr.shape[1]} samples but counts has {n_samples}."
        )
    return _check_nonnegative("ambient", arr.copy())


def resolve_control_indices(index: pd.Index, control_genes: Iterable[Any]) -> np.ndarray:
    """Map control gene labels (or positions on an unlabelled axis) to row positions."""
    if isinstance(control_genes, (str, bytes)):
        control_genes = [control_genes]
    requested = list(control_genes)
    if not requested:
        raise InvalidControlSet("control gene set is empty.")

    positional = isinstance(index, pd.RangeIndex)
    out: list[int] = []
    missing: list[str] = []
    for gene in requested:
        if gene in index:
            pos = int(index.get_loc(gene))
        elif positional and isinstance(gene, (int, np.integer)) and 0 <= int(gene) < index.size:
            pos = int(gene)
        else:
            missing.append(str(gene))
            continue
        if pos not in out:
            out.append(pos)
    if missing:
        head = ", ".join(missing[:5])
        raise InvalidControlSet(
            f"control genes not found in counts: {head}{'...' if len(missing) > 5 else ''}"
        )
    return np.asarray(out, dtype=int)
