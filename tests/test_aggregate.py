from __future__ import annotations

import anndata as ad
import numpy as np
import pandas as pd
import pytest
import scipy.sparse as sp

from ambientcontrib.pipeline.aggregate import aggregate_pseudobulk, estimate_ambient_profile


def _cells() -> ad.AnnData:
    X = np.array(
        [
            [1, 0, 3],
            [2, 1, 0],
            [0, 4, 1],
            [5, 0, 0],
            [1, 1, 1],
        ],
        dtype=float,
    )
    obs = pd.DataFrame(
        {
            "sample": ["s1", "s1", "s2", "s2", "s2"],
            "label": ["T", "B", "T", "T", "B"],
        },
        index=[f"c{i}" for i in range(5)],
    )
    var = pd.DataFrame(index=["HBB", "CD3E", "MS4A1"])
    return ad.AnnData(X=sp.csr_matrix(X), obs=obs, var=var)


def test_pseudobulk_sums_all_cells_per_sample():
    out = aggregate_pseudobulk(_cells(), "sample")
    assert list(out.columns) == ["s1", "s2"]
    assert list(out.index) == ["HBB", "CD3E", "MS4A1"]
    assert out["s1"].tolist() == [3.0, 1.0, 3.0]
    assert out["s2"].tolist() == [6.0, 5.0, 2.0]


def test_pseudobulk_restricted_to_label():
    out = aggregate_pseudobulk(_cells(), "sample", label_col="label", label="T")
    assert out["s1"].tolist() == [1.0, 0.0, 3.0]
    assert out["s2"].tolist() == [5.0, 4.0, 1.0]


def test_pseudobulk_argument_errors():
    adata = _cells()
    with pytest.raises(KeyError):
        aggregate_pseudobulk(adata, "donor")
    with pytest.raises(ValueError):
        aggregate_pseudobulk(adata, "sample", label_col="label")
    with pytest.raises(ValueError, match="No cells"):
        aggregate_pseudobulk(adata, "sample", label_col="label", label="NK")


def test_ambient_profile_sums_low_count_barcodes():
    adata = _cells()
    out = estimate_ambient_profile(adata, "sample", lower=3)
    # s1 empties: c1 (total 3); s2 empties: c4 (total 3)
    assert out["s1"].tolist() == [2.0, 1.0, 0.0]
    assert out["s2"].tolist() == [1.0, 1.0, 1.0]


def test_ambient_profile_requires_empty_barcodes():
    with pytest.raises(ValueError, match="no barcodes"):
        estimate_ambient_profile(_cells(), "sample", lower=1)


def test_ambient_profile_feeds_estimator():
    from ambientcontrib import control_anchored_contribution

    adata = _cells()
    counts = aggregate_pseudobulk(adata, "sample", label_col="label", label="T")
    ambient = estimate_ambient_profile(adata, "sample", lower=3)
    out = control_anchored_contribution(counts, ambient, ["HBB"])
    assert np.allclose(out.scaling.to_numpy(), [0.5, 5.0])
