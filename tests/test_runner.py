from __future__ import annotations

import json
import logging

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from ambientcontrib import ContributionConfig
from ambientcontrib.pipeline.runner import run_contribution


def _inputs():
    counts = pd.DataFrame(
        {"S1": [100, 5, 400], "S2": [50, 200, 300], "S3": [10, 20, 30]},
        index=["HBB", "GeneX", "GeneZ"],
    )
    ambient = pd.DataFrame(
        {"S1": [10.0, 1.0, 1.0], "S2": [10.0, 1.0, 1.0], "S3": [0.0, 1.0, 1.0]},
        index=counts.index,
    )
    return counts, ambient


def test_control_run_writes_outputs_and_logs_failures(tmp_path, caplog):
    caplog.set_level(logging.WARNING)
    counts, ambient = _inputs()
    out = run_contribution(
        counts,
        ambient,
        tmp_path / "run",
        method="control",
        controls=["HBB"],
        logger=logging.getLogger("test_runner"),
    )
    paths = out["paths"]
    for key in ("contributions", "scaling", "summary", "metadata", "fig_distribution", "fig_scaling"):
        assert paths[key].exists()

    scaling = pd.read_csv(paths["scaling"], index_col=0)
    assert np.allclose(scaling.loc[["S1", "S2"], "scaling"].to_numpy(), [10.0, 5.0])
    assert np.isnan(scaling.loc["S3", "scaling"])

    meta = json.loads(paths["metadata"].read_text(encoding="utf-8"))
    assert meta["method"] == "control"
    assert meta["n_failed_samples"] == 1
    assert "S3" in meta["failures"]
    assert meta["outputs"]["fig_scaling"] == "figures/scaling_factors.png"
    assert "undefined for sample 'S3'" in caplog.text


def test_maximum_run_without_plots(tmp_path):
    counts, ambient = _inputs()
    out = run_contribution(counts, ambient, tmp_path, method="maximum", plots=False)
    assert "fig_scaling" not in out["paths"]
    summary = pd.read_csv(out["paths"]["summary"], index_col=0)
    assert list(summary.index) == ["HBB", "GeneX", "GeneZ"]
    assert summary["ambient"].dtype == bool


def test_run_argument_errors(tmp_path):
    counts, ambient = _inputs()
    with pytest.raises(ValueError, match="method"):
        run_contribution(counts, ambient, tmp_path, method="negative")
    with pytest.raises(ValueError, match="control genes"):
        run_contribution(counts, ambient, tmp_path, method="control", plots=False)


def test_count_mode_flags_match_proportion_mode(tmp_path):
    counts = pd.DataFrame(
        {"S1": [100, 5, 400], "S2": [50, 200, 300]}, index=["HBB", "GeneX", "GeneZ"]
    )
    ambient = pd.Series([10.0, 1.0, 1.0], index=counts.index)
    by_mode = {}
    for mode in ("proportion", "count"):
        out = run_contribution(
            counts,
            ambient,
            tmp_path / mode,
            method="control",
            controls=["HBB"],
            config=ContributionConfig(mode=mode),
            plots=False,
        )
        by_mode[mode] = out["summary"]["ambient"].to_dict()
    assert by_mode["count"] == by_mode["proportion"]
    assert by_mode["count"] == {"HBB": True, "GeneX": True, "GeneZ": False}


def test_plot_style_recorded_in_metadata(tmp_path):
    counts, ambient = _inputs()
    with_plots = run_contribution(counts, ambient, tmp_path / "plots", method="maximum")
    meta = json.loads(with_plots["paths"]["metadata"].read_text(encoding="utf-8"))
    assert meta["plot_style"]["dpi"] == 200
    assert "matplotlib_version" in meta["plot_style"]

    without = run_contribution(counts, ambient, tmp_path / "bare", method="maximum", plots=False)
    meta = json.loads(without["paths"]["metadata"].read_text(encoding="utf-8"))
    assert meta["plot_style"] is None


def test_controls_rejected_for_maximum_method(tmp_path):
    counts, ambient = _inputs()
    with pytest.raises(ValueError, match="does not use control genes"):
        run_contribution(
            counts, ambient, tmp_path, method="maximum", controls=["HBB"], plots=False
        )
