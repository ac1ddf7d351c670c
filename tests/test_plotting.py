from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd

from ambientcontrib import ContributionEstimate
from ambientcontrib.plotting import plot_contribution_distribution, plot_scaling_factors


def _estimate() -> ContributionEstimate:
    values = pd.DataFrame(
        {"S1": [0.02, 0.5, 1.0], "S2": [0.04, np.nan, 0.9]}, index=["A", "B", "C"]
    )
    scaling = pd.Series([3.0, np.nan], index=["S1", "S2"], name="scaling")
    return ContributionEstimate(values=values, scaling=scaling, method="maximum", mode="proportion")


def test_distribution_plot_written(tmp_path):
    out = plot_contribution_distribution(_estimate(), tmp_path / "figs" / "dist.png", threshold=0.1)
    assert out.exists()
    assert out.stat().st_size > 0


def test_scaling_plot_handles_missing_factor(tmp_path):
    out = plot_scaling_factors(_estimate(), tmp_path / "scaling.png")
    assert out.exists()


def _capture_figure(monkeypatch):
    from ambientcontrib.plotting import contribution

    captured = {}

    def _keep(fig, out_path, **_kwargs):
        captured["fig"] = fig
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path)

    monkeypatch.setattr(contribution, "save_figure", _keep)
    return captured


def test_threshold_line_only_on_proportion_scale(tmp_path, monkeypatch):
    import matplotlib.pyplot as plt
    from dataclasses import replace

    captured = _capture_figure(monkeypatch)
    plot_contribution_distribution(_estimate(), tmp_path / "prop.png", threshold=0.1)
    assert len(captured["fig"].axes[0].lines) == 1
    plt.close(captured["fig"])

    counts_scale = replace(_estimate(), mode="count")
    plot_contribution_distribution(counts_scale, tmp_path / "count.png", threshold=0.1)
    assert len(captured["fig"].axes[0].lines) == 0
    plt.close(captured["fig"])
