"""QC figures for ambient contribution estimates."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from ambientcontrib.core.types import ContributionEstimate
from ambientcontrib.filtering import DEFAULT_CONTAMINATION_THRESHOLD, mean_contribution
from ambientcontrib.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from ambientcontrib.plotting.utils import save_figure


def plot_contribution_distribution(
    estimate: ContributionEstimate,
    out_path: str | Path,
    *,
    threshold: float = DEFAULT_CONTAMINATION_THRESHOLD,
    title: str | None = None,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> Path:
    """Histogram of per-gene mean contribution.

    The filtering threshold is drawn only on the proportion scale.
    """
    mean = mean_contribution(estimate).to_numpy(dtype=float)
    finite = mean[np.isfinite(mean)]
    proportion = estimate.mode == "proportion"

    fig, ax = plt.subplots(figsize=style.figsize_hist)
    if finite.size > 0:
        ax.hist(finite, bins=style.hist_bins, color=style.bar_color, edgecolor="black", alpha=0.8)
    if proportion:
        n_flagged = int(np.sum(finite > float(threshold)))
        ax.axvline(
            float(threshold),
            color=style.threshold_color,
            linestyle="--",
            linewidth=1.5,
            label=f"threshold={threshold:g} ({n_flagged} genes above)",
        )
        ax.legend(fontsize=style.tick_fontsize)
    xlabel = "Mean ambient proportion" if proportion else "Mean ambient count"
    ax.set_xlabel(xlabel, fontsize=style.axis_label_fontsize)
    ax.set_ylabel("Genes", fontsize=style.axis_label_fontsize)
    ax.set_title(title or f"Ambient contribution ({estimate.method})", fontsize=style.title_fontsize)
    fig.tight_layout()

    out = Path(out_path)
    save_figure(fig, out, style=style)
    return out


def plot_scaling_factors(
    estimate: ContributionEstimate,
    out_path: str | Path,
    *,
    title: str | None = None,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> Path:
    """Per-sample scaling factors; samples with a missing factor are drawn as grey stubs."""
    scaling = estimate.scaling.to_numpy(dtype=float)
    labels = [str(s) for s in estimate.scaling.index]
    missing = ~np.isfinite(scaling)
    heights = np.where(missing, 0.0, scaling)
    colors = [style.missing_color if m else style.bar_color for m in missing]

    fig, ax = plt.subplots(figsize=style.figsize_bars)
    x = np.arange(len(labels))
    ax.bar(x, heights, color=colors, edgecolor="black", linewidth=0.5)
    if len(labels) <= style.max_bar_labels:
        ax.set_xticks(x)
        ax.set_xticklabels(labels, rotation=90, fontsize=style.tick_fontsize)
    else:
        ax.set_xticks([])
    ax.set_xlabel("Sample", fontsize=style.axis_label_fontsize)
    ax.set_ylabel("Ambient scaling factor", fontsize=style.axis_label_fontsize)
    ax.set_title(title or f"Scaling factors ({estimate.method})", fontsize=style.title_fontsize)
    fig.tight_layout()

    out = Path(out_path)
    save_figure(fig, out, style=style)
    return out
