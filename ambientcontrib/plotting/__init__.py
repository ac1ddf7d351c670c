"""Plotting helpers for ambient contribution QC."""

from ambientcontrib.plotting.contribution import (
    plot_contribution_distribution,
    plot_scaling_factors,
)
from ambientcontrib.plotting.styles import (
    DEFAULT_PLOT_STYLE,
    PlotStyle,
    apply_plot_style,
    plot_style_dict,
)
from ambientcontrib.plotting.utils import save_figure

__all__ = [
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "plot_style_dict",
    "plot_contribution_distribution",
    "plot_scaling_factors",
    "save_figure",
]
