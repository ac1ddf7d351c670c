"""End-to-end contribution run: estimate, filter, write tables and figures."""

from __future__ import annotations

import logging
import warnings
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

import numpy as np
import pandas as pd

from ambientcontrib._version import __version__
from ambientcontrib.core.compute import (
    contribution_from_scaling,
    control_anchored_contribution,
    maximum_contribution,
)
from ambientcontrib.core.types import ContributionConfig, ContributionEstimate
from ambientcontrib.core.utils import align_ambient, as_count_frame
from ambientcontrib.filtering import DEFAULT_CONTAMINATION_THRESHOLD, summarize_contribution
from ambientcontrib.pipeline.io import ensure_dir, write_json, write_matrix_csv

METHODS: tuple[str, ...] = ("maximum", "control")


def _estimate(
    counts: pd.DataFrame,
    ambient: Any,
    method: str,
    controls: Iterable[Any] | None,
    config: ContributionConfig,
    logger: logging.Logger,
) -> ContributionEstimate:
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", RuntimeWarning)
        if method == "maximum":
            estimate = maximum_contribution(counts, ambient, config=config)
        else:
            if controls is None:
                raise ValueError("method='control' requires control genes.")
            estimate = control_anchored_contribution(counts, ambient, controls, config=config)
    for w in caught:
        if issubclass(w.category, RuntimeWarning):
            logger.warning("%s", w.message)
        else:
            warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
    return estimate


def _proportion_view(
    counts: pd.DataFrame, ambient: Any, estimate: ContributionEstimate
) -> ContributionEstimate:
    """Proportion-scale copy of `estimate`, sharing its scaling factors."""
    if estimate.mode == "proportion":
        return estimate
    frame = as_count_frame(counts)
    values = contribution_from_scaling(
        frame.to_numpy(),
        align_ambient(ambient, frame),
        estimate.scaling.to_numpy(dtype=float),
        mode="proportion",
    )
    return replace(
        estimate,
        values=pd.DataFrame(values, index=estimate.values.index, columns=estimate.values.columns),
        mode="proportion",
    )


def run_contribution(
    counts: pd.DataFrame,
    ambient: Any,
    outdir: str | Path,
    *,
    method: str = "maximum",
    controls: Iterable[Any] | None = None,
    config: ContributionConfig | None = None,
    contamination_threshold: float = DEFAULT_CONTAMINATION_THRESHOLD,
    plots: bool = True,
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    """Run one estimator and write its outputs under `outdir`.

    Writes `contributions.csv`, `scaling.csv`, `summary.csv` and
    `metadata.json`, plus QC figures under `figures/` when `plots` is set.
    Returns the estimate and the written paths.
    """
    if method not in METHODS:
        raise ValueError(f"method must be one of {METHODS}, got '{method}'.")
    if method == "maximum" and controls is not None:
        raise ValueError("method='maximum' does not use control genes; use method='control'.")
    cfg = config or ContributionConfig()
    log = logger or logging.getLogger("ambientcontrib")
    root = Path(outdir)
    ensure_dir(root)

    log.info(
        "Estimating ambient contribution: method=%s mode=%s null=%s genes=%d samples=%d",
        method,
        cfg.mode,
        cfg.null_model,
        counts.shape[0],
        counts.shape[1],
    )
    estimate = _estimate(counts, ambient, method, controls, cfg, log)

    proportions = _proportion_view(counts, ambient, estimate)
    summary = summarize_contribution(proportions, contamination_threshold)
    n_flagged = int(summary["ambient"].sum())
    log.info(
        "Flagged %d/%d genes with mean contribution > %g",
        n_flagged,
        summary.shape[0],
        contamination_threshold,
    )

    paths: dict[str, Path] = {
        "contributions": write_matrix_csv(root / "contributions.csv", estimate.values),
        "scaling": write_matrix_csv(
            root / "scaling.csv", estimate.scaling.to_frame(), index_label="sample"
        ),
        "summary": write_matrix_csv(root / "summary.csv", summary),
    }

    if plots:
        from ambientcontrib.plotting import (
            apply_plot_style,
            plot_contribution_distribution,
            plot_scaling_factors,
            plot_style_dict,
        )

        apply_plot_style()
        fig_dir = root / "figures"
        paths["fig_distribution"] = plot_contribution_distribution(
            proportions, fig_dir / "contribution_distribution.png", threshold=contamination_threshold
        )
        paths["fig_scaling"] = plot_scaling_factors(estimate, fig_dir / "scaling_factors.png")
        plot_style = plot_style_dict()
    else:
        plot_style = None

    scaling = estimate.scaling.to_numpy(dtype=float)
    metadata = {
        "version": __version__,
        "method": estimate.method,
        "contamination_threshold": float(contamination_threshold),
        "n_flagged": n_flagged,
        "n_failed_samples": len(estimate.failures),
        "failures": {str(k): v for k, v in estimate.failures.items()},
        "scaling_finite": int(np.isfinite(scaling).sum()),
        "outputs": {k: p.relative_to(root).as_posix() for k, p in paths.items()},
        "plot_style": plot_style,
        **estimate.metadata,
    }
    metadata_path = root / "metadata.json"
    write_json(metadata_path, metadata)
    paths["metadata"] = metadata_path

    log.info("Contribution run complete. Results in %s", root.as_posix())
    return {"estimate": estimate, "summary": summary, "paths": paths}
