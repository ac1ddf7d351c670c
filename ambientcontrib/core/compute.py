"""Ambient contribution estimators (no plotting, no filesystem I/O)."""

from __future__ import annotations

import warnings
from dataclasses import replace
from typing import Any, Iterable

import numpy as np
import pandas as pd

from ambientcontrib.core.errors import NumericalNonConvergence
from ambientcontrib.core.types import ContributionConfig, ContributionEstimate
from ambientcontrib.core.utils import align_ambient, as_count_frame, resolve_control_indices
from ambientcontrib.parallel import parallel_map
from ambientcontrib.stats.search import max_scaling


def contribution_from_scaling(
    counts: np.ndarray,
    ambient: np.ndarray,
    scaling: np.ndarray,
    mode: str = "proportion",
) -> np.ndarray:
    """Turn per-sample scaling factors into per-cell estimates.

    Zero ambient gives zero whatever the factor is. In proportion mode a zero
    count gives 1, since no ambient presence can be excluded; elsewhere the
    estimate is `min(1, scaling * ambient / counts)`. A missing factor gives a
    missing estimate only where it matters.
    """
    y = np.asarray(counts, dtype=float)
    a = np.asarray(ambient, dtype=float)
    lam = np.asarray(scaling, dtype=float).reshape(1, -1)

    with np.errstate(invalid="ignore"):
        expected = np.where(a > 0.0, lam * a, 0.0)
    if mode == "count":
        return expected

    out = np.ones_like(y)
    nonzero = y > 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        out[nonzero] = np.minimum(1.0, expected[nonzero] / y[nonzero])
    return out


def _search_column(
    observed: np.ndarray, ambient: np.ndarray, config: ContributionConfig
) -> tuple[float, str | None]:
    try:
        scale = max_scaling(
            observed,
            ambient,
            threshold=config.threshold,
            dispersion=config.dispersion,
            tol=config.tol,
            max_iter=config.max_iter,
            max_expand=config.max_expand,
        )
    except NumericalNonConvergence as exc:
        return float("nan"), str(exc)
    if not np.isfinite(scale):
        return scale, "no gene has ambient signal in this sample"
    return scale, None


def _control_column(
    observed: np.ndarray, ambient: np.ndarray, control_idx: np.ndarray
) -> tuple[float, str | None]:
    amb_total = float(np.sum(ambient[control_idx]))
    if amb_total <= 0.0:
        return float("nan"), "control genes have zero ambient signal in this sample"
    return float(np.sum(observed[control_idx])) / amb_total, None


def _report_failures(failures: dict[Any, str], method: str) -> None:
    for sample, reason in failures.items():
        warnings.warn(
            f"{method} scaling undefined for sample '{sample}': {reason}",
            RuntimeWarning,
            stacklevel=3,
        )


def _package(
    counts: pd.DataFrame,
    ambient: np.ndarray,
    columns: list[tuple[float, str | None]],
    *,
    method: str,
    config: ContributionConfig,
    extra: dict[str, Any],
) -> ContributionEstimate:
    scaling = np.asarray([scale for scale, _ in columns], dtype=float)
    failures = {
        counts.columns[j]: reason
        for j, (_, reason) in enumerate(columns)
        if reason is not None
    }
    values = contribution_from_scaling(counts.to_numpy(), ambient, scaling, mode=config.mode)
    meta: dict[str, Any] = {
        "n_genes": int(counts.shape[0]),
        "n_samples": int(counts.shape[1]),
        "mode": config.mode,
        "null_model": config.null_model,
        "threshold": float(config.threshold),
        "dispersion": (None if config.dispersion is None else float(config.dispersion)),
        "tol": float(config.tol),
    }
    meta.update(extra)
    return ContributionEstimate(
        values=pd.DataFrame(values, index=counts.index.copy(), columns=counts.columns.copy()),
        scaling=pd.Series(scaling, index=counts.columns.copy(), name="scaling"),
        method=method,
        mode=config.mode,
        failures=failures,
        metadata=meta,
    )


def maximum_contribution(
    counts: Any,
    ambient: Any,
    mode: str | None = None,
    *,
    config: ContributionConfig | None = None,
) -> ContributionEstimate:
    """Upper bound on the ambient contribution of every gene in every sample.

    Per sample, the ambient profile is scaled up to the largest factor at
    which the observed counts are not a significant under-count (Simes
    combination of lower-tail p-values across genes with ambient signal,
    compared against `config.threshold`).
    """
    cfg = config or ContributionConfig()
    if mode is not None and mode != cfg.mode:
        cfg = replace(cfg, mode=mode)
    frame = as_count_frame(counts)
    amb = align_ambient(ambient, frame)
    y = frame.to_numpy()

    columns = parallel_map(
        lambda j: _search_column(y[:, j], amb[:, j], cfg),
        range(frame.shape[1]),
        n_jobs=cfg.n_jobs,
    )
    out = _package(frame, amb, columns, method="maximum", config=cfg, extra={})
    _report_failures(out.failures, "maximum")
    return out


def control_anchored_contribution(
    counts: Any,
    ambient: Any,
    control_genes: Iterable[Any],
    mode: str | None = None,
    *,
    config: ContributionConfig | None = None,
) -> ContributionEstimate:
    """Ambient contribution with the scaling fixed by non-expressed control genes.

    Per sample the factor makes the scaled ambient total over the controls
    equal the observed total over the same genes; it is then applied to every
    gene.
    """
    cfg = config or ContributionConfig()
    if mode is not None and mode != cfg.mode:
        cfg = replace(cfg, mode=mode)
    frame = as_count_frame(counts)
    amb = align_ambient(ambient, frame)
    control_idx = resolve_control_indices(frame.index, control_genes)
    y = frame.to_numpy()

    columns = parallel_map(
        lambda j: _control_column(y[:, j], amb[:, j], control_idx),
        range(frame.shape[1]),
        n_jobs=cfg.n_jobs,
    )
    extra = {"control_genes": [str(frame.index[i]) for i in control_idx]}
    out = _package(frame, amb, columns, method="control", config=cfg, extra=extra)
    _report_failures(out.failures, "control")
    return out
