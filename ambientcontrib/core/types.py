"""Typed configuration and result containers for contribution estimates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd

MODES: tuple[str, ...] = ("proportion", "count")


@dataclass(frozen=True)
class ContributionConfig:
    """Parameters for one contribution estimate.

    - `threshold`: combined p-value floor for the maximum-scaling search.
    - `dispersion`: negative-binomial dispersion; `None` selects Poisson.
    - `tol`: relative bracket width at which the search stops.
    """

    threshold: float = 0.05
    dispersion: float | None = None
    mode: str = "proportion"
    tol: float = 1e-6
    max_iter: int = 100
    max_expand: int = 64
    n_jobs: int = 1

    def __post_init__(self) -> None:
        if not (0.0 < float(self.threshold) < 1.0):
            raise ValueError("threshold must lie strictly between 0 and 1.")
        if self.dispersion is not None and not float(self.dispersion) > 0.0:
            raise ValueError("dispersion must be positive (or None for Poisson).")
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got '{self.mode}'.")
        if not float(self.tol) > 0.0:
            raise ValueError("tol must be positive.")
        if int(self.max_iter) <= 0 or int(self.max_expand) <= 0:
            raise ValueError("max_iter and max_expand must be positive.")
        if int(self.n_jobs) == 0:
            raise ValueError("n_jobs must be non-zero.")

    @property
    def null_model(self) -> str:
        return "poisson" if self.dispersion is None else "negative_binomial"


@dataclass(frozen=True)
class ContributionEstimate:
    """Output of `maximum_contribution` and `control_anchored_contribution`.

    - `values`: genes x samples; proportions in [0, 1] or expected ambient counts.
    - `scaling`: per-sample factor applied to the ambient profile as supplied.
    - `failures`: sample label -> reason, for samples with a missing factor.
    """

    values: pd.DataFrame
    scaling: pd.Series
    method: str
    mode: str
    failures: dict[Any, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
