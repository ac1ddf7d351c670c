"""Lower-tail null models for ambient-derived counts."""

from __future__ import annotations

import numpy as np
from scipy.stats import nbinom, poisson


def lower_tail_pvalue(
    observed: np.ndarray,
    mean: np.ndarray,
    dispersion: float | None = None,
) -> np.ndarray:
    """P(X <= observed) when X has the given mean.

    `dispersion=None` uses a Poisson null; otherwise a negative binomial with
    variance `mean + dispersion * mean**2`.
    """
    y = np.asarray(observed, dtype=float)
    mu = np.asarray(mean, dtype=float)
    if np.any(mu < 0.0):
        raise ValueError("null mean must be non-negative.")

    if dispersion is None:
        p = poisson.cdf(y, mu)
    else:
        phi = float(dispersion)
        if not phi > 0.0:
            raise ValueError("dispersion must be positive.")
        size = 1.0 / phi
        p = nbinom.cdf(y, size, size / (size + mu))
    return np.clip(np.asarray(p, dtype=float), 0.0, 1.0)
