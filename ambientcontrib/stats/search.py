"""Bounded monotone search for the largest admissible ambient scaling factor."""

from __future__ import annotations

import numpy as np

from ambientcontrib.core.errors import NumericalNonConvergence
from ambientcontrib.stats.null import lower_tail_pvalue
from ambientcontrib.stats.scoring import simes_pvalue


def combined_pvalue(
    scale: float,
    observed: np.ndarray,
    ambient: np.ndarray,
    dispersion: float | None = None,
) -> float:
    """Simes-combined lower-tail p-value of `observed` under `scale * ambient`."""
    p = lower_tail_pvalue(observed, float(scale) * ambient, dispersion=dispersion)
    return simes_pvalue(p)


def max_scaling(
    observed: np.ndarray,
    ambient: np.ndarray,
    *,
    threshold: float = 0.05,
    dispersion: float | None = None,
    tol: float = 1e-6,
    max_iter: int = 100,
    max_expand: int = 64,
) -> float:
    """Largest scaling of `ambient` whose combined p-value stays >= `threshold`.

    Only genes with positive ambient signal take part. The combined p-value is
    non-increasing in the scaling factor, so the answer is bracketed by
    doubling an initial upper bound and then narrowed by bisection until the
    bracket is within `tol` of its upper end. Returns NaN when no gene has
    ambient signal.
    """
    y = np.asarray(observed, dtype=float).ravel()
    a = np.asarray(ambient, dtype=float).ravel()
    if y.size != a.size:
        raise ValueError("observed and ambient must have the same length.")

    keep = a > 0.0
    if not np.any(keep):
        return float("nan")
    y = y[keep]
    a = a[keep]

    def admissible(scale: float) -> bool:
        return combined_pvalue(scale, y, a, dispersion) >= threshold

    lo = 0.0
    hi = max(float(np.max(y)), 1.0) / float(np.min(a))
    for _ in range(int(max_expand)):
        if not admissible(hi):
            break
        lo = hi
        hi *= 2.0
    else:
        raise NumericalNonConvergence(
            f"could not bracket the scaling factor within {int(max_expand)} doublings "
            f"(upper bound reached {hi:.3g})."
        )

    for _ in range(int(max_iter)):
        if hi - lo <= float(tol) * hi:
            return float(lo)
        mid = 0.5 * (lo + hi)
        if admissible(mid):
            lo = mid
        else:
            hi = mid
    if hi - lo <= float(tol) * hi:
        return float(lo)
    raise NumericalNonConvergence(
        f"bisection did not reach relative width {tol:g} within {int(max_iter)} steps "
        f"(bracket [{lo:.6g}, {hi:.6g}])."
    )
