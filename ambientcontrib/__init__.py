"""ambientcontrib public API."""

from ambientcontrib._version import __version__
from ambientcontrib.core.compute import control_anchored_contribution, maximum_contribution
from ambientcontrib.core.errors import (
    DimensionMismatch,
    InvalidControlSet,
    NumericalNonConvergence,
)
from ambientcontrib.core.types import ContributionConfig, ContributionEstimate
from ambientcontrib.filtering import (
    drop_ambient_genes,
    flag_ambient_genes,
    mean_contribution,
    summarize_contribution,
)


def run_contribution(*args, **kwargs):
    """Lazy wrapper to avoid importing plotting and I/O dependencies at import time."""
    from ambientcontrib.pipeline.runner import run_contribution as _run_contribution

    return _run_contribution(*args, **kwargs)


__all__ = [
    "__version__",
    "ContributionConfig",
    "ContributionEstimate",
    "DimensionMismatch",
    "InvalidControlSet",
    "NumericalNonConvergence",
    "maximum_contribution",
    "control_anchored_contribution",
    "mean_contribution",
    "flag_ambient_genes",
    "drop_ambient_genes",
    "summarize_contribution",
    "run_contribution",
]
