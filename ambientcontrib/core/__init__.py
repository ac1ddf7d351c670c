"""Core estimation subpackage."""

from ambientcontrib.core.compute import (
    contribution_from_scaling,
    control_anchored_contribution,
    maximum_contribution,
)
from ambientcontrib.core.errors import (
    DimensionMismatch,
    InvalidControlSet,
    NumericalNonConvergence,
)
from ambientcontrib.core.types import ContributionConfig, ContributionEstimate
from ambientcontrib.core.utils import align_ambient, as_count_frame, resolve_control_indices

__all__ = [
    "ContributionConfig",
    "ContributionEstimate",
    "DimensionMismatch",
    "InvalidControlSet",
    "NumericalNonConvergence",
    "maximum_contribution",
    "control_anchored_contribution",
    "contribution_from_scaling",
    "align_ambient",
    "as_count_frame",
    "resolve_control_indices",
]
