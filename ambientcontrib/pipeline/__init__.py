"""Pseudo-bulk workflow: matrix construction, I/O and end-to-end runs."""

from ambientcontrib.pipeline.aggregate import aggregate_pseudobulk, estimate_ambient_profile
from ambientcontrib.pipeline.io import read_matrix_csv, setup_logger, write_matrix_csv
from ambientcontrib.pipeline.runner import run_contribution

__all__ = [
    "aggregate_pseudobulk",
    "estimate_ambient_profile",
    "read_matrix_csv",
    "write_matrix_csv",
    "setup_logger",
    "run_contribution",
]
