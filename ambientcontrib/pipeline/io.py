"""Pipeline I/O and logging helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd


def ensure_dir(path: str | Path) -> None:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=str)


def setup_logger(log_path: Path, logger_name: str) -> logging.Logger:
    ensure_dir(log_path.parent)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)
    return logger


def read_matrix_csv(path: str | Path) -> pd.DataFrame:
    """Read a genes x samples matrix whose first column holds gene labels."""
    matrix_path = Path(path)
    if not matrix_path.exists():
        raise FileNotFoundError(f"Matrix file '{matrix_path}' not found.")
    sep = "\t" if matrix_path.suffix.lower() in {".tsv", ".txt"} else ","
    frame = pd.read_csv(matrix_path, sep=sep, index_col=0)
    frame.index = frame.index.astype(str)
    frame.columns = frame.columns.astype(str)
    if frame.shape[1] == 0:
        raise ValueError(f"Matrix file '{matrix_path}' has no sample columns.")
    non_numeric = [c for c in frame.columns if not pd.api.types.is_numeric_dtype(frame[c])]
    if non_numeric:
        raise ValueError(
            f"Matrix file '{matrix_path}' has non-numeric columns: {', '.join(non_numeric[:5])}"
        )
    return frame


def write_matrix_csv(path: str | Path, frame: pd.DataFrame, index_label: str = "gene") -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(out, index_label=index_label)
    return out
