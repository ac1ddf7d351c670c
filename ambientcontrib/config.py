"""Configuration loading utilities for ambient contribution runs."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any

from ambientcontrib.core.types import ContributionConfig

RUN_KEYS: tuple[str, ...] = ("contamination_threshold", "controls", "plots")


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load and validate a run config from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


def contribution_config_from_mapping(
    data: dict[str, Any], **overrides: Any
) -> ContributionConfig:
    """Build a `ContributionConfig` from config keys plus non-None overrides.

    Run-level keys (`RUN_KEYS`) are ignored here; any other unknown key is an error.
    """
    known = {f.name for f in fields(ContributionConfig)}
    unknown = sorted(set(data) - known - set(RUN_KEYS))
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
    kwargs = {k: v for k, v in data.items() if k in known}
    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    return ContributionConfig(**kwargs)
