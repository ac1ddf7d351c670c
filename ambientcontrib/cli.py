"""Command-line interfaces for ambient contribution estimates."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Iterable

import scanpy as sc

from ambientcontrib.config import contribution_config_from_mapping, load_json_config
from ambientcontrib.filtering import DEFAULT_CONTAMINATION_THRESHOLD
from ambientcontrib.pipeline.aggregate import (
    DEFAULT_AMBIENT_LOWER,
    aggregate_pseudobulk,
    estimate_ambient_profile,
)
from ambientcontrib.pipeline.io import read_matrix_csv, setup_logger, write_matrix_csv
from ambientcontrib.pipeline.runner import run_contribution


def _read_adata(h5ad_path: str):
    path = Path(h5ad_path)
    if not path.exists():
        raise FileNotFoundError(f"Input file '{h5ad_path}' not found.")
    return sc.read_h5ad(path)


def _split_genes(value: str | None) -> list[str] | None:
    if value is None:
        return None
    genes = [g.strip() for g in value.split(",") if g.strip()]
    return genes


def _estimator_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--counts", required=True, help="Genes x samples count matrix (CSV/TSV)")
    parser.add_argument(
        "--ambient", required=True, help="Genes x samples (or single-column) ambient profile"
    )
    parser.add_argument("--outdir", default="ambient_out", help="Output directory")
    parser.add_argument("--config", default=None, help="Optional JSON config")
    parser.add_argument(
        "--mode", choices=["proportion", "count"], default=None, help="Output scale"
    )
    parser.add_argument(
        "--contamination-threshold",
        type=float,
        default=None,
        help=f"Mean contribution above which a gene is flagged (default {DEFAULT_CONTAMINATION_THRESHOLD})",
    )
    parser.add_argument("--n-jobs", type=int, default=None, help="Parallel workers over samples")
    parser.add_argument("--no-plots", action="store_true", help="Skip QC figures")
    return parser


def _run_estimator(method: str, args: argparse.Namespace, overrides: dict[str, Any]) -> int:
    cfg_data = load_json_config(args.config) if args.config else {}
    config = contribution_config_from_mapping(
        cfg_data, mode=args.mode, n_jobs=args.n_jobs, **overrides
    )
    threshold = args.contamination_threshold
    if threshold is None:
        threshold = float(cfg_data.get("contamination_threshold", DEFAULT_CONTAMINATION_THRESHOLD))

    controls = None
    if method == "control":
        controls = _split_genes(args.controls)
        if controls is None:
            controls = cfg_data.get("controls")
        if controls is None:
            raise ValueError("Control genes are required (--controls or 'controls' in config).")

    outdir = Path(args.outdir)
    logger = setup_logger(outdir / "logs" / "run.log", f"ambientcontrib.{method}")
    counts = read_matrix_csv(args.counts)
    ambient = read_matrix_csv(args.ambient)
    if ambient.shape[1] == 1:
        ambient = ambient.iloc[:, 0]
    logger.info("Loaded counts %s and ambient %s", counts.shape, getattr(ambient, "shape", None))

    out = run_contribution(
        counts,
        ambient,
        outdir,
        method=method,
        controls=controls,
        config=config,
        contamination_threshold=threshold,
        plots=bool(cfg_data.get("plots", True)) and not args.no_plots,
        logger=logger,
    )
    estimate = out["estimate"]
    print(f"method={estimate.method}")
    print(f"n_flagged={int(out['summary']['ambient'].sum())}")
    print(f"n_failed_samples={len(estimate.failures)}")
    return 0


def maximum_main(argv: Iterable[str] | None = None) -> int:
    """Estimate the maximum ambient contribution.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = _estimator_parser("Maximum ambient contribution per gene and sample")
    parser.add_argument(
        "--threshold", type=float, default=None, help="Combined p-value floor (default 0.05)"
    )
    parser.add_argument(
        "--dispersion",
        type=float,
        default=None,
        help="Negative-binomial dispersion; omit for a Poisson null",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    return _run_estimator(
        "maximum", args, {"threshold": args.threshold, "dispersion": args.dispersion}
    )


def control_main(argv: Iterable[str] | None = None) -> int:
    """Estimate ambient contribution anchored on non-expressed control genes.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = _estimator_parser("Control-anchored ambient contribution")
    parser.add_argument(
        "--controls", default=None, help="Comma-separated control genes, e.g. HBB,HBA1,HBA2"
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    return _run_estimator("control", args, {})


def pseudobulk_main(argv: Iterable[str] | None = None) -> int:
    """Aggregate per-cell counts into a pseudo-bulk matrix.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(description="Pseudo-bulk aggregation of an .h5ad file")
    parser.add_argument("--h5ad", required=True, help="Per-cell .h5ad file")
    parser.add_argument("--sample-col", default="sample", help="adata.obs sample column")
    parser.add_argument("--label-col", default=None, help="adata.obs label column")
    parser.add_argument("--label", default=None, help="Label to aggregate")
    parser.add_argument("--layer", default=None, help="Counts layer (default .X)")
    parser.add_argument("--out", required=True, help="Output CSV path")
    args = parser.parse_args(list(argv) if argv is not None else None)

    adata = _read_adata(args.h5ad)
    frame = aggregate_pseudobulk(
        adata,
        args.sample_col,
        label_col=args.label_col,
        label=args.label,
        layer=args.layer,
    )
    write_matrix_csv(args.out, frame)
    print(f"genes={frame.shape[0]} samples={frame.shape[1]}")
    return 0


def ambient_profile_main(argv: Iterable[str] | None = None) -> int:
    """Estimate per-sample ambient profiles from raw droplet counts.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(description="Ambient profile from empty droplets")
    parser.add_argument("--h5ad", required=True, help="Raw (unfiltered) droplet .h5ad file")
    parser.add_argument("--sample-col", default="sample", help="adata.obs sample column")
    parser.add_argument(
        "--lower",
        type=float,
        default=DEFAULT_AMBIENT_LOWER,
        help="Barcodes with total count <= lower are treated as empty",
    )
    parser.add_argument("--layer", default=None, help="Counts layer (default .X)")
    parser.add_argument("--out", required=True, help="Output CSV path")
    args = parser.parse_args(list(argv) if argv is not None else None)

    adata = _read_adata(args.h5ad)
    frame = estimate_ambient_profile(adata, args.sample_col, lower=args.lower, layer=args.layer)
    write_matrix_csv(args.out, frame)
    print(f"genes={frame.shape[0]} samples={frame.shape[1]}")
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(description="ambientcontrib CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("maximum", help="Maximum ambient contribution", add_help=False)
    sub.add_parser("control", help="Control-anchored ambient contribution", add_help=False)
    sub.add_parser("pseudobulk", help="Aggregate cells into pseudo-bulk samples", add_help=False)
    sub.add_parser("ambient-profile", help="Ambient profile from empty droplets", add_help=False)

    args, remainder = parser.parse_known_args(list(argv) if argv is not None else None)
    if args.command == "maximum":
        return maximum_main(remainder)
    if args.command == "control":
        return control_main(remainder)
    if args.command == "pseudobulk":
        return pseudobulk_main(remainder)
    if args.command == "ambient-profile":
        return ambient_profile_main(remainder)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
