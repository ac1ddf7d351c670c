from __future__ import annotations

import json
from pathlib import Path

import anndata as ad
import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from ambientcontrib import cli


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    counts = pd.DataFrame({"S1": [100, 5], "S2": [50, 200]}, index=["HBB", "GeneX"])
    ambient = pd.DataFrame({"ambient": [10.0, 1.0]}, index=["HBB", "GeneX"])
    counts_path = tmp_path / "counts.csv"
    ambient_path = tmp_path / "ambient.csv"
    counts.to_csv(counts_path, index_label="gene")
    ambient.to_csv(ambient_path, index_label="gene")
    return counts_path, ambient_path


def test_control_command_writes_tables(tmp_path, capsys):
    counts_path, ambient_path = _write_inputs(tmp_path)
    outdir = tmp_path / "out"
    rc = cli.main(
        [
            "control",
            "--counts",
            str(counts_path),
            "--ambient",
            str(ambient_path),
            "--controls",
            "HBB",
            "--outdir",
            str(outdir),
            "--no-plots",
        ]
    )
    assert rc == 0
    values = pd.read_csv(outdir / "contributions.csv", index_col=0)
    assert np.allclose(values.loc["GeneX"].to_numpy(), [1.0, 0.025])
    assert (outdir / "logs" / "run.log").exists()
    assert "n_flagged=2" in capsys.readouterr().out


def test_maximum_command_reads_config(tmp_path):
    counts_path, ambient_path = _write_inputs(tmp_path)
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(
        json.dumps({"threshold": 0.01, "mode": "count", "plots": False}), encoding="utf-8"
    )
    outdir = tmp_path / "max"
    rc = cli.main(
        [
            "maximum",
            "--counts",
            str(counts_path),
            "--ambient",
            str(ambient_path),
            "--config",
            str(cfg_path),
            "--outdir",
            str(outdir),
        ]
    )
    assert rc == 0
    meta = json.loads((outdir / "metadata.json").read_text(encoding="utf-8"))
    assert meta["mode"] == "count"
    assert meta["threshold"] == 0.01
    assert not (outdir / "figures").exists()


def test_control_command_requires_controls(tmp_path):
    counts_path, ambient_path = _write_inputs(tmp_path)
    with pytest.raises(ValueError, match="Control genes"):
        cli.main(
            [
                "control",
                "--counts",
                str(counts_path),
                "--ambient",
                str(ambient_path),
                "--outdir",
                str(tmp_path / "out"),
            ]
        )


def test_pseudobulk_and_ambient_profile_commands(tmp_path):
    X = np.array([[4, 1], [3, 0], [0, 1], [2, 2]], dtype=float)
    obs = pd.DataFrame({"sample": ["a", "a", "b", "b"]}, index=[f"c{i}" for i in range(4)])
    adata = ad.AnnData(X=X, obs=obs, var=pd.DataFrame(index=["HBB", "GeneX"]))
    h5ad = tmp_path / "cells.h5ad"
    adata.write_h5ad(h5ad)

    pb_path = tmp_path / "pb.csv"
    assert cli.main(["pseudobulk", "--h5ad", str(h5ad), "--out", str(pb_path)]) == 0
    pb = pd.read_csv(pb_path, index_col=0)
    assert pb["a"].tolist() == [7.0, 1.0]
    assert pb["b"].tolist() == [2.0, 3.0]

    amb_path = tmp_path / "amb.csv"
    rc = cli.main(["ambient-profile", "--h5ad", str(h5ad), "--lower", "3", "--out", str(amb_path)])
    assert rc == 0
    amb = pd.read_csv(amb_path, index_col=0)
    assert amb["a"].tolist() == [3.0, 0.0]
    assert amb["b"].tolist() == [0.0, 1.0]
