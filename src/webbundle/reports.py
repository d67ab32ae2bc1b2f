"""Run summary and asset manifest writers with atomic file replacement."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

import polars as pl

RUN_SUMMARY_FILE = "run_summary.json"
ASSET_MANIFEST_FILE = "asset_manifest.parquet"


@dataclass(frozen=True, slots=True)
class RunReportPaths:
    """Report locations for one run."""

    run_dir: Path
    summary_path: Path
    manifest_path: Path | None


def _atomic_temp_path(target_path: Path) -> Path:
    """Create a unique temp path next to the target for atomic replacement."""

    return target_path.parent / f".{target_path.name}.{uuid4().hex}.tmp"


def write_json_atomically(payload: dict[str, Any], output_path: Path) -> Path:
    """Write JSON payload atomically to output path."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = _atomic_temp_path(output_path)
    try:
        temp_path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n", encoding="utf-8")
        os.replace(temp_path, output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return output_path


def write_parquet_atomically(df: pl.DataFrame, output_path: Path) -> Path:
    """Write parquet atomically to output path."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = _atomic_temp_path(output_path)
    try:
        df.write_parquet(temp_path, compression="zstd")
        os.replace(temp_path, output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return output_path


def write_run_reports(
    reports_root: Path,
    run_id: str,
    summary: dict[str, Any],
    manifest: pl.DataFrame | None = None,
) -> RunReportPaths:
    """Persist ``run_summary.json`` and, when given, the asset manifest for a run."""

    run_dir = reports_root / run_id
    manifest_path: Path | None = None
    if manifest is not None:
        manifest_path = write_parquet_atomically(manifest, run_dir / ASSET_MANIFEST_FILE)
    summary_path = write_json_atomically(summary, run_dir / RUN_SUMMARY_FILE)
    return RunReportPaths(run_dir=run_dir, summary_path=summary_path, manifest_path=manifest_path)
