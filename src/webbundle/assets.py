"""Collect and stage static assets plus the entry page into the bundle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import polars as pl

from webbundle.errors import BundleIOError
from webbundle.utils.paths import copy_file, file_fingerprint

LOGGER = logging.getLogger(__name__)

BundleStatus = Literal["NEW", "CHANGED", "UNCHANGED"]
BUNDLE_STATUS_VALUES: tuple[BundleStatus, ...] = ("NEW", "CHANGED", "UNCHANGED")


@dataclass(frozen=True, slots=True)
class AssetSet:
    """Static manifest of files to copy verbatim into the bundle."""

    source_dir: Path
    files: tuple[Path, ...]
    entry_page: Path

    def destination(self, source: Path, bundle_dir: Path) -> Path:
        """Return the bundle path a source file is copied to."""

        if source == self.entry_page:
            return bundle_dir / self.entry_page.name
        return bundle_dir / source.relative_to(self.source_dir)

    @property
    def file_count(self) -> int:
        """Number of files staged, entry page included."""

        return len(self.files) + 1


def collect_asset_set(
    working_dir: Path,
    source_dir: Path,
    entry_page: Path,
    logger: logging.Logger | None = None,
) -> AssetSet:
    """Enumerate every regular file under ``source_dir`` plus the entry page."""

    effective_logger = logger or LOGGER
    asset_root = source_dir if source_dir.is_absolute() else working_dir / source_dir
    page = entry_page if entry_page.is_absolute() else working_dir / entry_page

    if not asset_root.is_dir():
        raise BundleIOError(f"asset source directory does not exist: {asset_root}", asset_root)
    if not page.is_file():
        raise BundleIOError(f"entry page does not exist: {page}", page)

    # An entry page kept inside the asset directory is staged once, at the bundle root.
    page_resolved = page.resolve()
    files = tuple(
        sorted(path for path in asset_root.rglob("*") if path.is_file() and path.resolve() != page_resolved)
    )
    page_slot = Path(page.name)
    for path in files:
        if path.relative_to(asset_root) == page_slot:
            raise BundleIOError(
                f"asset {path} and entry page {page} would both be staged as {page_slot}",
                path,
            )
    effective_logger.info("assets.collected source_dir=%s files=%s entry_page=%s", asset_root, len(files), page)
    return AssetSet(source_dir=asset_root, files=files, entry_page=page)


def _copy_into_bundle(source: Path, destination: Path) -> None:
    if not source.is_file():
        raise BundleIOError(f"cannot read asset {source}: not a file", source)
    try:
        copy_file(source, destination)
    except OSError as exc:
        failed = Path(exc.filename) if exc.filename else destination
        raise BundleIOError(f"cannot copy {source} to {destination}: {exc.strerror or exc}", failed) from exc


def stage_assets(asset_set: AssetSet, bundle_dir: Path, logger: logging.Logger | None = None) -> int:
    """Copy every asset into ``bundle_dir`` and return the number copied.

    Existing files of the same name are overwritten. The first failure stops
    staging; files copied before it remain in place.
    """

    effective_logger = logger or LOGGER
    copied = 0
    for source in asset_set.files:
        _copy_into_bundle(source, asset_set.destination(source, bundle_dir))
        copied += 1
    effective_logger.info("assets.staged count=%s bundle_dir=%s", copied, bundle_dir)
    return copied


def stage_entry_page(asset_set: AssetSet, bundle_dir: Path, logger: logging.Logger | None = None) -> Path:
    """Copy the entry page into the root of ``bundle_dir``."""

    effective_logger = logger or LOGGER
    destination = asset_set.destination(asset_set.entry_page, bundle_dir)
    _copy_into_bundle(asset_set.entry_page, destination)
    effective_logger.info("assets.entry_page_staged path=%s", destination)
    return destination


def _manifest_schema() -> dict[str, pl.DataType]:
    return {
        "relative_path": pl.String,
        "source_file": pl.String,
        "file_size_bytes": pl.Int64,
        "fingerprint": pl.String,
        "is_entry_page": pl.Boolean,
        "bundle_status": pl.String,
    }


def _bundle_status(source_fingerprint: str, destination: Path) -> BundleStatus:
    if not destination.is_file():
        return "NEW"
    if file_fingerprint(destination) == source_fingerprint:
        return "UNCHANGED"
    return "CHANGED"


def build_asset_manifest(asset_set: AssetSet, bundle_dir: Path) -> pl.DataFrame:
    """Describe each staged file and how it compares to the bundle's current copy."""

    rows: list[dict[str, object]] = []
    for source in (*asset_set.files, asset_set.entry_page):
        destination = asset_set.destination(source, bundle_dir)
        fingerprint = file_fingerprint(source)
        rows.append(
            {
                "relative_path": destination.relative_to(bundle_dir).as_posix(),
                "source_file": str(source),
                "file_size_bytes": source.stat().st_size,
                "fingerprint": fingerprint,
                "is_entry_page": source == asset_set.entry_page,
                "bundle_status": _bundle_status(fingerprint, destination),
            }
        )
    return pl.DataFrame(rows, schema=_manifest_schema()).sort("relative_path")


def manifest_status_counts(manifest: pl.DataFrame) -> dict[str, int]:
    """Count manifest rows per bundle status, zero-filled."""

    counts = {status: 0 for status in BUNDLE_STATUS_VALUES}
    if manifest.height == 0:
        return counts
    for row in manifest.group_by("bundle_status").len(name="count").to_dicts():
        counts[str(row["bundle_status"])] = int(row["count"])
    return counts
