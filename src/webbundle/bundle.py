"""Bundle directory creation and post-build layout listing."""

from __future__ import annotations

import logging
from pathlib import Path

from webbundle.errors import BundleIOError
from webbundle.utils.paths import ensure_directories

LOGGER = logging.getLogger(__name__)


def ensure_bundle_directory(bundle_dir: Path, logger: logging.Logger | None = None) -> Path:
    """Create ``bundle_dir`` and missing ancestors; existing contents are left alone."""

    effective_logger = logger or LOGGER
    existed = bundle_dir.is_dir()
    try:
        ensure_directories([bundle_dir])
    except OSError as exc:
        raise BundleIOError(
            f"cannot create bundle directory {bundle_dir}: {exc}",
            bundle_dir,
            stage="bundle_dir",
        ) from exc

    effective_logger.info("bundle.ready path=%s existed=%s", bundle_dir, existed)
    return bundle_dir


def list_bundle_files(bundle_dir: Path) -> list[str]:
    """Return bundle-relative POSIX paths of every file, sorted."""

    if not bundle_dir.is_dir():
        return []
    return sorted(
        path.relative_to(bundle_dir).as_posix() for path in bundle_dir.rglob("*") if path.is_file()
    )
