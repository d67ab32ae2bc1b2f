"""Shared utility helpers."""

from webbundle.utils.paths import copy_file, ensure_directories, file_fingerprint
from webbundle.utils.time_utils import new_run_id, now_utc

__all__ = [
    "copy_file",
    "ensure_directories",
    "file_fingerprint",
    "new_run_id",
    "now_utc",
]
