"""Resolve the working directory from the orchestrator's own location."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from webbundle.errors import ResolutionError

LOGGER = logging.getLogger(__name__)

# argv[0] values that carry no filesystem location.
_LOCATIONLESS_ARGV0 = {"", "-", "-c", "-m"}


def invocation_path_from_process() -> Path:
    """Return the path of the script the current process was started from."""

    main_module = sys.modules.get("__main__")
    main_file = getattr(main_module, "__file__", None)
    if main_file:
        return Path(main_file)

    argv0 = sys.argv[0] if sys.argv else ""
    if argv0 in _LOCATIONLESS_ARGV0:
        raise ResolutionError("process was started without a script location (interactive or -c invocation)")
    return Path(argv0)


def resolve_working_directory(
    invocation_path: str | os.PathLike[str] | None,
    logger: logging.Logger | None = None,
) -> Path:
    """Return the canonical absolute directory containing ``invocation_path``.

    A file resolves to its parent directory, a directory to itself. Symbolic
    links are followed, so the result is independent of how the orchestrator
    was reached and of the caller's current directory.
    """

    effective_logger = logger or LOGGER
    if invocation_path is None or str(invocation_path).strip() == "":
        raise ResolutionError("no invocation path available to derive the working directory from")

    candidate = Path(invocation_path).expanduser()
    try:
        resolved = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise ResolutionError(f"cannot resolve invocation path {candidate}: {exc}") from exc

    working_dir = resolved if resolved.is_dir() else resolved.parent
    effective_logger.info("resolve.working_dir invocation=%s working_dir=%s", candidate, working_dir)
    return working_dir
