"""Blocking subprocess invocation for external build tools."""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of one external tool invocation."""

    argv: list[str]
    cwd: Path
    exit_code: int | None
    output: str
    duration_seconds: float
    failure_reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.failure_reason is None


def _decode(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def run_tool(
    argv: list[str],
    *,
    cwd: Path,
    timeout_seconds: float | None = None,
    logger: logging.Logger | None = None,
) -> ToolResult:
    """Run ``argv`` in ``cwd`` and wait for it, capturing stdout and stderr together.

    Launch failures and timeouts are reported through ``failure_reason`` with
    ``exit_code`` set to None; a timed out child is killed before returning.
    """

    effective_logger = logger or LOGGER
    effective_logger.info("process.start cwd=%s argv=%s", cwd, " ".join(argv))
    started_mono = time.monotonic()
    try:
        completed = subprocess.run(
            argv,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout_seconds,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        duration = time.monotonic() - started_mono
        effective_logger.error("process.timeout argv0=%s timeout_seconds=%s", argv[0], timeout_seconds)
        return ToolResult(
            argv=list(argv),
            cwd=cwd,
            exit_code=None,
            output=_decode(exc.output),
            duration_seconds=duration,
            failure_reason=f"timed out after {timeout_seconds}s",
        )
    except OSError as exc:
        duration = time.monotonic() - started_mono
        effective_logger.error("process.launch_failed argv0=%s error=%s", argv[0], exc)
        return ToolResult(
            argv=list(argv),
            cwd=cwd,
            exit_code=None,
            output="",
            duration_seconds=duration,
            failure_reason=f"failed to launch: {exc}",
        )

    duration = time.monotonic() - started_mono
    output = _decode(completed.stdout)
    effective_logger.info(
        "process.exit argv0=%s exit_code=%s duration_s=%.2f",
        argv[0],
        completed.returncode,
        duration,
    )
    if output:
        effective_logger.debug("process.output argv0=%s\n%s", argv[0], output.rstrip())
    return ToolResult(
        argv=list(argv),
        cwd=cwd,
        exit_code=completed.returncode,
        output=output,
        duration_seconds=duration,
    )
