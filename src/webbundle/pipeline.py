"""Fail-fast build pipeline: resolve, compile, prepare bundle, stage, bind.

The control flow is an explicit state machine. Each stage may only fire from
the state its predecessor left behind, and any stage failure moves the
pipeline into the absorbing ``FAILED`` state without running later stages.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import polars as pl

from webbundle.assets import (
    build_asset_manifest,
    collect_asset_set,
    manifest_status_counts,
    stage_assets,
    stage_entry_page,
)
from webbundle.bindings import BindingGenerator, WasmBindgenGenerator
from webbundle.bundle import ensure_bundle_directory, list_bundle_files
from webbundle.config import AppSettings, PathsConfig
from webbundle.errors import BuildError, BundleIOError
from webbundle.reports import write_run_reports
from webbundle.resolve import resolve_working_directory
from webbundle.toolchain import CargoCompiler, Compiler
from webbundle.utils.time_utils import new_run_id, now_utc

LOGGER = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Named pipeline states; ``FAILED`` is absorbing."""

    IDLE = "idle"
    RESOLVED = "resolved"
    COMPILED = "compiled"
    DIRECTORY_READY = "directory_ready"
    ASSETS_STAGED = "assets_staged"
    BINDINGS_GENERATED = "bindings_generated"
    DONE = "done"
    FAILED = "failed"


STATE_SEQUENCE: tuple[PipelineState, ...] = (
    PipelineState.IDLE,
    PipelineState.RESOLVED,
    PipelineState.COMPILED,
    PipelineState.DIRECTORY_READY,
    PipelineState.ASSETS_STAGED,
    PipelineState.BINDINGS_GENERATED,
    PipelineState.DONE,
)
TRANSITIONS: dict[PipelineState, PipelineState] = dict(zip(STATE_SEQUENCE, STATE_SEQUENCE[1:]))
TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.FAILED})


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Outputs of a successful pipeline run."""

    run_id: str
    working_dir: Path
    artifact_path: Path
    bundle_dir: Path
    staged_count: int
    entry_page_path: Path
    binding_outputs: tuple[Path, ...]
    history: tuple[PipelineState, ...]
    summary: dict[str, Any]
    summary_path: Path | None


class PipelineFailed(Exception):
    """Raised once the pipeline enters ``FAILED``; wraps the stage's error."""

    def __init__(
        self,
        error: BuildError,
        *,
        failed_from: PipelineState,
        history: tuple[PipelineState, ...],
        run_id: str,
        summary_path: Path | None = None,
    ) -> None:
        super().__init__(f"{error.stage} failed: {error.message}")
        self.error = error
        self.failed_from = failed_from
        self.history = history
        self.run_id = run_id
        self.summary_path = summary_path

    @property
    def stage(self) -> str:
        return self.error.stage

    @property
    def diagnostic(self) -> str:
        return self.error.diagnostic


@dataclass(slots=True)
class _RunState:
    run_id: str
    started_ts: datetime
    started_mono: float
    working_dir: Path | None = None
    paths: PathsConfig | None = None
    artifact_path: Path | None = None
    staged_count: int = 0
    entry_page_path: Path | None = None
    binding_outputs: list[Path] = field(default_factory=list)
    manifest: pl.DataFrame | None = None


class BundlePipeline:
    """Sequences every build stage with fail-fast semantics.

    ``compiler`` and ``binding_generator`` default to the cargo and
    wasm-bindgen implementations configured by ``settings``; any object
    satisfying the protocols can be substituted.
    """

    def __init__(
        self,
        settings: AppSettings,
        *,
        compiler: Compiler | None = None,
        binding_generator: BindingGenerator | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or LOGGER
        self.compiler = compiler or CargoCompiler.from_settings(settings, logger=self.logger)
        self.binding_generator = binding_generator or WasmBindgenGenerator.from_settings(settings, logger=self.logger)
        self._state = PipelineState.IDLE
        self._history: list[PipelineState] = [PipelineState.IDLE]

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def history(self) -> tuple[PipelineState, ...]:
        return tuple(self._history)

    @property
    def finished(self) -> bool:
        return self._state in TERMINAL_STATES

    def _advance(self, next_state: PipelineState) -> None:
        expected = TRANSITIONS.get(self._state)
        if next_state is not expected:
            raise RuntimeError(f"illegal pipeline transition {self._state.value} -> {next_state.value}")
        self._state = next_state
        self._history.append(next_state)
        self.logger.info("pipeline.state state=%s", next_state.value)

    def _enter_failed(self) -> PipelineState:
        failed_from = self._state
        self._state = PipelineState.FAILED
        self._history.append(PipelineState.FAILED)
        return failed_from

    def _reset(self) -> None:
        self._state = PipelineState.IDLE
        self._history = [PipelineState.IDLE]

    def run(self, invocation_path: str | os.PathLike[str] | None) -> PipelineResult:
        """Run every stage from ``IDLE``; raise :class:`PipelineFailed` on the first failure."""

        self._reset()
        run = _RunState(run_id=new_run_id(), started_ts=now_utc(), started_mono=time.monotonic())
        self.logger.info("pipeline.start run_id=%s invocation=%s", run.run_id, invocation_path)

        try:
            self._run_stages(run, invocation_path)
        except BuildError as exc:
            failed_from = self._enter_failed()
            self.logger.error(
                "pipeline.failed run_id=%s stage=%s failed_from=%s error=%s",
                run.run_id,
                exc.stage,
                failed_from.value,
                exc.message,
            )
            summary = self._summary(run, error=exc)
            summary_path = self._write_reports(run, summary)
            raise PipelineFailed(
                exc,
                failed_from=failed_from,
                history=self.history,
                run_id=run.run_id,
                summary_path=summary_path,
            ) from exc
        except Exception:
            self._enter_failed()
            raise

        summary = self._summary(run, error=None)
        summary_path = self._write_reports(run, summary)
        self.logger.info(
            "pipeline.done run_id=%s staged=%s bindings=%s duration_s=%.2f",
            run.run_id,
            run.staged_count,
            len(run.binding_outputs),
            summary["duration_seconds"],
        )
        return PipelineResult(
            run_id=run.run_id,
            working_dir=run.working_dir,
            artifact_path=run.artifact_path,
            bundle_dir=run.paths.bundle_dir,
            staged_count=run.staged_count,
            entry_page_path=run.entry_page_path,
            binding_outputs=tuple(run.binding_outputs),
            history=self.history,
            summary=summary,
            summary_path=summary_path,
        )

    def _run_stages(self, run: _RunState, invocation_path: str | os.PathLike[str] | None) -> None:
        settings = self.settings

        run.working_dir = resolve_working_directory(invocation_path, logger=self.logger)
        run.paths = settings.paths.resolved(run.working_dir)
        self._advance(PipelineState.RESOLVED)

        run.artifact_path = self.compiler.compile(run.working_dir, settings.build.target)
        self._advance(PipelineState.COMPILED)

        bundle_dir = ensure_bundle_directory(run.paths.bundle_dir, logger=self.logger)
        self._advance(PipelineState.DIRECTORY_READY)

        asset_set = collect_asset_set(
            run.working_dir,
            settings.assets.source_dir,
            settings.assets.entry_page,
            logger=self.logger,
        )
        if settings.reports.enabled:
            try:
                run.manifest = build_asset_manifest(asset_set, bundle_dir)
            except OSError as exc:
                failed = Path(exc.filename) if exc.filename else asset_set.source_dir
                raise BundleIOError(f"cannot fingerprint assets: {exc}", failed) from exc
        run.staged_count = stage_assets(asset_set, bundle_dir, logger=self.logger)
        run.entry_page_path = stage_entry_page(asset_set, bundle_dir, logger=self.logger)
        run.staged_count += 1
        self._advance(PipelineState.ASSETS_STAGED)

        run.binding_outputs = list(
            self.binding_generator.generate(
                run.artifact_path,
                bundle_dir,
                settings.bindings.mode,
                settings.bindings.global_name,
            )
        )
        self._advance(PipelineState.BINDINGS_GENERATED)
        self._advance(PipelineState.DONE)

    def _summary(self, run: _RunState, error: BuildError | None) -> dict[str, Any]:
        settings = self.settings
        finished_ts = now_utc()
        bundle_dir = run.paths.bundle_dir if run.paths is not None else None
        summary: dict[str, Any] = {
            "run_id": run.run_id,
            "status": "failed" if error is not None else "succeeded",
            "started_ts": run.started_ts.isoformat(),
            "finished_ts": finished_ts.isoformat(),
            "duration_seconds": round(time.monotonic() - run.started_mono, 3),
            "history": [state.value for state in self._history],
            "working_dir": str(run.working_dir) if run.working_dir is not None else None,
            "target": settings.build.target,
            "profile": settings.build.profile,
            "artifact_path": str(run.artifact_path) if run.artifact_path is not None else None,
            "bundle_dir": str(bundle_dir) if bundle_dir is not None else None,
            "binding_mode": settings.bindings.mode,
            "global_name": settings.bindings.global_name,
            "staged_count": run.staged_count,
            "entry_page_path": str(run.entry_page_path) if run.entry_page_path is not None else None,
            "binding_outputs": [str(path) for path in run.binding_outputs],
            "asset_status_counts": manifest_status_counts(run.manifest) if run.manifest is not None else None,
            "bundle_files": list_bundle_files(bundle_dir) if error is None and bundle_dir is not None else None,
            "error": None,
        }
        if error is not None:
            summary["error"] = {
                "stage": error.stage,
                "message": error.message,
                "exit_code": error.exit_code,
                "diagnostic": error.diagnostic,
            }
        return summary

    def _write_reports(self, run: _RunState, summary: dict[str, Any]) -> Path | None:
        """Persist run reports; a write failure never changes the build outcome."""

        if not self.settings.reports.enabled or run.paths is None:
            return None
        try:
            report_paths = write_run_reports(run.paths.reports_root, run.run_id, summary, run.manifest)
        except (OSError, pl.exceptions.PolarsError) as exc:
            self.logger.warning(
                "pipeline.reports_failed run_id=%s reports_root=%s error=%s",
                run.run_id,
                run.paths.reports_root,
                exc,
            )
            return None
        self.logger.info("pipeline.reports run_id=%s summary=%s", run.run_id, report_paths.summary_path)
        return report_paths.summary_path
