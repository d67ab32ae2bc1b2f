"""Generate host-runtime bindings for the compiled artifact."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from webbundle.config import AppSettings, BindingMode
from webbundle.errors import BindingError
from webbundle.process import run_tool

LOGGER = logging.getLogger(__name__)

GLUE_SUFFIX = ".js"
MODULE_SUFFIX = "_bg.wasm"


class BindingGenerator(Protocol):
    """Anything that writes a loadable module plus glue for ``artifact_path``."""

    def generate(
        self,
        artifact_path: Path,
        bundle_dir: Path,
        binding_mode: BindingMode,
        global_name: str,
    ) -> list[Path]:
        ...


def expected_binding_outputs(artifact_path: Path, bundle_dir: Path) -> list[Path]:
    """Glue script and module named after the artifact's base name."""

    stem = artifact_path.stem
    return [bundle_dir / f"{stem}{GLUE_SUFFIX}", bundle_dir / f"{stem}{MODULE_SUFFIX}"]


def binding_mode_args(binding_mode: BindingMode, global_name: str) -> list[str]:
    if binding_mode == "global-symbol":
        return ["--no-modules", "--no-modules-global", global_name]
    if binding_mode == "es-module":
        return ["--target", "web"]
    raise ValueError(f"Unsupported binding mode: {binding_mode}")


class WasmBindgenGenerator:
    """Runs ``wasm-bindgen`` over the artifact, writing into the bundle directory."""

    def __init__(
        self,
        *,
        command: list[str] | None = None,
        extra_args: list[str] | None = None,
        timeout_seconds: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.command = list(command or ["wasm-bindgen"])
        self.extra_args = list(extra_args or [])
        self.timeout_seconds = timeout_seconds
        self.logger = logger or LOGGER

    @classmethod
    def from_settings(cls, settings: AppSettings, logger: logging.Logger | None = None) -> "WasmBindgenGenerator":
        return cls(
            command=settings.bindings.command,
            extra_args=settings.bindings.extra_args,
            timeout_seconds=settings.tools.timeout_seconds,
            logger=logger,
        )

    def build_argv(
        self,
        artifact_path: Path,
        bundle_dir: Path,
        binding_mode: BindingMode,
        global_name: str,
    ) -> list[str]:
        return [
            *self.command,
            str(artifact_path),
            "--out-dir",
            str(bundle_dir),
            *binding_mode_args(binding_mode, global_name),
            *self.extra_args,
        ]

    def generate(
        self,
        artifact_path: Path,
        bundle_dir: Path,
        binding_mode: BindingMode,
        global_name: str,
    ) -> list[Path]:
        argv = self.build_argv(artifact_path, bundle_dir, binding_mode, global_name)
        if not artifact_path.is_file():
            raise BindingError(
                f"compiled artifact is missing: {artifact_path}",
                argv=argv,
                exit_code=None,
                captured_output="",
            )

        result = run_tool(argv, cwd=bundle_dir, timeout_seconds=self.timeout_seconds, logger=self.logger)
        if result.failure_reason is not None:
            raise BindingError(
                f"binding generator {result.failure_reason}",
                argv=argv,
                exit_code=None,
                captured_output=result.output,
            )
        if result.exit_code != 0:
            raise BindingError(
                f"binding generator exited with status {result.exit_code}",
                argv=argv,
                exit_code=result.exit_code,
                captured_output=result.output,
            )

        outputs = expected_binding_outputs(artifact_path, bundle_dir)
        missing = [path for path in outputs if not path.is_file()]
        if missing:
            rendered = ", ".join(path.name for path in missing)
            raise BindingError(
                f"binding generator succeeded but did not write: {rendered}",
                argv=argv,
                exit_code=result.exit_code,
                captured_output=result.output,
            )

        self.logger.info(
            "bindings.done mode=%s global_name=%s outputs=%s",
            binding_mode,
            global_name,
            ",".join(path.name for path in outputs),
        )
        return outputs
