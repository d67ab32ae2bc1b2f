"""Compile the frontend crate to a binary artifact with the external toolchain."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Protocol

from webbundle.config import AppSettings, BuildProfile
from webbundle.errors import CompileError
from webbundle.process import run_tool

LOGGER = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".wasm"
MANIFEST_FILE = "Cargo.toml"


class Compiler(Protocol):
    """Anything that turns the crate in ``working_dir`` into an artifact for ``target``."""

    def compile(self, working_dir: Path, target: str) -> Path:
        ...


def artifact_path(
    working_dir: Path,
    target: str,
    *,
    crate_name: str,
    profile: BuildProfile = "debug",
    target_dir: Path = Path("../target"),
) -> Path:
    """Return where the toolchain writes the artifact; a pure function of its inputs."""

    base = target_dir if target_dir.is_absolute() else working_dir / target_dir
    file_name = crate_name.replace("-", "_") + ARTIFACT_SUFFIX
    return (base / target / profile / file_name).resolve()


def read_crate_name(working_dir: Path) -> str:
    """Read the library name from the crate manifest in ``working_dir``."""

    manifest_path = working_dir / MANIFEST_FILE
    try:
        with manifest_path.open("rb") as handle:
            manifest = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise CompileError(
            f"no {MANIFEST_FILE} in {working_dir}; set build.crate_name explicitly",
            argv=[],
            exit_code=None,
            captured_output="",
        ) from exc
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise CompileError(
            f"cannot read {manifest_path}: {exc}",
            argv=[],
            exit_code=None,
            captured_output="",
        ) from exc

    lib_name = manifest.get("lib", {}).get("name")
    package_name = manifest.get("package", {}).get("name")
    name = lib_name or package_name
    if not isinstance(name, str) or not name:
        raise CompileError(
            f"{manifest_path} declares neither [lib] name nor [package] name",
            argv=[],
            exit_code=None,
            captured_output="",
        )
    return name


class CargoCompiler:
    """Runs ``cargo build --target <target>`` as a blocking subprocess."""

    def __init__(
        self,
        *,
        command: list[str] | None = None,
        profile: BuildProfile = "debug",
        crate_name: str | None = None,
        target_dir: Path = Path("../target"),
        extra_args: list[str] | None = None,
        timeout_seconds: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.command = list(command or ["cargo"])
        self.profile = profile
        self.crate_name = crate_name
        self.target_dir = target_dir
        self.extra_args = list(extra_args or [])
        self.timeout_seconds = timeout_seconds
        self.logger = logger or LOGGER

    @classmethod
    def from_settings(cls, settings: AppSettings, logger: logging.Logger | None = None) -> "CargoCompiler":
        return cls(
            command=settings.build.command,
            profile=settings.build.profile,
            crate_name=settings.build.crate_name,
            target_dir=settings.paths.target_dir,
            extra_args=settings.build.extra_args,
            timeout_seconds=settings.tools.timeout_seconds,
            logger=logger,
        )

    def build_argv(self, target: str) -> list[str]:
        argv = [*self.command, "build", "--target", target]
        if self.profile == "release":
            argv.append("--release")
        argv.extend(self.extra_args)
        return argv

    def expected_artifact(self, working_dir: Path, target: str) -> Path:
        crate_name = self.crate_name or read_crate_name(working_dir)
        return artifact_path(
            working_dir,
            target,
            crate_name=crate_name,
            profile=self.profile,
            target_dir=self.target_dir,
        )

    def compile(self, working_dir: Path, target: str) -> Path:
        expected = self.expected_artifact(working_dir, target)
        argv = self.build_argv(target)
        result = run_tool(argv, cwd=working_dir, timeout_seconds=self.timeout_seconds, logger=self.logger)

        if result.failure_reason is not None:
            raise CompileError(
                f"toolchain {result.failure_reason}",
                argv=argv,
                exit_code=None,
                captured_output=result.output,
            )
        if result.exit_code != 0:
            raise CompileError(
                f"toolchain exited with status {result.exit_code}",
                argv=argv,
                exit_code=result.exit_code,
                captured_output=result.output,
            )
        if not expected.is_file():
            raise CompileError(
                f"toolchain succeeded but did not produce {expected}",
                argv=argv,
                exit_code=result.exit_code,
                captured_output=result.output,
            )

        self.logger.info("compile.done target=%s profile=%s artifact=%s", target, self.profile, expected)
        return expected
