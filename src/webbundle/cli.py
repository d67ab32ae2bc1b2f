"""Typer CLI entrypoint for webbundle."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import typer
import yaml

from webbundle.assets import build_asset_manifest, collect_asset_set, manifest_status_counts
from webbundle.bindings import WasmBindgenGenerator
from webbundle.config import AppSettings, load_settings
from webbundle.errors import BuildError
from webbundle.logging_utils import configure_logging
from webbundle.pipeline import BundlePipeline, PipelineFailed
from webbundle.resolve import invocation_path_from_process, resolve_working_directory
from webbundle.toolchain import CargoCompiler

app = typer.Typer(
    add_completion=False,
    help="webbundle command line interface.",
    no_args_is_help=True,
)


def _config_file_option() -> Any:
    return typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    )


def _anchor_option() -> Any:
    return typer.Option(
        None,
        "--anchor",
        help=(
            "Build script or frontend directory whose location is the working directory. "
            "A relative path is taken from the current shell directory."
        ),
    )


def _load_settings_or_exit(config_file: Path | None) -> AppSettings:
    try:
        return load_settings(config_file=config_file)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config-file") from exc


def _exit_code_for(error: BuildError) -> int:
    """Propagate a failing tool's own status, 1 for everything else."""

    code = error.exit_code
    if isinstance(code, int) and code != 0:
        return code
    return 1


def _report_failure(failure: PipelineFailed) -> int:
    typer.echo(f"error: {failure.stage} failed (run {failure.run_id})", err=True)
    typer.echo(failure.diagnostic, err=True)
    if failure.summary_path is not None:
        typer.echo(f"summary_path: {failure.summary_path}", err=True)
    return _exit_code_for(failure.error)


def _run_pipeline(settings: AppSettings, invocation_path: str | os.PathLike[str] | None, logger: logging.Logger) -> int:
    pipeline = BundlePipeline(settings, logger=logger)
    try:
        result = pipeline.run(invocation_path)
    except PipelineFailed as failure:
        return _report_failure(failure)

    typer.echo(f"run_id: {result.run_id}")
    typer.echo(f"working_dir: {result.working_dir}")
    typer.echo(f"artifact_path: {result.artifact_path}")
    typer.echo(f"bundle_dir: {result.bundle_dir}")
    typer.echo(f"staged_count: {result.staged_count}")
    typer.echo(f"binding_outputs: {', '.join(path.name for path in result.binding_outputs)}")
    if result.summary_path is not None:
        typer.echo(f"summary_path: {result.summary_path}")
    return 0


@app.command("show-config")
def show_config(config_file: Path | None = _config_file_option()) -> None:
    """Print the effective configuration after env overrides."""

    settings = _load_settings_or_exit(config_file)
    rendered = yaml.safe_dump(settings.as_dict(), sort_keys=False)
    typer.echo(rendered)


@app.command("build")
def build(
    anchor: Path | None = _anchor_option(),
    config_file: Path | None = _config_file_option(),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        dir_okay=False,
        help="Also write logs to this file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log tool output at DEBUG level."),
) -> None:
    """Compile, stage assets and generate bindings into the bundle directory."""

    settings = _load_settings_or_exit(config_file)
    logger = configure_logging(log_file, level=logging.DEBUG if verbose else logging.INFO)
    invocation_path = anchor or settings.paths.anchor
    code = _run_pipeline(settings, invocation_path, logger)
    if code != 0:
        raise typer.Exit(code=code)


@app.command("plan")
def plan(
    anchor: Path | None = _anchor_option(),
    config_file: Path | None = _config_file_option(),
) -> None:
    """Show what a build would run and stage, without running anything."""

    settings = _load_settings_or_exit(config_file)
    invocation_path = anchor or settings.paths.anchor
    try:
        working_dir = resolve_working_directory(invocation_path)
        paths = settings.paths.resolved(working_dir)
        compiler = CargoCompiler.from_settings(settings)
        artifact = compiler.expected_artifact(working_dir, settings.build.target)
        asset_set = collect_asset_set(working_dir, settings.assets.source_dir, settings.assets.entry_page)
    except BuildError as exc:
        typer.echo(f"error: {exc.stage} failed", err=True)
        typer.echo(exc.diagnostic, err=True)
        raise typer.Exit(code=_exit_code_for(exc)) from exc

    generator = WasmBindgenGenerator.from_settings(settings)
    manifest = build_asset_manifest(asset_set, paths.bundle_dir)

    typer.echo(f"working_dir: {working_dir}")
    typer.echo(f"compile: {' '.join(compiler.build_argv(settings.build.target))}")
    typer.echo(f"artifact_path: {artifact}")
    typer.echo(f"bundle_dir: {paths.bundle_dir}")
    typer.echo(
        "bindings: "
        + " ".join(
            generator.build_argv(artifact, paths.bundle_dir, settings.bindings.mode, settings.bindings.global_name)
        )
    )
    typer.echo(f"files_to_stage: {manifest.height}")
    for status, count in manifest_status_counts(manifest).items():
        typer.echo(f"status_{status.lower()}: {count}")
    for row in manifest.select(["relative_path", "bundle_status"]).iter_rows():
        typer.echo(f"  {row[1]:<9} {row[0]}")


def run_build_script(script_path: str | os.PathLike[str] | None = None, config_file: Path | None = None) -> int:
    """No-argument build entry for a script placed in the frontend crate.

    ``script_path`` defaults to the running ``__main__`` script, so a
    ``build.py`` containing ``raise SystemExit(run_build_script(__file__))``
    builds the crate next to it regardless of the caller's directory.
    """

    logger = configure_logging()
    try:
        settings = load_settings(config_file=config_file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"error: invalid settings: {exc}", err=True)
        return 1

    invocation_path = script_path
    if invocation_path is None:
        try:
            invocation_path = invocation_path_from_process()
        except BuildError as exc:
            typer.echo(f"error: {exc.stage} failed", err=True)
            typer.echo(exc.diagnostic, err=True)
            return 1
    return _run_pipeline(settings, invocation_path, logger)


def main() -> None:
    """CLI script entrypoint."""

    app()


if __name__ == "__main__":
    main()
