"""Configuration models and loading logic."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

SETTINGS_FILE_ENV = "WEBBUNDLE_SETTINGS_FILE"

BindingMode = Literal["global-symbol", "es-module"]
BuildProfile = Literal["debug", "release"]

_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


class ProjectConfig(BaseModel):
    """Project metadata settings."""

    name: str = "webbundle"
    env: str = "dev"


class PathsConfig(BaseModel):
    """Filesystem locations, relative ones anchored at the working directory."""

    bundle_dir: Path = Path("../target/web")
    target_dir: Path = Path("../target")
    reports_root: Path = Path("../target/webbundle-runs")
    anchor: Path | None = None

    def resolved(self, working_dir: Path) -> "PathsConfig":
        """Return a copy with working-directory-relative paths made absolute."""

        updates: dict[str, Path] = {}
        for field_name in ("bundle_dir", "target_dir", "reports_root"):
            value: Path = getattr(self, field_name)
            updates[field_name] = value if value.is_absolute() else (working_dir / value).resolve()
        return self.model_copy(update=updates)


class BuildConfig(BaseModel):
    """Toolchain invocation for the frontend crate."""

    target: str = "wasm32-unknown-unknown"
    profile: BuildProfile = "debug"
    crate_name: str | None = None
    command: list[str] = Field(default_factory=lambda: ["cargo"], min_length=1)
    extra_args: list[str] = Field(default_factory=list)


class BindingsConfig(BaseModel):
    """Binding generator invocation and the symbol exposed to the host runtime."""

    mode: BindingMode = "global-symbol"
    global_name: str = "MediaVault"
    command: list[str] = Field(default_factory=lambda: ["wasm-bindgen"], min_length=1)
    extra_args: list[str] = Field(default_factory=list)

    @field_validator("global_name")
    @classmethod
    def _check_global_name(cls, value: str) -> str:
        if not _JS_IDENTIFIER.match(value):
            raise ValueError(f"global_name must be a JavaScript identifier, got {value!r}")
        return value


class AssetsConfig(BaseModel):
    """Static files copied verbatim into the bundle."""

    source_dir: Path = Path("assets")
    entry_page: Path = Path("index.html")


class ToolsConfig(BaseModel):
    """Subprocess behavior shared by every external tool."""

    timeout_seconds: float | None = Field(default=None, gt=0.0)


class ReportsConfig(BaseModel):
    """Run summary artifacts written next to, never inside, the bundle."""

    enabled: bool = True


class AppSettings(BaseSettings):
    """Top-level application settings."""

    _yaml_file_override: ClassVar[Path | None] = None

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    bindings: BindingsConfig = Field(default_factory=BindingsConfig)
    assets: AssetsConfig = Field(default_factory=AssetsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)

    model_config = SettingsConfigDict(
        env_prefix="WEBBUNDLE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Layer env vars over an optional YAML settings file.

        No ``.env`` file is read: it would be looked up in the caller's current
        directory.
        """

        sources: list[PydanticBaseSettingsSource] = [init_settings, env_settings]
        if cls._yaml_file_override is not None:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_file_override))
        sources.append(file_secret_settings)
        return tuple(sources)

    def as_dict(self) -> dict[str, object]:
        """Return settings as a standard nested dictionary."""

        return self.model_dump(mode="json")


def resolve_settings_file(override: Path | None = None) -> Path | None:
    """Resolve settings file from explicit override or env var.

    There is no implicit lookup: the caller's current directory never decides
    which settings apply.
    """

    chosen = override
    if chosen is None:
        env_value = os.getenv(SETTINGS_FILE_ENV)
        if env_value:
            chosen = Path(env_value)
    if chosen is None:
        return None
    return chosen.expanduser().resolve()


def load_settings(config_file: Path | None = None) -> AppSettings:
    """Load settings with optional YAML values and environment overrides."""

    settings_file = resolve_settings_file(config_file)
    if settings_file is not None and not settings_file.is_file():
        raise FileNotFoundError(f"Settings file not found: {settings_file}")

    AppSettings._yaml_file_override = settings_file
    try:
        settings = AppSettings()
    finally:
        AppSettings._yaml_file_override = None

    anchor = settings.paths.anchor
    if anchor is not None and not anchor.is_absolute():
        # Only a settings file gives a relative anchor something to be relative to.
        if settings_file is None:
            raise ValueError(f"paths.anchor must be absolute when not set in a settings file, got {anchor}")
        paths = settings.paths.model_copy(update={"anchor": settings_file.parent / anchor})
        settings = settings.model_copy(update={"paths": paths})
    return settings
