from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from webbundle.config import SETTINGS_FILE_ENV, AppSettings, BindingsConfig, PathsConfig, load_settings


@pytest.fixture(autouse=True)
def _no_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(SETTINGS_FILE_ENV, raising=False)


def test_defaults_match_the_frontend_build() -> None:
    settings = load_settings()

    assert settings.build.target == "wasm32-unknown-unknown"
    assert settings.build.profile == "debug"
    assert settings.build.command == ["cargo"]
    assert settings.bindings.mode == "global-symbol"
    assert settings.bindings.global_name == "MediaVault"
    assert settings.assets.source_dir == Path("assets")
    assert settings.assets.entry_page == Path("index.html")
    assert settings.paths.bundle_dir == Path("../target/web")
    assert settings.tools.timeout_seconds is None


def test_yaml_file_and_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    settings_file = tmp_path / "webbundle.yaml"
    settings_file.write_text(
        "bindings:\n  global_name: FromYaml\nbuild:\n  profile: release\npaths:\n  anchor: frontend\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("WEBBUNDLE_BINDINGS__GLOBAL_NAME", "FromEnv")
    monkeypatch.setenv("WEBBUNDLE_BUILD__COMMAND", '["cargo", "+nightly"]')

    settings = load_settings(settings_file)

    assert settings.bindings.global_name == "FromEnv"
    assert settings.build.profile == "release"
    assert settings.build.command == ["cargo", "+nightly"]
    assert settings.paths.anchor == tmp_path.resolve() / "frontend"


def test_settings_file_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    settings_file = tmp_path / "bundle.yaml"
    settings_file.write_text("assets:\n  source_dir: static\n", encoding="utf-8")
    monkeypatch.setenv(SETTINGS_FILE_ENV, str(settings_file))

    assert load_settings().assets.source_dir == Path("static")


def test_missing_settings_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "absent.yaml")


def test_dotenv_in_current_directory_is_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text(
        "WEBBUNDLE_BINDINGS__GLOBAL_NAME=Hijacked\nWEBBUNDLE_PATHS__BUNDLE_DIR=/tmp/hijack\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    settings = load_settings()

    assert settings.bindings.global_name == "MediaVault"
    assert settings.paths.bundle_dir == Path("../target/web")


def test_relative_anchor_needs_a_settings_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEBBUNDLE_PATHS__ANCHOR", "frontend")

    with pytest.raises(ValueError, match="paths.anchor must be absolute"):
        load_settings()


def test_absolute_anchor_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEBBUNDLE_PATHS__ANCHOR", str(tmp_path / "frontend"))

    assert load_settings().paths.anchor == tmp_path / "frontend"


@pytest.mark.parametrize("name", ["", "1App", "media-vault", "a b"])
def test_global_name_must_be_an_identifier(name: str) -> None:
    with pytest.raises(ValidationError):
        BindingsConfig(global_name=name)


def test_paths_resolve_against_working_directory(tmp_path: Path) -> None:
    working_dir = tmp_path / "repo" / "frontend"
    absolute = tmp_path / "elsewhere"
    paths = PathsConfig(reports_root=absolute).resolved(working_dir)

    assert paths.bundle_dir == (tmp_path / "repo" / "target" / "web").resolve()
    assert paths.target_dir == (tmp_path / "repo" / "target").resolve()
    assert paths.reports_root == absolute


def test_as_dict_is_plain_json() -> None:
    rendered = AppSettings().as_dict()
    assert rendered["paths"]["bundle_dir"] == "../target/web"
    assert rendered["bindings"]["command"] == ["wasm-bindgen"]


def test_shipped_settings_file_matches_defaults() -> None:
    shipped = Path(__file__).resolve().parents[1] / "configs" / "webbundle.yaml"
    settings = load_settings(shipped)
    defaults = AppSettings()

    assert settings.build == defaults.build
    assert settings.bindings == defaults.bindings
    assert settings.assets == defaults.assets
    assert settings.paths == defaults.paths
    assert settings.project.name == "mediavault_frontend"
