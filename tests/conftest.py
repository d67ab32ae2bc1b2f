"""Shared fixtures: a throwaway frontend crate and fake toolchain scripts."""

from __future__ import annotations

import logging
import sys
import textwrap
from pathlib import Path

import pytest

from webbundle.config import AppSettings, BindingsConfig, BuildConfig
from webbundle.logging_utils import DEFAULT_LOG_FORMAT

EXAMPLE_BUILD_SCRIPT = Path(__file__).resolve().parents[1] / "examples" / "build.py"


FAKE_CARGO = """
import pathlib
import logging
import sys

args = sys.argv[1:]
target = args[args.index("--target") + 1]
profile = "release" if "--release" in args else "debug"
out_dir = pathlib.Path("..", "target", target, profile)
out_dir.mkdir(parents=True, exist_ok=True)
(out_dir / "demo_frontend.wasm").write_bytes(b"\\x00asm\\x01\\x00\\x00\\x00")
print("   Compiling demo-frontend v0.1.0")
"""

FAILING_CARGO = """
import logging
import sys

print("   Compiling demo-frontend v0.1.0")
print("error[E0425]: cannot find value `x` in this scope", file=sys.stderr)
sys.exit(101)
"""

FAKE_BINDGEN = """
import pathlib
import logging
import sys

args = sys.argv[1:]
artifact = pathlib.Path(args[0])
out_dir = pathlib.Path(args[args.index("--out-dir") + 1])
name = args[args.index("--no-modules-global") + 1]
(out_dir / (artifact.stem + ".js")).write_text("let " + name + ";\\n", encoding="utf-8")
(out_dir / (artifact.stem + "_bg.wasm")).write_bytes(artifact.read_bytes())
"""

FAILING_BINDGEN = """
import logging
import sys

print("error: failed to find the `__wbindgen_start` export", file=sys.stderr)
sys.exit(1)
"""


@pytest.fixture
def frontend_dir(tmp_path: Path) -> Path:
    """A crate checkout laid out like ``<repo>/frontend`` with assets and an entry page."""

    crate = tmp_path / "repo" / "frontend"
    (crate / "assets").mkdir(parents=True)
    (crate / "src").mkdir()
    (crate / "Cargo.toml").write_text(
        textwrap.dedent(
            """
            [package]
            name = "demo-frontend"
            version = "0.1.0"
            edition = "2021"

            [lib]
            crate-type = ["cdylib"]
            """
        ),
        encoding="utf-8",
    )
    (crate / "src" / "lib.rs").write_text("pub fn start() {}\n", encoding="utf-8")
    (crate / "assets" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\nfake-logo")
    (crate / "assets" / "style.css").write_text("body { margin: 0; }\n", encoding="utf-8")
    (crate / "index.html").write_text(
        "<html><body><main></main><script src=\"demo_frontend.js\"></script></body></html>\n",
        encoding="utf-8",
    )
    (crate / "build.py").write_text(EXAMPLE_BUILD_SCRIPT.read_text(encoding="utf-8"), encoding="utf-8")
    return crate


@pytest.fixture
def write_tool(tmp_path: Path):
    """Write a Python script and return the argv prefix that runs it."""

    tools_dir = tmp_path / "tools"
    tools_dir.mkdir(exist_ok=True)

    def _write(name: str, body: str) -> list[str]:
        script = tools_dir / f"{name}.py"
        script.write_text(textwrap.dedent(body), encoding="utf-8")
        return [sys.executable, str(script)]

    return _write


@pytest.fixture
def fake_cargo(write_tool) -> list[str]:
    return write_tool("fake_cargo", FAKE_CARGO)


@pytest.fixture
def failing_cargo(write_tool) -> list[str]:
    return write_tool("failing_cargo", FAILING_CARGO)


@pytest.fixture
def fake_bindgen(write_tool) -> list[str]:
    return write_tool("fake_bindgen", FAKE_BINDGEN)


@pytest.fixture
def failing_bindgen(write_tool) -> list[str]:
    return write_tool("failing_bindgen", FAILING_BINDGEN)


@pytest.fixture
def make_settings(fake_cargo: list[str], fake_bindgen: list[str]):
    """Build settings wired to the fake tools, with optional overrides."""

    def _make(
        *,
        cargo: list[str] | None = None,
        bindgen: list[str] | None = None,
        **sections: object,
    ) -> AppSettings:
        return AppSettings(
            build=BuildConfig(command=cargo or fake_cargo),
            bindings=BindingsConfig(command=bindgen or fake_bindgen),
            **sections,
        )

    return _make


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Undo handlers installed by ``configure_logging`` during a test."""

    root_logger = logging.getLogger()
    saved_level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        formatter = handler.formatter
        if formatter is not None and formatter._fmt == DEFAULT_LOG_FORMAT:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(saved_level)
