"""Error taxonomy for the bundle pipeline.

Every stage failure is a :class:`BuildError`. Errors carry the stage that
raised them and a ``diagnostic`` string meant for the invoking user, which for
subprocess stages is the tool's captured output.
"""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Base class for fatal pipeline stage failures."""

    stage: str = "build"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def diagnostic(self) -> str:
        return self.message

    @property
    def exit_code(self) -> int | None:
        return None


class ResolutionError(BuildError):
    """The working directory could not be determined."""

    stage = "resolve"


class BundleIOError(BuildError):
    """Creating the bundle directory or copying a file into it failed."""

    stage = "assets"

    def __init__(self, message: str, path: Path, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.path = path
        if stage is not None:
            self.stage = stage


class ToolError(BuildError):
    """An external tool could not be launched or exited nonzero."""

    def __init__(
        self,
        message: str,
        *,
        argv: list[str],
        exit_code: int | None,
        captured_output: str,
    ) -> None:
        super().__init__(message)
        self.argv = argv
        self._exit_code = exit_code
        self.captured_output = captured_output

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def diagnostic(self) -> str:
        output = self.captured_output.rstrip()
        if not output:
            return self.message
        return f"{self.message}\n{output}"


class CompileError(ToolError):
    """The toolchain failed to produce the binary artifact."""

    stage = "compile"


class BindingError(ToolError):
    """The binding generator failed to produce the host-runtime module."""

    stage = "bindings"
