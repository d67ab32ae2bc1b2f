"""Build, bind and bundle a wasm frontend crate into a deployable directory."""

__version__ = "0.1.0"
