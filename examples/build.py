"""Build the frontend crate this script sits in.

Copy next to the crate's ``Cargo.toml`` and run it from any directory::

    python path/to/frontend/build.py

Tool commands and paths come from ``WEBBUNDLE_*`` environment variables or
the YAML file named by ``WEBBUNDLE_SETTINGS_FILE``.
"""

from webbundle.cli import run_build_script

if __name__ == "__main__":
    raise SystemExit(run_build_script(__file__))
