"""
phpvm — CLI entrypoint.

Usage:
    python -m src.main --help
    python -m src.main php install 8.3
    python -m src.main php extensions add 8.3 gd intl --rebuild
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from src import __version__
from src.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="phpvm")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to phpvm.yml (default: $PHPVM_CONFIG, then ~/.config/phpvm/phpvm.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """phpvm — build and run several PHP versions side by side."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


# ── Register command groups ─────────────────────────────────────

from src.ui.cli.php import php  # noqa: E402

cli.add_command(php)


if __name__ == "__main__":
    cli()
