"""dspc CLI Main Entry Point

dspc - compiles .dsp templates to Python modules.

Usage:
    dspc -p app.views -i templates -o app/views     # compile all templates
    dspc                                            # use settings from dspc.yaml
    dspc --dry-run                                  # print generated sources
    dspc --ast                                      # print parsed templates as JSON
    dspc -v                                         # verbose output
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from dspc._version import __version__
from dspc.ast.parser import Parser
from dspc.config import load_config
from dspc.driver import Driver, discover_templates
from dspc.exceptions import ConfigError, DspError

log = logging.getLogger(__name__)

console = Console(stderr=True)

DEBUG_ENV = "DSPC_DEBUG"
USAGE_HINT = "For usage, run: dspc --help"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the dspc CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level - shows each processed template
    - Debug (DSPC_DEBUG=1): DEBUG level - shows everything
    """
    if os.environ.get(DEBUG_ENV):
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=bool(os.environ.get(DEBUG_ENV)),
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    dspc_logger = logging.getLogger("dspc")
    dspc_logger.setLevel(level)
    dspc_logger.handlers = [handler]
    dspc_logger.propagate = False


def exit_with_error(message: str, exit_code: int = 1) -> NoReturn:
    """Exit the program with an error message."""
    typer.secho(f"Error: {message}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=exit_code)


def handle_error(error: Exception) -> NoReturn:
    """Handle and exit on dspc errors."""
    if isinstance(error, DspError):
        if isinstance(error, ConfigError):
            typer.echo(USAGE_HINT, err=True)
        exit_with_error(error.message, error.exit_code)
    # Unexpected error
    typer.echo(f"Unexpected error: {error}", err=True)
    raise typer.Exit(code=1)


typer_app = typer.Typer(add_completion=False)


@typer_app.command()
def cli(
    version: bool = typer.Option(
        False, "--version", help="Show version and exit."
    ),
    package: Optional[str] = typer.Option(
        None, "-p", "--package", help="The module path to use as prefix."
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Output path to write generated modules."
    ),
    input_dir: Optional[Path] = typer.Option(
        None, "-i", "--input", help="Input path to search for .dsp files."
    ),
    config_file: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Path to a dspc.yaml file."
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Enables verbose printing."
    ),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Skip templates that fail instead of stopping."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print generated modules without writing them."
    ),
    dump_ast: bool = typer.Option(
        False, "--ast", help="Print parsed templates as JSON and exit."
    ),
) -> None:
    """Compile .dsp templates into Python modules.

    \b
    Examples:
        dspc -p app.views -i templates -o app/views
        dspc --dry-run
        dspc --ast -i templates
    """
    if version:
        typer.echo(f"dspc {__version__}")
        raise typer.Exit()

    setup_logging(verbose)

    try:
        config = load_config(config_file).merged(
            package=package,
            input_dir=input_dir,
            output_dir=output,
            keep_going=keep_going or None,
        )

        if dump_ast:
            _dump_ast(config.input_dir, config.suffix)
            raise typer.Exit()

        config = config.with_env()
        driver = Driver(config)
        report = driver.run(write=not dry_run)
    except typer.Exit:
        raise
    except Exception as exc:
        handle_error(exc)

    if dry_run:
        for module in report.modules:
            typer.echo(f"# --- {module.module}")
            typer.echo(module.source)

    for path, error in report.failures:
        typer.secho(f"Failed: {path}: {error.message}", err=True, fg=typer.colors.RED)

    if not report.ok:
        raise typer.Exit(code=1)

    if report.written:
        log.info("wrote %d module(s)", len(report.written))


def _dump_ast(input_dir: Optional[Path], suffix: str) -> None:
    if input_dir is None:
        exit_with_error("Please specify --input!")
    parser = Parser()
    for path in discover_templates(input_dir, suffix):
        template = parser.parse_file(path)
        typer.echo(f"{path}: {template.to_json().decode('utf-8')}")


def app() -> None:
    """Entry point for the CLI."""
    typer_app()


if __name__ == "__main__":
    app()
