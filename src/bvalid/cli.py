"""CLI interface for bvalid using Typer framework."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from bvalid import __description__, __version__
from bvalid.config import LogLevel, ReportFormat, load_config
from bvalid.errors import BValidError
from bvalid.loader import load_reference, resolve_objects, resolve_validator
from bvalid.report import ReportFormatter, render_json, render_markdown, render_text

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="bvalid",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()

# Exit codes
EXIT_INVALID = 1
EXIT_ERROR = 2

_LOG_LEVELS = {
    LogLevel.ERROR.value: logging.ERROR,
    LogLevel.WARN.value: logging.WARNING,
    LogLevel.INFO.value: logging.INFO,
    LogLevel.DEBUG.value: logging.DEBUG,
}


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"bvalid version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
) -> None:
    """bvalid - Business rule validation for object graphs."""


def _setup_logging(level: str) -> None:
    logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger("bvalid").setLevel(_LOG_LEVELS[level])


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(EXIT_ERROR)


@app.command()
def check(
    validator: Annotated[
        str,
        typer.Argument(help="Validator reference 'module:attribute' (validator, builder, business object class or factory)")
    ],
    objects: Annotated[
        str,
        typer.Argument(help="Reference 'module:attribute' to the object, iterable or factory to validate")
    ],
    format: Annotated[
        Optional[str],
        typer.Option("--format", "-f", help="Output format: text, table, json, markdown (default: from config)")
    ] = None,
    failures_only: Annotated[
        Optional[bool],
        typer.Option("--failures-only/--all-rules", help="Only report failing rules")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .bvalid.json)")
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", "-l", help="Log level: error, warn, info, debug")
    ] = None,
    path: Annotated[
        Path,
        typer.Option("--path", "-p", help="Directory added to the import path")
    ] = Path("."),
) -> None:
    """Validate business objects and report the rule results."""
    try:
        bvalid_config = load_config(config)
    except ValueError as e:
        _fail(str(e))

    level = log_level or bvalid_config.logging.level
    if level not in _LOG_LEVELS:
        _fail(f"Invalid log level '{level}'. Must be one of: {', '.join(_LOG_LEVELS)}")
    _setup_logging(level)

    report_format = format or bvalid_config.report.format
    valid_formats = [f.value for f in ReportFormat]
    if report_format not in valid_formats:
        _fail(f"Invalid format '{report_format}'. Must be one of: {', '.join(valid_formats)}")

    if failures_only is None:
        failures_only = bvalid_config.report.failures_only
    show_descriptions = bvalid_config.report.show_descriptions

    try:
        compiled = resolve_validator(load_reference(validator, path))
        targets = resolve_objects(load_reference(objects, path))
        outcome = compiled.validate(targets)
    except BValidError as e:
        logger.debug(f"Validation aborted: {e!r}")
        _fail(str(e))

    results = outcome if isinstance(outcome, list) else [outcome]

    if report_format == ReportFormat.JSON.value:
        typer.echo(render_json(results))
    elif report_format == ReportFormat.MARKDOWN.value:
        typer.echo(render_markdown(results, failures_only, show_descriptions))
    elif report_format == ReportFormat.TABLE.value:
        ReportFormatter(console).format_results(results, failures_only, show_descriptions)
    else:
        typer.echo(render_text(results, failures_only, show_descriptions), nl=False)

    all_valid = all(result.is_valid() for result in results)
    if not all_valid and bvalid_config.validation.fail_on_invalid:
        raise typer.Exit(EXIT_INVALID)


@app.command()
def describe(
    validator: Annotated[
        str,
        typer.Argument(help="Validator reference 'module:attribute'")
    ],
    path: Annotated[
        Path,
        typer.Option("--path", "-p", help="Directory added to the import path")
    ] = Path("."),
) -> None:
    """Show the rules and members of a validator as a tree."""
    try:
        compiled = resolve_validator(load_reference(validator, path))
    except BValidError as e:
        _fail(str(e))

    ReportFormatter(console).format_validator(compiled)


if __name__ == "__main__":
    app()
