"""Click-based CLI for UI parity verification."""

import asyncio
import sys
from pathlib import Path
from typing import Any

import click

from .. import __version__
from ..config import ParityConfig, ViewportConfig, load_parity_config
from ..errors import ParityError
from ..models import Implementation
from ..orchestrator import ParityOrchestrator
from ..parity_logging import get_logger, setup_logging
from ..specs.loader import SpecTables, load_spec_tables
from .reporter import ParityReporter, report_json, should_use_color

TARGETS = {
    "baseline": [Implementation.BASELINE],
    "candidate": [Implementation.CANDIDATE],
    "both": [Implementation.BASELINE, Implementation.CANDIDATE],
}


def common_options(f: Any) -> Any:
    """Options shared by every command."""
    f = click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")(f)
    f = click.option("--quiet", "-q", is_flag=True, help="Only log errors")(f)
    f = click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Configuration file path",
    )(f)
    f = click.option("--no-color", is_flag=True, help="Disable colored output")(f)
    f = click.option(
        "--log-file",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Also write logs to this file",
    )(f)
    f = click.option(
        "--log-format",
        type=click.Choice(["text", "json"]),
        default="text",
        show_default=True,
        help="Log file format",
    )(f)
    return f


def _setup(quiet: bool, verbose: bool, log_file: Path | None, log_format: str) -> None:
    if quiet and verbose:
        raise click.UsageError("--quiet and --verbose are mutually exclusive")
    setup_logging(quiet=quiet, verbose=verbose, log_file=log_file, log_format=log_format)


def _fail(error: ParityError, use_color: bool) -> None:
    click.echo(error.format(use_color=use_color), err=True)
    sys.exit(error.exit_code)


def _load(config_path: Path | None) -> tuple[ParityConfig, SpecTables]:
    config = load_parity_config(config_path)
    tables = load_spec_tables(
        config.specs.selectors,
        config.specs.expectations,
        config.specs.overrides,
        config.specs.structure,
    )
    return config, tables


def apply_viewport_options(config: ParityConfig, values: tuple[str, ...]) -> None:
    """Replace same-named viewports and append new ones."""
    for value in values:
        viewport = ViewportConfig.parse(value)
        names = [v.name for v in config.viewports]
        if viewport.name in names:
            config.viewports[names.index(viewport.name)] = viewport
        else:
            config.viewports.append(viewport)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Verify that a candidate page renders like its baseline."""


@cli.command()
@click.option(
    "--target",
    type=click.Choice(list(TARGETS)),
    default="both",
    show_default=True,
    help="Implementation(s) to check",
)
@click.option(
    "--viewport",
    "viewports",
    multiple=True,
    metavar="NAME=WxH",
    help="Add or replace a viewport (repeatable)",
)
@click.option("--tolerance", type=click.IntRange(min=0), help="Allowed failure count")
@click.option("--max-gap", type=click.FloatRange(0.0, 1.0), help="Allowed parity gap (0-1)")
@click.option("--json", "as_json", is_flag=True, help="Print the JSON report on stdout")
@click.option("--headed", is_flag=True, help="Show the browser window")
@common_options
def run(
    target: str,
    viewports: tuple[str, ...],
    tolerance: int | None,
    max_gap: float | None,
    as_json: bool,
    headed: bool,
    verbose: bool,
    quiet: bool,
    config_path: Path | None,
    no_color: bool,
    log_file: Path | None,
    log_format: str,
) -> None:
    """Run parity checks against one or both implementations.

    Exits 0 when the gate passes, 1 when it fails, 2 on configuration errors.
    """
    _setup(quiet, verbose, log_file, log_format)
    use_color = should_use_color(False if no_color else None, sys.stdout)
    logger = get_logger()

    try:
        config, tables = _load(config_path)
        apply_viewport_options(config, viewports)
        if tolerance is not None:
            config.gate.failure_tolerance = tolerance
        if max_gap is not None:
            config.gate.max_parity_gap = max_gap
        if headed:
            config.browser.headless = False
        config.validate()

        orchestrator = ParityOrchestrator(tables, config)
        result = asyncio.run(orchestrator.run(TARGETS[target]))
    except ParityError as e:
        _fail(e, should_use_color(False if no_color else None, sys.stderr))
        return
    except ImportError as e:
        logger.error(str(e))
        sys.exit(1)

    if as_json:
        report_json(result, sys.stdout)
    else:
        ParityReporter(sys.stdout, use_color=use_color).report(result)

    passed = result.passes(config.gate)
    if not passed:
        logger.debug("Gate failed")
    sys.exit(0 if passed else 1)


@cli.command("check-config")
@common_options
def check_config(
    verbose: bool,
    quiet: bool,
    config_path: Path | None,
    no_color: bool,
    log_file: Path | None,
    log_format: str,
) -> None:
    """Validate the configuration and declarative tables."""
    _setup(quiet, verbose, log_file, log_format)
    try:
        config, tables = _load(config_path)
        ParityOrchestrator(tables, config)
    except ParityError as e:
        _fail(e, should_use_color(False if no_color else None, sys.stderr))
        return

    click.echo(f"Roles:        {len(tables.selectors)}")
    click.echo(f"Sections:     {len(tables.selectors.sections)}")
    click.echo(f"Expectations: {tables.expectations.count()}")
    click.echo(f"Overrides:    {len(tables.overrides)}")
    click.echo(f"Structure:    {len(tables.structure)}")
    click.echo(f"Viewports:    {', '.join(v.name for v in config.viewports)}")
    click.echo("Configuration OK")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
