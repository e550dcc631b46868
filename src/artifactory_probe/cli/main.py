#!/usr/bin/env python3
"""
Artifactory Probe Exporter Command Line Interface

Entry point for running the exporter and checking its configuration.

Usage:
    artifactory-probe --help
    artifactory-probe serve --config-file artifactory-tests.yml
    artifactory-probe validate --config-file artifactory-tests.yml
    artifactory-probe version

Environment Variables:
    ARTIFACTORY_PROBE_CONFIG: Path to the configuration file
    ARTIFACTORY_PROBE_LOG_LEVEL: Logging level, overrides the configuration file
"""

import logging
import os
import sys
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from artifactory_probe import __version__
from artifactory_probe.config import DEFAULT_CONFIG_FILE, ExporterConfig, load_config
from artifactory_probe.core.exceptions import ConfigurationError, ProbeExporterError
from artifactory_probe.monitoring.metrics.exporters import DEFAULT_LISTEN_ADDRESS, DEFAULT_METRICS_PATH
from artifactory_probe.probing import max_file_timeout, resolve_timeout_budgets
from artifactory_probe.service import ExporterService

LOG_LEVEL_ENV = "ARTIFACTORY_PROBE_LOG_LEVEL"

console = Console()

logging.basicConfig(
    level=os.environ.get(LOG_LEVEL_ENV, "INFO").upper(),
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)],
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="artifactory-probe",
    help="Push/pull round-trip probes against Artifactory, exported as Prometheus metrics.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

ConfigFileOption = Annotated[
    str,
    typer.Option(
        "--config-file",
        "-c",
        envvar="ARTIFACTORY_PROBE_CONFIG",
        help="Artifactory Test Exporter configuration file.",
    ),
]


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """
    Artifactory Test Exporter.
    """
    if verbose:
        logging.getLogger("artifactory_probe").setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")


def _load(config_file: str) -> ExporterConfig:
    """Load the configuration or exit with code 1."""
    try:
        config = load_config(config_file)
    except ConfigurationError as e:
        logger.error(f"Error loading config: {e.message}")
        raise typer.Exit(code=1)
    logger.info(f"Loaded config file {config_file}")
    return config


def _apply_log_level(config: ExporterConfig) -> None:
    """Use the configured level unless the environment or --verbose already chose one."""
    package_logger = logging.getLogger("artifactory_probe")
    if LOG_LEVEL_ENV in os.environ or package_logger.level == logging.DEBUG:
        return
    package_logger.setLevel(config.log_level.upper())


@app.command()
def serve(
    config_file: ConfigFileOption = DEFAULT_CONFIG_FILE,
    listen_address: Annotated[
        str,
        typer.Option("--listen-address", help="Address on which to expose metrics and web interface."),
    ] = DEFAULT_LISTEN_ADDRESS,
    metrics_path: Annotated[
        str,
        typer.Option("--metrics-path", help="Path under which to expose metrics."),
    ] = DEFAULT_METRICS_PATH,
) -> None:
    """
    Run the probe loop and serve metrics until interrupted.
    """
    logger.info(f"Starting artifactory-probe, version {__version__}")
    config = _load(config_file)
    _apply_log_level(config)

    service = ExporterService(config, listen_address=listen_address, metrics_path=metrics_path)
    try:
        service.prepare()
    except ConfigurationError as e:
        logger.error(e.message)
        raise typer.Exit(code=1)

    try:
        service.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except ProbeExporterError as e:
        logger.error(e.message)
        raise typer.Exit(code=1)


@app.command()
def validate(config_file: ConfigFileOption = DEFAULT_CONFIG_FILE) -> None:
    """
    Check the configuration and show the timeout budget of every test file.
    """
    config = _load(config_file)

    try:
        budgets = resolve_timeout_budgets(config)
    except ConfigurationError as e:
        console.print("[bold red]Configuration is invalid:[/bold red]")
        for violation in e.violations:
            console.print(f"  - {violation}")
        raise typer.Exit(code=1)

    files = config.file_specs()
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("Size (MiB)", justify="right")
    table.add_column("Push timeout (s)", justify="right")
    table.add_column("Pull timeout (s)", justify="right")
    table.add_column("Checksum")
    for spec in files:
        budget = budgets[spec.name]
        table.add_row(
            spec.name,
            str(spec.size),
            f"{budget.push_timeout:g}",
            f"{budget.pull_timeout:g}",
            "yes" if spec.verify_checksum else "no",
        )

    console.print(
        f"Interval [bold]{config.interval:g}s[/bold], "
        f"max per-file timeout [bold]{max_file_timeout(config.interval, len(files)):g}s[/bold], "
        f"handler timeout [bold]{config.timeout:g}s[/bold]"
    )
    console.print(table)
    console.print("[green]Configuration is valid[/green]")


@app.command()
def version() -> None:
    """Display the current version of the exporter."""
    console.print(f"artifactory-probe v[bold cyan]{__version__}[/bold cyan]")


def main(argv: Optional[list] = None) -> None:
    """Main entry point for the CLI."""
    try:
        app(args=argv)
    except Exception as e:
        logger.error(f"Unhandled exception: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
