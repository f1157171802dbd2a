"""
Portex CLI -- PE Header Decoder
================================

Click-based command-line interface around :class:`PortexEngine`.

Usage::

    # Decode and display headers
    portex /path/to/app.exe

    # JSON to stdout
    portex app.exe --json

    # Write a JSON report as well
    portex app.dll --output reports/app.json

    # Show all 16 data-directory slots
    portex app.exe --all-directories

    # Custom configuration and debug logging
    portex app.exe --config portex.toml --verbose

Exit status is 0 when the image decodes, 1 when it is malformed or the
file cannot be read.

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from shared.config import PortexConfig
from shared.console import PortexConsole
from shared.logger import PortexLogger

from portex import __version__
from portex.core.engine import AnalysisError, PortexEngine
from portex.output.console import PortexConsoleOutput
from portex.output.report import PortexReportGenerator


@click.command("portex")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Print the report as JSON to stdout.",
)
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write the JSON report to this file.",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML configuration file (default: ./portex.toml if present).",
)
@click.option(
    "--all-directories", "-a",
    is_flag=True,
    default=False,
    help="List all 16 data-directory slots, including empty ones.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(__version__, prog_name="portex")
def portex_cli(
    path: str,
    json_output: bool,
    output_path: str | None,
    config_path: str | None,
    all_directories: bool,
    verbose: bool,
) -> None:
    """Portex -- decode the headers of a Windows PE image.

    PATH is the .exe / .dll / .sys file to decode.

    Examples:

    \b
        portex C:/Windows/System32/kernel32.dll
        portex app.exe --json > app.json
    """
    # Keep stdout clean for --json.
    console = PortexConsole(stderr=json_output)

    try:
        config = PortexConfig.load(config_path)
    except (OSError, ValueError) as exc:
        console.error(f"Cannot load configuration: {exc}")
        sys.exit(1)

    logger = PortexLogger.from_config(
        "engine", config, log_level="DEBUG" if verbose else None,
    )
    engine = PortexEngine(config=config, logger=logger)

    try:
        report = engine.analyze(path)
    except AnalysisError as exc:
        console.error(str(exc))
        sys.exit(1)

    generator = PortexReportGenerator()

    if json_output:
        click.echo(generator.to_json(report))
    else:
        show_empty = all_directories or config.decoder.show_empty_directories
        PortexConsoleOutput(console, show_empty_directories=show_empty).display(report)

    if output_path:
        target = Path(output_path)
        if not target.is_absolute():
            target = Path(config.global_config.report_dir) / target
        saved = generator.generate_json(report, target)
        console.success(f"JSON report saved: {saved}")

    if not report.success:
        if json_output and report.error is not None:
            console.error(f"{report.error.kind}: {report.error.message}")
        sys.exit(1)


def main() -> None:
    """Entry point for the ``portex`` console script."""
    portex_cli()


if __name__ == "__main__":
    main()
