"""
CLI interface for GCP Cost Report.

Provides command-line access to the inventory and cost report.
"""

import logging
import sys
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from gcp_cost_report.clients.exchange_rate import ExchangeRateClient, ExchangeRateError
from gcp_cost_report.config.loader import (
    CONFIG_ENV_VAR,
    ReportConfig,
    default_config,
    load_report_config,
    resolve_config_path,
)
from gcp_cost_report.core.report import build_report
from gcp_cost_report.inventory.collectors import InventoryRepository
from gcp_cost_report.inventory.runner import CommandRunner, ProjectContext, resolve_project_id
from gcp_cost_report.inventory.workloads import WorkloadCollector
from gcp_cost_report.report.renderer import ReportRenderer, render_json

app = typer.Typer(add_completion=False)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("gcp_cost_report")

EXIT_CODE_OK = 0
EXIT_CODE_NO_PROJECT = 1  # Also used for an invalid configuration file
EXIT_CODE_RATE_UNAVAILABLE = 2


def _configure_logging(verbose: bool) -> None:
    """Send log records to stderr; degraded queries show only with --verbose."""
    handler = RichHandler(console=err_console, show_path=False, show_time=False)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.ERROR)
    logger.propagate = False


def _fail(message: str, exit_code: int) -> None:
    err_console.print(f"[red]Error:[/] {escape(message)}", soft_wrap=True)
    sys.exit(exit_code)


def _load_config(path: Optional[str]) -> ReportConfig:
    config_path = resolve_config_path(path)
    if config_path is None:
        return default_config()
    try:
        return load_report_config(config_path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(f"Invalid configuration: {e}", EXIT_CODE_NO_PROJECT)


def _version_callback(value: bool) -> None:
    if not value:
        return
    try:
        console.print(f"gcp-cost-report {package_version('gcp-cost-report')}")
    except PackageNotFoundError:
        console.print("gcp-cost-report (not installed)")
    raise typer.Exit()


@app.command()
def report(
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project to report on (defaults to the active gcloud project)"
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        envvar=CONFIG_ENV_VAR,
        help="YAML file with prices, trial terms and currency settings"
    ),
    currency: Optional[str] = typer.Option(
        None,
        "--currency",
        help="Target currency code, overrides the configuration"
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the report as JSON"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every inventory command and degraded query"
    ),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the installed version and exit"
    ),
):
    """
    Print the inventory and estimated cost report for a project.

    This is a read-only operation. Queries that fail or are not permitted
    show up as 0 or "not available"; only an unresolvable project or an
    unreachable exchange rate service stop the report.
    """
    _configure_logging(verbose)
    config = _load_config(config_path)
    commands = config.commands
    runner = CommandRunner(timeout_seconds=commands.timeout_seconds)

    project_id = resolve_project_id(project, runner, gcloud_bin=commands.gcloud)
    if project_id is None:
        _fail(
            "No project specified. Pass --project or run `gcloud config set project PROJECT_ID`.",
            EXIT_CODE_NO_PROJECT,
        )

    currency_code = (currency or config.currency.code).upper()
    client = ExchangeRateClient(url=config.currency.rate_url, timeout=config.currency.timeout_seconds)
    try:
        rate = client.fetch(currency_code)
    except ExchangeRateError as e:
        _fail(str(e), EXIT_CODE_RATE_UNAVAILABLE)

    context = ProjectContext(
        project_id=project_id,
        gcloud_bin=commands.gcloud,
        kubectl_bin=commands.kubectl,
        timeout_seconds=commands.timeout_seconds,
    )
    result = build_report(
        repository=InventoryRepository(context, runner),
        workloads=WorkloadCollector(context, runner),
        rate=rate,
        price_table=config.pricing,
        trial_settings=config.trial,
    )

    if as_json:
        typer.echo(render_json(result))
    else:
        ReportRenderer(console).render(result)
    sys.exit(EXIT_CODE_OK)


if __name__ == "__main__":
    app()
