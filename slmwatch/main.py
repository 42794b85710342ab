"""Entry point for slmwatch."""

from __future__ import annotations

import argparse
import json
import logging
import sys

import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from slmwatch.config import settings
from slmwatch.errors import StateProviderError
from slmwatch.health.indicator import SlmHealthIndicator, Thresholds
from slmwatch.health.models import HealthIndicatorResult, HealthStatus
from slmwatch.lifecycle.provider import (
    FileStateProvider,
    HttpStateProvider,
    StateProvider,
    provider_from_settings,
)

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

EXIT_PROVIDER_ERROR = 3
_STYLES = {HealthStatus.GREEN: "bold green", HealthStatus.YELLOW: "bold yellow", HealthStatus.RED: "bold red"}


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting slmwatch API server", style="bold green"))
    uvicorn.run(
        "slmwatch.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def _provider(file: str | None, url: str | None) -> StateProvider:
    if file:
        return FileStateProvider(file)
    if url:
        return HttpStateProvider(url, api_key=settings.cluster_api_key, timeout=settings.cluster_timeout)
    return provider_from_settings()


def render_result(result: HealthIndicatorResult) -> None:
    style = _STYLES[result.status]
    console.print(Panel(escape(result.symptom), title=f"{result.name}: {result.status.value.upper()}", style=style))

    if result.details:
        table = Table(title="Details", show_header=False)
        for key, value in result.details.items():
            table.add_row(escape(key), escape(str(value)))
        console.print(table)

    for impact in result.impacts:
        areas = ", ".join(a.value for a in impact.impact_areas)
        console.print(f"[bold]Impact[/bold] (severity {impact.severity}, {areas}): {escape(impact.description)}")

    for action in result.actions:
        action_id = escape(f"[{action.definition.id}]")
        console.print(f"[bold]Action[/bold] {action_id} {escape(action.definition.action)}")
        if action.affected_resources:
            console.print(f"  [dim]Policies: {escape(', '.join(action.affected_resources))}[/dim]")
        console.print(f"  [dim]{action.definition.help_url}[/dim]")


def run_check(file: str | None, url: str | None, explain: bool, as_json: bool) -> int:
    """Evaluate the SLM indicator once; the exit code follows the status."""
    indicator = SlmHealthIndicator(_provider(file, url), Thresholds.from_settings())
    try:
        result = indicator.calculate(explain=explain)
    except StateProviderError as e:
        logger.error("Could not read SLM state: %s", e)
        console.print(f"[bold red]Could not read SLM state:[/bold red] {escape(str(e))}")
        return EXIT_PROVIDER_ERROR

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        render_result(result)
    return result.status.rank


def main() -> None:
    parser = argparse.ArgumentParser(description="SLM health indicator")
    sub = parser.add_subparsers(dest="command")

    # Server mode
    sub.add_parser("serve", help="Start the health report API server")

    # One-shot check
    check_parser = sub.add_parser("check", help="Evaluate the SLM indicator once")
    source = check_parser.add_mutually_exclusive_group()
    source.add_argument("--file", help="YAML/JSON document with operation_mode and policies")
    source.add_argument("--url", help="Cluster base URL to read /_slm/status and /_slm/policy from")
    check_parser.add_argument("--explain", action="store_true", help="Include details")
    check_parser.add_argument("--json", action="store_true", dest="as_json", help="Print the raw result")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "check":
        sys.exit(run_check(args.file, args.url, args.explain, args.as_json))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
