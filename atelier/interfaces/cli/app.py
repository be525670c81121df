"""Atelier router CLI application.

Command-line access to the request classifier for manual checks and
scripting.

Commands:
    classify: Classify one or more requests and print the routing decisions
    demo: Classify the built-in sample requests and print statistics
    config: Show the active configuration

Usage:
    python -m atelier.interfaces.cli classify "Show me my Notion pages"
    python -m atelier.interfaces.cli classify "Sync tasks" --context board=42 --json
    python -m atelier.interfaces.cli demo
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

import click

from atelier import __version__
from atelier.config import get_settings
from atelier.core import ConfigurationError
from atelier.routing import (
    AnalysisRecord,
    ExecutionRoute,
    RequestClassifier,
    StatsSnapshot,
)
from atelier.telemetry import AtelierLogAdapter, setup_logging


# =============================================================================
# Module Logger
# =============================================================================

logger = AtelierLogAdapter(logging.getLogger(__name__), {"component": "CLI"})


# =============================================================================
# Constants
# =============================================================================

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
}

ROUTE_COLORS = {
    ExecutionRoute.CONNECTORS: "green",
    ExecutionRoute.HYBRID: "yellow",
    ExecutionRoute.ORCHESTRATOR: "cyan",
}


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text."""
    if not sys.stdout.isatty():
        return text
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


def _parse_context(pairs: tuple[str, ...]) -> dict[str, Any]:
    context: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{pair}'", param_hint="--context")
        context[key.strip()] = value
    return context


def _display_record(record: AnalysisRecord) -> None:
    route_color = "red" if record.is_degraded else ROUTE_COLORS[record.route]
    click.echo(colorize(record.request_text or "(empty request)", "bold"))
    click.echo(
        f"  {record.complexity.value} -> {colorize(record.route.value, route_color)}"
        f"  (confidence {record.confidence:.2f}, {record.analysis_duration_ms}ms)"
    )
    for line in record.reasoning:
        click.echo(colorize(f"    {line}", "dim"))


def _display_statistics(stats: StatsSnapshot) -> None:
    click.echo(colorize("Statistics:", "bold"))
    click.echo(f"  Total analyses: {stats.total_analyses}")
    click.echo(f"  Average analysis time: {stats.average_analysis_time_ms:.2f}ms")
    click.echo("  Routes:")
    for route, count in sorted(stats.route_distribution.items()):
        click.echo(f"    {route}: {count}")
    click.echo("  Complexity:")
    for complexity, count in sorted(stats.complexity_distribution.items()):
        click.echo(f"    {complexity}: {count}")


# =============================================================================
# CLI Application
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="atelier")
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Atelier request router CLI.

    Classify canvas requests into connector, orchestrator or hybrid routes.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    try:
        settings = get_settings()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    log = setup_logging(settings)
    if debug:
        log.setLevel(logging.DEBUG)
        for handler in log.handlers:
            handler.setLevel(logging.DEBUG)


@cli.command()
@click.argument("requests", nargs=-1, required=True)
@click.option(
    "--context", "-c",
    "context_pairs",
    multiple=True,
    help="Context entry as KEY=VALUE (repeatable)"
)
@click.option("--json", "as_json", is_flag=True, help="Print one JSON object per request")
def classify(requests: tuple[str, ...], context_pairs: tuple[str, ...], as_json: bool) -> None:
    """Classify REQUESTS and print the routing decisions."""
    context = _parse_context(context_pairs)
    classifier = RequestClassifier()

    for request in requests:
        record = classifier.classify(request, context)
        if as_json:
            click.echo(json.dumps(record.to_dict(), ensure_ascii=False))
        else:
            _display_record(record)

    logger.debug("Classified %d request(s)", len(requests))


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print records and statistics as JSON")
def demo(as_json: bool) -> None:
    """Classify the built-in sample requests."""
    with RequestClassifier() as classifier:
        records = classifier.run_samples()
        stats = classifier.get_statistics()

    if as_json:
        payload = {
            "records": [record.to_dict() for record in records],
            "statistics": stats.to_dict(),
        }
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    click.echo()
    click.echo(colorize("ATELIER ROUTER DEMO", "bold"))
    click.echo(colorize("=" * 50, "cyan"))
    click.echo()
    for record in records:
        _display_record(record)
        click.echo()
    _display_statistics(stats)


@cli.command()
def config() -> None:
    """Show the active configuration."""
    click.echo(json.dumps(get_settings().to_dict(), indent=2))


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
