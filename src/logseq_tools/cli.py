"""
lsq: CLI for a Logseq graph

Usage:
    lsq pages                      # List all pages
    lsq page "Project X"           # Read a page with its backlinks
    lsq journal "last week"        # Summarize journal entries
    lsq analyze                    # Graph analysis report
    lsq gaps --json                # Knowledge gaps as JSON
    lsq serve                      # Run the MCP server
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import click

from . import __version__ as LOGSEQ_TOOLS_VERSION
from . import core
from .config import (
    DEFAULT_DAYS_THRESHOLD,
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_MIN_REFERENCE_COUNT,
    DEFAULT_TIMEFRAME,
    ConfigurationError,
)
from .provider import GraphProvider, ProviderError


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def output(data, as_json: bool = False):
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str, ensure_ascii=False))
    else:
        click.echo(data)


def _run_report(make_report: Callable[[], Awaitable[str]]) -> None:
    try:
        core.get_provider()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    output(run_async(make_report()))


def _run_analysis(analyze: Callable[[GraphProvider], Awaitable[Any]]) -> None:
    """Run an analysis directly and print its structured result as JSON."""
    try:
        result = run_async(analyze(core.get_provider()))
    except (ConfigurationError, ProviderError) as e:
        raise click.ClickException(str(e)) from e
    output(result.model_dump(mode="json"), as_json=True)


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=LOGSEQ_TOOLS_VERSION, prog_name="lsq")
def cli():
    """lsq: CLI for a Logseq graph.

    Talks to the Logseq HTTP API server (Settings > Features > HTTP APIs
    server). Configure it with LOGSEQ_API_URL (or LOGSEQ_HOST/LOGSEQ_PORT)
    and LOGSEQ_TOKEN, a .env file, or a .logseq-tools.yaml file.

    \b
    Read:
      lsq pages                         # All pages as JSON
      lsq page "Project X"              # Page content + backlinks
      lsq search meeting                # Pages by name
      lsq backlinks "Project X"         # Pages referencing a page
      lsq journal "this week"           # Journal summary

    \b
    Analyze:
      lsq analyze --days=14             # Tasks, references, clusters
      lsq gaps --min-refs=2             # Missing/underdeveloped/orphaned pages
      lsq patterns "last 3 months"      # Journal topics, moods, habits
      lsq suggest --focus=python        # Connection suggestions
      lsq query "most referenced pages" # Structured query
    """
    from dotenv import load_dotenv

    from ._logging import configure_logging

    load_dotenv()
    configure_logging()


# ─────────────────────────────────────────────────────────────────────────────
# Read Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
def pages():
    """List all pages as JSON."""
    _run_report(core.get_all_pages)


@cli.command()
@click.argument("page_name")
def page(page_name: str):
    """Show a page's content and backlinks."""
    _run_report(lambda: core.get_page(page_name))


@cli.command()
@click.argument("query")
def search(query: str):
    """Find pages whose name contains QUERY."""
    _run_report(lambda: core.search_pages(query))


@cli.command()
@click.argument("page_name")
def backlinks(page_name: str):
    """List pages that reference PAGE_NAME."""
    _run_report(lambda: core.get_backlinks(page_name))


@cli.command()
@click.argument("date_range", default="this week")
def journal(date_range: str):
    """Summarize journal entries in DATE_RANGE.

    \b
    Examples:
      lsq journal today
      lsq journal "last month"
      lsq journal "year to date"
    """
    _run_report(lambda: core.get_journal_summary(date_range))


# ─────────────────────────────────────────────────────────────────────────────
# Analysis Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--days", "days_threshold", default=DEFAULT_DAYS_THRESHOLD, show_default=True, help="Recency window in days")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def analyze(days_threshold: int, as_json: bool):
    """Analyze tasks, references, recent updates and clusters."""
    if as_json:
        from .analysis import analyze_graph

        _run_analysis(lambda provider: analyze_graph(provider, days_threshold=days_threshold))
        return
    _run_report(lambda: core.analyze_graph(days_threshold=days_threshold))


@cli.command()
@click.option("--min-refs", "min_reference_count", default=DEFAULT_MIN_REFERENCE_COUNT, show_default=True, help="References needed to report a page")
@click.option("--orphans/--no-orphans", "include_orphans", default=True, help="Include orphaned pages")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def gaps(min_reference_count: int, include_orphans: bool, as_json: bool):
    """Find missing, underdeveloped and orphaned pages."""
    if as_json:
        from .analysis import find_knowledge_gaps

        _run_analysis(
            lambda provider: find_knowledge_gaps(
                provider,
                min_reference_count=min_reference_count,
                include_orphans=include_orphans,
            )
        )
        return
    _run_report(
        lambda: core.find_knowledge_gaps(
            min_reference_count=min_reference_count,
            include_orphans=include_orphans,
        )
    )


@cli.command()
@click.argument("timeframe", default=DEFAULT_TIMEFRAME)
@click.option("--mood/--no-mood", "include_mood", default=True, help="Analyze mood notes")
@click.option("--topics/--no-topics", "include_topics", default=True, help="Analyze topics")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def patterns(timeframe: str, include_mood: bool, include_topics: bool, as_json: bool):
    """Analyze journal patterns over TIMEFRAME (e.g. "last 3 months")."""
    if as_json:
        from .analysis import analyze_journal_patterns

        _run_analysis(
            lambda provider: analyze_journal_patterns(
                provider,
                timeframe=timeframe,
                include_mood=include_mood,
                include_topics=include_topics,
            )
        )
        return
    _run_report(
        lambda: core.analyze_journal_patterns(
            timeframe=timeframe,
            include_mood=include_mood,
            include_topics=include_topics,
        )
    )


@cli.command()
@click.option("--min-confidence", default=DEFAULT_MIN_CONFIDENCE, show_default=True, type=float, help="Minimum confidence score")
@click.option("--max", "max_suggestions", default=DEFAULT_MAX_SUGGESTIONS, show_default=True, help="Maximum suggestions")
@click.option("--focus", "focus_area", default=None, help="Topic or name to rank first")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def suggest(min_confidence: float, max_suggestions: int, focus_area: str | None, as_json: bool):
    """Suggest connections between pages."""
    if as_json:
        from .analysis import suggest_connections

        _run_analysis(
            lambda provider: suggest_connections(
                provider,
                min_confidence=min_confidence,
                max_suggestions=max_suggestions,
                focus_area=focus_area,
            )
        )
        return
    _run_report(
        lambda: core.suggest_connections(
            min_confidence=min_confidence,
            max_suggestions=max_suggestions,
            focus_area=focus_area,
        )
    )


@cli.command()
@click.argument("request")
@click.option("--show-query", "include_query", is_flag=True, help="Include the generated DataScript query")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def query(request: str, include_query: bool, as_json: bool):
    """Run a structured query described by REQUEST.

    \b
    Examples:
      lsq query "connections between pages"
      lsq query "todo tasks from the last 7 days" --show-query
      lsq query "most referenced pages"
    """
    if as_json:
        from .query import smart_query

        _run_analysis(lambda provider: smart_query(provider, request))
        return
    _run_report(lambda: core.smart_query(request, include_query=include_query))


@cli.command()
def serve():
    """Run the MCP server over stdio."""
    from .server import mcp

    mcp.run()


if __name__ == "__main__":
    cli()
