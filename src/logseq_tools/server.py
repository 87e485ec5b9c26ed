"""FastMCP server for logseq-tools.

This module provides MCP protocol wrappers around the core business logic.
All actual logic lives in core.py - this file just handles MCP serialization.

Tool names and parameter names are camelCase: existing clients call the
tools by these exact names.
"""

from fastmcp import FastMCP

from . import core
from .config import (
    DEFAULT_DAYS_THRESHOLD,
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_MIN_REFERENCE_COUNT,
    DEFAULT_TIMEFRAME,
)


mcp = FastMCP(
    name="Logseq Tools",
    instructions=(
        "Read, write and analyze a Logseq graph. Pages are referenced as [[page name]]. "
        "Journal pages are named like 'mar 14th, 2025'."
    ),
)


# ─────────────────────────────────────────────────────────────────────────────
# Reading pages and journals
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(name="getAllPages", description="List all pages in the Logseq graph as JSON.")
async def get_all_pages_tool() -> str:
    return await core.get_all_pages()


@mcp.tool(
    name="getPage",
    description="Get a page's content as indented bullets, followed by its backlinks.",
)
async def get_page_tool(pageName: str) -> str:
    """Retrieve a page by name."""
    return await core.get_page(pageName)


@mcp.tool(
    name="getJournalSummary",
    description=(
        'Summarize journal entries for a date range like "today", "this week", '
        '"last month", "this year" or "year to date".'
    ),
)
async def get_journal_summary_tool(dateRange: str) -> str:
    return await core.get_journal_summary(dateRange)


@mcp.tool(name="searchPages", description="Search pages whose name contains the query.")
async def search_pages_tool(query: str) -> str:
    return await core.search_pages(query)


@mcp.tool(name="getBacklinks", description="List pages that reference the given page.")
async def get_backlinks_tool(pageName: str) -> str:
    return await core.get_backlinks(pageName)


@mcp.tool(
    name="getBlock",
    description="Get a block and its children by UUID (with or without double parentheses).",
)
async def get_block_tool(blockId: str, includeChildren: bool = True) -> str:
    return await core.get_block(blockId, include_children=includeChildren)


# ─────────────────────────────────────────────────────────────────────────────
# Writing content
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="createPage",
    description="Create a new page with optional content. Journal dates create journal pages.",
)
async def create_page_tool(pageName: str, content: str | None = None) -> str:
    return await core.create_page(pageName, content)


@mcp.tool(
    name="addJournalEntry",
    description="Add content to today's journal or a given date (e.g. 'mar 14th, 2025').",
)
async def add_journal_entry_tool(
    content: str,
    date: str | None = None,
    asBlock: bool = True,
) -> str:
    """Add a journal entry as a single block, or one block per line."""
    return await core.add_journal_entry(content, date=date, as_block=asBlock)


@mcp.tool(
    name="addJournalBlock",
    description="Add content as a single block to a journal page, preserving its formatting.",
)
async def add_journal_block_tool(
    content: str,
    date: str | None = None,
    preserveFormatting: bool = True,
) -> str:
    return await core.add_journal_block(content, date=date, preserve_formatting=preserveFormatting)


@mcp.tool(
    name="addJournalContent",
    description="Add indented markdown to a journal page as properly nested blocks.",
)
async def add_journal_content_tool(content: str, date: str | None = None) -> str:
    return await core.add_journal_content(content, date=date)


@mcp.tool(
    name="addNoteContent",
    description="Add indented markdown to any page as nested blocks, creating the page if needed.",
)
async def add_note_content_tool(
    pageName: str,
    content: str,
    createIfNotExist: bool = True,
) -> str:
    return await core.add_note_content(pageName, content, create_if_not_exist=createIfNotExist)


# ─────────────────────────────────────────────────────────────────────────────
# Analyses
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="analyzeGraph",
    description=(
        "Analyze the graph for outstanding tasks, frequently referenced pages, "
        "recent updates and clusters of related pages."
    ),
)
async def analyze_graph_tool(daysThreshold: int = DEFAULT_DAYS_THRESHOLD) -> str:
    """Analyze the whole graph; daysThreshold is the recency window in days."""
    return await core.analyze_graph(days_threshold=daysThreshold)


@mcp.tool(
    name="findKnowledgeGaps",
    description="Find missing, underdeveloped and orphaned pages.",
)
async def find_knowledge_gaps_tool(
    minReferenceCount: int = DEFAULT_MIN_REFERENCE_COUNT,
    includeOrphans: bool = True,
) -> str:
    return await core.find_knowledge_gaps(
        min_reference_count=minReferenceCount,
        include_orphans=includeOrphans,
    )


@mcp.tool(
    name="analyzeJournalPatterns",
    description=(
        'Analyze journals over a timeframe ("last 30 days", "last 3 months", "this year") '
        "for topics, moods, habits and project progress."
    ),
)
async def analyze_journal_patterns_tool(
    timeframe: str = DEFAULT_TIMEFRAME,
    includeMood: bool = True,
    includeTopics: bool = True,
) -> str:
    return await core.analyze_journal_patterns(
        timeframe=timeframe,
        include_mood=includeMood,
        include_topics=includeTopics,
    )


@mcp.tool(
    name="smartQuery",
    description=(
        "Answer a natural-language request about the graph (connections, clusters, "
        "task progress, concept evolution, recent pages, most referenced pages) "
        "with a generated DataScript query."
    ),
)
async def smart_query_tool(
    request: str,
    includeQuery: bool = False,
    advanced: bool = False,
) -> str:
    return await core.smart_query(request, include_query=includeQuery, advanced=advanced)


@mcp.tool(
    name="suggestConnections",
    description="Suggest new links, synthesis pages and exploration paths between pages.",
)
async def suggest_connections_tool(
    minConfidence: float = DEFAULT_MIN_CONFIDENCE,
    maxSuggestions: int = DEFAULT_MAX_SUGGESTIONS,
    focusArea: str | None = None,
) -> str:
    return await core.suggest_connections(
        min_confidence=minConfidence,
        max_suggestions=maxSuggestions,
        focus_area=focusArea,
    )


def main():
    """Run the MCP server."""
    import logging

    from dotenv import load_dotenv

    from ._logging import configure_logging

    load_dotenv()
    configure_logging()
    log = logging.getLogger(__name__)
    log.info("Starting Logseq Tools MCP server")

    mcp.run()


if __name__ == "__main__":
    main()
