"""Core business logic for logseq-tools.

Each tool function takes plain arguments, talks to the graph through the
provider and returns the rendered text report. Both the MCP server and the
CLI are thin wrappers around this module.

Design principles:
- All functions are async; provider calls are awaited one at a time
- Provider failures become "Error <doing X>: <message>" reports, never
  exceptions, so one failing tool never takes the server down
- Lazy initialization of the provider (the HTTP client)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime

from .analysis import gaps, graph, journal, suggestions
from .backlinks import find_backlinks
from .config import (
    ConfigurationError,
    DEFAULT_DAYS_THRESHOLD,
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_MIN_REFERENCE_COUNT,
    DEFAULT_TIMEFRAME,
)
from .dates import is_journal_date, journal_day_to_date, parse_date_range
from .editor import (
    JOURNAL_PROPERTIES,
    add_content_to_page,
    append_block_tree,
    append_preserving_formatting,
    clean_journal_content,
    ensure_journal_page,
    insert_formatted_content,
    journal_page_name,
    page_exists,
)
from .models import JournalSummary, JournalSummaryEntry
from .parser import count_blocks, extract_links, flatten_blocks, parse_hierarchical_content, strip_bullets
from .provider import GraphProvider, LogseqClient, ProviderError, fetch_page_blocks
from .query import smart_query as run_smart_query
from .reports import (
    render_backlinks,
    render_block,
    render_connection_report,
    render_graph_analysis,
    render_journal_patterns,
    render_journal_summary,
    render_knowledge_gaps,
    render_page,
    render_query_outcome,
    render_search,
)

log = logging.getLogger(__name__)

# Failures reported to the caller as "Error <doing>: <message>"
TOOL_ERRORS = (ProviderError, ConfigurationError)

# "((uuid))" block references are accepted as ids
BLOCK_REF_PATTERN = re.compile(r"^\(\(|\)\)$")


# ─────────────────────────────────────────────────────────────────────────────
# Module-level state (lazy initialization)
# ─────────────────────────────────────────────────────────────────────────────

_provider: GraphProvider | None = None


def get_provider() -> GraphProvider:
    """Get the graph provider, creating the HTTP client on first use.

    Raises:
        ConfigurationError: If the connection settings are unusable.
    """
    global _provider
    if _provider is None:
        _provider = LogseqClient()
    return _provider


def _error(doing: str, error: Exception) -> str:
    log.warning("Error %s: %s", doing, error)
    return f"Error {doing}: {error}"


# ─────────────────────────────────────────────────────────────────────────────
# Reading pages and journals
# ─────────────────────────────────────────────────────────────────────────────


async def get_all_pages() -> str:
    """Return every page as a JSON array."""
    try:
        pages = await get_provider().get_all_pages()
    except TOOL_ERRORS as e:
        return _error("fetching Logseq pages", e)
    return json.dumps([page.model_dump(mode="json") for page in pages], ensure_ascii=False)


async def get_page(page_name: str) -> str:
    """Return a page's content as indented bullets, followed by its backlinks."""
    try:
        provider = get_provider()
        blocks = await fetch_page_blocks(provider, page_name)
        if not blocks:
            return f'Page "{page_name}" not found or has no content.'
        backlinks = await find_backlinks(provider, page_name)
    except TOOL_ERRORS as e:
        return _error("retrieving page content", e)
    return render_page(page_name, flatten_blocks(blocks), backlinks)


async def build_journal_summary(
    provider: GraphProvider,
    date_range: str,
    now: datetime | None = None,
) -> JournalSummary:
    """Collect journal entries in a range and the pages they reference.

    Journal pages are selected by their journal day. Every distinct page
    referenced from an entry is fetched once and included with its content.

    Raises:
        ProviderError: If the page list cannot be fetched.
    """
    window = parse_date_range(date_range, now=now)
    first_day, last_day = window.start.date(), window.end.date()
    pages = await provider.get_all_pages()

    in_range = []
    for page in pages:
        if not page.is_journal or not page.name:
            continue
        day = journal_day_to_date(page.journal_day)
        if day is not None and first_day <= day <= last_day:
            in_range.append((day, page))
    in_range.sort(key=lambda item: item[0])

    summary = JournalSummary(
        title=window.title, date_range=date_range, start=window.start, end=window.end
    )
    fetched: set[str] = set()

    for _day, page in in_range:
        blocks = await fetch_page_blocks(provider, page.name)
        if not blocks:
            continue

        text = flatten_blocks(blocks)
        summary.entries.append(JournalSummaryEntry(date=page.display_name, text=text))

        for name in extract_links(text):
            summary.occurrences[name] = summary.occurrences.get(name, 0) + 1
            if name in fetched:
                continue
            fetched.add(name)
            linked = await fetch_page_blocks(provider, name)
            if linked:
                summary.referenced_pages[name] = flatten_blocks(linked)

    return summary


async def get_journal_summary(date_range: str, now: datetime | None = None) -> str:
    """Summarize journal entries for a natural-language date range."""
    try:
        summary = await build_journal_summary(get_provider(), date_range, now=now)
    except TOOL_ERRORS as e:
        return _error("generating journal summary", e)
    return render_journal_summary(summary)


async def search_pages(query: str) -> str:
    """List pages whose name contains the query (case-insensitive)."""
    try:
        pages = await get_provider().get_all_pages()
    except TOOL_ERRORS as e:
        return _error("searching pages", e)
    needle = query.lower()
    return render_search(query, [page.name for page in pages if page.name and needle in page.name.lower()])


async def get_backlinks(page_name: str) -> str:
    """List pages that reference page_name."""
    try:
        backlinks = await find_backlinks(get_provider(), page_name)
    except TOOL_ERRORS as e:
        return _error("fetching backlinks", e)
    return render_backlinks(page_name, backlinks)


async def get_block(block_id: str, include_children: bool = True) -> str:
    """Show a block's metadata and its rendered subtree."""
    clean_id = BLOCK_REF_PATTERN.sub("", block_id)
    try:
        block = await get_provider().get_block(clean_id, include_children)
    except TOOL_ERRORS as e:
        return (
            _error("fetching block", e)
            + f"\nTry using the blockId without double parentheses: {clean_id}"
        )
    if block is None:
        return f"Block with ID {clean_id} not found"
    return render_block(clean_id, block, include_children)


# ─────────────────────────────────────────────────────────────────────────────
# Writing content
# ─────────────────────────────────────────────────────────────────────────────


async def create_page(page_name: str, content: str | None = None) -> str:
    """Create a page (journal pages are detected by name) with optional content."""
    try:
        provider = get_provider()
        if is_journal_date(page_name):
            if await page_exists(provider, page_name):
                if content:
                    await add_content_to_page(provider, page_name, content)
                return f'Journal page "{page_name}" updated successfully.'

            await provider.create_page(page_name, dict(JOURNAL_PROPERTIES))
            if content:
                await add_content_to_page(provider, page_name, content)
            return f'Journal page "{page_name}" successfully created.'

        await provider.create_page(page_name, {})
        if content:
            await add_content_to_page(provider, page_name, content)
        return f'Page "{page_name}" successfully created.'
    except TOOL_ERRORS as e:
        return _error(f'creating page "{page_name}"', e)


async def add_journal_entry(content: str, date: str | None = None, as_block: bool = True) -> str:
    """Add content to a journal page, as one block or one block per line."""
    page_name = journal_page_name(date)
    try:
        provider = get_provider()
        await ensure_journal_page(provider, page_name)
        if as_block:
            await provider.append_block(page_name, clean_journal_content(content, page_name))
            return f'Added journal entry to "{page_name}" as a single block.'

        await add_content_to_page(provider, page_name, content)
        return f'Added journal entry to "{page_name}" as multiple blocks.'
    except TOOL_ERRORS as e:
        return _error("adding journal entry", e)


async def add_journal_block(
    content: str, date: str | None = None, preserve_formatting: bool = True
) -> str:
    """Add content to a journal page as a single block."""
    page_name = journal_page_name(date)
    try:
        provider = get_provider()
        await ensure_journal_page(provider, page_name)
        clean = clean_journal_content(content, page_name)
        if preserve_formatting:
            await append_preserving_formatting(provider, page_name, clean)
            return f'Added journal entry to "{page_name}" as a properly formatted block.'

        await provider.append_block(page_name, clean)
        return f'Added journal entry to "{page_name}" as a basic block.'
    except TOOL_ERRORS as e:
        return _error("adding journal block", e)


async def add_journal_content(content: str, date: str | None = None) -> str:
    """Add indented markdown to a journal page as nested blocks."""
    page_name = journal_page_name(date)
    try:
        provider = get_provider()
        await ensure_journal_page(provider, page_name)
        await insert_formatted_content(provider, page_name, clean_journal_content(content, page_name))
    except TOOL_ERRORS as e:
        return _error("adding journal content", e)
    return f'Successfully added formatted content to journal page "{page_name}".'


async def add_note_content(page_name: str, content: str, create_if_not_exist: bool = True) -> str:
    """Add indented markdown to any page, creating the page if allowed."""
    try:
        provider = get_provider()
        if await provider.get_page(page_name) is None:
            if not create_if_not_exist:
                return f'Page "{page_name}" does not exist and createIfNotExist is false'
            await provider.create_page(page_name, {}, {"createFirstBlock": True})

        blocks = parse_hierarchical_content(strip_bullets(content))
        total = count_blocks(blocks)

        if len(blocks) == 1 and not blocks[0].children:
            await provider.append_block(page_name, blocks[0].content or "")
        elif blocks:
            await append_block_tree(provider, page_name, blocks)
    except TOOL_ERRORS as e:
        return _error("adding content", e)

    plural = "" if total == 1 else "s"
    return f'Content added to "{page_name}" successfully ({total} block{plural})'


# ─────────────────────────────────────────────────────────────────────────────
# Analyses
# ─────────────────────────────────────────────────────────────────────────────


async def analyze_graph(days_threshold: int = DEFAULT_DAYS_THRESHOLD) -> str:
    """Report tasks, frequent references, recent updates and clusters."""
    try:
        analysis = await graph.analyze_graph(get_provider(), days_threshold=days_threshold)
    except TOOL_ERRORS as e:
        return _error("analyzing graph", e)
    return render_graph_analysis(analysis)


async def find_knowledge_gaps(
    min_reference_count: int = DEFAULT_MIN_REFERENCE_COUNT,
    include_orphans: bool = True,
) -> str:
    """Report missing, underdeveloped and orphaned pages."""
    try:
        report = await gaps.find_knowledge_gaps(
            get_provider(),
            min_reference_count=min_reference_count,
            include_orphans=include_orphans,
        )
    except TOOL_ERRORS as e:
        return _error("analyzing knowledge gaps", e)
    return render_knowledge_gaps(report)


async def analyze_journal_patterns(
    timeframe: str = DEFAULT_TIMEFRAME,
    include_mood: bool = True,
    include_topics: bool = True,
) -> str:
    """Report topic trends, moods, habits and project progress in journals."""
    try:
        report = await journal.analyze_journal_patterns(
            get_provider(),
            timeframe=timeframe,
            include_mood=include_mood,
            include_topics=include_topics,
        )
    except TOOL_ERRORS as e:
        return _error("analyzing journal patterns", e)
    return render_journal_patterns(report)


async def suggest_connections(
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    focus_area: str | None = None,
) -> str:
    """Report suggested links, synthesis pages and exploration paths."""
    try:
        report = await suggestions.suggest_connections(
            get_provider(),
            min_confidence=min_confidence,
            max_suggestions=max_suggestions,
            focus_area=focus_area,
        )
    except TOOL_ERRORS as e:
        return _error("generating suggestions", e)
    return render_connection_report(report)


async def smart_query(request: str, include_query: bool = False, advanced: bool = False) -> str:
    """Run the structured query matching a free-text request.

    `advanced` is accepted for compatibility and currently has no effect.
    """
    try:
        outcome = await run_smart_query(get_provider(), request)
    except TOOL_ERRORS as e:
        return _error("executing query", e)
    return render_query_outcome(outcome, include_query=include_query)
