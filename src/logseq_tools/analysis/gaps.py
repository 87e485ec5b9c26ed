"""Knowledge-gap detection: missing, underdeveloped and orphaned pages."""

from __future__ import annotations

import logging

from ..config import DEFAULT_MIN_REFERENCE_COUNT, UNDERDEVELOPED_MAX_CHARS
from ..models import (
    Block,
    KnowledgeGapReport,
    MissingPage,
    ReferenceEntry,
    UnderdevelopedPage,
)
from ..parser import extract_links, iter_blocks, top_level_text
from ..provider import GraphProvider, fetch_page_blocks

log = logging.getLogger(__name__)


def build_reference_table(
    page_names: list[str],
    contents: dict[str, list[Block] | None],
) -> dict[str, ReferenceEntry]:
    """Count references to every page name.

    Every existing page starts with count 0 and has_page=True. Each extracted
    reference increments its target's count (occurrences are not
    deduplicated) and records the source page once. Targets without a page
    get an entry with has_page=False.

    Keys are case-sensitive: "[[Topic]]" does not count towards a page
    named "topic".
    """
    references: dict[str, ReferenceEntry] = {
        name: ReferenceEntry(has_page=True) for name in page_names
    }

    for source, blocks in contents.items():
        for block, _depth in iter_blocks(blocks):
            for linked_page in extract_links(block.content or ""):
                entry = references.get(linked_page)
                if entry is None:
                    entry = references[linked_page] = ReferenceEntry(has_page=False)
                entry.count += 1
                if source not in entry.referenced_from:
                    entry.referenced_from.append(source)

    return references


def classify_gaps(
    references: dict[str, ReferenceEntry],
    contents: dict[str, list[Block] | None],
    min_reference_count: int = DEFAULT_MIN_REFERENCE_COUNT,
    include_orphans: bool = True,
) -> tuple[list[MissingPage], list[UnderdevelopedPage], list[str]]:
    """Split a reference table into missing, underdeveloped and orphaned pages."""
    missing: list[MissingPage] = []
    underdeveloped: list[UnderdevelopedPage] = []
    orphaned: list[str] = []

    for name, entry in references.items():
        if not entry.has_page:
            if entry.count >= min_reference_count:
                missing.append(
                    MissingPage(name=name, count=entry.count, referenced_from=entry.referenced_from)
                )
            continue

        # Pages without fetchable content are never underdeveloped
        blocks = contents.get(name)
        if blocks is not None and entry.count >= min_reference_count:
            text = top_level_text(blocks)
            if len(text) < UNDERDEVELOPED_MAX_CHARS:
                underdeveloped.append(
                    UnderdevelopedPage(name=name, content=text, reference_count=entry.count)
                )

        if include_orphans and entry.count == 0:
            orphaned.append(name)

    missing.sort(key=lambda page: page.count, reverse=True)
    underdeveloped.sort(key=lambda page: page.reference_count, reverse=True)
    orphaned.sort()
    return missing, underdeveloped, orphaned


async def find_knowledge_gaps(
    provider: GraphProvider,
    min_reference_count: int = DEFAULT_MIN_REFERENCE_COUNT,
    include_orphans: bool = True,
) -> KnowledgeGapReport:
    """Classify pages into missing, underdeveloped and orphaned.

    Args:
        provider: Graph data provider.
        min_reference_count: References needed before a page is reported as
            missing or underdeveloped.
        include_orphans: Whether to compute orphaned pages.

    Raises:
        ProviderError: If the page list cannot be fetched.
    """
    pages = await provider.get_all_pages()
    page_names = [page.name for page in pages if page.name]

    contents: dict[str, list[Block] | None] = {}
    for name in page_names:
        contents[name] = await fetch_page_blocks(provider, name)

    references = build_reference_table(page_names, contents)
    missing, underdeveloped, orphaned = classify_gaps(
        references,
        contents,
        min_reference_count=min_reference_count,
        include_orphans=include_orphans,
    )
    log.debug(
        "Knowledge gaps: %d missing, %d underdeveloped, %d orphaned",
        len(missing),
        len(underdeveloped),
        len(orphaned),
    )

    return KnowledgeGapReport(
        min_reference_count=min_reference_count,
        include_orphans=include_orphans,
        total_pages=len(pages),
        missing=missing,
        underdeveloped=underdeveloped,
        orphaned=orphaned,
    )
