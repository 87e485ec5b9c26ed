"""Content writing helpers shared by the page and journal tools."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from .dates import format_journal_date
from .models import Block
from .parser import parse_hierarchical_content, strip_bullets, strip_title_heading
from .provider import GraphProvider, ProviderError

log = logging.getLogger(__name__)

JOURNAL_PROPERTIES = {"journal?": True}
CHILD_PLACEMENT = {"sibling": False}


class PageNotFoundError(ProviderError):
    """Raised when content is written to a page that does not exist."""

    pass


def journal_page_name(date: str | None = None, now: datetime | None = None) -> str:
    """Page name of the requested journal day, today's by default."""
    if date:
        return date
    return format_journal_date((now or datetime.now()).date())


async def page_exists(provider: GraphProvider, page_name: str) -> bool:
    # A failed lookup is treated as "does not exist yet"
    try:
        return await provider.get_page(page_name) is not None
    except ProviderError as e:
        log.debug("Page lookup for %r failed: %s", page_name, e)
        return False


async def ensure_journal_page(provider: GraphProvider, page_name: str) -> bool:
    """Create the journal page if needed. Returns True when it was created."""
    if await page_exists(provider, page_name):
        return False
    log.info("Creating journal page %r", page_name)
    await provider.create_page(page_name, dict(JOURNAL_PROPERTIES))
    return True


def clean_journal_content(content: str, page_name: str) -> str:
    """Trim content and drop a leading "# <page name>" title."""
    return strip_title_heading(content, page_name)


async def add_content_to_page(provider: GraphProvider, page_name: str, content: str) -> None:
    """Append content to an existing page.

    An empty page receives the content as one block; a page with blocks
    receives one block per non-blank line.

    Raises:
        PageNotFoundError: If the page does not exist.
    """
    if await provider.get_page(page_name) is None:
        raise PageNotFoundError(f"Page {page_name} does not exist")

    blocks = await provider.get_page_blocks(page_name)
    if not blocks:
        await provider.append_block(page_name, content)
        return

    for line in content.split("\n"):
        if line.strip():
            await provider.append_block(page_name, line)


async def insert_child_blocks(
    provider: GraphProvider, parent_uuid: str, blocks: Sequence[Block]
) -> None:
    """Insert a block tree under parent_uuid, depth-first."""
    for block in blocks:
        inserted = await provider.insert_block(parent_uuid, block.content or "", dict(CHILD_PLACEMENT))
        if inserted is not None and inserted.uuid and block.children:
            await insert_child_blocks(provider, inserted.uuid, block.children)


async def append_block_tree(
    provider: GraphProvider, page_name: str, blocks: Sequence[Block]
) -> str | None:
    """Append top-level blocks to a page and nest their children.

    Returns:
        The uuid of the first appended block, if the API reported one.
    """
    first_uuid = None
    for block in blocks:
        appended = await provider.append_block(page_name, block.content or "")
        uuid = appended.uuid if appended is not None else None
        if first_uuid is None:
            first_uuid = uuid
        if uuid and block.children:
            await insert_child_blocks(provider, uuid, block.children)
    return first_uuid


async def insert_formatted_content(
    provider: GraphProvider, page_name: str, content: str
) -> str | None:
    """Insert indented markdown as a nested block tree.

    Raises:
        PageNotFoundError: If the page does not exist.
        ProviderError: If the first block could not be created.
    """
    if await provider.get_page(page_name) is None:
        raise PageNotFoundError(f"Page {page_name} not found")

    clean = strip_bullets(content)
    blocks = parse_hierarchical_content(clean)
    if not blocks:
        appended = await provider.append_block(page_name, clean)
        return appended.uuid if appended is not None else None

    first = await provider.append_block(page_name, blocks[0].content or "")
    if first is None or not first.uuid:
        raise ProviderError("Failed to insert initial block")
    if blocks[0].children:
        await insert_child_blocks(provider, first.uuid, blocks[0].children)

    await append_block_tree(provider, page_name, blocks[1:])
    return first.uuid


PLACEHOLDER_CONTENT = "Journal entry from MCP"


async def append_preserving_formatting(provider: GraphProvider, page_name: str, content: str) -> None:
    """Append content as one block without Logseq re-splitting it.

    The content is inserted as the child of a temporary placeholder block,
    and the placeholder is removed afterwards.

    Raises:
        ProviderError: If the page uuid or the placeholder block is unavailable.
    """
    page = await provider.get_page(page_name)
    if page is None or not page.uuid:
        raise ProviderError(f"Could not get UUID for page {page_name}")

    placeholder = await provider.append_block(page_name, PLACEHOLDER_CONTENT)
    if placeholder is None or not placeholder.uuid:
        raise ProviderError("Failed to create initial block")

    try:
        await provider.insert_block(placeholder.uuid, content, {"properties": {}})
    finally:
        await provider.remove_block(placeholder.uuid)
