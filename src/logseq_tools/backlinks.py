"""Backlink discovery by scanning every page's content.

There is no persistent backlink index: each call fetches every page's block
tree, so the cost is one content fetch per page.
"""

from __future__ import annotations

import logging

from .parser import flatten_blocks, has_reference
from .provider import GraphProvider, fetch_page_blocks

log = logging.getLogger(__name__)


async def find_backlinks(provider: GraphProvider, page_name: str) -> list[str]:
    """Find pages whose content references page_name.

    Args:
        provider: Graph data provider.
        page_name: Target page; matched case-insensitively.

    Returns:
        Names of referencing pages, in provider iteration order.

    Raises:
        ProviderError: If the page list itself cannot be fetched.
    """
    pages = await provider.get_all_pages()
    target = page_name.strip().lower()
    backlinks: list[str] = []

    for page in pages:
        # Skip the page itself and pages without names
        if not page.name or page.name.lower() == target:
            continue

        blocks = await fetch_page_blocks(provider, page.name)
        if not blocks:
            continue

        if has_reference(flatten_blocks(blocks), page_name):
            backlinks.append(page.name)

    log.debug("Found %d backlinks for %r", len(backlinks), page_name)
    return backlinks
