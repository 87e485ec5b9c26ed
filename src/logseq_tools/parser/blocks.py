"""Block tree traversal.

Pages are trees of blocks. Every text-processing pass walks them depth-first,
pre-order, skipping blocks without content while still visiting their
children.
"""

from collections.abc import Iterator, Sequence

from ..models import Block

INDENT = "  "
BULLET = "- "


def iter_blocks(blocks: Sequence[Block] | None) -> Iterator[tuple[Block, int]]:
    """Yield (block, depth) for every block with content.

    A content-less block is not yielded, but its children are, at their own
    depth (parent depth + 1).
    """
    stack: list[tuple[Block, int]] = [(block, 0) for block in reversed(blocks or [])]
    while stack:
        block, depth = stack.pop()
        if block.content:
            yield block, depth
        for child in reversed(block.children):
            stack.append((child, depth + 1))


def flatten_blocks(blocks: Sequence[Block] | None) -> str:
    """Render a block tree as indented bullet lines.

    Each block becomes one line: two spaces per level of depth, a "- "
    bullet, then the content. An empty tree yields an empty string.
    """
    return "".join(
        f"{INDENT * depth}{BULLET}{block.content}\n" for block, depth in iter_blocks(blocks)
    )


def top_level_text(blocks: Sequence[Block] | None) -> str:
    """Join the contents of the top-level blocks with single spaces."""
    return " ".join(block.content or "" for block in blocks or [])


def count_blocks(blocks: Sequence[Block]) -> int:
    """Count all blocks in a tree, including nested children."""
    return sum(1 + count_blocks(block.children) for block in blocks)
