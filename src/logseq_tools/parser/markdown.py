"""Parse indented markdown into a block tree for writing to Logseq."""

import re

from ..models import Block

# Leading "- " bullet, preserving indentation
BULLET_PATTERN = re.compile(r"^(\s*)-\s+")

# Two spaces per level of nesting
INDENT_WIDTH = 2


def strip_bullets(content: str) -> str:
    """Remove leading bullet markers while preserving indentation.

    Logseq adds its own bullets; keeping ours would double them.
    """
    return "\n".join(BULLET_PATTERN.sub(r"\1", line) for line in content.split("\n"))


def strip_title_heading(content: str, page_name: str) -> str:
    """Remove a "# <page name>" heading line so the title is not duplicated."""
    pattern = re.compile(rf"^#\s+{re.escape(page_name)}\s*$", re.IGNORECASE | re.MULTILINE)
    return pattern.sub("", content.strip(), count=1).strip()


def parse_hierarchical_content(content: str) -> list[Block]:
    """Build a block tree from indentation.

    Blank lines are skipped. Each line becomes one block (trimmed); a line
    indented deeper than the previous one becomes its child, and a line at a
    shallower or equal level attaches to the nearest shallower ancestor.

    Args:
        content: Text with two spaces of indentation per nesting level.

    Returns:
        Top-level blocks of the parsed tree.
    """
    roots: list[Block] = []
    # (block, level) for the current chain of open ancestors
    stack: list[tuple[Block, int]] = []

    for line in content.split("\n"):
        if not line.strip():
            continue

        indent = len(line) - len(line.lstrip())
        level = indent // INDENT_WIDTH
        block = Block(content=line.strip())

        while stack and stack[-1][1] >= level:
            stack.pop()

        if level == 0 or not stack:
            roots.append(block)
        else:
            stack[-1][0].children.append(block)
        stack.append((block, level))

    return roots
