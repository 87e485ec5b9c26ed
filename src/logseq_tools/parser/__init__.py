"""Block tree walking, reference extraction and markdown parsing."""

from .blocks import count_blocks, flatten_blocks, iter_blocks, top_level_text
from .links import (
    extract_links,
    extract_tags,
    extract_topics,
    has_reference,
    mentions,
)
from .markdown import parse_hierarchical_content, strip_bullets, strip_title_heading

__all__ = [
    "count_blocks",
    "flatten_blocks",
    "iter_blocks",
    "top_level_text",
    "extract_links",
    "extract_tags",
    "extract_topics",
    "has_reference",
    "mentions",
    "parse_hierarchical_content",
    "strip_bullets",
    "strip_title_heading",
]
