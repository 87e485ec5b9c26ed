"""Page reference and tag extraction."""

import re

# Pattern for [[page]] references - captures content between double brackets
PAGE_LINK_PATTERN = re.compile(r"\[\[([^\[\]]+)\]\]")

# Pattern for #tag references (a #[[multi word]] tag is caught by PAGE_LINK_PATTERN)
TAG_PATTERN = re.compile(r"#([\w-]+)")


def extract_links(text: str) -> list[str]:
    """Extract page references from text.

    Args:
        text: Block content or flattened page text.

    Returns:
        Referenced page names, trimmed, in order of appearance. Duplicates
        are kept so callers can count occurrences.
    """
    links = []
    for match in PAGE_LINK_PATTERN.findall(text):
        name = match.strip()
        if name:
            links.append(name)
    return links


def extract_tags(text: str) -> list[str]:
    """Extract #tags from text, without the leading '#'."""
    return TAG_PATTERN.findall(text)


def extract_topics(text: str) -> list[str]:
    """Distinct topics of a text: page references followed by tags."""
    return list(dict.fromkeys([*extract_links(text), *extract_tags(text)]))


def has_reference(text: str, page_name: str) -> bool:
    """Check whether text contains a [[reference]] to page_name, ignoring case."""
    pattern = re.compile(rf"\[\[\s*{re.escape(page_name.strip())}\s*\]\]", re.IGNORECASE)
    return bool(pattern.search(text))


def mentions(text: str, page_name: str) -> bool:
    """Check whether page_name occurs anywhere in text, ignoring case."""
    return page_name.lower() in text.lower()
