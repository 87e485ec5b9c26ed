"""Connection suggestions from shared topics and name mentions.

Three families of suggestions are produced:

- potential connections between pages that share topics but do not link
  to each other,
- synthesis opportunities for topics discussed by several pages that have
  no page of their own,
- exploration suggestions for pages related to recently updated ones.

Scores are heuristics and are not clamped to [0, 1].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import (
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_MIN_CONFIDENCE,
    EXPLORATION_BASE_CONFIDENCE,
    EXPLORATION_MIN_SHARED_TOPICS,
    EXPLORATION_RECENT_PAGES,
    EXPLORATION_TOPIC_CONFIDENCE,
    NAME_MENTION_WEIGHT,
    REASON_TOPIC_LIMIT,
    SYNTHESIS_BASE_CONFIDENCE,
    SYNTHESIS_MIN_PAGES,
    SYNTHESIS_PAGE_CONFIDENCE,
    TOPIC_SIMILARITY_WEIGHT,
)
from ..models import ConnectionReport, Page, Suggestion
from ..parser import extract_links, extract_topics, iter_blocks, mentions
from ..provider import GraphProvider, fetch_page_blocks

log = logging.getLogger(__name__)


@dataclass
class PageProfile:
    """Text, topics and outgoing links of one page."""

    name: str
    text: str = ""
    topics: dict[str, None] = field(default_factory=dict)  # Ordered set
    links: set[str] = field(default_factory=set)  # Lowercased link targets


def build_profile(name: str, blocks) -> PageProfile:
    profile = PageProfile(name=name)
    lines = []
    for block, _depth in iter_blocks(blocks):
        content = block.content or ""
        lines.append(content)
        links = extract_links(content)
        for topic in extract_topics(content):
            profile.topics[topic] = None
        profile.links.update(link.lower() for link in links)
    profile.text = "\n".join(lines)
    return profile


def shared_topics(first: PageProfile, second: PageProfile) -> list[str]:
    return [topic for topic in first.topics if topic in second.topics]


def similarity(first: PageProfile, second: PageProfile) -> float:
    """Weighted shared-topic count plus a bonus per direction of name mention."""
    score = TOPIC_SIMILARITY_WEIGHT * len(shared_topics(first, second))
    if mentions(first.text, second.name):
        score += NAME_MENTION_WEIGHT
    if mentions(second.text, first.name):
        score += NAME_MENTION_WEIGHT
    return score


def _format_reason_topics(topics: list[str]) -> str:
    listed = ", ".join(topics[:REASON_TOPIC_LIMIT])
    return f"{listed}..." if len(topics) > REASON_TOPIC_LIMIT else listed


def potential_connections(
    profiles: dict[str, PageProfile], min_confidence: float
) -> list[Suggestion]:
    """Pairs of similar pages with no link between them, once per unordered pair."""
    suggestions: list[Suggestion] = []
    seen: set[frozenset[str]] = set()

    for name, profile in profiles.items():
        scored = []
        for other_name, other in profiles.items():
            if other_name == name:
                continue
            score = similarity(profile, other)
            if score > 0:
                scored.append((other, score))
        scored.sort(key=lambda item: item[1], reverse=True)

        for other, score in scored:
            pair = frozenset((name, other.name))
            if pair in seen or score < min_confidence:
                continue
            if other.name.lower() in profile.links or name.lower() in other.links:
                continue
            topics = shared_topics(profile, other)
            if not topics:
                continue

            seen.add(pair)
            suggestions.append(
                Suggestion(
                    type="potential_connection",
                    pages=[name, other.name],
                    reason=f"Share {len(topics)} topics: {_format_reason_topics(topics)}",
                    confidence=score,
                )
            )

    return suggestions


def topic_index(profiles: dict[str, PageProfile]) -> dict[str, list[str]]:
    """Map each topic to the pages that mention it, in page order."""
    index: dict[str, list[str]] = {}
    for name, profile in profiles.items():
        for topic in profile.topics:
            index.setdefault(topic, []).append(name)
    return index


def synthesis_opportunities(
    index: dict[str, list[str]], known_pages: set[str]
) -> list[Suggestion]:
    suggestions = []
    for topic, related in index.items():
        if len(related) < SYNTHESIS_MIN_PAGES or topic.lower() in known_pages:
            continue
        suggestions.append(
            Suggestion(
                type="synthesis_opportunity",
                pages=list(related),
                topic=topic,
                reason=f'Multiple pages discussing "{topic}" - consider creating a synthesis page',
                confidence=SYNTHESIS_BASE_CONFIDENCE + SYNTHESIS_PAGE_CONFIDENCE * len(related),
            )
        )
    return suggestions


def recent_page_names(pages: list[Page], limit: int = EXPLORATION_RECENT_PAGES) -> list[str]:
    dated = [page for page in pages if page.name and page.updated_at]
    dated.sort(key=lambda page: page.updated_at, reverse=True)
    return [page.name for page in dated[:limit]]


def exploration_suggestions(
    profiles: dict[str, PageProfile],
    index: dict[str, list[str]],
    recent: list[str],
) -> list[Suggestion]:
    """Pages outside the recent set that share topics with recent pages."""
    recent_set = set(recent)
    recent_topics: dict[str, None] = {}
    for name in recent:
        if name in profiles:
            recent_topics.update(profiles[name].topics)

    candidates: dict[str, None] = {}
    for topic in recent_topics:
        for name in index.get(topic, []):
            if name not in recent_set:
                candidates[name] = None

    suggestions = []
    for name in candidates:
        relevant = [topic for topic in profiles[name].topics if topic in recent_topics]
        if len(relevant) < EXPLORATION_MIN_SHARED_TOPICS:
            continue
        suggestions.append(
            Suggestion(
                type="exploration_suggestion",
                pages=[name],
                reason=f"Related to your recent interests: {', '.join(relevant[:REASON_TOPIC_LIMIT])}",
                confidence=EXPLORATION_BASE_CONFIDENCE + EXPLORATION_TOPIC_CONFIDENCE * len(relevant),
            )
        )
    return suggestions


def rank_suggestions(
    suggestions: list[Suggestion],
    profiles: dict[str, PageProfile],
    min_confidence: float,
    focus_area: str | None = None,
) -> list[Suggestion]:
    """Drop low-confidence suggestions, sort by confidence, then by focus relevance."""
    ranked = [s for s in suggestions if s.confidence >= min_confidence]
    ranked.sort(key=lambda s: s.confidence, reverse=True)

    if focus_area:
        focus = focus_area.lower()

        def is_relevant(suggestion: Suggestion) -> bool:
            return any(
                (name in profiles and focus_area in profiles[name].topics) or focus in name.lower()
                for name in suggestion.pages
            )

        # Stable: confidence order is kept within each relevance group
        ranked.sort(key=is_relevant, reverse=True)

    return ranked


async def suggest_connections(
    provider: GraphProvider,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    focus_area: str | None = None,
) -> ConnectionReport:
    """Suggest links, synthesis pages and exploration paths.

    Args:
        provider: Graph data provider.
        min_confidence: Suggestions scoring below this are dropped.
        max_suggestions: Number of suggestions kept after ranking.
        focus_area: Topic or name fragment to rank first.

    Raises:
        ProviderError: If the page list cannot be fetched.
    """
    pages = await provider.get_all_pages()

    profiles: dict[str, PageProfile] = {}
    for page in pages:
        if not page.name:
            continue
        blocks = await fetch_page_blocks(provider, page.name)
        if not blocks:
            continue
        profiles[page.name] = build_profile(page.name, blocks)

    known_pages = {page.name.lower() for page in pages if page.name}
    index = topic_index(profiles)

    suggestions = [
        *potential_connections(profiles, min_confidence),
        *synthesis_opportunities(index, known_pages),
        *exploration_suggestions(profiles, index, recent_page_names(pages)),
    ]
    ranked = rank_suggestions(suggestions, profiles, min_confidence, focus_area)
    log.debug("Generated %d suggestions (%d above threshold)", len(suggestions), len(ranked))

    return ConnectionReport(
        focus_area=focus_area,
        suggestions=ranked[: max(max_suggestions, 0)],
        suggestions_generated=len(ranked),
        total_pages_analyzed=len(profiles),
        unique_topics=len(index),
    )
