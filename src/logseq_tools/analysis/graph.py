"""Graph-wide analysis: tasks, reference frequency, recency and clusters."""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from ..config import CLUSTER_MIN_SIZE, DEFAULT_DAYS_THRESHOLD, FREQUENT_REFERENCE_MIN_COUNT
from ..dates import days_since
from ..models import FrequentReference, GraphAnalysis, RecentUpdate, TaskItem
from ..parser import extract_links, iter_blocks
from ..provider import GraphProvider, fetch_page_blocks

log = logging.getLogger(__name__)

TASK_MARKERS = ("todo", "later")
UNCHECKED_BOX = "- [ ]"
LEADING_BULLET = re.compile(r"^[-*] ")


def is_task(content: str) -> bool:
    """Check whether block text looks like an outstanding task."""
    lowered = content.lower()
    return any(marker in lowered for marker in TASK_MARKERS) or UNCHECKED_BOX in content


def find_clusters(
    connections: Mapping[str, Iterable[str]],
    min_size: int = CLUSTER_MIN_SIZE,
) -> list[list[str]]:
    """Group pages into connected components of the reference graph.

    Edges are treated as undirected. Each page lands in at most one
    component; components smaller than min_size are dropped.

    Args:
        connections: Mapping of source page -> referenced pages.
        min_size: Smallest component size to report.

    Returns:
        Components in discovery order, members in breadth-first order.
    """
    # Undirected adjacency with deterministic (insertion) ordering
    neighbors: dict[str, dict[str, None]] = {}
    for source, targets in connections.items():
        neighbors.setdefault(source, {})
        for target in targets:
            neighbors.setdefault(target, {})
            if target == source:
                continue
            neighbors[source][target] = None
            neighbors[target][source] = None

    visited: set[str] = set()
    clusters: list[list[str]] = []

    for start in neighbors:
        if start in visited:
            continue

        visited.add(start)
        component = [start]
        queue = deque([start])
        while queue:
            node = queue.popleft()
            for neighbor in neighbors[node]:
                # Mark before enqueueing so cycles terminate
                if neighbor not in visited:
                    visited.add(neighbor)
                    component.append(neighbor)
                    queue.append(neighbor)

        if len(component) >= min_size:
            clusters.append(component)

    return clusters


async def analyze_graph(
    provider: GraphProvider,
    days_threshold: int = DEFAULT_DAYS_THRESHOLD,
    now: datetime | None = None,
) -> GraphAnalysis:
    """Walk every page and aggregate references, recency and connectivity.

    Args:
        provider: Graph data provider.
        days_threshold: Recency window in days.
        now: Reference moment (defaults to the current local time).

    Raises:
        ProviderError: If the page list cannot be fetched.
    """
    now = now or datetime.now()
    pages = await provider.get_all_pages()

    tasks: list[TaskItem] = []
    reference_counts: dict[str, int] = {}
    connections: dict[str, dict[str, None]] = {}
    last_updates: dict[str, datetime | None] = {}
    recent_updates: list[RecentUpdate] = []

    for page in pages:
        if not page.name:
            continue

        # Invalid or missing dates stay None ("unknown")
        last_updates[page.name] = page.updated_at
        if page.updated_at and days_since(page.updated_at, now) <= days_threshold:
            recent_updates.append(RecentUpdate(page=page.name, date=page.updated_at))

        blocks = await fetch_page_blocks(provider, page.name)
        if not blocks:
            continue

        for block, _depth in iter_blocks(blocks):
            content = block.content or ""
            if is_task(content):
                tasks.append(
                    TaskItem(page=page.name, task=LEADING_BULLET.sub("", content, count=1).strip())
                )

            for linked_page in extract_links(content):
                reference_counts[linked_page] = reference_counts.get(linked_page, 0) + 1
                connections.setdefault(page.name, {})[linked_page] = None

    def last_update_of(name: str) -> datetime | None:
        if name in last_updates:
            return last_updates[name]
        return last_updates.get(name.lower())

    frequent: list[FrequentReference] = []
    for name, count in reference_counts.items():
        if count < FREQUENT_REFERENCE_MIN_COUNT:
            continue
        last_update = last_update_of(name)
        frequent.append(
            FrequentReference(
                page=name,
                count=count,
                last_update=last_update,
                days_since_update=days_since(last_update, now) if last_update else None,
            )
        )
    frequent.sort(key=lambda ref: ref.count, reverse=True)

    recent_updates.sort(key=lambda update: update.date, reverse=True)

    stale_cutoff = timedelta(days=days_threshold)
    stale = [ref for ref in frequent if ref.last_update and now - ref.last_update > stale_cutoff]

    clusters = find_clusters(connections)
    log.debug(
        "Analyzed %d pages: %d references, %d clusters",
        len(pages),
        sum(reference_counts.values()),
        len(clusters),
    )

    return GraphAnalysis(
        days_threshold=days_threshold,
        tasks=tasks,
        reference_counts=reference_counts,
        connections={source: list(targets) for source, targets in connections.items()},
        frequent_references=frequent,
        recent_updates=recent_updates,
        clusters=clusters,
        stale_frequent=stale,
    )
