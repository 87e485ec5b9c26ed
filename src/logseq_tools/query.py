"""Structured-query dispatch from free-text requests.

A request is matched against an ordered table of intent routes by keyword
containment (case-insensitive). The first matching route runs its DataScript
query and post-processes the rows into insights. This is a heuristic router,
not a parser: an ambiguous request such as "tasks connected to X" always
takes the first matching route (connections).
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from .config import QUERY_HUB_LIMIT, RECENT_QUERY_DAYS
from .dates import format_journal_date, journal_day_to_date
from .models import InsightSection, Insights, QueryOutcome
from .provider import GraphProvider

log = logging.getLogger(__name__)


# =============================================================================
# Query templates (DataScript / Datalog)
# =============================================================================

QUERY_TEMPLATES = {
    "recentlyModified": """
[:find (pull ?p [*])
 :where
 [?p :block/updated-at ?t]
 [(> ?t ?start-time)]]
""",
    "mostReferenced": """
[:find ?name (count ?r)
 :where
 [?b :block/refs ?r]
 [?r :block/name ?name]]
""",
    "propertyValues": """
[:find ?page ?value
 :where
 [?p :block/properties ?props]
 [?p :block/name ?page]
 [(get ?props ?prop) ?value]]
""",
    "blocksByTag": """
[:find (pull ?b [*])
 :where
 [?b :block/refs ?r]
 [?r :block/name ?tag]]
""",
    "pageConnections": """
[:find ?from-name ?to-name (count ?b)
 :where
 [?b :block/refs ?to]
 [?b :block/page ?from]
 [?from :block/name ?from-name]
 [?to :block/name ?to-name]
 [(not= ?from ?to)]]
""",
    "contentClusters": """
[:find ?name (count ?refs) (pull ?p [:block/properties])
 :where
 [?p :block/name ?name]
 [?b :block/refs ?p]
 [?b :block/content ?content]]
""",
    "taskProgress": r"""
[:find ?page ?content ?state
 :where
 [?b :block/content ?content]
 [?b :block/page ?p]
 [?p :block/name ?page]
 [(re-find #"TODO|DOING|DONE|NOW" ?content)]
 [(re-find #"\[\[([^\]]+)\]\]" ?content) ?state]]
""",
    "journalInsights": """
[:find ?date ?content (count ?refs)
 :where
 [?p :block/journal? true]
 [?p :block/journal-day ?date]
 [?b :block/page ?p]
 [?b :block/content ?content]
 [?b :block/refs ?refs]]
""",
    "conceptEvolution": """
[:find ?name ?t (count ?refs)
 :where
 [?p :block/name ?name]
 [?b :block/refs ?p]
 [?b :block/created-at ?t]
 [(not ?p :block/journal?)]]
""",
    "taskQueryWithTime": """
[:find ?page-name ?content ?marker ?date
 :where
 [?b :block/marker ?marker]
 [(contains? #{"TODO" "LATER" "NOW" "DOING"} ?marker)]
 [?b :block/content ?content]
 [?b :block/page ?p]
 [?p :block/name ?page-name]
 [?b :block/updated-at ?t]
 [(> ?t ?start-time)]
 [?p :block/journal-day ?date]]
""",
}

START_TIME_PLACEHOLDER = "?start-time"
DAYS_PATTERN = re.compile(r"(\d+)\s+days?")


def with_start_time(template: str, start: datetime) -> str:
    """Substitute the first ?start-time placeholder with epoch milliseconds."""
    return template.replace(START_TIME_PLACEHOLDER, str(int(start.timestamp() * 1000)), 1)


def _days_before(now: datetime, days: int) -> datetime:
    """Start of a day-count window, clamped to the Unix epoch."""
    epoch = datetime.fromtimestamp(0)
    try:
        return max(now - timedelta(days=days), epoch)
    except OverflowError:
        return epoch


# =============================================================================
# Row helpers
# =============================================================================


def _cell(row: Any, index: int) -> Any:
    if isinstance(row, (list, tuple)) and len(row) > index:
        return row[index]
    return None


def _number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def to_json(value: Any) -> str:
    """Compact JSON rendering used for properties and opaque rows."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


# =============================================================================
# Route handlers
# =============================================================================


async def _page_connections(provider: GraphProvider, request: str, now: datetime) -> QueryOutcome:
    query = QUERY_TEMPLATES["pageConnections"]
    rows = await provider.query(query)
    rows.sort(key=lambda row: _number(_cell(row, 2)), reverse=True)

    connections: dict[Any, dict[Any, None]] = {}
    for row in rows:
        source, target = _cell(row, 0), _cell(row, 1)
        connections.setdefault(source, {})[target] = None

    hubs = sorted(connections.items(), key=lambda item: len(item[1]), reverse=True)
    items = [
        f"[[{page}]] connects to {len(connected)} other pages"
        for page, connected in hubs[:QUERY_HUB_LIMIT]
    ]

    return QueryOutcome(
        query=query,
        explanation="Analyzing page connections and relationships",
        rows=rows,
        insights=Insights(
            title="Network Insights",
            preamble="Central concepts (most connections):",
            sections=[InsightSection(items=items)],
        ),
    )


async def _content_clusters(provider: GraphProvider, request: str, now: datetime) -> QueryOutcome:
    query = QUERY_TEMPLATES["contentClusters"]
    rows = await provider.query(query)

    # Pages sharing the same property map form one group
    groups: dict[str, list[str]] = {}
    for row in rows:
        key = to_json(_cell(row, 2))
        groups.setdefault(key, []).append(f"[[{_cell(row, 0)}]] ({_cell(row, 1)} references)")

    sections = [
        InsightSection(heading=f"Cluster {i}", note=f"Common properties: {props}", items=items)
        for i, (props, items) in enumerate(groups.items(), start=1)
    ]
    return QueryOutcome(
        query=query,
        explanation="Identifying content clusters and related concepts",
        rows=rows,
        insights=Insights(title="Content Clusters", sections=sections),
    )


async def _task_progress(provider: GraphProvider, request: str, now: datetime) -> QueryOutcome:
    query = QUERY_TEMPLATES["taskProgress"]
    rows = await provider.query(query)

    by_state: dict[str, list[str]] = {}
    for row in rows:
        page, content, state = _cell(row, 0), _cell(row, 1), _cell(row, 2)
        by_state.setdefault(str(state), []).append(f"{content} (in [[{page}]])")

    return QueryOutcome(
        query=query,
        explanation="Analyzing task and project progress",
        rows=rows,
        insights=Insights(
            title="Task Analysis",
            sections=[InsightSection(heading=state, items=items) for state, items in by_state.items()],
        ),
    )


async def _concept_evolution(provider: GraphProvider, request: str, now: datetime) -> QueryOutcome:
    query = QUERY_TEMPLATES["conceptEvolution"]
    rows = await provider.query(query)

    # Month buckets (UTC) of the creation timestamps
    timeline: dict[str, list[tuple[Any, Any]]] = {}
    for row in rows:
        name, timestamp, refs = _cell(row, 0), _cell(row, 1), _cell(row, 2)
        try:
            month = datetime.fromtimestamp(_number(timestamp) / 1000, tz=timezone.utc).strftime("%Y-%m")
        except (OverflowError, OSError, ValueError):
            log.debug("Skipping row with invalid timestamp %r", timestamp)
            continue
        timeline.setdefault(month, []).append((name, refs))

    sections = []
    for month in sorted(timeline):
        concepts = sorted(timeline[month], key=lambda item: _number(item[1]), reverse=True)
        sections.append(
            InsightSection(
                heading=month,
                items=[f"[[{name}]] ({refs} references)" for name, refs in concepts],
            )
        )

    return QueryOutcome(
        query=query,
        explanation="Analyzing concept evolution over time",
        rows=rows,
        insights=Insights(title="Concept Timeline", sections=sections),
    )


async def _recent_tasks(provider: GraphProvider, request: str, now: datetime) -> QueryOutcome:
    match = DAYS_PATTERN.search(request)
    days = int(match.group(1)) if match else 14
    query = with_start_time(QUERY_TEMPLATES["taskQueryWithTime"], _days_before(now, days))
    rows = await provider.query(query)

    by_marker: dict[str, list[str]] = {}
    for row in rows:
        page, content, marker, journal_day = (_cell(row, i) for i in range(4))
        day = journal_day_to_date(journal_day)
        label = format_journal_date(day) if day else page
        by_marker.setdefault(str(marker), []).append(f"{content} (from [[{label}]])")

    return QueryOutcome(
        query=query,
        explanation=f"Finding TODO, LATER, or NOW tasks updated in the last {days} days",
        rows=rows,
        insights=Insights(
            title="Tasks by Status",
            sections=[InsightSection(heading=marker, items=items) for marker, items in by_marker.items()],
        ),
    )


async def _recently_modified(provider: GraphProvider, request: str, now: datetime) -> QueryOutcome:
    query = with_start_time(
        QUERY_TEMPLATES["recentlyModified"], now - timedelta(days=RECENT_QUERY_DAYS)
    )
    rows = await provider.query(query)
    return QueryOutcome(
        query=query,
        explanation=f"Finding pages modified in the last {RECENT_QUERY_DAYS} days",
        rows=rows,
    )


async def _most_referenced(provider: GraphProvider, request: str, now: datetime) -> QueryOutcome:
    query = QUERY_TEMPLATES["mostReferenced"]
    rows = await provider.query(query)
    rows.sort(key=lambda row: _number(_cell(row, 1)), reverse=True)
    return QueryOutcome(query=query, explanation="Finding most referenced pages", rows=rows)


# =============================================================================
# Dispatch table
# =============================================================================


def _contains_any(*keywords: str) -> Callable[[str], bool]:
    return lambda request: any(keyword in request for keyword in keywords)


def _mentions_recent_tasks(request: str) -> bool:
    return _contains_any("task", "todo", "later", "now")(request) and bool(
        DAYS_PATTERN.search(request)
    )


@dataclass(frozen=True)
class IntentRoute:
    """One entry of the dispatch table: a keyword predicate and its handler."""

    name: str
    predicate: Callable[[str], bool]
    handler: Callable[[GraphProvider, str, datetime], Awaitable[QueryOutcome]]


# Evaluated in order; the first matching predicate wins
INTENT_ROUTES: list[IntentRoute] = [
    IntentRoute("connections", _contains_any("connect", "relationship", "between"), _page_connections),
    IntentRoute("clusters", _contains_any("cluster", "group", "similar"), _content_clusters),
    IntentRoute("tasks", _contains_any("task", "progress", "status"), _task_progress),
    IntentRoute("evolution", _contains_any("evolution", "over time", "trend"), _concept_evolution),
    IntentRoute("recent_tasks", _mentions_recent_tasks, _recent_tasks),
    IntentRoute("recent", _contains_any("recent", "modified"), _recently_modified),
    IntentRoute("reference", _contains_any("reference", "linked"), _most_referenced),
]


def match_route(request: str) -> IntentRoute | None:
    """Return the first route whose predicate matches the request, if any."""
    normalized = request.lower()
    for route in INTENT_ROUTES:
        if route.predicate(normalized):
            return route
    return None


async def smart_query(
    provider: GraphProvider,
    request: str,
    now: datetime | None = None,
) -> QueryOutcome:
    """Route a free-text request to a structured query and run it.

    Unmatched requests run no query and yield an empty outcome.
    """
    route = match_route(request)
    if route is None:
        log.debug("No query route matched %r", request)
        return QueryOutcome()

    log.debug("Routing %r to %s", request, route.name)
    outcome = await route.handler(provider, request.lower(), now or datetime.now())
    outcome.route = route.name
    return outcome
