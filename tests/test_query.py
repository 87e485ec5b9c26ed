"""Tests for free-text query routing and result insights."""

from datetime import datetime, timezone

import pytest
from conftest import FakeProvider

from logseq_tools.models import QueryOutcome
from logseq_tools.query import QUERY_TEMPLATES, match_route, smart_query, with_start_time
from logseq_tools.reports import render_query_outcome, render_row

NOW = datetime(2025, 3, 15, 12, 0)


def _ms(year: int, month: int, day: int) -> int:
    return int(datetime(year, month, day, 12, tzinfo=timezone.utc).timestamp() * 1000)


# ─────────────────────────────────────────────────────────────────────────────
# Routing
# ─────────────────────────────────────────────────────────────────────────────


class TestRouting:
    @pytest.mark.parametrize(
        "request_text,route",
        [
            ("How are my pages CONNECTED?", "connections"),
            ("relationship between notes", "connections"),
            ("group similar pages", "clusters"),
            ("task status", "tasks"),
            ("concept evolution over time", "evolution"),
            ("todos from the last 7 days", "recent_tasks"),
            ("recently modified pages", "recent"),
            ("most linked pages", "reference"),
        ],
    )
    def test_keyword_routes(self, request_text, route):
        assert match_route(request_text).name == route

    def test_first_matching_route_wins(self):
        assert match_route("tasks connected to projects").name == "connections"
        assert match_route("task progress in the last 7 days").name == "tasks"

    def test_recent_tasks_need_a_day_count(self):
        assert match_route("todo items recently").name == "recent"

    def test_unmatched(self):
        assert match_route("hello there") is None

    def test_start_time_substitution(self):
        start = datetime(2025, 3, 1, tzinfo=timezone.utc)

        query = with_start_time(QUERY_TEMPLATES["recentlyModified"], start)

        assert "?start-time" not in query
        assert f"(> ?t {int(start.timestamp() * 1000)})" in query


# ─────────────────────────────────────────────────────────────────────────────
# Handlers
# ─────────────────────────────────────────────────────────────────────────────


class TestSmartQuery:
    @pytest.mark.asyncio
    async def test_unmatched_request_runs_nothing(self):
        provider = FakeProvider(rows=[["x", 1]])

        outcome = await smart_query(provider, "hello there", now=NOW)

        assert provider.queries == []
        assert outcome.rows == []
        assert render_query_outcome(outcome) == "# Query Results\n\n\n\nNo results found.\n"

    @pytest.mark.asyncio
    async def test_connection_hubs(self):
        provider = FakeProvider(
            rows=[["a", "b", 1], ["a", "c", 5], ["b", "c", 2], ["a", "b", 3]]
        )

        outcome = await smart_query(provider, "show connections", now=NOW)

        assert outcome.route == "connections"
        assert [row[2] for row in outcome.rows] == [5, 3, 2, 1]
        assert outcome.insights.sections[0].items == [
            "[[a]] connects to 2 other pages",
            "[[b]] connects to 1 other pages",
        ]

    @pytest.mark.asyncio
    async def test_clusters_group_by_properties(self):
        provider = FakeProvider(
            rows=[
                ["alpha", 3, {"type": "book"}],
                ["beta", 1, None],
                ["gamma", 2, {"type": "book"}],
            ]
        )

        outcome = await smart_query(provider, "find clusters", now=NOW)

        first, second = outcome.insights.sections
        assert first.heading == "Cluster 1"
        assert first.note == 'Common properties: {"type":"book"}'
        assert first.items == ["[[alpha]] (3 references)", "[[gamma]] (2 references)"]
        assert second.note == "Common properties: null"

    @pytest.mark.asyncio
    async def test_tasks_grouped_by_state(self):
        provider = FakeProvider(
            rows=[["p1", "TODO write [[Report]]", "[[Report]]"], ["p2", "DONE [[Report]] v1", "[[Report]]"]]
        )

        outcome = await smart_query(provider, "task progress", now=NOW)

        [section] = outcome.insights.sections
        assert section.heading == "[[Report]]"
        assert section.items == ["TODO write [[Report]] (in [[p1]])", "DONE [[Report]] v1 (in [[p2]])"]

    @pytest.mark.asyncio
    async def test_evolution_timeline(self):
        provider = FakeProvider(
            rows=[
                ["late", _ms(2025, 2, 10), 1],
                ["early", _ms(2025, 1, 5), 2],
                ["big", _ms(2025, 2, 1), 9],
                ["broken", "not a time", 4],
            ]
        )

        outcome = await smart_query(provider, "trend of ideas", now=NOW)

        headings = [section.heading for section in outcome.insights.sections]
        assert headings[:2] == ["1970-01", "2025-01"]
        february = outcome.insights.sections[2]
        assert february.heading == "2025-02"
        assert february.items == ["[[big]] (9 references)", "[[late]] (1 references)"]

    @pytest.mark.asyncio
    async def test_recent_tasks_use_day_count(self):
        provider = FakeProvider(
            rows=[
                ["mar 10th, 2025", "TODO ship", "TODO", 20250310],
                ["project", "LATER think", "LATER", None],
            ]
        )

        outcome = await smart_query(provider, "todo in the last 3 days", now=NOW)

        assert outcome.route == "recent_tasks"
        assert outcome.explanation == "Finding TODO, LATER, or NOW tasks updated in the last 3 days"
        start = int(datetime(2025, 3, 12, 12, 0).timestamp() * 1000)
        assert f"(> ?t {start})" in provider.queries[0]
        todo, later = outcome.insights.sections
        assert todo.items == ["TODO ship (from [[Mar 10th, 2025]])"]
        assert later.items == ["LATER think (from [[project]])"]

    @pytest.mark.asyncio
    async def test_recent_tasks_huge_day_count_starts_at_epoch(self):
        provider = FakeProvider()

        outcome = await smart_query(provider, "todos from the last 9999999999 days", now=NOW)

        assert outcome.route == "recent_tasks"
        assert outcome.explanation.endswith("in the last 9999999999 days")
        assert "(> ?t 0)" in provider.queries[0]

    @pytest.mark.asyncio
    async def test_recent_tasks_single_day_window(self):
        outcome = await smart_query(FakeProvider(), "later", now=NOW)

        assert outcome.route is None

        outcome = await smart_query(FakeProvider(), "now due in 1 day", now=NOW)

        assert outcome.explanation.endswith("in the last 1 days")

    @pytest.mark.asyncio
    async def test_recently_modified(self):
        provider = FakeProvider(rows=[{"name": "a"}])

        outcome = await smart_query(provider, "Recent pages", now=NOW)

        assert outcome.explanation == "Finding pages modified in the last 7 days"
        assert outcome.insights is None
        assert render_query_outcome(outcome).endswith('## Results\n\n- {"name":"a"}\n')

    @pytest.mark.asyncio
    async def test_most_referenced_sorted(self):
        provider = FakeProvider(rows=[["a", 1], ["b", 7]])

        outcome = await smart_query(provider, "most referenced", now=NOW)

        assert render_query_outcome(outcome) == (
            "# Query Results\n\nFinding most referenced pages\n\n"
            "## Results\n\n- [[b]] (7 references)\n- [[a]] (1 references)\n"
        )


class TestQueryReport:
    def test_row_rendering(self):
        assert render_row(["a", "b", 3]) == "- a → b → 3\n"
        assert render_row(["a", None, True]) == "- a →  → true\n"

    @pytest.mark.asyncio
    async def test_generated_query_is_appended(self):
        provider = FakeProvider(rows=[["a", "b", 1]])

        report = render_query_outcome(
            await smart_query(provider, "connections", now=NOW), include_query=True
        )

        assert "## Network Insights\n\nCentral concepts (most connections):\n- [[a]] connects to 1 other pages\n" in report
        assert report.endswith(f"## Generated Query\n\n```datalog\n{QUERY_TEMPLATES['pageConnections']}\n```\n")

    def test_results_are_limited(self):
        outcome = QueryOutcome(explanation="x", rows=[["p", i] for i in range(30)])

        assert render_query_outcome(outcome).count("references)") == 20
