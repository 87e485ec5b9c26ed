"""Tests for connection suggestions."""

from datetime import datetime, timedelta

import pytest
from conftest import FakeProvider, make_block, make_page

from logseq_tools.analysis.suggestions import (
    PageProfile,
    build_profile,
    rank_suggestions,
    similarity,
    suggest_connections,
)
from logseq_tools.models import Block, Suggestion
from logseq_tools.reports import render_connection_report

NOW = datetime(2025, 3, 15, 12, 0)


def _ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _of_type(report, kind: str) -> list[Suggestion]:
    return [s for s in report.suggestions if s.type == kind]


class TestProfiles:
    def test_profile_collects_topics_and_lowercased_links(self):
        profile = build_profile(
            "alpha", [Block(content="[[ML]] #python", children=[Block(content="[[Data]]")])]
        )

        assert list(profile.topics) == ["ML", "python", "Data"]
        assert profile.links == {"ml", "data"}
        assert profile.text == "[[ML]] #python\n[[Data]]"

    def test_similarity_counts_shared_topics_and_mentions(self):
        first = PageProfile(name="alpha", text="about beta", topics={"x": None, "y": None})
        second = PageProfile(name="beta", text="nothing", topics={"x": None})

        assert similarity(first, second) == pytest.approx(0.8)


class TestPotentialConnections:
    @pytest.mark.asyncio
    async def test_single_shared_topic_stays_below_high_threshold(self):
        provider = FakeProvider(
            pages=[make_page("north"), make_page("south"), make_page("east")],
            blocks={
                "north": [make_block("[[x]] notes")],
                "south": [make_block("[[x]] more")],
                "east": [make_block("[[y]]")],
            },
        )

        report = await suggest_connections(provider, min_confidence=0.9)

        assert _of_type(report, "potential_connection") == []

    @pytest.mark.asyncio
    async def test_pair_is_suggested_once(self):
        provider = FakeProvider(
            pages=[make_page("north"), make_page("south")],
            blocks={
                "north": [make_block("[[ml]] [[data]] #python")],
                "south": [make_block("[[ml]] [[data]] #python")],
            },
        )

        report = await suggest_connections(provider, min_confidence=0.5)

        connections = _of_type(report, "potential_connection")
        assert len(connections) == 1
        assert connections[0].pages == ["north", "south"]
        assert connections[0].reason == "Share 3 topics: ml, data, python"
        assert connections[0].confidence == pytest.approx(1.8)

    @pytest.mark.asyncio
    async def test_reason_elides_long_topic_lists(self):
        provider = FakeProvider(
            pages=[make_page("north"), make_page("south")],
            blocks={
                "north": [make_block("[[a1]] [[a2]] [[a3]] [[a4]]")],
                "south": [make_block("[[a1]] [[a2]] [[a3]] [[a4]]")],
            },
        )

        report = await suggest_connections(provider, min_confidence=0.5)

        assert _of_type(report, "potential_connection")[0].reason == "Share 4 topics: a1, a2, a3..."

    @pytest.mark.asyncio
    async def test_linked_pages_are_not_suggested(self):
        provider = FakeProvider(
            pages=[make_page("north"), make_page("South")],
            blocks={
                "north": [make_block("[[South]] [[ml]] [[data]]")],
                "south": [make_block("[[ml]] [[data]]")],
            },
        )

        report = await suggest_connections(provider, min_confidence=0.5)

        assert _of_type(report, "potential_connection") == []


class TestSynthesisAndExploration:
    @pytest.mark.asyncio
    async def test_shared_topic_without_page_is_a_synthesis_opportunity(self):
        provider = FakeProvider(
            pages=[make_page("north"), make_page("south"), make_page("east")],
            blocks={name: [make_block("[[quantum]]")] for name in ("north", "south", "east")},
        )

        report = await suggest_connections(provider, min_confidence=0.9)

        [synthesis] = report.suggestions
        assert synthesis.type == "synthesis_opportunity"
        assert synthesis.topic == "quantum"
        assert synthesis.pages == ["north", "south", "east"]
        assert synthesis.confidence == pytest.approx(0.95)

    @pytest.mark.asyncio
    async def test_existing_topic_page_blocks_synthesis(self):
        provider = FakeProvider(
            pages=[make_page("north"), make_page("south"), make_page("east"), make_page("Quantum")],
            blocks={name: [make_block("[[Quantum]]")] for name in ("north", "south", "east")},
        )

        report = await suggest_connections(provider, min_confidence=0.9)

        assert _of_type(report, "synthesis_opportunity") == []

    @pytest.mark.asyncio
    async def test_pages_related_to_recent_work_are_explorations(self):
        provider = FakeProvider(
            pages=[
                make_page("recent", updatedAt=_ms(NOW - timedelta(days=1))),
                make_page("archive"),
                make_page("other"),
            ],
            blocks={
                "recent": [make_block("[[ml]] [[data]]")],
                "archive": [make_block("[[ml]] [[data]] [[extra]]")],
                "other": [make_block("[[ml]] only")],
            },
        )

        report = await suggest_connections(provider, min_confidence=0.6)

        explorations = _of_type(report, "exploration_suggestion")
        assert [s.pages for s in explorations] == [["archive"]]
        assert explorations[0].reason == "Related to your recent interests: ml, data"
        assert explorations[0].confidence == pytest.approx(0.8)


class TestRanking:
    def _suggestions(self) -> list[Suggestion]:
        return [
            Suggestion(type="exploration_suggestion", pages=["cooking"], reason="r", confidence=0.9),
            Suggestion(type="exploration_suggestion", pages=["garden"], reason="r", confidence=0.7),
            Suggestion(type="exploration_suggestion", pages=["misc"], reason="r", confidence=0.65),
            Suggestion(type="exploration_suggestion", pages=["low"], reason="r", confidence=0.1),
        ]

    def test_sorted_by_confidence_and_filtered(self):
        ranked = rank_suggestions(self._suggestions(), {}, min_confidence=0.6)

        assert [s.pages[0] for s in ranked] == ["cooking", "garden", "misc"]

    def test_focus_area_moves_relevant_suggestions_first(self):
        profiles = {"misc": PageProfile(name="misc", topics={"Garden": None})}

        ranked = rank_suggestions(self._suggestions(), profiles, 0.6, focus_area="Garden")

        assert [s.pages[0] for s in ranked] == ["garden", "misc", "cooking"]

    @pytest.mark.asyncio
    async def test_max_suggestions_truncates_after_counting(self):
        provider = FakeProvider(
            pages=[make_page(name) for name in ("north", "south", "east", "west")],
            blocks={
                name: [make_block("[[q1]] [[q2]]")] for name in ("north", "south", "east", "west")
            },
        )

        report = await suggest_connections(provider, min_confidence=0.5, max_suggestions=2)

        assert len(report.suggestions) == 2
        assert report.suggestions_generated == 8
        assert report.total_pages_analyzed == 4
        assert report.unique_topics == 2


class TestConnectionReport:
    @pytest.mark.asyncio
    async def test_report_layout(self):
        provider = FakeProvider(
            pages=[make_page("north"), make_page("south"), make_page("east")],
            blocks={name: [make_block("[[quantum]] [[flux]]")] for name in ("north", "south", "east")},
        )

        report = render_connection_report(
            await suggest_connections(provider, min_confidence=0.5, focus_area="quantum")
        )

        assert report.startswith(
            "# AI-Enhanced Connection Suggestions\n\nFocusing on topics related to: quantum\n\n"
        )
        assert "## Suggested Connections\n\n### north ↔ south\n- **Why**: Share 2 topics: quantum, flux\n" in report
        assert "- **Confidence**: 120.0%\n" in report
        assert "## Knowledge Synthesis Opportunities\n\n### Synthesis Suggestion\n- **Topic**: quantum\n" in report
        assert "- **Related Pages**:\n  - [[north]]\n  - [[south]]\n  - [[east]]\n" in report
        assert report.endswith(
            "## Analysis Summary\n\n- Total pages analyzed: 3\n"
            "- Unique topics found: 2\n- Suggestions generated: 5\n"
        )
