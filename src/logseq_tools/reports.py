"""Markdown rendering of tool results.

Consumers parse these reports by their `#`/`##`/`###` headers, `- ` bullets
and `[[name]]` references, so the exact layout below is part of the tool
contract.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Any

from .config import (
    CONTENT_PREVIEW_CHARS,
    MAX_REPORTED_CLUSTERS,
    MAX_REPORTED_FREQUENT,
    MAX_REPORTED_RECENT,
    MAX_REPORTED_STALE,
    QUERY_RESULT_LIMIT,
)
from .dates import format_short_date, format_timestamp
from .models import (
    Block,
    ConnectionReport,
    GraphAnalysis,
    Insights,
    JournalPatternReport,
    JournalSummary,
    KnowledgeGapReport,
    QueryOutcome,
)
from .query import to_json


def _percent(confidence: float) -> str:
    return f"{confidence * 100:.1f}%"


# ─────────────────────────────────────────────────────────────────────────────
# Pages and journals
# ─────────────────────────────────────────────────────────────────────────────


def render_page(page_name: str, text: str, backlinks: Sequence[str]) -> str:
    report = f"# {page_name}\n\n{text}"
    if backlinks:
        report += "\n\n## Backlinks\n\n"
        report += "".join(f"- [[{name}]]\n" for name in backlinks)
    else:
        report += "\n\n## Backlinks\n\nNo backlinks found.\n"
    return report


def render_backlinks(page_name: str, backlinks: Sequence[str]) -> str:
    if not backlinks:
        return f'No backlinks found for page "{page_name}".'
    return f'Pages referencing "{page_name}":\n' + "".join(f"- [[{name}]]\n" for name in backlinks)


def render_search(query: str, names: Sequence[str]) -> str:
    if not names:
        return f'No pages matching query "{query}" found.'
    return f'Pages matching "{query}":\n' + "".join(f"- {name}\n" for name in names)


def render_journal_summary(summary: JournalSummary) -> str:
    report = f"# {summary.title}\n\n"
    report += (
        f"*Date range: {format_short_date(summary.start)} to {format_short_date(summary.end)}*\n\n"
    )

    if not summary.entries:
        return report + f"No journal entries found for {summary.date_range}."

    for entry in summary.entries:
        report += f"## {entry.date}\n\n{entry.text}\n"

    if summary.occurrences:
        ranked = sorted(summary.occurrences.items(), key=lambda item: item[1], reverse=True)
        report += "\n## Top Concepts\n\n"
        report += "".join(f"- [[{name}]] ({count} references)\n" for name, count in ranked[:10])
        report += "\n"

        report += "\n## Referenced Pages\n\n"
        for name, content in summary.referenced_pages.items():
            report += f"### {name}\n\n"
            count = summary.occurrences.get(name, 0)
            if count > 1:
                report += f"*Referenced {count} times*\n\n"
            report += f"{content}\n\n"

    return report


def render_block_tree(block: Block, level: int = 0) -> str:
    """Render a block and all of its children, one bullet per block."""
    text = f"{'  ' * level}- {block.content or ''}\n"
    for child in block.children:
        text += render_block_tree(child, level + 1)
    return text


def render_block(block_id: str, block: Block, include_children: bool = True) -> str:
    created = format_timestamp(block.created_at) if block.created_at else "Unknown"
    updated = format_timestamp(block.updated_at) if block.updated_at else "Unknown"
    tree = render_block_tree(block) if include_children else f"- {block.content or ''}"
    lines = [
        f"Block ID: {block_id}",
        f"Page: {block.page.page_name()}",
        f"Parent Block: {block.parent.short_id()}",
        f"Created: {created}",
        f"Updated: {updated}",
        "---",
        tree,
    ]
    return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Analyses
# ─────────────────────────────────────────────────────────────────────────────


def render_graph_analysis(analysis: GraphAnalysis) -> str:
    report = "# Graph Analysis Insights\n\n"

    if analysis.tasks:
        report += "## Outstanding Tasks\n\n"
        for item in analysis.tasks:
            report += f"- {item.task} *(from [[{item.page}]])*\n"
        report += "\n"

    if analysis.frequent_references:
        report += "## Frequently Referenced Pages\n\n"
        for ref in analysis.frequent_references[:MAX_REPORTED_FREQUENT]:
            if ref.days_since_update is None:
                update_info = "no update date available"
            else:
                update_info = f"last updated {ref.days_since_update} days ago"
            report += f"- [[{ref.page}]] ({ref.count} references, {update_info})\n"
        report += "\n"

    if analysis.recent_updates:
        report += "## Recent Updates\n\n"
        for update in analysis.recent_updates[:MAX_REPORTED_RECENT]:
            report += f"- [[{update.page}]] ({format_short_date(update.date)})\n"
        report += "\n"

    if analysis.clusters:
        report += "## Related Page Clusters\n\n"
        for i, cluster in enumerate(analysis.clusters[:MAX_REPORTED_CLUSTERS], start=1):
            report += f"### Cluster {i}\n"
            report += "".join(f"- [[{page}]]\n" for page in cluster)
            report += "\n"

    report += "## Suggested Actions\n\n"
    if analysis.stale_frequent:
        report += "### Frequently Referenced Pages Needing Updates\n\n"
        for ref in analysis.stale_frequent[:MAX_REPORTED_STALE]:
            report += (
                f"- Consider updating [[{ref.page}]] - referenced {ref.count} times "
                f"but last updated {ref.days_since_update} days ago\n"
            )
        report += "\n"

    return report


def render_knowledge_gaps(report_data: KnowledgeGapReport) -> str:
    report = "# Knowledge Graph Analysis\n\n"

    if report_data.missing:
        report += "## Missing Pages\n"
        report += "These topics are frequently referenced but don't have their own pages:\n\n"
        for page in report_data.missing:
            report += f"### [[{page.name}]]\n"
            report += f"- Referenced {page.count} times\n"
            report += "- Referenced from:\n"
            report += "".join(f"  - [[{source}]]\n" for source in page.referenced_from)
            report += "\n"

    if report_data.underdeveloped:
        report += "## Underdeveloped Pages\n"
        report += "These pages exist but might need more content:\n\n"
        for page in report_data.underdeveloped:
            preview = page.content[:CONTENT_PREVIEW_CHARS]
            ellipsis = "..." if len(page.content) > CONTENT_PREVIEW_CHARS else ""
            report += f"### [[{page.name}]]\n"
            report += f"- Referenced {page.reference_count} times\n"
            report += f'- Current content: "{preview}{ellipsis}"\n\n'

    if report_data.include_orphans and report_data.orphaned:
        report += "## Orphaned Pages\n"
        report += "These pages aren't referenced by any other pages:\n\n"
        report += "".join(f"- [[{page}]]\n" for page in report_data.orphaned)
        report += "\n"

    report += "## Summary Statistics\n\n"
    report += f"- Total pages: {report_data.total_pages}\n"
    report += (
        f"- Missing pages (referenced ≥{report_data.min_reference_count} times): "
        f"{len(report_data.missing)}\n"
    )
    report += f"- Underdeveloped pages: {len(report_data.underdeveloped)}\n"
    if report_data.include_orphans:
        report += f"- Orphaned pages: {len(report_data.orphaned)}\n"

    return report


def render_journal_patterns(patterns: JournalPatternReport) -> str:
    report = "# Journal Analysis Insights\n\n"
    report += (
        f"Analysis period: {format_short_date(patterns.start)} to {format_short_date(patterns.end)}\n\n"
    )

    if patterns.include_topics and patterns.top_topics:
        report += "## Topic Trends\n\n"
        report += "### Most Discussed Topics\n"
        for topic in patterns.top_topics:
            report += f"- [[{topic.topic}]] ({topic.count} mentions)\n"
        report += "\n"

        report += "### Topic Evolution\n"
        for month, topics in patterns.topic_evolution.items():
            report += f"\n#### {month}\n"
            report += "".join(f"- [[{topic}]]\n" for topic in topics)
        report += "\n"

    if patterns.include_mood and patterns.moods_by_month:
        report += "## Mood Patterns\n\n"
        for month, moods in patterns.moods_by_month.items():
            report += f"### Week of {month}\n"
            report += "".join(f"- {mood.context}\n" for mood in moods)
            report += "\n"

    if patterns.habits:
        report += "## Habit Tracking\n\n"
        for habit in patterns.habits:
            report += f"### {habit.habit}\n"
            report += (
                f"- Completion rate: {habit.completion_rate * 100:.1f}% "
                f"({habit.completed}/{habit.total})\n"
            )
            if habit.current_streak > 0:
                report += f"- Current streak: {habit.current_streak} days\n"
            if habit.longest_streak > 0:
                report += f"- Longest streak: {habit.longest_streak} days\n"
            report += "\n"

    if patterns.projects:
        report += "## Project Progress\n\n"
        for project, updates in patterns.projects.items():
            report += f"### {project}\n"
            for update in updates:
                day = date.fromisoformat(update.date)
                report += f"- {format_short_date(day)}: {update.status}\n"
            report += "\n"

    return report


def render_connection_report(connections: ConnectionReport) -> str:
    report = "# AI-Enhanced Connection Suggestions\n\n"
    if connections.focus_area:
        report += f"Focusing on topics related to: {connections.focus_area}\n\n"

    grouped: dict[str, list] = {}
    for suggestion in connections.suggestions:
        grouped.setdefault(suggestion.type, []).append(suggestion)

    if grouped.get("potential_connection"):
        report += "## Suggested Connections\n\n"
        for suggestion in grouped["potential_connection"]:
            report += f"### {suggestion.pages[0]} ↔ {suggestion.pages[1]}\n"
            report += f"- **Why**: {suggestion.reason}\n"
            report += f"- **Confidence**: {_percent(suggestion.confidence)}\n\n"

    if grouped.get("synthesis_opportunity"):
        report += "## Knowledge Synthesis Opportunities\n\n"
        for suggestion in grouped["synthesis_opportunity"]:
            report += "### Synthesis Suggestion\n"
            report += f"- **Topic**: {suggestion.topic}\n"
            report += "- **Related Pages**:\n"
            report += "".join(f"  - [[{page}]]\n" for page in suggestion.pages)
            report += f"- **Confidence**: {_percent(suggestion.confidence)}\n\n"

    if grouped.get("exploration_suggestion"):
        report += "## Suggested Explorations\n\n"
        for suggestion in grouped["exploration_suggestion"]:
            report += f"### [[{suggestion.pages[0]}]]\n"
            report += f"- **Why**: {suggestion.reason}\n"
            report += f"- **Confidence**: {_percent(suggestion.confidence)}\n\n"

    report += "## Analysis Summary\n\n"
    report += f"- Total pages analyzed: {connections.total_pages_analyzed}\n"
    report += f"- Unique topics found: {connections.unique_topics}\n"
    report += f"- Suggestions generated: {connections.suggestions_generated}\n"

    return report


# ─────────────────────────────────────────────────────────────────────────────
# Structured queries
# ─────────────────────────────────────────────────────────────────────────────


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return to_json(value)
    return str(value)


def render_row(row: Any) -> str:
    if isinstance(row, (list, tuple)):
        if (
            len(row) == 2
            and isinstance(row[1], (int, float))
            and not isinstance(row[1], bool)
        ):
            return f"- [[{row[0]}]] ({row[1]} references)\n"
        return "- " + " → ".join(_format_cell(cell) for cell in row) + "\n"
    return f"- {to_json(row)}\n"


def render_insights(insights: Insights) -> str:
    text = f"\n## {insights.title}\n\n"
    if insights.preamble:
        text += f"{insights.preamble}\n"
    for section in insights.sections:
        if section.heading:
            text += f"### {section.heading}\n"
        if section.note:
            text += f"{section.note}\n"
        text += "".join(f"- {item}\n" for item in section.items)
        if section.heading:
            text += "\n"
    return text


def render_query_outcome(outcome: QueryOutcome, include_query: bool = False) -> str:
    report = f"# Query Results\n\n{outcome.explanation}\n\n"

    if not outcome.rows:
        report += "No results found.\n"
    else:
        report += "## Results\n\n"
        report += "".join(render_row(row) for row in outcome.rows[:QUERY_RESULT_LIMIT])

    if outcome.insights is not None:
        report += render_insights(outcome.insights)

    if include_query:
        report += f"\n## Generated Query\n\n```datalog\n{outcome.query}\n```\n"

    return report
