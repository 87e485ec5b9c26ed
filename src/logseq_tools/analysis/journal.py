"""Journal pattern analysis: topics, moods, habits and project status over time."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import datetime

from ..config import DEFAULT_TIMEFRAME, MOOD_INDICATORS, TOP_TOPICS_LIMIT
from ..dates import journal_day_to_date, parse_timeframe
from ..models import (
    HabitEntry,
    HabitSummary,
    JournalPatternReport,
    MoodEntry,
    StatusEntry,
    TopicCount,
)
from ..parser import extract_links, iter_blocks
from ..provider import GraphProvider, fetch_page_blocks

log = logging.getLogger(__name__)

UNCHECKED_BOX = "- [ ]"
CHECKED_BOX = "- [x]"
CHECKBOX_PATTERN = re.compile(r"- \[[ x]\] ")
PROJECT_TAG_PATTERN = re.compile(r"#project/(\S+)")
WHITESPACE_PATTERN = re.compile(r"\s+")


def is_mood_note(content: str) -> bool:
    lowered = content.lower()
    return any(indicator.lower() in lowered for indicator in MOOD_INDICATORS)


def habit_label(content: str) -> str:
    """Normalize a checkbox line into its habit label."""
    label = CHECKBOX_PATTERN.sub("", content, count=1)
    return WHITESPACE_PATTERN.sub(" ", label).strip()


def compute_streaks(entries: Sequence[HabitEntry]) -> tuple[int, int]:
    """Return (current, longest) streaks of completed entries.

    A single left-to-right scan; any incomplete entry resets the running
    streak. The current streak is the run that ends at the last entry, so it
    is 0 when the most recent entry is not done.
    """
    current = longest = streak = 0
    for entry in entries:
        if entry.done:
            streak += 1
            longest = max(longest, streak)
        else:
            streak = 0
    if entries and entries[-1].done:
        current = streak
    return current, longest


def summarize_habit(habit: str, entries: list[HabitEntry]) -> HabitSummary:
    completed = sum(1 for entry in entries if entry.done)
    current, longest = compute_streaks(entries)
    return HabitSummary(
        habit=habit,
        entries=entries,
        completed=completed,
        total=len(entries),
        completion_rate=completed / len(entries) if entries else 0.0,
        current_streak=current,
        longest_streak=longest,
    )


async def analyze_journal_patterns(
    provider: GraphProvider,
    timeframe: str = DEFAULT_TIMEFRAME,
    include_mood: bool = True,
    include_topics: bool = True,
    now: datetime | None = None,
) -> JournalPatternReport:
    """Analyze journal pages within a timeframe.

    Args:
        provider: Graph data provider.
        timeframe: "last N days|weeks|months|years" or "this year"; anything
            else analyzes the last 30 days.
        include_mood: Collect mood notes.
        include_topics: Collect topic references.
        now: Reference moment (defaults to the current local time).

    Raises:
        ProviderError: If the page list cannot be fetched.
    """
    window = parse_timeframe(timeframe, now=now)
    first_day, last_day = window.start.date(), window.end.date()

    pages = await provider.get_all_pages()

    journal_pages = []
    for page in pages:
        if not page.is_journal or not page.name:
            continue
        day = journal_day_to_date(page.journal_day)
        if day is None:
            log.debug("Skipping journal page %r with invalid journal day", page.name)
            continue
        if first_day <= day <= last_day:
            journal_pages.append((day, page))
    journal_pages.sort(key=lambda item: item[0])

    topic_frequency: dict[str, int] = {}
    topics_by_date: dict[str, dict[str, None]] = {}
    moods: list[MoodEntry] = []
    habits: dict[str, list[HabitEntry]] = {}
    projects: dict[str, list[StatusEntry]] = {}
    entry_count = 0

    for day, page in journal_pages:
        blocks = await fetch_page_blocks(provider, page.name)
        if not blocks:
            continue

        entry_count += 1
        iso_date = day.isoformat()
        day_topics = topics_by_date.setdefault(iso_date, {})

        for block, _depth in iter_blocks(blocks):
            content = block.content or ""

            if include_topics:
                for topic in extract_links(content):
                    topic_frequency[topic] = topic_frequency.get(topic, 0) + 1
                    day_topics[topic] = None

            if include_mood and is_mood_note(content):
                moods.append(MoodEntry(date=iso_date, mood=content, context=content))

            if UNCHECKED_BOX in content or CHECKED_BOX in content:
                habits.setdefault(habit_label(content), []).append(
                    HabitEntry(date=iso_date, done=CHECKED_BOX in content)
                )

            if "#project" in content or "#status" in content:
                match = PROJECT_TAG_PATTERN.search(content)
                if match:
                    projects.setdefault(match.group(1), []).append(
                        StatusEntry(date=iso_date, status=content)
                    )

    ranked = sorted(topic_frequency.items(), key=lambda item: item[1], reverse=True)
    top_topics = [TopicCount(topic=topic, count=count) for topic, count in ranked[:TOP_TOPICS_LIMIT]]

    # Roll daily topic sets up into months (YYYY-MM)
    topic_evolution: dict[str, dict[str, None]] = {}
    for iso_date, day_topics in topics_by_date.items():
        month = topic_evolution.setdefault(iso_date[:7], {})
        month.update(day_topics)

    moods_by_month: dict[str, list[MoodEntry]] = {}
    for mood in moods:
        moods_by_month.setdefault(mood.date[:7], []).append(mood)

    log.debug(
        "Journal analysis over %d entries: %d topics, %d habits, %d projects",
        entry_count,
        len(topic_frequency),
        len(habits),
        len(projects),
    )

    return JournalPatternReport(
        start=window.start,
        end=window.end,
        include_mood=include_mood,
        include_topics=include_topics,
        entry_count=entry_count,
        top_topics=top_topics,
        topic_evolution={
            month: list(topics) for month, topics in topic_evolution.items() if topics
        },
        moods_by_month=moods_by_month,
        habits=[summarize_habit(habit, entries) for habit, entries in habits.items()],
        projects=projects,
    )
