"""Pydantic models for the Logseq graph and the analysis reports."""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .dates import parse_instant


class Page(BaseModel):
    """A page as returned by logseq.Editor.getAllPages / getPage."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    uuid: str | None = None
    name: str | None = None  # Unique, lowercased by Logseq
    original_name: str | None = Field(
        default=None, validation_alias=AliasChoices("originalName", "original_name")
    )
    is_journal: bool = Field(
        default=False, validation_alias=AliasChoices("journal?", "isJournal", "is_journal")
    )
    journal_day: int | None = Field(
        default=None, validation_alias=AliasChoices("journalDay", "journal_day")
    )
    updated_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "updated_at")
    )  # None means "unknown"
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("updated_at", "created_at", mode="before")
    @classmethod
    def _parse_instant(cls, value: Any) -> datetime | None:
        return parse_instant(value)

    @field_validator("is_journal", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("journal_day", mode="before")
    @classmethod
    def _parse_journal_day(cls, value: Any) -> int | None:
        if isinstance(value, bool) or value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("properties", mode="before")
    @classmethod
    def _parse_properties(cls, value: Any) -> dict:
        return value if isinstance(value, dict) else {}

    @property
    def display_name(self) -> str:
        return self.original_name or self.name or ""


class PageHandle(BaseModel):
    """A page embedded by reference inside a block payload."""

    id: int | None = None
    name: str | None = None
    original_name: str | None = None


class EntityRef(BaseModel):
    """Normalized form of a block's `page` or `parent` field.

    The API sends these as a bare string, an object with an id or uuid, or an
    object describing a page. They are resolved once here:
    kind "none", kind "id" (id holds the string), or kind "reference"
    (handle holds the page).
    """

    kind: Literal["none", "id", "reference"] = "none"
    id: str | None = None
    handle: PageHandle | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> "EntityRef":
        if isinstance(raw, EntityRef):
            return raw
        if isinstance(raw, str) and raw:
            return cls(kind="id", id=raw)
        if isinstance(raw, dict):
            name = raw.get("name")
            original_name = raw.get("originalName") or raw.get("original_name")
            if isinstance(name, str) or isinstance(original_name, str):
                page_id = raw.get("id")
                return cls(
                    kind="reference",
                    handle=PageHandle(
                        id=page_id if isinstance(page_id, int) else None,
                        name=name if isinstance(name, str) else None,
                        original_name=original_name if isinstance(original_name, str) else None,
                    ),
                )
            for key in ("uuid", "id"):
                value = raw.get(key)
                if isinstance(value, str) and value:
                    return cls(kind="id", id=value)
                if isinstance(value, int) and not isinstance(value, bool):
                    return cls(kind="id", id=str(value))
        return cls()

    def short_id(self, length: int = 8) -> str:
        """Abbreviated display form used in block metadata."""
        if self.kind == "id" and self.id:
            return f"{self.id[:length]}..."
        if self.kind == "reference" and self.handle:
            return self.handle.name or self.handle.original_name or "Unknown format"
        return "None"

    def page_name(self) -> str:
        if self.kind == "reference" and self.handle:
            return self.handle.name or self.handle.original_name or "Unknown page"
        if self.kind == "id" and self.id:
            return self.id
        return "Unknown page"


class Block(BaseModel):
    """One node of a page's content tree."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    uuid: str | None = None
    content: str | None = None  # Empty content contributes no text or references
    children: list["Block"] = Field(default_factory=list)
    page: EntityRef = Field(default_factory=EntityRef)
    parent: EntityRef = Field(default_factory=EntityRef)
    marker: str | None = None
    updated_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "updated_at")
    )
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )

    @field_validator("children", mode="before")
    @classmethod
    def _drop_unexpanded_children(cls, value: Any) -> list:
        # Children may arrive as ["uuid", "..."] pairs when not expanded
        if not isinstance(value, list):
            return []
        return [child for child in value if isinstance(child, (dict, Block))]

    @field_validator("page", "parent", mode="before")
    @classmethod
    def _normalize_ref(cls, value: Any) -> EntityRef:
        return EntityRef.from_raw(value)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("updated_at", "created_at", mode="before")
    @classmethod
    def _parse_instant(cls, value: Any) -> datetime | None:
        return parse_instant(value)


Block.model_rebuild()


# ─────────────────────────────────────────────────────────────────────────────
# Graph analysis
# ─────────────────────────────────────────────────────────────────────────────


class TaskItem(BaseModel):
    """An outstanding task found in a page's blocks."""

    page: str
    task: str


class FrequentReference(BaseModel):
    """A page referenced more than twice across the graph."""

    page: str
    count: int
    last_update: datetime | None = None  # None when the date is unknown
    days_since_update: int | None = None


class RecentUpdate(BaseModel):
    page: str
    date: datetime


class GraphAnalysis(BaseModel):
    """Result of analyzing references, recency and connectivity."""

    days_threshold: int
    tasks: list[TaskItem] = Field(default_factory=list)
    reference_counts: dict[str, int] = Field(default_factory=dict)
    connections: dict[str, list[str]] = Field(default_factory=dict)  # source -> distinct targets
    frequent_references: list[FrequentReference] = Field(default_factory=list)
    recent_updates: list[RecentUpdate] = Field(default_factory=list)
    clusters: list[list[str]] = Field(default_factory=list)
    stale_frequent: list[FrequentReference] = Field(default_factory=list)


# ─────────────────────────────────────────────────────────────────────────────
# Knowledge gaps
# ─────────────────────────────────────────────────────────────────────────────


class ReferenceEntry(BaseModel):
    """Reference tracking for one page name."""

    count: int = 0
    has_page: bool
    referenced_from: list[str] = Field(default_factory=list)  # Distinct, first-seen order


class MissingPage(BaseModel):
    name: str
    count: int
    referenced_from: list[str] = Field(default_factory=list)


class UnderdevelopedPage(BaseModel):
    name: str
    content: str
    reference_count: int


class KnowledgeGapReport(BaseModel):
    min_reference_count: int
    include_orphans: bool
    total_pages: int
    missing: list[MissingPage] = Field(default_factory=list)
    underdeveloped: list[UnderdevelopedPage] = Field(default_factory=list)
    orphaned: list[str] = Field(default_factory=list)


# ─────────────────────────────────────────────────────────────────────────────
# Journal patterns
# ─────────────────────────────────────────────────────────────────────────────


class TopicCount(BaseModel):
    topic: str
    count: int


class MoodEntry(BaseModel):
    date: str  # ISO date of the journal page
    mood: str
    context: str


class HabitEntry(BaseModel):
    date: str
    done: bool


class HabitSummary(BaseModel):
    habit: str
    entries: list[HabitEntry] = Field(default_factory=list)
    completed: int
    total: int
    completion_rate: float  # completed / total, 0-1
    current_streak: int
    longest_streak: int


class StatusEntry(BaseModel):
    date: str
    status: str


class JournalPatternReport(BaseModel):
    start: datetime
    end: datetime
    include_mood: bool
    include_topics: bool
    entry_count: int = 0
    top_topics: list[TopicCount] = Field(default_factory=list)
    topic_evolution: dict[str, list[str]] = Field(default_factory=dict)  # YYYY-MM -> topics
    moods_by_month: dict[str, list[MoodEntry]] = Field(default_factory=dict)
    habits: list[HabitSummary] = Field(default_factory=list)
    projects: dict[str, list[StatusEntry]] = Field(default_factory=dict)


class JournalSummaryEntry(BaseModel):
    date: str  # Display name of the journal page
    text: str  # Flattened block text


class JournalSummary(BaseModel):
    title: str
    date_range: str  # The caller's range expression
    start: datetime
    end: datetime
    entries: list[JournalSummaryEntry] = Field(default_factory=list)
    occurrences: dict[str, int] = Field(default_factory=dict)
    referenced_pages: dict[str, str] = Field(default_factory=dict)  # name -> flattened text


# ─────────────────────────────────────────────────────────────────────────────
# Connection suggestions
# ─────────────────────────────────────────────────────────────────────────────


SuggestionType = Literal["potential_connection", "synthesis_opportunity", "exploration_suggestion"]


class Suggestion(BaseModel):
    """A proposed connection, synthesis page or exploration path."""

    type: SuggestionType
    pages: list[str]
    reason: str
    confidence: float  # Not clamped; synthesis and connection scores can exceed 1.0
    topic: str | None = None  # Set for synthesis opportunities


class ConnectionReport(BaseModel):
    focus_area: str | None = None
    suggestions: list[Suggestion] = Field(default_factory=list)  # After truncation
    suggestions_generated: int = 0  # Survivors of the confidence filter, before truncation
    total_pages_analyzed: int = 0
    unique_topics: int = 0


# ─────────────────────────────────────────────────────────────────────────────
# Structured queries
# ─────────────────────────────────────────────────────────────────────────────


class InsightSection(BaseModel):
    heading: str | None = None
    note: str | None = None
    items: list[str] = Field(default_factory=list)


class Insights(BaseModel):
    title: str
    preamble: str | None = None
    sections: list[InsightSection] = Field(default_factory=list)


class QueryOutcome(BaseModel):
    """A dispatched structured query and its post-processed rows."""

    route: str | None = None  # Name of the matching intent route
    query: str = ""
    explanation: str = ""
    rows: list[Any] = Field(default_factory=list)
    insights: Insights | None = None
