"""Shared typed records handed from stage to stage.

Every record is frozen and uses tuples for sequences, so a later stage can only
build a new record, never mutate an earlier one. Every stage record carries the
original topic.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

ISSUE_TYPES: tuple[str, ...] = ("structure", "clarity", "accuracy", "style", "seo", "engagement")
CHANGE_TYPES: tuple[str, ...] = ("title", "content", "structure", "seo")


class Severity(str, Enum):
    """Issue severity for human triage. Ordered low < medium < high; never used for gating."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One unit of retrieved evidence."""

    title: str
    snippet: str
    link: str


@dataclass(frozen=True, slots=True)
class ScoredResult:
    """A search result the curator judged relevant enough to keep."""

    title: str
    snippet: str
    link: str
    relevance_score: float
    reason: str


@dataclass(frozen=True, slots=True)
class ResearchRecord:
    topic: str
    search_results: tuple[SearchResult, ...]
    summary: str


@dataclass(frozen=True, slots=True)
class CuratedRecord:
    topic: str
    selected_results: tuple[ScoredResult, ...]
    curated_summary: str
    suggested_angles: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class OutlineSection:
    section: str
    key_points: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DraftMetadata:
    word_count: int
    reading_time: int
    target_audience: str
    key_takeaways: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DraftRecord:
    topic: str
    title: str
    content: str
    outline: tuple[OutlineSection, ...]
    metadata: DraftMetadata


@dataclass(frozen=True, slots=True)
class Feedback:
    strengths: tuple[str, ...]
    weaknesses: tuple[str, ...]
    suggestions: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class CritiqueIssue:
    type: str
    severity: Severity
    location: str
    issue: str
    suggestion: str


@dataclass(frozen=True, slots=True)
class SeoAnalysis:
    keyword_usage: str
    heading_structure: str
    meta_description: str
    suggested_keywords: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class CritiqueRecord:
    """Critique of a draft. Carries the draft so revision needs nothing older."""

    topic: str
    draft: DraftRecord
    overall_score: float
    feedback: Feedback
    content_issues: tuple[CritiqueIssue, ...]
    seo_analysis: SeoAnalysis


@dataclass(frozen=True, slots=True)
class ChangeLogEntry:
    """Audit record of one content mutation."""

    type: str
    description: str
    before: str | None = None
    after: str | None = None


@dataclass(frozen=True, slots=True)
class RevisedMetadata:
    word_count: int
    reading_time: int
    target_audience: str
    key_takeaways: tuple[str, ...]
    sources: tuple[str, ...]
    meta_description: str
    keywords: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RevisedRecord:
    topic: str
    title: str
    content: str
    metadata: RevisedMetadata
    change_log: tuple[ChangeLogEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class PublishedMetadata:
    word_count: int
    reading_time: int
    target_audience: str
    key_takeaways: tuple[str, ...]
    sources: tuple[str, ...]
    meta_description: str
    keywords: tuple[str, ...]
    published_date: str
    last_modified: str


@dataclass(frozen=True, slots=True)
class PublishedRecord:
    topic: str
    title: str
    file_path: str
    published_date: str
    url: str
    excerpt: str
    metadata: PublishedMetadata


StageRecord = (
    ResearchRecord | CuratedRecord | DraftRecord | CritiqueRecord | RevisedRecord | PublishedRecord
)


def record_to_dict(record: Any) -> Any:
    """Plain, JSON-serialisable view of a record (tuples become lists)."""
    if record is None or isinstance(record, (str, int, float, bool)):
        return record
    return _jsonable(asdict(record))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
