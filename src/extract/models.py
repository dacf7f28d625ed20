"""Data models for achievement extraction."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from connectors.models import NormalizedItem

EventDuration = Literal["day", "week", "month", "quarter", "half year", "year"]


@dataclass(frozen=True)
class ExtractionContext:
    """What the summarizer knows about the user while extracting.

    Attributes:
        project_id: Project achievements are attributed to by default
        companies: Companies known to the user's account
        projects: Projects known to the user's account
        user: User profile
    """

    project_id: str
    companies: list[dict[str, Any]] = field(default_factory=list)
    projects: list[dict[str, Any]] = field(default_factory=list)
    user: dict[str, Any] = field(default_factory=dict)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class ExtractedAchievement:
    """An achievement proposed by the summarizer, not yet saved."""

    title: str
    summary: str = ""
    details: str = ""
    event_duration: EventDuration = "day"
    event_start: datetime | None = None
    event_end: datetime | None = None
    company_id: str | None = None
    project_id: str | None = None
    impact: int = 2
    source_item_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractedAchievement":
        """Build from an API payload (camelCase or snake_case keys).

        Raises:
            ValueError: If a date field is not ISO-8601
        """

        def pick(snake: str, camel: str, default: Any = None) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            title=str(data.get("title") or "").strip(),
            summary=data.get("summary") or "",
            details=data.get("details") or "",
            event_duration=pick("event_duration", "eventDuration", "day") or "day",
            event_start=_parse_datetime(pick("event_start", "eventStart")),
            event_end=_parse_datetime(pick("event_end", "eventEnd")),
            company_id=pick("company_id", "companyId"),
            project_id=pick("project_id", "projectId"),
            impact=int(data.get("impact") or 2),
            source_item_id=pick("source_item_id", "sourceItemId"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the achievements API's camelCase format."""
        return {
            "title": self.title,
            "summary": self.summary,
            "details": self.details,
            "eventDuration": self.event_duration,
            "eventStart": self.event_start.isoformat() if self.event_start else None,
            "eventEnd": self.event_end.isoformat() if self.event_end else None,
            "companyId": self.company_id,
            "projectId": self.project_id,
            "impact": self.impact,
            "sourceItemId": self.source_item_id,
        }


@dataclass
class SavedAchievement:
    """An achievement as stored by the persistence capability."""

    id: str
    title: str
    source_item_id: str | None = None
    project_id: str | None = None


@dataclass
class ItemError:
    """A per-item problem that did not fail the whole batch."""

    item_id: str | None
    error: str


@dataclass
class BatchResult:
    """Outcome of one successfully processed batch.

    Attributes:
        batch_number: 1-based position of the batch
        items: Items of the batch, in input order
        processed_count: Number of items in the batch
        achievements: Achievements saved for the batch
        errors: Rejected achievements and other per-item problems
    """

    batch_number: int
    items: list[NormalizedItem]
    processed_count: int
    achievements: list[SavedAchievement] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)
