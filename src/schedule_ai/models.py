from __future__ import annotations

from datetime import date as date_type, datetime, time, time as time_type, timedelta
from typing import Any, Dict, List, Literal, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


Priority = Literal["high", "medium", "low"]
PRIORITIES = {"high", "medium", "low"}

DEFAULT_CATEGORY = "Personal"
DEFAULT_PRIORITY: Priority = "medium"
DEFAULT_CONFIDENCE = 0.5
DEFAULT_DURATION = timedelta(minutes=60)


def format_hhmm(t: time) -> str:
    return t.strftime("%H:%M")


class _TimedSlot(BaseModel):
    """Shared date + start/end handling for events and placements."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: date_type
    start_time: time = Field(..., alias="startTime")
    end_time: time = Field(..., alias="endTime")

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_datetime() <= self.start_datetime():
            raise ValueError("endTime must be after startTime")
        return self

    @field_serializer("start_time", "end_time")
    def serialize_time(self, t: time) -> str:
        return format_hhmm(t)

    def start_datetime(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    def end_datetime(self) -> datetime:
        return datetime.combine(self.date, self.end_time)


class StructuredEvent(_TimedSlot):
    """Validated calendar event produced by the extraction pipeline.

    Instances are frozen: callers replace them with ``model_copy(update=...)``
    so ``source_text`` keeps pointing at the input the event came from.
    """

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    location: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    priority: Priority = DEFAULT_PRIORITY
    confidence: float = Field(DEFAULT_CONFIDENCE, ge=0.0, le=1.0)
    source_text: Optional[str] = Field(None, alias="sourceText")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("category", mode="before")
    @classmethod
    def category_default(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return DEFAULT_CATEGORY
        # open label set: unknown labels are kept as-is
        return str(v).strip()

    @field_validator("priority", mode="before")
    @classmethod
    def priority_default(cls, v: Any) -> str:
        v2 = str(v).strip().lower() if v is not None else ""
        return v2 if v2 in PRIORITIES else DEFAULT_PRIORITY

    @field_validator("confidence", mode="before")
    @classmethod
    def confidence_clamped(cls, v: Any) -> float:
        try:
            f = float(v)
        except (TypeError, ValueError):
            return DEFAULT_CONFIDENCE
        return min(1.0, max(0.0, f))

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < 0.7

    @property
    def provenance(self) -> Optional[str]:
        if not self.source_text:
            return None
        return f'Parsed from: "{self.source_text}"'


class PendingTask(BaseModel):
    """Read-only view of a task-store row handed to the scheduling agent."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = Field(..., min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None


class PlacementStep(_TimedSlot):
    task_id: str = Field(..., alias="taskId", min_length=1)

    @field_validator("task_id", mode="before")
    @classmethod
    def task_id_as_str(cls, v: Any) -> Any:
        # generators happily emit numeric ids
        if isinstance(v, bool):
            return v
        if isinstance(v, int):
            return str(v)
        if isinstance(v, float):
            if not v.is_integer():
                raise ValueError(f"taskId {v} is not a whole number")
            return str(int(v))
        return v


PlacementPlan = List[PlacementStep]


class EventDateTime(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_time: str = Field(..., alias="dateTime")
    time_zone: str = Field("UTC", alias="timeZone")


class CalendarEventPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    description: Optional[str] = None
    start: EventDateTime
    end: EventDateTime
    location: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        """Fresh dict in the calendar API's field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class NowContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date_type
    time: time_type

    @classmethod
    def now(cls, tz: str = "UTC") -> "NowContext":
        current = datetime.now(ZoneInfo(tz))
        return cls(date=current.date(), time=current.time().replace(second=0, microsecond=0))

    @field_serializer("time")
    def serialize_time(self, t: time) -> str:
        return format_hhmm(t)


PlacementStatus = Literal["created", "repaired", "unresolved", "unplanned"]


class PlacementOutcome(BaseModel):
    task_id: str
    status: PlacementStatus
    step: Optional[PlacementStep] = None
    repair_step: Optional[PlacementStep] = None
    event_id: Optional[str] = None
    error: Optional[str] = None


class SchedulingReport(BaseModel):
    user_id: Optional[str] = None
    outcomes: List[PlacementOutcome] = Field(default_factory=list)

    def _with_status(self, status: str) -> List[PlacementOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def created(self) -> List[PlacementOutcome]:
        return self._with_status("created")

    @property
    def repaired(self) -> List[PlacementOutcome]:
        return self._with_status("repaired")

    @property
    def unresolved(self) -> List[PlacementOutcome]:
        return self._with_status("unresolved")

    @property
    def unplanned(self) -> List[PlacementOutcome]:
        return self._with_status("unplanned")

    def outcome_for(self, task_id: str) -> Optional[PlacementOutcome]:
        for o in self.outcomes:
            if o.task_id == task_id:
                return o
        return None


class RejectedElement(BaseModel):
    index: int
    raw: Any = None
    reason: str


class BulkExtractionResult(BaseModel):
    events: List[StructuredEvent] = Field(default_factory=list)
    rejected: List[RejectedElement] = Field(default_factory=list)
    used_placeholder: bool = False

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)
