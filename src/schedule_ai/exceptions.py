"""Exceptions raised by the extraction and scheduling pipeline."""

from typing import Any, List, Optional


class ScheduleAIError(Exception):
    """Base exception for all schedule-ai errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class TransportError(ScheduleAIError):
    """Raised when the generation or calendar endpoint cannot be reached."""


class UpstreamError(ScheduleAIError):
    """Raised when an upstream endpoint answers with a non-success status."""

    def __init__(self, status_code: int, status_text: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"Upstream error {status_code}: {status_text}".rstrip(": "))


class MalformedResponseError(ScheduleAIError):
    """Raised when a generation response cannot be parsed or validated."""

    def __init__(self, message: str, raw: Optional[Any] = None) -> None:
        self.raw = raw
        super().__init__(message)


class IncompleteExtractionError(ScheduleAIError):
    """Raised when a parsed single event lacks required fields."""

    def __init__(self, missing: List[str], raw: Optional[Any] = None) -> None:
        self.missing = list(missing)
        self.raw = raw
        super().__init__(f"Extraction is missing required fields: {', '.join(self.missing)}")


class PlanningError(ScheduleAIError):
    """Raised when the placement plan cannot be parsed; aborts the run."""

    def __init__(self, message: str, raw: Optional[Any] = None) -> None:
        self.raw = raw
        super().__init__(message)
