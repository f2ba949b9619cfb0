import logging

from fastapi import HTTPException

from schedule_ai.exceptions import (
    IncompleteExtractionError,
    MalformedResponseError,
    PlanningError,
    ScheduleAIError,
    TransportError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


def http_error(e: ScheduleAIError) -> HTTPException:
    """Map a pipeline error onto the HTTP status the client should see."""
    if isinstance(e, IncompleteExtractionError):
        return HTTPException(status_code=422, detail={"error": "incomplete_extraction", "missing": e.missing})
    if isinstance(e, PlanningError):
        return HTTPException(status_code=502, detail={"error": "planning_error", "message": e.message})
    if isinstance(e, MalformedResponseError):
        return HTTPException(status_code=502, detail={"error": "malformed_response", "message": e.message})
    if isinstance(e, UpstreamError):
        return HTTPException(
            status_code=502,
            detail={"error": "upstream_error", "status_code": e.status_code, "message": e.status_text},
        )
    if isinstance(e, TransportError):
        return HTTPException(status_code=504, detail={"error": "transport_error", "message": e.message})
    logger.error(f"Unmapped pipeline error: {e}")
    return HTTPException(status_code=500, detail={"error": "internal_error", "message": e.message})
