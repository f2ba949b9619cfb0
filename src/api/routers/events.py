import logging
from datetime import date as date_type, time as time_type
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import get_calendar, get_extractor, get_task_store, get_timezone
from api.errors import http_error
from extraction.event_extractor import EventExtractor
from integration.calendar_integration import Calendar, event_to_calendar_payload
from schedule_ai.exceptions import ScheduleAIError
from schedule_ai.models import NowContext, StructuredEvent
from storage.task_store import InMemoryTaskStore

router = APIRouter()
logger = logging.getLogger(__name__)

# Constants
DEFAULT_USER_ID = "default"


class ParseIn(BaseModel):
    phrase: str = Field(..., min_length=1)
    date: Optional[date_type] = None
    time: Optional[time_type] = None


class ExtractIn(BaseModel):
    text: Optional[str] = None
    instruction: Optional[str] = None


class SaveEventIn(BaseModel):
    user_id: str = DEFAULT_USER_ID
    event: StructuredEvent


class CommitEventsIn(BaseModel):
    events: List[StructuredEvent] = Field(..., min_length=1)


@router.post("/events/parse")
async def parse_event(
    payload: ParseIn,
    extractor: EventExtractor = Depends(get_extractor),
    tz: str = Depends(get_timezone),
) -> dict:
    """Quick-add: one natural-language phrase to one event."""
    logger.info(f"Parsing phrase: {payload.phrase[:50]}...")
    now = NowContext.now(tz)
    if payload.date is not None or payload.time is not None:
        now = NowContext(date=payload.date or now.date, time=payload.time or now.time)

    try:
        event = await extractor.extract_one(payload.phrase, now)
    except ScheduleAIError as e:
        logger.warning(f"Phrase extraction failed: {e}")
        raise http_error(e)

    return {
        "event": event.model_dump(mode="json", by_alias=True),
        "low_confidence": event.is_low_confidence,
    }


@router.post("/events/extract")
async def extract_events(
    payload: ExtractIn,
    extractor: EventExtractor = Depends(get_extractor),
) -> dict:
    """Upload: document text to many events; invalid elements come back under ``rejected``."""
    try:
        result = await extractor.extract_document(payload.text, payload.instruction)
    except ScheduleAIError as e:
        logger.warning(f"Document extraction failed: {e}")
        raise http_error(e)

    return {
        "events": [e.model_dump(mode="json", by_alias=True) for e in result.events],
        "rejected": [r.model_dump(mode="json") for r in result.rejected],
        "rejected_count": result.rejected_count,
        "used_placeholder": result.used_placeholder,
    }


@router.post("/events/save")
async def save_event(
    payload: SaveEventIn,
    store: InMemoryTaskStore = Depends(get_task_store),
) -> dict:
    """Keep a parsed event as a pending task, with the phrase it came from."""
    event = payload.event
    task = await store.create(
        payload.user_id,
        event.title,
        description=event.provenance,
        start_time=event.start_datetime(),
        end_time=event.end_datetime(),
        location=event.location,
        category=event.category,
    )
    logger.info(f"Saved event '{event.title}' as task {task.id} for user {payload.user_id}")
    return {"task": task.model_dump(mode="json")}


@router.post("/events/commit")
async def commit_events(
    payload: CommitEventsIn,
    calendar: Optional[Calendar] = Depends(get_calendar),
    tz: str = Depends(get_timezone),
) -> dict:
    """Push extracted events to the calendar; each event succeeds or fails on its own."""
    if calendar is None:
        raise HTTPException(status_code=503, detail="Calendar is not connected")

    created, failed = [], []
    for event in payload.events:
        try:
            result = await calendar.create_event(event_to_calendar_payload(event, tz))
        except ScheduleAIError as e:
            logger.warning(f"Could not add event {event.id} ({event.title}) to the calendar: {e}")
            failed.append({"id": event.id, "error": e.message})
            continue
        created.append({"id": event.id, "event_id": result.get("id")})

    logger.info(f"Committed {len(created)} events ({len(failed)} failed)")
    return {"created": created, "failed": failed}
