import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import get_calendar, get_task_store, get_timezone
from api.errors import http_error
from integration.calendar_integration import Calendar, task_to_calendar_payload
from schedule_ai.exceptions import ScheduleAIError
from storage.task_store import InMemoryTaskStore

router = APIRouter()
logger = logging.getLogger(__name__)

# Constants
DEFAULT_USER_ID = "default"


class CreateTaskIn(BaseModel):
    user_id: str = DEFAULT_USER_ID
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    category: Optional[str] = None


@router.post("/tasks")
async def create_task(
    payload: CreateTaskIn,
    store: InMemoryTaskStore = Depends(get_task_store),
) -> dict:
    if payload.start_time and payload.end_time and payload.end_time <= payload.start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    task = await store.create(
        payload.user_id,
        payload.title,
        description=payload.description,
        start_time=payload.start_time,
        end_time=payload.end_time,
        location=payload.location,
        category=payload.category,
    )
    logger.info(f"Created task {task.id} for user {payload.user_id}")
    return {"task": task.model_dump(mode="json")}


@router.get("/tasks")
async def list_tasks(
    user_id: str = DEFAULT_USER_ID,
    store: InMemoryTaskStore = Depends(get_task_store),
) -> dict:
    """Pending (not yet scheduled) tasks of a user."""
    tasks = await store.list_pending(user_id)
    return {
        "tasks": [t.model_dump(mode="json") for t in tasks],
        "total": len(tasks),
    }


@router.post("/tasks/{task_id}/sync")
async def sync_task(
    task_id: str,
    user_id: str = DEFAULT_USER_ID,
    store: InMemoryTaskStore = Depends(get_task_store),
    calendar: Optional[Calendar] = Depends(get_calendar),
    tz: str = Depends(get_timezone),
) -> dict:
    """Push a timed task to the calendar and mark it scheduled."""
    if calendar is None:
        raise HTTPException(status_code=503, detail="Calendar is not connected")

    task = await store.get(user_id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")

    try:
        payload = task_to_calendar_payload(task, tz)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        created = await calendar.create_event(payload)
    except ScheduleAIError as e:
        logger.warning(f"Sync of task {task_id} failed: {e}")
        raise http_error(e)

    event_id = created.get("id")
    await store.mark_scheduled(user_id, task_id, event_id)
    return {"task_id": task_id, "event_id": event_id}
