import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.dependencies import get_scheduling_agent, get_task_store
from api.errors import http_error
from scheduling.agent import SchedulingAgent
from schedule_ai.exceptions import ScheduleAIError
from storage.task_store import InMemoryTaskStore

router = APIRouter()
logger = logging.getLogger(__name__)

# Constants
DEFAULT_USER_ID = "default"
DEFAULT_WINDOW = timedelta(days=7)


class RunIn(BaseModel):
    user_id: str = DEFAULT_USER_ID
    time_min: Optional[datetime] = None
    time_max: Optional[datetime] = None


def _as_utc(dt: datetime) -> datetime:
    # naive values are taken as UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@router.post("/schedule/run")
async def run_schedule(
    payload: RunIn,
    agent: Optional[SchedulingAgent] = Depends(get_scheduling_agent),
    store: InMemoryTaskStore = Depends(get_task_store),
) -> dict:
    """Plan and place every pending task of the user on the calendar."""
    if agent is None:
        raise HTTPException(status_code=503, detail="Calendar is not connected")

    time_min = _as_utc(payload.time_min) if payload.time_min else datetime.now(timezone.utc)
    time_max = _as_utc(payload.time_max) if payload.time_max else time_min + DEFAULT_WINDOW
    if time_max <= time_min:
        raise HTTPException(status_code=400, detail="time_max must be after time_min")

    try:
        report = await agent.run_for_user(payload.user_id, store, time_min, time_max)
    except ScheduleAIError as e:
        logger.error(f"Scheduling run for {payload.user_id} aborted: {e}")
        raise http_error(e)

    logger.info(
        f"Scheduling run for {payload.user_id}: {len(report.created)} created, "
        f"{len(report.repaired)} repaired, {len(report.unresolved)} unresolved"
    )
    return {
        "report": report.model_dump(mode="json", by_alias=True),
        "created": len(report.created),
        "repaired": len(report.repaired),
        "unresolved": len(report.unresolved),
        "unplanned": len(report.unplanned),
    }
