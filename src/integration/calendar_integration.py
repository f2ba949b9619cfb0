import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import httplib2
from google.auth.exceptions import RefreshError, TransportError as AuthTransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from schedule_ai.exceptions import TransportError, UpstreamError
from schedule_ai.models import (
    CalendarEventPayload,
    EventDateTime,
    PendingTask,
    PlacementStep,
    StructuredEvent,
)

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/calendar.readonly",
]


class Calendar(Protocol):
    """What the scheduling agent needs from a calendar provider."""

    async def list_events(self, time_min: datetime, time_max: Optional[datetime] = None) -> List[Dict[str, Any]]:
        ...

    async def create_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass
class CalendarSession:
    """Authenticated calendar session owned by the application.

    Passed explicitly to whatever talks to the calendar instead of living in a
    module-level singleton.
    """

    credentials: Optional[Credentials]
    calendar_id: str = "primary"
    timezone: str = "UTC"

    @classmethod
    def from_env(cls) -> Optional["CalendarSession"]:
        token = os.getenv("GOOGLE_ACCESS_TOKEN", "").strip()
        refresh_token = os.getenv("GOOGLE_REFRESH_TOKEN", "").strip()
        if not token and not refresh_token:
            return None
        creds = Credentials(
            token=token or None,
            refresh_token=refresh_token or None,
            token_uri="https://oauth2.googleapis.com/token",
            client_id=os.getenv("GOOGLE_CLIENT_ID"),
            client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
            scopes=CALENDAR_SCOPES,
        )
        return cls(
            credentials=creds,
            calendar_id=os.getenv("GOOGLE_CALENDAR_ID", "primary"),
            timezone=os.getenv("PLANNER_TIMEZONE", "UTC"),
        )


def _rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _local_iso(dt: datetime) -> str:
    return dt.replace(microsecond=0).isoformat()


def task_to_calendar_payload(task: PendingTask, tz: str = "UTC") -> Dict[str, Any]:
    if task.start_time is None or task.end_time is None:
        raise ValueError(f"task {task.id} has no start/end time")
    return CalendarEventPayload(
        summary=task.title,
        description=task.description or "",
        start=EventDateTime(date_time=_local_iso(task.start_time), time_zone=tz),
        end=EventDateTime(date_time=_local_iso(task.end_time), time_zone=tz),
        location=task.location,
    ).to_api()


def step_to_calendar_payload(step: PlacementStep, task: PendingTask, tz: str = "UTC") -> Dict[str, Any]:
    return CalendarEventPayload(
        summary=task.title,
        description=task.description or None,
        start=EventDateTime(date_time=_local_iso(step.start_datetime()), time_zone=tz),
        end=EventDateTime(date_time=_local_iso(step.end_datetime()), time_zone=tz),
        location=task.location,
    ).to_api()


def event_to_calendar_payload(event: StructuredEvent, tz: str = "UTC") -> Dict[str, Any]:
    description = event.provenance
    return CalendarEventPayload(
        summary=event.title,
        description=description,
        start=EventDateTime(date_time=_local_iso(event.start_datetime()), time_zone=tz),
        end=EventDateTime(date_time=_local_iso(event.end_datetime()), time_zone=tz),
        location=event.location,
    ).to_api()


class GoogleCalendarIntegration:
    """Google Calendar v3 behind the ``Calendar`` protocol.

    The client library is blocking, so every call runs in a worker thread.
    """

    def __init__(self, session: CalendarSession, service: Any = None):
        self.session = session
        self._service = service

    @property
    def service(self) -> Any:
        if self._service is None:
            self._service = build(
                "calendar",
                "v3",
                credentials=self.session.credentials,
                cache_discovery=False,
            )
        return self._service

    async def list_events(self, time_min: datetime, time_max: Optional[datetime] = None) -> List[Dict[str, Any]]:
        kwargs = {
            "calendarId": self.session.calendar_id,
            "timeMin": _rfc3339(time_min),
            "showDeleted": False,
            "singleEvents": True,
            "orderBy": "startTime",
            "maxResults": 50,
        }
        if time_max is not None:
            kwargs["timeMax"] = _rfc3339(time_max)

        result = await self._execute(self.service.events().list(**kwargs))
        return result.get("items", [])

    async def create_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        request = self.service.events().insert(calendarId=self.session.calendar_id, body=dict(payload))
        created = await self._execute(request)
        logger.info(f"Created calendar event {created.get('id')} ({payload.get('summary')})")
        return created

    async def _execute(self, request: Any) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            raise UpstreamError(e.resp.status, getattr(e, "reason", "") or str(e)) from e
        except RefreshError as e:
            raise UpstreamError(401, f"Token refresh failed: {e}") from e
        except (httplib2.HttpLib2Error, AuthTransportError, OSError) as e:
            raise TransportError(f"Calendar request failed: {e}") from e
