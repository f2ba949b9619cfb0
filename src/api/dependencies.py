import os
from typing import Optional

from fastapi import Depends

from api import state
from extraction.event_extractor import MIN_DOCUMENT_TEXT_LENGTH, EventExtractor
from integration.calendar_integration import Calendar, CalendarSession, GoogleCalendarIntegration
from llm.llm_client import LLMClient
from scheduling.agent import SchedulingAgent
from storage.task_store import InMemoryTaskStore

# Configuration
PLANNER_TIMEZONE = os.getenv("PLANNER_TIMEZONE", "UTC")
DOCUMENT_MIN_LENGTH = int(os.getenv("MIN_DOCUMENT_TEXT_LENGTH", str(MIN_DOCUMENT_TEXT_LENGTH)))


def get_llm_client() -> LLMClient:
    if state.llm_client is None:
        state.llm_client = LLMClient()
    return state.llm_client


def get_extractor(llm: LLMClient = Depends(get_llm_client)) -> EventExtractor:
    if state.extractor is None:
        state.extractor = EventExtractor(llm_client=llm, min_document_length=DOCUMENT_MIN_LENGTH)
    return state.extractor


def get_task_store() -> InMemoryTaskStore:
    return state.task_store


def get_calendar() -> Optional[Calendar]:
    if state.calendar is None:
        session = CalendarSession.from_env()
        if session is not None:
            state.calendar = GoogleCalendarIntegration(session)
    return state.calendar


def get_scheduling_agent(
    llm: LLMClient = Depends(get_llm_client),
    calendar: Optional[Calendar] = Depends(get_calendar),
) -> Optional[SchedulingAgent]:
    if calendar is None:
        return None
    if state.agent is None or state.agent.calendar is not calendar:
        state.agent = SchedulingAgent(llm_client=llm, calendar=calendar, timezone=PLANNER_TIMEZONE)
    return state.agent


def get_timezone() -> str:
    return PLANNER_TIMEZONE
