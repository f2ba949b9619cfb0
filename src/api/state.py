from typing import Optional

from extraction.event_extractor import EventExtractor
from integration.calendar_integration import Calendar
from llm.llm_client import LLMClient
from scheduling.agent import SchedulingAgent
from storage.task_store import InMemoryTaskStore

# Process-wide task store (stands in for the real database)
task_store = InMemoryTaskStore()

# Instances created on first use by api.dependencies
llm_client: Optional[LLMClient] = None
extractor: Optional[EventExtractor] = None
calendar: Optional[Calendar] = None
agent: Optional[SchedulingAgent] = None
