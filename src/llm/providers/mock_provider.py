from __future__ import annotations
import json
import re
from datetime import date, datetime, timedelta

from llm import prompts
from llm.providers.base import LLMProvider

_CURRENT_DATE = re.compile(r"CURRENT DATE: (\d{4}-\d{2}-\d{2})")
_FAILED_PLACEMENT = re.compile(r"FAILED PLACEMENT: (\{.*\})")


def _section_json(text: str, header: str):
    """JSON value printed on the line right after ``header``."""
    idx = text.find(header)
    if idx == -1:
        return []
    line = text[idx + len(header):].strip().splitlines()[0]
    try:
        return json.loads(line)
    except ValueError:
        return []


class MockProvider(LLMProvider):
    name = "mock"

    async def generate(self, prompt: str) -> str:
        """
        Returns dummy JSON responses based on the prompt content.
        """
        if prompts.SINGLE_EVENT_MARKER in prompt:
            m = _CURRENT_DATE.search(prompt)
            today = date.fromisoformat(m.group(1)) if m else date.today()
            lower = prompt.lower()
            day = today + timedelta(days=1) if ("besok" in lower or "tomorrow" in lower) else today
            return "```json\n" + json.dumps({
                "title": "Meeting",
                "date": day.isoformat(),
                "startTime": "09:00",
                "location": None,
                "category": "Meeting",
                "priority": "medium",
                "confidence": 0.8,
            }) + "\n```"

        if prompts.DOCUMENT_EVENTS_MARKER in prompt:
            return json.dumps([
                {
                    "id": "1",
                    "title": "Algoritma dan Struktur Data",
                    "date": "2024-08-05",
                    "startTime": "08:00",
                    "endTime": "10:00",
                    "location": "Lab Komputer 1",
                    "category": "Study",
                    "priority": "high",
                    "confidence": 0.95,
                },
                {
                    "id": "2",
                    "title": "Meeting Client - Logo Design",
                    "date": "2024-08-06",
                    "startTime": "10:30",
                    "endTime": "11:30",
                    "location": "Coffee Shop Central",
                    "category": "Work",
                    "priority": "medium",
                    "confidence": 0.92,
                },
            ])

        if prompts.PLAN_MARKER in prompt:
            # one hour per task, back to back from 09:00 tomorrow
            tasks = _section_json(prompt, prompts.TASKS_HEADER)
            start = datetime.combine(date.today() + timedelta(days=1), datetime.min.time()).replace(hour=9)
            plan = []
            for i, task in enumerate(tasks):
                slot = start + timedelta(hours=i)
                plan.append({
                    "taskId": str(task.get("id")),
                    "date": slot.date().isoformat(),
                    "startTime": slot.strftime("%H:%M"),
                    "endTime": (slot + timedelta(hours=1)).strftime("%H:%M"),
                })
            return json.dumps(plan)

        if prompts.REPAIR_MARKER in prompt:
            m = _FAILED_PLACEMENT.search(prompt)
            failed = json.loads(m.group(1)) if m else {}
            day = date.fromisoformat(failed["date"]) + timedelta(days=1) if "date" in failed else date.today()
            return json.dumps({
                "taskId": failed.get("taskId", ""),
                "date": day.isoformat(),
                "startTime": failed.get("startTime", "09:00"),
                "endTime": failed.get("endTime", "10:00"),
            })

        # Default fallback
        return "{}"
