from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from schedule_ai.models import NowContext, PendingTask, PlacementStep, format_hhmm

SINGLE_EVENT_MARKER = "Extract ONE calendar event"
DOCUMENT_EVENTS_MARKER = "Extract EVERY calendar event"
PLAN_MARKER = "Create a placement plan"
REPAIR_MARKER = "Propose ONE alternative placement"

TASKS_HEADER = "TASKS (JSON):"
EVENTS_HEADER = "EXISTING CALENDAR EVENTS (JSON):"

EVENT_SCHEMA = """{
  "title": "short activity name",
  "date": "YYYY-MM-DD",
  "startTime": "HH:mm (24-hour)",
  "endTime": "HH:mm (24-hour, optional)",
  "location": "free text or null",
  "category": "Work | Study | Personal | Health | Meeting | Break",
  "priority": "high | medium | low",
  "confidence": 0.0-1.0
}"""

# Closed set of relative expressions the model must resolve the same way every time.
RELATIVE_TIME_RULES = """- "hari ini" / "today" = the current date.
- "besok" / "tomorrow" = current date + 1 day.
- "lusa" / "the day after tomorrow" = current date + 2 days.
- "minggu depan" / "next week" = the same weekday one week later, unless a weekday is named.
- "<weekday> depan" (e.g. "Jumat depan") / "next <weekday>" = that weekday in the following week.
- "pagi" / "morning" = 05:00-11:59; default 09:00; "jam N pagi" = N:00.
- "siang" / "noon" = 11:00-14:59; default 12:00; "jam 1".."jam 4" siang = 13:00..16:00.
- "sore" / "afternoon" = 15:00-18:00; default 16:00; "jam N sore" = (N+12):00.
- "malam" / "nanti malam" / "tonight" / "this evening" = 18:00-23:59; default 19:00; "jam N malam" = (N+12):00 for N < 12.
- "jam N" with a day-part word anywhere in the phrase follows that day-part (e.g. "besok pagi ... jam 9" = tomorrow 09:00)."""


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def build_single_event_prompt(phrase: str, now: NowContext) -> str:
    return f"""{SINGLE_EVENT_MARKER} from the user's input below.

USER INPUT: "{phrase}"

CURRENT DATE: {now.date.isoformat()} ({now.date.strftime("%A")})
CURRENT TIME: {format_hhmm(now.time)}

RELATIVE TIME RULES:
{RELATIVE_TIME_RULES}

If no end time is stated, omit "endTime".
Assign "category" and "priority" from the wording; set "confidence" to how certain you are.

REQUIRED JSON FORMAT:
{EVENT_SCHEMA}

Return ONLY the JSON object (no explanations, no markdown):"""


def build_document_prompt(document_text: str, instruction: Optional[str] = None) -> str:
    filter_block = ""
    if instruction and instruction.strip():
        filter_block = f"\nUSER INSTRUCTION (only keep matching events): {instruction.strip()}\n"

    return f"""{DOCUMENT_EVENTS_MARKER} found in the schedule document below.
{filter_block}
DOCUMENT:
\"\"\"
{document_text}
\"\"\"

RULES:
1. One array element per session/meeting/deadline; repeat recurring sessions per date.
2. Every element MUST have "title", "date", "startTime" and "endTime".
3. Give each element an "id" (string) and a "confidence" between 0 and 1.

REQUIRED JSON FORMAT (array of):
{EVENT_SCHEMA}

Return ONLY the JSON array (no explanations, no markdown):"""


def serialize_task(task: PendingTask) -> dict:
    return task.model_dump(mode="json", exclude_none=True)


def build_plan_prompt(tasks: Iterable[PendingTask], calendar_events: Iterable[Any]) -> str:
    return f"""{PLAN_MARKER} that puts every task below on the user's calendar.

{TASKS_HEADER}
{_dumps([serialize_task(t) for t in tasks])}

{EVENTS_HEADER}
{_dumps(list(calendar_events))}

SCHEDULING RULES:
1. Exactly one placement per task, in the order they should be created.
2. No placement may overlap an existing calendar event or another placement.
3. Respect a task's own start_time/end_time when it has them.
4. Dates as YYYY-MM-DD, times as HH:mm (24-hour); endTime after startTime on the same date.

REQUIRED JSON FORMAT:
[{{"taskId": "task id", "date": "YYYY-MM-DD", "startTime": "HH:mm", "endTime": "HH:mm"}}]

Return ONLY the JSON array (no explanations, no markdown):"""


def build_repair_prompt(step: PlacementStep, error: str, task: Optional[PendingTask] = None) -> str:
    task_block = f"\nTASK: {_dumps(serialize_task(task))}\n" if task is not None else ""
    return f"""Creating this calendar event failed.

FAILED PLACEMENT: {_dumps(step.model_dump(mode="json", by_alias=True))}
ERROR: {error}
{task_block}
{REPAIR_MARKER} for the same task that avoids the error.

REQUIRED JSON FORMAT:
{{"taskId": "{step.task_id}", "date": "YYYY-MM-DD", "startTime": "HH:mm", "endTime": "HH:mm"}}

Return ONLY the JSON object (no explanations, no markdown):"""
