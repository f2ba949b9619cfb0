import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from extraction.validation import parse_date, parse_time
from integration.calendar_integration import Calendar, step_to_calendar_payload
from llm import prompts
from llm.llm_client import LLMClient
from schedule_ai.exceptions import MalformedResponseError, PlanningError, ScheduleAIError
from schedule_ai.metrics import PLACEMENTS_TOTAL, SCHEDULING_RUNS_TOTAL
from schedule_ai.models import (
    PendingTask,
    PlacementOutcome,
    PlacementPlan,
    PlacementStep,
    SchedulingReport,
)
from storage.task_store import TaskStore

logger = logging.getLogger(__name__)


def parse_step(raw: Any, task_id: Optional[str] = None) -> PlacementStep:
    """Build a PlacementStep from generator output; raises ValueError when it does not fit."""
    if not isinstance(raw, dict):
        raise ValueError(f"placement must be a JSON object, got {type(raw).__name__}")
    missing = [k for k in ("date", "startTime", "endTime") if not raw.get(k)]
    if task_id is None and raw.get("taskId") in (None, ""):
        missing.insert(0, "taskId")
    if missing:
        raise ValueError(f"placement is missing {', '.join(missing)}")
    return PlacementStep(
        task_id=task_id if task_id is not None else raw["taskId"],
        date=parse_date(raw["date"]),
        start_time=parse_time(raw["startTime"]),
        end_time=parse_time(raw["endTime"]),
    )


def _compact_event(event: Any) -> Any:
    """Only what the planner needs to avoid conflicts."""
    if not isinstance(event, dict):
        return event
    start = event.get("start") or {}
    end = event.get("end") or {}
    return {
        "summary": event.get("summary"),
        "start": start.get("dateTime") or start.get("date"),
        "end": end.get("dateTime") or end.get("date"),
    }


class SchedulingAgent:
    """Places pending tasks on a calendar: plan once, create in order, repair each failure once.

    The calendar stays the system of record. Nothing is rolled back when a run
    is cancelled or a placement stays unresolved.
    """

    def __init__(self, llm_client: LLMClient, calendar: Calendar, timezone: str = "UTC"):
        self.llm = llm_client
        self.calendar = calendar
        self.timezone = timezone
        self._user_locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        return lock

    def is_running(self, user_id: str) -> bool:
        lock = self._user_locks.get(user_id)
        return lock is not None and lock.locked()

    async def plan(self, tasks: Sequence[PendingTask], calendar_events: Iterable[Any]) -> PlacementPlan:
        prompt = prompts.build_plan_prompt(tasks, [_compact_event(e) for e in calendar_events])
        try:
            data = await self.llm.complete_json(prompt, "array")
        except MalformedResponseError as e:
            raise PlanningError(f"Placement plan is not valid JSON: {e}", raw=e.raw) from e

        if not isinstance(data, list):
            raise PlanningError(f"Placement plan must be a JSON array, got {type(data).__name__}", raw=data)

        plan: PlacementPlan = []
        for index, raw in enumerate(data):
            try:
                plan.append(parse_step(raw))
            except ValueError as e:
                raise PlanningError(f"Placement #{index + 1} is invalid: {e}", raw=data) from e
        return plan

    async def run(
        self,
        tasks: Sequence[PendingTask],
        calendar_events: Iterable[Any] = (),
        user_id: Optional[str] = None,
    ) -> SchedulingReport:
        report = SchedulingReport(user_id=user_id)
        if not tasks:
            logger.info("No pending tasks to schedule")
            SCHEDULING_RUNS_TOTAL.labels(status="empty").inc()
            return report

        try:
            plan = await self.plan(tasks, calendar_events)
        except ScheduleAIError:
            SCHEDULING_RUNS_TOTAL.labels(status="aborted").inc()
            raise
        logger.info(f"Planned {len(plan)} placements for {len(tasks)} tasks")

        by_id = {t.id: t for t in tasks}
        handled = set()
        for step in plan:
            task = by_id.get(step.task_id)
            if task is None:
                logger.warning(f"Plan references unknown task {step.task_id}; skipping")
                continue
            if step.task_id in handled:
                logger.warning(f"Plan places task {step.task_id} more than once; skipping duplicate")
                continue
            handled.add(step.task_id)

            outcome = await self._execute(step, task)
            PLACEMENTS_TOTAL.labels(outcome=outcome.status).inc()
            report.outcomes.append(outcome)

        for task in tasks:
            if task.id not in handled:
                logger.warning(f"Plan left task {task.id} ({task.title}) unplaced")
                PLACEMENTS_TOTAL.labels(outcome="unplanned").inc()
                report.outcomes.append(PlacementOutcome(task_id=task.id, status="unplanned"))

        SCHEDULING_RUNS_TOTAL.labels(status="partial" if report.unresolved else "completed").inc()
        return report

    async def run_for_user(
        self,
        user_id: str,
        task_store: TaskStore,
        time_min: datetime,
        time_max: Optional[datetime] = None,
    ) -> SchedulingReport:
        """Collect tasks and events, then run; one run per user at a time."""
        lock = self._lock_for(user_id)
        if lock.locked():
            logger.info(f"Scheduling run for {user_id} already in flight; waiting")
        async with lock:
            tasks = await task_store.list_pending(user_id)
            events = await self.calendar.list_events(time_min, time_max)
            report = await self.run(tasks, events, user_id=user_id)

            for outcome in report.created + report.repaired:
                await task_store.mark_scheduled(user_id, outcome.task_id, outcome.event_id)
            return report

    async def _create(self, step: PlacementStep, task: PendingTask) -> Dict[str, Any]:
        payload = step_to_calendar_payload(step, task, self.timezone)
        return await self.calendar.create_event(payload)

    async def _execute(self, step: PlacementStep, task: PendingTask) -> PlacementOutcome:
        try:
            created = await self._create(step, task)
        except Exception as e:
            # any rejection from the calendar is a placement failure
            logger.warning(f"Placement of task {task.id} failed: {e}; attempting repair")
            return await self._repair(step, task, e)
        return PlacementOutcome(task_id=task.id, status="created", step=step, event_id=_event_id(created))

    async def _repair(self, step: PlacementStep, task: PendingTask, error: Exception) -> PlacementOutcome:
        """The single repair attempt for a failed placement."""
        try:
            data = await self.llm.complete_json(prompts.build_repair_prompt(step, str(error), task), "object")
            alternative = parse_step(data, task_id=step.task_id)
        except (ScheduleAIError, ValueError) as e:
            logger.warning(f"Repair for task {task.id} produced no usable placement: {e}")
            return PlacementOutcome(
                task_id=task.id, status="unresolved", step=step, error=f"{error}; repair failed: {e}"
            )

        try:
            created = await self._create(alternative, task)
        except Exception as e:
            logger.warning(f"Repaired placement of task {task.id} failed too: {e}; leaving unresolved")
            return PlacementOutcome(
                task_id=task.id,
                status="unresolved",
                step=step,
                repair_step=alternative,
                error=f"{error}; repair failed: {e}",
            )

        logger.info(f"Task {task.id} placed on retry at {alternative.date} {alternative.start_time}")
        return PlacementOutcome(
            task_id=task.id,
            status="repaired",
            step=step,
            repair_step=alternative,
            event_id=_event_id(created),
            error=str(error),
        )


def _event_id(created: Any) -> Optional[str]:
    if isinstance(created, dict) and created.get("id") is not None:
        return str(created["id"])
    return None
