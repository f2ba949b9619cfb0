from datetime import date, datetime, time

import pytest
from pydantic import ValidationError

from schedule_ai.models import (
    CalendarEventPayload,
    EventDateTime,
    NowContext,
    PlacementOutcome,
    PlacementStep,
    SchedulingReport,
    StructuredEvent,
)


def test_structured_event_defaults():
    e = StructuredEvent(id="1", title=" Rapat ", date=date(2025, 1, 1), start_time=time(9), end_time=time(10))
    assert e.title == "Rapat"
    assert e.category == "Personal"
    assert e.priority == "medium"
    assert e.confidence == 0.5


def test_structured_event_aliases():
    e = StructuredEvent.model_validate(
        {"id": "7", "title": "X", "date": "2025-01-01", "startTime": "09:00", "endTime": "09:30"}
    )
    dumped = e.model_dump(mode="json", by_alias=True)
    assert dumped["startTime"] == "09:00"
    assert dumped["endTime"] == "09:30"
    assert dumped["date"] == "2025-01-01"
    assert e.start_datetime() == datetime(2025, 1, 1, 9, 0)


def test_placement_step_numeric_task_id():
    step = PlacementStep.model_validate({"taskId": 12, "date": "2025-01-01", "startTime": "09:00", "endTime": "10:00"})
    assert step.task_id == "12"


@pytest.mark.parametrize("raw, expected", [(3.0, "3"), ("a1", "a1")])
def test_placement_step_whole_task_ids(raw, expected):
    step = PlacementStep.model_validate({"taskId": raw, "date": "2025-01-01", "startTime": "09:00", "endTime": "10:00"})
    assert step.task_id == expected


def test_placement_step_rejects_fractional_task_id():
    with pytest.raises(ValidationError):
        PlacementStep.model_validate({"taskId": 1.5, "date": "2025-01-01", "startTime": "09:00", "endTime": "10:00"})


def test_event_provenance():
    e = StructuredEvent(
        id="1", title="Gym", date=date(2025, 1, 1), start_time=time(18), end_time=time(19), source_text="gym jam 6 sore"
    )
    assert e.provenance == 'Parsed from: "gym jam 6 sore"'
    assert e.model_copy(update={"source_text": None}).provenance is None


def test_payload_to_api_drops_empty_fields():
    payload = CalendarEventPayload(
        summary="X",
        start=EventDateTime(date_time="2025-01-01T09:00:00", time_zone="Asia/Jakarta"),
        end=EventDateTime(date_time="2025-01-01T10:00:00", time_zone="Asia/Jakarta"),
    )
    api = payload.to_api()
    assert api == {
        "summary": "X",
        "start": {"dateTime": "2025-01-01T09:00:00", "timeZone": "Asia/Jakarta"},
        "end": {"dateTime": "2025-01-01T10:00:00", "timeZone": "Asia/Jakarta"},
    }
    api["summary"] = "changed"
    assert payload.summary == "X"


def test_now_context():
    now = NowContext.now("Asia/Jakarta")
    assert now.time.second == 0
    assert NowContext(date=date(2025, 8, 6), time=time(7, 5)).model_dump(mode="json") == {
        "date": "2025-08-06",
        "time": "07:05",
    }


def test_report_accessors():
    report = SchedulingReport(outcomes=[
        PlacementOutcome(task_id="1", status="created"),
        PlacementOutcome(task_id="2", status="unresolved", error="Conflict"),
        PlacementOutcome(task_id="3", status="repaired"),
        PlacementOutcome(task_id="4", status="unplanned"),
    ])
    assert [o.task_id for o in report.created] == ["1"]
    assert [o.task_id for o in report.unresolved] == ["2"]
    assert [o.task_id for o in report.repaired] == ["3"]
    assert [o.task_id for o in report.unplanned] == ["4"]
    assert report.outcome_for("2").error == "Conflict"
    assert report.outcome_for("9") is None
