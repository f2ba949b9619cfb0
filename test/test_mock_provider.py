import json
from datetime import date, time, timedelta

import pytest

from extraction.event_extractor import EventExtractor
from llm import prompts
from llm.llm_client import LLMClient, provider_from_env
from llm.providers.mock_provider import MockProvider
from scheduling.agent import SchedulingAgent
from schedule_ai.models import NowContext, PendingTask, PlacementStep


def test_provider_from_env_selects_mock(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    assert isinstance(provider_from_env(), MockProvider)


def test_provider_from_env_rejects_unknown(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "carrier-pigeon")
    with pytest.raises(RuntimeError):
        provider_from_env()


@pytest.mark.asyncio
async def test_mock_single_event_resolves_besok():
    extractor = EventExtractor(llm_client=LLMClient(provider=MockProvider()))
    now = NowContext(date=date(2025, 8, 6), time=time(8, 0))

    event = await extractor.extract_one("besok pagi meeting jam 9", now)

    assert event.date == date(2025, 8, 7)
    assert event.start_time == time(9, 0)
    assert event.end_time == time(10, 0)


@pytest.mark.asyncio
async def test_mock_document_events_are_valid():
    extractor = EventExtractor(llm_client=LLMClient(provider=MockProvider()))
    result = await extractor.extract_many("Senin 08:00-10:00 Algoritma, Selasa 10:30 meeting client")
    assert len(result.events) == 2
    assert result.rejected_count == 0


@pytest.mark.asyncio
async def test_mock_plan_covers_every_task(fake_calendar_factory):
    tasks = [PendingTask(id="a", title="Laporan"), PendingTask(id="b", title="Belanja")]
    agent = SchedulingAgent(LLMClient(provider=MockProvider()), fake_calendar_factory())

    plan = await agent.plan(tasks, [])

    assert [s.task_id for s in plan] == ["a", "b"]
    assert plan[1].start_time == time(10, 0)


@pytest.mark.asyncio
async def test_mock_repair_moves_to_next_day():
    step = PlacementStep(task_id="a", date=date(2025, 8, 7), start_time=time(9, 0), end_time=time(10, 0))
    raw = await MockProvider().generate(prompts.build_repair_prompt(step, "Conflict"))
    data = json.loads(raw)
    assert data["taskId"] == "a"
    assert data["date"] == (date(2025, 8, 7) + timedelta(days=1)).isoformat()


@pytest.mark.asyncio
async def test_mock_unknown_prompt_returns_empty_object():
    assert await MockProvider().generate("hello") == "{}"
