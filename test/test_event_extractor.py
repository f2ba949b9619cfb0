import json
from datetime import date, time

import pytest

from extraction.event_extractor import EventExtractor
from llm.llm_client import LLMClient
from schedule_ai.exceptions import IncompleteExtractionError, MalformedResponseError
from schedule_ai.models import NowContext

NOW = NowContext(date=date(2025, 8, 6), time=time(8, 15))


def _extractor(provider) -> EventExtractor:
    return EventExtractor(llm_client=LLMClient(provider=provider))


@pytest.mark.asyncio
async def test_besok_pagi_resolves_to_tomorrow_nine(fake_provider_factory):
    provider = fake_provider_factory(
        '```json\n{"title": "Meeting dengan klien", "date": "2025-08-07", "startTime": "09:00",'
        ' "category": "Meeting", "priority": "high", "confidence": 0.92}\n```'
    )
    phrase = "besok pagi meeting dengan klien jam 9"

    event = await _extractor(provider).extract_one(phrase, NOW)

    assert event.date == date(2025, 8, 7)
    assert event.start_time == time(9, 0)
    assert event.end_time == time(10, 0)
    assert event.source_text == phrase
    assert event.id == "1"

    prompt = provider.prompts[0]
    assert f'"{phrase}"' in prompt
    assert "2025-08-06" in prompt
    assert "besok" in prompt and "pagi" in prompt
    assert "JSON" in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "start, expected_end",
    [("07:00", "08:00"), ("13:45", "14:45"), ("22:59", "23:59"), ("23:30", "23:59")],
)
async def test_missing_end_time_defaults_to_one_hour(fake_provider_factory, start, expected_end):
    provider = fake_provider_factory(json.dumps({"title": "Gym", "date": "2025-08-06", "startTime": start}))
    event = await _extractor(provider).extract_one("gym", NOW)
    assert event.model_dump(by_alias=True)["endTime"] == expected_end
    assert event.end_datetime() > event.start_datetime()


@pytest.mark.asyncio
async def test_reversed_end_time_is_corrected(fake_provider_factory):
    provider = fake_provider_factory(
        json.dumps({"title": "Gym", "date": "2025-08-06", "startTime": "17:00", "endTime": "16:00"})
    )
    event = await _extractor(provider).extract_one("gym", NOW)
    assert event.end_time == time(18, 0)


@pytest.mark.asyncio
async def test_explicit_end_time_is_kept(fake_provider_factory):
    provider = fake_provider_factory(
        json.dumps({"title": "Gym", "date": "2025-08-06", "startTime": "17:00", "endTime": "18:30",
                    "location": "  GOR  ", "category": "Olahraga", "priority": "URGENT", "confidence": 3})
    )
    event = await _extractor(provider).extract_one("gym", NOW)
    assert event.end_time == time(18, 30)
    assert event.location == "GOR"
    assert event.category == "Olahraga"
    assert event.priority == "medium"
    assert event.confidence == 1.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, missing",
    [
        ({"date": "2025-08-06", "startTime": "09:00"}, ["title"]),
        ({"title": "  ", "date": "2025-08-06", "startTime": "09:00"}, ["title"]),
        ({"title": "X", "startTime": "09:00"}, ["date"]),
        ({"title": "X"}, ["date", "startTime"]),
    ],
)
async def test_missing_required_fields(fake_provider_factory, payload, missing):
    provider = fake_provider_factory(json.dumps(payload))
    with pytest.raises(IncompleteExtractionError) as exc:
        await _extractor(provider).extract_one("something", NOW)
    assert exc.value.missing == missing


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        "I could not find an event.",
        '{"title": "X", "date": "06/08/2025", "startTime": "09:00"}',
        '{"title": "X", "date": "2025-08-06", "startTime": "nine"}',
        '{"title": "X", "date": "2025-08-06", "startTime": "23:59"}',
        '["not", "an", "object"]',
    ],
)
async def test_malformed_single_event(fake_provider_factory, response):
    provider = fake_provider_factory(response)
    with pytest.raises(MalformedResponseError):
        await _extractor(provider).extract_one("something", NOW)


@pytest.mark.asyncio
async def test_extracted_event_is_immutable(fake_provider_factory):
    provider = fake_provider_factory('{"title": "A", "date": "2025-08-06", "startTime": "09:00"}')
    event = await _extractor(provider).extract_one("a", NOW)
    with pytest.raises(Exception):
        event.title = "B"
    replaced = event.model_copy(update={"title": "B"})
    assert replaced.title == "B" and event.title == "A"
    assert replaced.source_text == "a"


@pytest.mark.asyncio
async def test_empty_phrase_is_rejected(fake_provider_factory):
    provider = fake_provider_factory("{}")
    with pytest.raises(ValueError):
        await _extractor(provider).extract_one("  ", NOW)
    assert provider.prompts == []
