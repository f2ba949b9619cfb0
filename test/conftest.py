import pytest

from schedule_ai.exceptions import UpstreamError


class FakeProvider:
    """Replays canned responses in order; the last one repeats."""

    name = "fake"

    def __init__(self, *responses):
        self._responses = list(responses) or [""]
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        idx = min(len(self.prompts) - 1, len(self._responses) - 1)
        response = self._responses[idx]
        if isinstance(response, Exception):
            raise response
        return response


class FakeCalendar:
    """Calendar double: rejects payloads for which ``reject(payload)`` is true."""

    def __init__(self, events=None, reject=None):
        self.events = list(events or [])
        self.reject = reject or (lambda payload: False)
        self.attempts = []
        self.created = []
        self.list_calls = []

    async def list_events(self, time_min, time_max=None):
        self.list_calls.append((time_min, time_max))
        return list(self.events)

    async def create_event(self, payload):
        self.attempts.append(payload)
        if self.reject(payload):
            raise UpstreamError(409, "Conflict")
        created = {"id": f"evt-{len(self.created) + 1}", **payload}
        self.created.append(created)
        return created


@pytest.fixture
def fake_provider_factory():
    def _make(*responses):
        return FakeProvider(*responses)
    return _make


@pytest.fixture
def fake_calendar_factory():
    def _make(events=None, reject=None):
        return FakeCalendar(events=events, reject=reject)
    return _make
