import pytest

from llm.llm_client import LLMClient
from schedule_ai.exceptions import MalformedResponseError, TransportError, UpstreamError


@pytest.mark.asyncio
async def test_llm_extra_text_around_json(fake_provider_factory):
    provider = fake_provider_factory(
        'Sure! Here is the result: {"title":"Call mom","date":"2025-01-01"} Thanks.'
    )
    client = LLMClient(provider=provider)
    out = await client.complete_json("Call mom", "object")
    assert out["title"] == "Call mom"


@pytest.mark.asyncio
async def test_llm_invalid_json_raises(fake_provider_factory):
    provider = fake_provider_factory("INVALID OUTPUT")
    client = LLMClient(provider=provider)
    with pytest.raises(MalformedResponseError) as exc:
        await client.complete_json("Anything", "object")
    assert exc.value.raw == "INVALID OUTPUT"


@pytest.mark.asyncio
async def test_llm_empty_response_is_malformed_json(fake_provider_factory):
    client = LLMClient(provider=fake_provider_factory(""))
    assert await client.complete("Anything") == ""
    with pytest.raises(MalformedResponseError):
        await client.complete_json("Anything", "array")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [UpstreamError(500, "Internal Server Error"), TransportError("dns")])
async def test_provider_errors_propagate_without_retry(fake_provider_factory, error):
    provider = fake_provider_factory(error)
    client = LLMClient(provider=provider)
    with pytest.raises(type(error)):
        await client.complete("Anything")
    assert len(provider.prompts) == 1
