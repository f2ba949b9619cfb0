import pytest

from llm.llm_client import LLMClient, provider_from_env
from llm.providers.mock_provider import MockProvider


@pytest.mark.asyncio
async def test_complete_returns_provider_text(fake_provider_factory):
    provider = fake_provider_factory('{"title":"Send invoice"}')
    client = LLMClient(provider=provider)
    out = await client.complete("Send invoice")
    assert out == '{"title":"Send invoice"}'
    assert provider.prompts == ["Send invoice"]


@pytest.mark.asyncio
async def test_complete_json_strips_fences(fake_provider_factory):
    provider = fake_provider_factory('```json\n[{"title":"Send invoice"}]\n```')
    client = LLMClient(provider=provider)
    data = await client.complete_json("Send invoice", "array")
    assert data == [{"title": "Send invoice"}]


def test_provider_from_env_mock(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    assert isinstance(provider_from_env(), MockProvider)


def test_provider_from_env_unknown(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "nope")
    with pytest.raises(RuntimeError):
        provider_from_env()


def test_gemini_requires_api_key(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "gemini")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        provider_from_env()
