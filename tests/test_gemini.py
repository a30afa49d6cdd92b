"""
Tests for the Gemini model adapter
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.genai import types

from treebot.llm import GeminiModel

from tests.mocks import make_config


@pytest.fixture
def client():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text="  findTrees({})\n"))
    return client


@pytest.mark.asyncio
async def test_generate_returns_stripped_text(client):
    model = GeminiModel(make_config(default_model="gemini-test"), client=client)

    text = await model.generate("chop trees")

    assert text == "findTrees({})"
    kwargs = client.aio.models.generate_content.await_args.kwargs
    assert kwargs["model"] == "gemini-test"
    content = kwargs["contents"][0]
    assert content.role == "user"
    assert content.parts[0].text == "chop trees"
    assert isinstance(kwargs["config"], types.GenerateContentConfig)


@pytest.mark.asyncio
async def test_generate_handles_empty_response(client):
    client.aio.models.generate_content.return_value = MagicMock(text=None)
    model = GeminiModel(make_config(), client=client)

    assert await model.generate("hello") == ""


def test_generation_config_uses_settings(client):
    model = GeminiModel(make_config(agent_temperature=0.7, max_output_tokens=128), client=client)

    assert model.generation_config.temperature == 0.7
    assert model.generation_config.max_output_tokens == 128


def test_client_built_from_api_key():
    with patch("treebot.llm.gemini.genai.Client") as client_class:
        GeminiModel(make_config(gemini_api_key="abc"))

    client_class.assert_called_once_with(api_key="abc")


def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    with pytest.raises(ValueError):
        GeminiModel(make_config(gemini_api_key=None))
