import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from chessfocus import config, llm, prompts
from chessfocus.errors import LLMCallFailure, LLMResponseInvalid


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def fake_client(monkeypatch):
    def install(content=None, error=None):
        completions = FakeCompletions(content, error)
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        monkeypatch.setattr(llm, "_client", client)
        return completions

    return install


def openai_request():
    return httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def test_missing_key(monkeypatch):
    monkeypatch.setattr(llm, "_client", None)
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    with pytest.raises(LLMCallFailure) as info:
        asyncio.run(llm.request_json_completion("system", "prompt"))
    assert info.value.reason == LLMCallFailure.MISSING_KEY


def test_returns_parsed_object(fake_client):
    completions = fake_client(content='{"summary": "ok"}')
    assert asyncio.run(llm.request_json_completion("system", "prompt")) == {"summary": "ok"}

    call = completions.calls[0]
    assert call["model"] == config.OPENAI_MODEL
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0] == {"role": "system", "content": "system"}


@pytest.mark.parametrize("content", [None, "", "this is not json"])
def test_invalid_content(fake_client, content):
    fake_client(content=content)
    with pytest.raises(LLMResponseInvalid):
        asyncio.run(llm.request_json_completion("system", "prompt"))


@pytest.mark.parametrize("error, reason", [
    (openai.AuthenticationError(
        "bad key", response=httpx.Response(401, request=openai_request()), body=None,
    ), LLMCallFailure.INVALID_KEY),
    (openai.RateLimitError(
        "slow down", response=httpx.Response(429, request=openai_request()), body=None,
    ), LLMCallFailure.RATE_LIMITED),
    (openai.APIConnectionError(request=openai_request()), LLMCallFailure.GENERIC),
])
def test_call_failures(fake_client, error, reason):
    fake_client(error=error)
    with pytest.raises(LLMCallFailure) as info:
        asyncio.run(llm.request_json_completion("system", "prompt"))
    assert info.value.reason == reason


def test_game_prompt_embeds_pgn(sample_pgn):
    prompt = prompts.build_game_prompt(sample_pgn)
    assert sample_pgn in prompt
    assert "analyzedSide" in prompt
    assert "JSON" in prompt


def test_opponent_prompt_separates_games():
    prompt = prompts.build_opponent_prompt(["1. e4 e5", "1. d4 d5"])
    assert "---PGN---\n1. e4 e5\n\n---PGN---\n1. d4 d5" in prompt
    assert "moveVariants" in prompt
