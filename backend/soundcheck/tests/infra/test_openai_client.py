from types import SimpleNamespace

import pytest

from soundcheck.infra.llm.openai_client import OpenAIJsonClient


class _Completions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _fake_openai(content):
    completions = _Completions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        OpenAIJsonClient()


def test_requests_json_object():
    fake, completions = _fake_openai('{"category": "concert"}')
    client = OpenAIJsonClient(model="gpt-4o-mini", client=fake)

    assert client.complete_json("system", "user") == '{"category": "concert"}'
    assert completions.kwargs["response_format"] == {"type": "json_object"}
    assert completions.kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert completions.kwargs["model"] == "gpt-4o-mini"


def test_empty_message_becomes_empty_string():
    fake, _ = _fake_openai(None)
    assert OpenAIJsonClient(client=fake).complete_json("s", "u") == ""
