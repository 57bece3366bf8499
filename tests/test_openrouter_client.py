import json

import pytest
import requests

import openrouter_client
from config import Settings
from openrouter_client import OpenRouterClient, parse_json_object


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def _client(**kwargs):
    settings = Settings(openrouter_api_key="sk-or-test-1234567890", app_title="CodeCrafter")
    return OpenRouterClient(settings=settings, **kwargs)


def test_missing_key_raises():
    with pytest.raises(RuntimeError, match="OPENROUTER_API_KEY"):
        OpenRouterClient(settings=Settings(openrouter_api_key=""))


def test_chat_posts_payload(monkeypatch):
    captured = {}

    def fake_post(url, json, headers, timeout):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse(body={"choices": [{"message": {"content": "hello"}}]})

    monkeypatch.setattr(openrouter_client.requests, "post", fake_post)
    client = _client(model="test/model")
    out = client.chat([{"role": "user", "content": "hi"}], temperature=0.5)

    assert out == "hello"
    assert captured["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert captured["json"]["model"] == "test/model"
    assert captured["json"]["temperature"] == 0.5
    assert captured["headers"]["Authorization"] == "Bearer sk-or-test-1234567890"
    assert captured["headers"]["X-Title"] == "CodeCrafter"
    assert "HTTP-Referer" not in captured["headers"]


def test_chat_non_200_raises(monkeypatch):
    monkeypatch.setattr(openrouter_client.requests, "post",
                        lambda *a, **k: FakeResponse(status_code=429, text="rate limited"))
    with pytest.raises(RuntimeError, match="429"):
        _client().chat([{"role": "user", "content": "hi"}])


def test_chat_transport_error_raises(monkeypatch):
    def boom(*a, **k):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(openrouter_client.requests, "post", boom)
    with pytest.raises(RuntimeError, match="request failed"):
        _client().chat([{"role": "user", "content": "hi"}])


def test_chat_unexpected_body_raises(monkeypatch):
    monkeypatch.setattr(openrouter_client.requests, "post",
                        lambda *a, **k: FakeResponse(body={"choices": []}, text="{}"))
    with pytest.raises(RuntimeError, match="unexpected body"):
        _client().chat([{"role": "user", "content": "hi"}])


def test_chat_json(monkeypatch):
    content = '```json\n{"score": 80, "passed": true, "feedback": "ok",}\n```'
    monkeypatch.setattr(openrouter_client.requests, "post",
                        lambda *a, **k: FakeResponse(body={"choices": [{"message": {"content": content}}]}))
    assert _client().chat_json([{"role": "user", "content": "grade"}]) == {
        "score": 80, "passed": True, "feedback": "ok",
    }


def test_parse_json_object_with_surrounding_prose():
    text = 'Sure! Here it is: {"hint": "Use a set"} Hope that helps.'
    assert parse_json_object(text) == {"hint": "Use a set"}


@pytest.mark.parametrize("text", ["not json at all", "[1, 2, 3]", ""])
def test_parse_json_object_rejects(text):
    with pytest.raises(RuntimeError):
        parse_json_object(text)


def test_parse_json_object_bare_object():
    assert parse_json_object('  {"topic": "Recursion"}\n') == {"topic": "Recursion"}


SOLUTION_WITH_FENCE = {
    "solution": "```python\ndef f():\n    return 1\n```",
    "explanation": "Returns one.",
}


def test_parse_json_object_keeps_fences_inside_strings():
    assert parse_json_object(json.dumps(SOLUTION_WITH_FENCE)) == SOLUTION_WITH_FENCE


def test_parse_json_object_outer_json_fence_with_inner_fences():
    text = "```json\n" + json.dumps(SOLUTION_WITH_FENCE, indent=2) + "\n```"
    assert parse_json_object(text) == SOLUTION_WITH_FENCE
