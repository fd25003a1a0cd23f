"""Chat proxy tests — the LLM provider is a MockTransport."""

import json

import httpx
import pytest

from chatgate.config import settings
from conftest import completion


@pytest.mark.asyncio
async def test_chat_returns_first_completion(client, auth_headers, fake_llm):
    r = await client.post("/chat", json={"message": "Hi there"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"response": "Hello from the assistant"}

    assert len(fake_llm.requests) == 1
    sent = fake_llm.requests[0]
    assert sent.url.path.endswith("/chat/completions")
    assert sent.headers["Authorization"] == "Bearer test-llm-key"
    payload = json.loads(sent.content)
    assert payload["model"] == settings.llm_model
    assert payload["messages"] == [
        {"role": "system", "content": settings.llm_system_prompt},
        {"role": "user", "content": "Hi there"},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"choices": []},
        {"choices": [{"message": {"role": "assistant"}}]},
        {"choices": [{"message": {"content": ""}}]},
        {},
    ],
)
async def test_chat_falls_back_when_completion_is_empty(client, auth_headers, fake_llm, body):
    fake_llm.body = body
    r = await client.post("/chat", json={"message": "Hi"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"response": "No response."}


@pytest.mark.asyncio
async def test_upstream_error_detail_is_not_returned(client, auth_headers, fake_llm):
    fake_llm.status_code = 402
    fake_llm.body = {"error": {"message": "Insufficient credits for key sk-or-123"}}
    r = await client.post("/chat", json={"message": "Hi"}, headers=auth_headers)
    assert r.status_code == 500
    assert r.json() == {"error": "The assistant is unavailable right now"}
    assert "sk-or-123" not in r.text


@pytest.mark.asyncio
async def test_upstream_unreachable(client, auth_headers, fake_llm):
    fake_llm.raise_error = httpx.ConnectError("connection refused")
    r = await client.post("/chat", json={"message": "Hi"}, headers=auth_headers)
    assert r.status_code == 500
    assert r.json() == {"error": "The assistant is unavailable right now"}


@pytest.mark.asyncio
async def test_missing_api_key_does_not_call_upstream(client, auth_headers, fake_llm, monkeypatch):
    monkeypatch.setattr(settings, "llm_api_key", "")
    r = await client.post("/chat", json={"message": "Hi"}, headers=auth_headers)
    assert r.status_code == 500
    assert fake_llm.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}])
async def test_message_is_required(client, auth_headers, fake_llm, body):
    r = await client.post("/chat", json=body, headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Message is required"}
    assert fake_llm.requests == []


@pytest.mark.asyncio
async def test_chat_requires_a_session(client, fake_llm):
    r = await client.post("/chat", json={"message": "Hi"})
    assert r.status_code == 401
    r = await client.post(
        "/chat", json={"message": "Hi"}, headers={"Authorization": "Bearer forged"}
    )
    assert r.status_code == 401
    assert fake_llm.requests == []


@pytest.mark.asyncio
async def test_chat_accepts_session_cookie(client, registered, fake_llm):
    _, body = registered
    r = await client.post(
        "/chat", json={"message": "Hi"}, headers={"Cookie": f"token={body['token']}"}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_open_chat_when_auth_not_required(client, fake_llm, monkeypatch):
    monkeypatch.setattr(settings, "chat_requires_auth", False)
    fake_llm.body = completion("anonymous hello")
    r = await client.post("/chat", json={"message": "Hi"})
    assert r.status_code == 200
    assert r.json() == {"response": "anonymous hello"}
