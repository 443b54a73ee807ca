# chitchat/tests/integration/test_bots_api.py
import json

import httpx
import pytest
from httpx import AsyncClient

from chitchat.infrastructure.ai_providers import create_provider_registry

pytestmark = pytest.mark.asyncio


@pytest.fixture
def provider_requests():
    return []


@pytest.fixture
async def fake_ai_backend(app, application, provider_requests):
    """Route provider calls to an in-process handler instead of the internet."""

    def handler(request: httpx.Request) -> httpx.Response:
        provider_requests.append(request)
        if request.headers.get("Authorization") == "Bearer bad-key":
            return httpx.Response(401, json={"error": "invalid api key"})
        if request.url.host == "generativelanguage.googleapis.com":
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": " Hi from Gemini "}]}}]},
            )
        return httpx.Response(
            200, json={"choices": [{"message": {"content": "Hi from a chat model"}}]}
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        app.state.ai_registry = create_provider_registry(http_client, application.logger)
        yield


async def test_read_providers(client: AsyncClient, auth_header):
    response = await client.get("/api/v1/bots/providers", headers=auth_header)
    assert response.status_code == 200
    providers = {p["name"]: p["supported_models"] for p in response.json()}
    assert set(providers) == {"gemini", "openai", "mistral"}
    assert "gpt-4o" in providers["openai"]


async def test_generate_reply(
    client: AsyncClient, auth_header, fake_ai_backend, provider_requests
):
    response = await client.post(
        "/api/v1/bots/generate",
        headers=auth_header,
        json={
            "provider": "openai",
            "prompt": "Say hi",
            "api_key": "sk-test",
            "context": "Earlier we talked about cats",
        },
    )
    assert response.status_code == 200
    assert response.json() == {
        "provider": "openai",
        "model": "gpt-4o",
        "text": "Hi from a chat model",
    }

    sent = json.loads(provider_requests[0].content)
    assert provider_requests[0].url.path == "/v1/chat/completions"
    assert sent["model"] == "gpt-4o"
    assert "Earlier we talked about cats" in sent["messages"][0]["content"]
    assert sent["messages"][0]["content"].endswith("User's message: Say hi")


async def test_generate_with_gemini(client: AsyncClient, auth_header, fake_ai_backend):
    response = await client.post(
        "/api/v1/bots/generate",
        headers=auth_header,
        json={
            "provider": "gemini",
            "prompt": "Say hi",
            "api_key": "g-key",
            "model": "gemini-1.5-pro",
        },
    )
    assert response.status_code == 200
    assert response.json()["text"] == "Hi from Gemini"
    assert response.json()["model"] == "gemini-1.5-pro"


async def test_generate_errors(client: AsyncClient, auth_header, fake_ai_backend):
    response = await client.post(
        "/api/v1/bots/generate",
        headers=auth_header,
        json={"provider": "unknown", "prompt": "hi", "api_key": "k"},
    )
    assert response.status_code == 404

    response = await client.post(
        "/api/v1/bots/generate",
        headers=auth_header,
        json={"provider": "openai", "prompt": "hi", "api_key": "k", "model": "nope"},
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/v1/bots/generate",
        headers=auth_header,
        json={"provider": "mistral", "prompt": "hi", "api_key": "bad-key"},
    )
    assert response.status_code == 502
    assert response.json()["code"] == "PROVIDER_ERROR"


async def test_connection_check(client: AsyncClient, auth_header, fake_ai_backend):
    response = await client.post(
        "/api/v1/bots/test",
        headers=auth_header,
        json={"provider": "mistral", "api_key": "good-key"},
    )
    assert response.json() == {"provider": "mistral", "ok": True}

    response = await client.post(
        "/api/v1/bots/test",
        headers=auth_header,
        json={"provider": "mistral", "api_key": "bad-key"},
    )
    assert response.json() == {"provider": "mistral", "ok": False}


async def test_bots_require_auth(client: AsyncClient):
    response = await client.get("/api/v1/bots/providers")
    assert response.status_code == 401
