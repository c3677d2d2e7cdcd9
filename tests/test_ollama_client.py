import json

import httpx
import pytest

from game_analyzer.errors import AugmentationFailed, AugmentationUnavailable
from game_analyzer.providers.ollama import OllamaInsightClient


def _client(handler) -> OllamaInsightClient:
    return OllamaInsightClient(
        model="tinyllama",
        base_url="http://ollama.test:11434/",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_ping_hits_tags_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(200, json={"models": []})

    await _client(handler).ping()
    assert seen == [("GET", "/api/tags")]


@pytest.mark.asyncio
async def test_ping_connection_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AugmentationUnavailable):
        await _client(handler).ping()


@pytest.mark.asyncio
async def test_ping_error_status_is_unavailable():
    with pytest.raises(AugmentationUnavailable):
        await _client(lambda request: httpx.Response(503)).ping()


@pytest.mark.asyncio
async def test_generate_sends_non_streaming_request():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"model": "tinyllama", "response": "  Aim higher.  ", "done": True})

    text = await _client(handler).generate("Total Shots: 3")
    assert text == "Aim higher."
    assert captured["path"] == "/api/generate"
    assert captured["body"] == {"model": "tinyllama", "prompt": "Total Shots: 3", "stream": False}


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, text="model crashed"),
    httpx.Response(200, text="not json"),
    httpx.Response(200, json=["a", "list"]),
    httpx.Response(200, json={"done": True}),
    httpx.Response(200, json={"response": "   "}),
    httpx.Response(200, json={"error": "model 'tinyllama' not found"}),
])
async def test_generate_rejects_unusable_responses(response):
    with pytest.raises(AugmentationFailed):
        await _client(lambda request: response).generate("prompt")


@pytest.mark.asyncio
async def test_generate_timeout_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow model", request=request)

    with pytest.raises(AugmentationUnavailable):
        await _client(handler).generate("prompt")


@pytest.mark.asyncio
async def test_warm_up_sends_short_prompt():
    prompts = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["prompt"])
        return httpx.Response(200, json={"response": "Hello!"})

    await _client(handler).warm_up()
    assert prompts == ["Hi"]
