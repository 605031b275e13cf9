"""Tests for provider profiles and the response generator."""

import json

import httpx
import pytest

from profile_bot.core.errors import GenerationError
from profile_bot.core.llm_connector import ResponseGenerator, build_messages, get_provider
from profile_bot.core.providers import anthropic_provider, openai_provider
from profile_bot.core.providers.base import Message


def openai_reply(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def anthropic_reply(text):
    return {"content": [{"type": "text", "text": text}]}


def make_generator(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResponseGenerator(client=client, **kwargs)


class RecordingHandler:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code=200, body=None, content=None):
        self.requests = []
        self.status_code = status_code
        self.body = body
        self.content = content

    def __call__(self, request):
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payload(self):
        return json.loads(self.requests[-1].content)


# ============================================================================
# Payload builders
# ============================================================================


def test_openai_payload_keeps_system_messages_in_list():
    messages = build_messages("Hi?", "CONTEXT", "RULES")
    payload = openai_provider.build_payload(messages, "gpt-4o-mini", 0.7, 500)

    assert payload["model"] == "gpt-4o-mini"
    assert [m["role"] for m in payload["messages"]] == ["system", "system", "user"]
    assert payload["top_p"] == 1
    assert payload["frequency_penalty"] == 0
    assert payload["presence_penalty"] == 0
    assert payload["max_tokens"] == 500


def test_anthropic_payload_merges_system_messages():
    messages = build_messages("Hi?", "CONTEXT", "RULES")
    payload = anthropic_provider.build_payload(messages, "claude", 0.7, 500)

    assert payload["system"].startswith("RULES\n\n")
    assert "CONTEXT" in payload["system"]
    assert payload["messages"] == [{"role": "user", "content": "Hi?"}]


def test_anthropic_payload_without_system_messages():
    payload = anthropic_provider.build_payload([Message("user", "Hi?")], "claude", 0.7, 500)
    assert payload["system"] == ""
    assert payload["messages"] == [{"role": "user", "content": "Hi?"}]


def test_anthropic_payload_with_only_system_messages():
    payload = anthropic_provider.build_payload([Message("system", "RULES")], "claude", 0.7, 500)
    assert payload["system"] == "RULES"
    assert payload["messages"] == []


def test_build_messages_embeds_context():
    messages = build_messages("Who?", "[Entry 1]\nType: fact\n", "RULES")
    assert messages[0] == Message("system", "RULES")
    assert "[Entry 1]" in messages[1].content
    assert "Use ONLY this information" in messages[1].content
    assert messages[2] == Message("user", "Who?")


@pytest.mark.parametrize(
    "extract,data",
    [
        (openai_provider.extract_response, {"choices": []}),
        (openai_provider.extract_response, {"choices": [{"message": {"content": ""}}]}),
        (anthropic_provider.extract_response, {"content": []}),
        (anthropic_provider.extract_response, {}),
    ],
)
def test_extract_rejects_empty_replies(extract, data):
    with pytest.raises(GenerationError):
        extract(data)


def test_unknown_provider():
    with pytest.raises(GenerationError) as exc_info:
        get_provider("gemini")
    assert "gemini" in str(exc_info.value)


def test_provider_lookup_is_case_insensitive():
    assert get_provider("OpenAI").name == "openai"


# ============================================================================
# ResponseGenerator
# ============================================================================


@pytest.mark.asyncio
async def test_openai_request_shape():
    handler = RecordingHandler(body=openai_reply("  Jane knows Python.  "))
    generator = make_generator(handler, persona_name="Jane Doe")

    reply = await generator.generate("Languages?", "CONTEXT", "sk-test", "openai")

    assert reply == "Jane knows Python."
    request = handler.requests[0]
    assert str(request.url) == openai_provider.OPENAI_API_URL
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert handler.payload["model"] == openai_provider.OPENAI_DEFAULT_MODEL
    assert "Jane Doe" in handler.payload["messages"][0]["content"]
    assert handler.payload["messages"][2] == {"role": "user", "content": "Languages?"}


@pytest.mark.asyncio
async def test_anthropic_request_shape():
    handler = RecordingHandler(body=anthropic_reply("Jane knows Go."))
    generator = make_generator(handler)

    reply = await generator.generate("Languages?", "CONTEXT", "ak-test", "anthropic")

    assert reply == "Jane knows Go."
    request = handler.requests[0]
    assert str(request.url) == anthropic_provider.ANTHROPIC_API_URL
    assert request.headers["x-api-key"] == "ak-test"
    assert request.headers["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in request.headers
    assert handler.payload["model"] == anthropic_provider.ANTHROPIC_DEFAULT_MODEL
    assert "CONTEXT" in handler.payload["system"]


@pytest.mark.asyncio
async def test_model_override():
    handler = RecordingHandler(body=openai_reply("ok"))
    generator = make_generator(handler)

    await generator.generate("Q", "C", "sk-test", "openai", model="gpt-4o-mini")
    assert handler.payload["model"] == "gpt-4o-mini"


@pytest.mark.asyncio
async def test_generation_settings_reach_payload():
    handler = RecordingHandler(body=openai_reply("ok"))
    generator = make_generator(handler, temperature=0.2, max_tokens=128)

    await generator.generate("Q", "C", "sk-test", "openai")
    assert handler.payload["temperature"] == 0.2
    assert handler.payload["max_tokens"] == 128


@pytest.mark.asyncio
async def test_missing_api_key_makes_no_request():
    handler = RecordingHandler(body=openai_reply("ok"))
    generator = make_generator(handler)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("Q", "C", None, "openai")

    assert exc_info.value.provider == "openai"
    assert handler.requests == []


@pytest.mark.asyncio
async def test_unknown_provider_makes_no_request():
    handler = RecordingHandler(body=openai_reply("ok"))
    generator = make_generator(handler)

    with pytest.raises(GenerationError):
        await generator.generate("Q", "C", "key", "gemini")
    assert handler.requests == []


@pytest.mark.asyncio
async def test_non_2xx_status():
    handler = RecordingHandler(status_code=503, body={"error": "overloaded"})
    generator = make_generator(handler)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("Q", "C", "sk-test", "openai")

    assert exc_info.value.status_code == 503
    assert str(exc_info.value).startswith("openai API error: 503")


@pytest.mark.asyncio
@pytest.mark.parametrize("exc_type", [httpx.ReadTimeout, httpx.ConnectTimeout])
async def test_timeout(exc_type):
    def handler(request):
        raise exc_type("timed out", request=request)

    generator = make_generator(handler, timeout=0.5)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("Q", "C", "sk-test", "openai")
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    generator = make_generator(handler)

    with pytest.raises(GenerationError):
        await generator.generate("Q", "C", "sk-test", "anthropic")


@pytest.mark.asyncio
async def test_malformed_json_body():
    handler = RecordingHandler(content=b"<html>gateway</html>")
    generator = make_generator(handler)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("Q", "C", "sk-test", "openai")
    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
async def test_empty_choices():
    handler = RecordingHandler(body={"choices": []})
    generator = make_generator(handler)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("Q", "C", "sk-test", "openai")
    assert "No response from OpenAI API" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unexpected_block_shape():
    handler = RecordingHandler(body={"content": ["not-a-block"]})
    generator = make_generator(handler)

    with pytest.raises(GenerationError):
        await generator.generate("Q", "C", "ak-test", "anthropic")


@pytest.mark.asyncio
async def test_aclose_leaves_shared_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(RecordingHandler(body={})))
    generator = ResponseGenerator(client=client)

    await generator.aclose()
    assert client.is_closed is False
    await client.aclose()
