"""Tests for the completion client adapters against a mocked HTTP transport."""

import json

import httpx
import pytest

from govgen.config import Settings
from govgen.errors import ModelResponseInvalid, ModelUnavailable
from govgen.services.completion_client import (
    Message,
    OllamaCompletionClient,
    OpenAICompatibleCompletionClient,
    build_completion_client,
    parse_structured,
)
from govgen.services.prompts import VALIDATION_SCHEMA

MESSAGES = [Message("system", "You are a code validation expert."), Message("user", "Analyze this")]

VERDICT = {
    "testsPassed": True,
    "testCoverage": 85,
    "adrCompliant": True,
    "cpApViolations": 0,
    "piiMaskingEnforced": True,
    "details": "ok",
}


def _recording_transport(response_factory):
    """MockTransport that stores each request on .requests."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return response_factory(request)

    transport = httpx.MockTransport(handler)
    transport.requests = requests
    return transport


def _ollama(content, transport=None):
    transport = transport or _recording_transport(
        lambda r: httpx.Response(200, json={"message": {"role": "assistant", "content": content}})
    )
    return OllamaCompletionClient("http://llm:11434/", "qwen3:8b", transport=transport), transport


def _openai(content, transport=None, api_key="sk-test"):
    transport = transport or _recording_transport(
        lambda r: httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": content}}]},
        )
    )
    client = OpenAICompatibleCompletionClient(
        "https://api.example.com/v1", "gpt-4o-mini", api_key=api_key, transport=transport,
    )
    return client, transport


# ── Ollama ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestOllamaClient:
    async def test_text_completion(self):
        client, transport = _ollama("public class A {}")

        result = await client.complete(MESSAGES)

        assert result == "public class A {}"
        request = transport.requests[0]
        assert str(request.url) == "http://llm:11434/api/chat"
        payload = json.loads(request.content)
        assert payload["model"] == "qwen3:8b"
        assert payload["stream"] is False
        assert payload["messages"] == [m.as_dict() for m in MESSAGES]
        assert "format" not in payload

    async def test_think_block_is_stripped(self):
        client, _ = _ollama("<think>\nplanning...\n</think>\n\nFinal reasoning")
        assert await client.complete(MESSAGES) == "Final reasoning"

    async def test_schema_is_sent_as_format(self):
        client, transport = _ollama(json.dumps(VERDICT))

        result = await client.complete(MESSAGES, VALIDATION_SCHEMA)

        assert result == VERDICT
        payload = json.loads(transport.requests[0].content)
        assert payload["format"] == VALIDATION_SCHEMA.schema

    async def test_missing_message_is_invalid(self):
        transport = _recording_transport(lambda r: httpx.Response(200, json={"done": True}))
        client, _ = _ollama(None, transport)
        with pytest.raises(ModelResponseInvalid):
            await client.complete(MESSAGES)


# ── OpenAI-compatible ────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestOpenAICompatibleClient:
    async def test_text_completion(self):
        client, transport = _openai("reasoning text")

        assert await client.complete(MESSAGES) == "reasoning text"
        request = transport.requests[0]
        assert str(request.url) == "https://api.example.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert "response_format" not in json.loads(request.content)

    async def test_no_api_key_sends_no_authorization(self):
        client, transport = _openai("text", api_key="")
        await client.complete(MESSAGES)
        assert "Authorization" not in transport.requests[0].headers

    async def test_schema_uses_strict_response_format(self):
        client, transport = _openai(json.dumps(VERDICT))

        result = await client.complete(MESSAGES, VALIDATION_SCHEMA)

        assert result["testCoverage"] == 85
        response_format = json.loads(transport.requests[0].content)["response_format"]
        assert response_format["type"] == "json_schema"
        assert response_format["json_schema"]["name"] == "validation_result"
        assert response_format["json_schema"]["strict"] is True

    async def test_empty_choices_is_invalid(self):
        transport = _recording_transport(lambda r: httpx.Response(200, json={"choices": []}))
        client, _ = _openai(None, transport)
        with pytest.raises(ModelResponseInvalid):
            await client.complete(MESSAGES)


# ── Transport failures ───────────────────────────────────────────────────────

def _raising(exc_type):
    def handler(request):
        raise exc_type("boom", request=request)
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
class TestTransportFailures:
    async def test_server_error_is_unavailable(self):
        transport = _recording_transport(lambda r: httpx.Response(500, text="overloaded"))
        client, _ = _openai(None, transport)
        with pytest.raises(ModelUnavailable):
            await client.complete(MESSAGES)

    async def test_connect_error_is_unavailable(self):
        client, _ = _ollama(None, _raising(httpx.ConnectError))
        with pytest.raises(ModelUnavailable):
            await client.complete(MESSAGES)

    async def test_timeout_is_unavailable(self):
        client, _ = _ollama(None, _raising(httpx.ReadTimeout))
        with pytest.raises(ModelUnavailable, match="timed out"):
            await client.complete(MESSAGES)

    async def test_non_json_envelope_is_invalid(self):
        transport = _recording_transport(lambda r: httpx.Response(200, text="<html>gateway</html>"))
        client, _ = _ollama(None, transport)
        with pytest.raises(ModelResponseInvalid):
            await client.complete(MESSAGES)


# ── Structured output parsing ────────────────────────────────────────────────

class TestParseStructured:
    def test_plain_json(self):
        assert parse_structured(json.dumps(VERDICT), VALIDATION_SCHEMA) == VERDICT

    def test_fenced_json_is_accepted(self):
        content = f"Here you go:\n```json\n{json.dumps(VERDICT)}\n```"
        assert parse_structured(content, VALIDATION_SCHEMA) == VERDICT

    def test_prose_is_invalid_and_keeps_raw_text(self):
        with pytest.raises(ModelResponseInvalid) as exc_info:
            parse_structured("All good!", VALIDATION_SCHEMA)
        assert exc_info.value.raw_text == "All good!"

    def test_missing_field_is_invalid(self):
        partial = {k: v for k, v in VERDICT.items() if k != "details"}
        with pytest.raises(ModelResponseInvalid):
            parse_structured(json.dumps(partial), VALIDATION_SCHEMA)

    def test_out_of_range_coverage_is_invalid(self):
        with pytest.raises(ModelResponseInvalid):
            parse_structured(json.dumps({**VERDICT, "testCoverage": 150}), VALIDATION_SCHEMA)

    def test_json_array_is_invalid(self):
        with pytest.raises(ModelResponseInvalid):
            parse_structured("[1, 2]", VALIDATION_SCHEMA)


# ── Factory ──────────────────────────────────────────────────────────────────

class TestBuildCompletionClient:
    def test_ollama_by_default(self):
        client = build_completion_client(Settings(llm_provider="ollama"))
        assert isinstance(client, OllamaCompletionClient)

    def test_openai_provider(self):
        config = Settings(
            llm_provider="openai",
            llm_base_url="https://api.example.com/v1",
            llm_api_key="sk-test",
            llm_read_timeout_seconds=42,
        )
        client = build_completion_client(config)
        assert isinstance(client, OpenAICompatibleCompletionClient)
        assert client.base_url == "https://api.example.com/v1"
        assert client.timeout.read == 42

    def test_unknown_provider_is_rejected(self):
        with pytest.raises(ValueError):
            Settings(llm_provider="bard")
