"""
The completion client: the only boundary between the pipeline and the model.

Two adapters speak the same contract:

    complete(messages, schema=None) -> str | dict

* OllamaCompletionClient           POST {base}/api/chat
* OpenAICompatibleCompletionClient POST {base}/chat/completions

Without a schema the first message content comes back as text. With an
OutputSchema the content is parsed as JSON and checked against the schema
before it is returned.

Failures are typed: transport errors, timeouts and non-2xx responses raise
ModelUnavailable; empty, non-JSON or non-conforming content raises
ModelResponseInvalid. Nothing here retries.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

import httpx
from jsonschema import ValidationError as SchemaValidationError, validate

from govgen.config import Settings
from govgen.errors import ModelResponseInvalid, ModelUnavailable
from govgen.middleware.metrics import completion_requests_total

logger = logging.getLogger(__name__)

_THINK_RE = re.compile(r"<think>.*?</think>\s*", flags=re.DOTALL)
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", flags=re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class Message:
    role: str  # "system" | "user"
    content: str

    def as_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class OutputSchema:
    name: str
    schema: dict = field(default_factory=dict)


class CompletionClient(Protocol):
    provider: str

    async def complete(self, messages: list[Message], schema: OutputSchema | None = None) -> str | dict:
        ...


def parse_structured(content: str, schema: OutputSchema) -> dict:
    """Parse model output as JSON and check it against the requested schema."""
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        fenced = _FENCE_RE.findall(content)
        if not fenced:
            raise ModelResponseInvalid(f"{schema.name}: response is not valid JSON", raw_text=content)
        try:
            parsed = json.loads(fenced[0])
        except json.JSONDecodeError as exc:
            raise ModelResponseInvalid(f"{schema.name}: response is not valid JSON", raw_text=content) from exc

    if not isinstance(parsed, dict):
        raise ModelResponseInvalid(f"{schema.name}: expected a JSON object", raw_text=content)
    try:
        validate(instance=parsed, schema=schema.schema)
    except SchemaValidationError as exc:
        raise ModelResponseInvalid(f"{schema.name}: {exc.message}", raw_text=content) from exc
    return parsed


class _HTTPCompletionClient:
    provider = "http"

    def __init__(
        self,
        base_url: str,
        model: str,
        *,
        api_key: str = "",
        temperature: float = 0.2,
        max_tokens: int = 4096,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout or httpx.Timeout(connect=10.0, read=300.0, write=10.0, pool=10.0)
        self._transport = transport

    # Subclass hooks

    def _endpoint(self) -> str:
        raise NotImplementedError

    def _build_payload(self, messages: list[Message], schema: OutputSchema | None) -> dict:
        raise NotImplementedError

    def _extract_content(self, body: dict) -> str | None:
        raise NotImplementedError

    def _headers(self) -> dict:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    # Contract

    async def complete(self, messages: list[Message], schema: OutputSchema | None = None) -> str | dict:
        payload = self._build_payload(messages, schema)
        url = self._endpoint()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport, headers=self._headers(),
            ) as client:
                resp = await client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            completion_requests_total.labels(provider=self.provider, outcome="timeout").inc()
            logger.warning("%s completion timed out (%s)", self.provider, url)
            raise ModelUnavailable(f"{self.provider} completion timed out") from exc
        except httpx.HTTPError as exc:
            completion_requests_total.labels(provider=self.provider, outcome="unavailable").inc()
            logger.warning("%s completion failed: %s", self.provider, exc)
            raise ModelUnavailable(f"{self.provider} completion service unreachable: {exc}") from exc

        if resp.status_code >= 400:
            completion_requests_total.labels(provider=self.provider, outcome="http_error").inc()
            logger.warning("%s completion returned HTTP %s", self.provider, resp.status_code)
            raise ModelUnavailable(f"{self.provider} completion service returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            completion_requests_total.labels(provider=self.provider, outcome="invalid").inc()
            raise ModelResponseInvalid(
                f"{self.provider} returned a non-JSON envelope", raw_text=resp.text,
            ) from exc

        content = self._extract_content(body) if isinstance(body, dict) else None
        if not content:
            completion_requests_total.labels(provider=self.provider, outcome="invalid").inc()
            raise ModelResponseInvalid(f"{self.provider} returned empty content")

        content = _THINK_RE.sub("", content).strip()
        if schema is None:
            completion_requests_total.labels(provider=self.provider, outcome="ok").inc()
            return content

        try:
            parsed = parse_structured(content, schema)
        except ModelResponseInvalid:
            completion_requests_total.labels(provider=self.provider, outcome="invalid").inc()
            raise
        completion_requests_total.labels(provider=self.provider, outcome="ok").inc()
        return parsed


class OllamaCompletionClient(_HTTPCompletionClient):
    """Native Ollama chat API; `format` carries the JSON schema."""

    provider = "ollama"

    def _endpoint(self) -> str:
        return f"{self.base_url}/api/chat"

    def _build_payload(self, messages: list[Message], schema: OutputSchema | None) -> dict:
        payload = {
            "model": self.model,
            "messages": [m.as_dict() for m in messages],
            "stream": False,
            "options": {"temperature": self.temperature, "num_predict": self.max_tokens},
        }
        if schema is not None:
            payload["format"] = schema.schema
        return payload

    def _extract_content(self, body: dict) -> str | None:
        message = body.get("message") or {}
        content = message.get("content")
        return content if isinstance(content, str) else None


class OpenAICompatibleCompletionClient(_HTTPCompletionClient):
    """OpenAI-style chat completions; reads the first choice."""

    provider = "openai"

    def _endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _build_payload(self, messages: list[Message], schema: OutputSchema | None) -> dict:
        payload = {
            "model": self.model,
            "messages": [m.as_dict() for m in messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema.name, "strict": True, "schema": schema.schema},
            }
        return payload

    def _extract_content(self, body: dict) -> str | None:
        choices = body.get("choices") or []
        if not choices:
            return None
        content = (choices[0].get("message") or {}).get("content")
        return content if isinstance(content, str) else None


def build_completion_client(config: Settings, transport: httpx.AsyncBaseTransport | None = None) -> CompletionClient:
    """Pick the adapter named by LLM_PROVIDER."""
    timeout = httpx.Timeout(
        connect=config.llm_connect_timeout_seconds,
        read=config.llm_read_timeout_seconds,
        write=10.0,
        pool=10.0,
    )
    cls = OpenAICompatibleCompletionClient if config.llm_provider == "openai" else OllamaCompletionClient
    return cls(
        config.llm_base_url,
        config.llm_model,
        api_key=config.llm_api_key,
        temperature=config.llm_temperature,
        max_tokens=config.llm_max_tokens,
        timeout=timeout,
        transport=transport,
    )
