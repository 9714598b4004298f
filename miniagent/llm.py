"""Model clients: OpenAI-compatible HTTP API (httpx) and Ollama (official SDK)."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Sequence
from typing import Any, Protocol

import httpx
import ollama

from .agent.models import ChatResponse, Message, ToolCall
from .config import Config
from .errors import ConfigError, ModelTransportError

logger = logging.getLogger("miniagent.llm")


class ModelClient(Protocol):
    model: str

    async def chat(self, messages: Sequence[Message], tools: list[dict[str, Any]] | None = None) -> ChatResponse:
        ...

    async def health_check(self) -> bool:
        ...

    async def close(self) -> None:
        ...


class OpenAIClient:
    """Speaks the /chat/completions wire format of OpenAI-compatible providers."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self.base_url = base_url.rstrip("/") + "/"
        logger.info(f"Initializing OpenAI-compatible client for {self.base_url}, model: {model}, timeout: {timeout}")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def health_check(self) -> bool:
        """Check if the provider is reachable and accepts our key."""
        try:
            response = await self._client.get("models")
            return response.status_code < 400
        except httpx.HTTPError:
            return False

    async def chat(self, messages: Sequence[Message], tools: list[dict[str, Any]] | None = None) -> ChatResponse:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
        }
        if tools:
            payload["tools"] = tools

        try:
            response = await self._client.post("chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:500]
            logger.error(f"Provider returned HTTP {e.response.status_code}: {body}")
            raise ModelTransportError(f"HTTP {e.response.status_code} from {e.request.url}: {body}") from e
        except httpx.HTTPError as e:
            logger.error(f"Request to provider failed: {e!r}")
            raise ModelTransportError(f"Request to {self.base_url} failed: {e!r}") from e
        except ValueError as e:
            raise ModelTransportError(f"Provider returned a body that is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise ModelTransportError("Provider returned an unexpected response shape")
        try:
            return ChatResponse.from_dict(data)
        except (AttributeError, TypeError) as e:
            logger.error(f"Malformed completion from provider: {e!r}")
            raise ModelTransportError("Provider returned an unexpected response shape") from e


class OllamaClient:
    """Wrapper around the official ollama.AsyncClient."""

    def __init__(self, host: str, model: str, timeout: float | None = None) -> None:
        self.model = model
        host = host.rstrip("/")
        logger.info(f"Initializing Ollama SDK client for host: {host}, model: {model}, timeout: {timeout}")
        self._client = ollama.AsyncClient(host=host, timeout=timeout)

    async def close(self) -> None:
        pass

    async def health_check(self) -> bool:
        """Check if Ollama is reachable."""
        try:
            await self._client.list()
            return True
        except Exception:
            return False

    async def chat(self, messages: Sequence[Message], tools: list[dict[str, Any]] | None = None) -> ChatResponse:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": _to_ollama_messages(messages),
        }
        if tools:
            kwargs["tools"] = tools

        try:
            response = await self._client.chat(**kwargs)
        except ollama.ResponseError as e:
            logger.error(f"Ollama ResponseError: {e.error}")
            raise ModelTransportError(f"Ollama error ({e.status_code}): {e.error}") from e
        except Exception as e:
            # ollama wraps transport failures in ConnectionError/httpx errors
            logger.error(f"Ollama request failed: {e!r}")
            raise ModelTransportError(f"Ollama request failed: {e}") from e

        data = response.model_dump() if hasattr(response, "model_dump") else dict(response)
        message = data.get("message")
        if not message:
            return ChatResponse(model=data.get("model") or self.model)
        return ChatResponse(choices=[_from_ollama_message(message)], model=data.get("model") or self.model)


def _to_ollama_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    # Ollama has no call ids; tool results are matched back by tool name
    names: dict[str, str] = {}
    wire = []
    for message in messages:
        for tc in message.tool_calls:
            names[tc.id] = tc.name
        wire.append(_to_ollama_message(message, names.get(message.tool_call_id or "")))
    return wire


def _to_ollama_message(message: Message, tool_name: str | None = None) -> dict[str, Any]:
    msg: dict[str, Any] = {"role": message.role, "content": message.content or ""}
    if message.tool_calls:
        msg["tool_calls"] = [
            {"function": {"name": tc.name, "arguments": _decode_arguments(tc.arguments)}}
            for tc in message.tool_calls
        ]
    if message.role == "tool" and tool_name:
        msg["tool_name"] = tool_name
    return msg


def _from_ollama_message(message: dict[str, Any]) -> Message:
    calls = []
    for tc in message.get("tool_calls") or []:
        function = tc.get("function") or {}
        calls.append(ToolCall(
            id=f"call_{uuid.uuid4().hex[:12]}",
            name=function.get("name", ""),
            arguments=json.dumps(function.get("arguments") or {}),
        ))
    return Message(role="assistant", content=message.get("content") or None, tool_calls=tuple(calls))


def _decode_arguments(raw: str) -> dict[str, Any]:
    try:
        value = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


def build_client(cfg: Config) -> ModelClient:
    if cfg.provider == "openai":
        return OpenAIClient(cfg.api_key, cfg.base_url, cfg.model, timeout=cfg.timeout)
    if cfg.provider == "ollama":
        return OllamaClient(cfg.ollama_url, cfg.model, timeout=cfg.timeout)
    raise ConfigError(f"Unknown provider '{cfg.provider}'")
