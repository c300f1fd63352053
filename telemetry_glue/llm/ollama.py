"""Ollama provider: streams ND-JSON from the local ``/api/chat`` endpoint."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ..common import instrumented, set_span_attribute
from ..common.telemetry import GenAiAttributes
from ..config import DEFAULT_OLLAMA_BASE_URL
from ..exceptions import EmptyResponseError, MissingCredentialError, TransportError
from .base import MAX_OUTPUT_TOKENS, TEMPERATURE, Prompt, to_messages
from .streaming import ChunkCollector

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


class OllamaProvider:
    """Chat completions from an Ollama server.

    Args:
        model: Ollama model tag (e.g. ``llama3.1``).
        base_url: Server address.
        http_client: Optional pre-built client (tests inject a MockTransport).
        timeout: Client timeout in seconds when no client is injected.
    """

    name = "ollama"

    def __init__(
        self,
        model: str,
        base_url: str = DEFAULT_OLLAMA_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not model:
            raise MissingCredentialError(
                "Ollama model name is required", parameter="model_name", provider=self.name
            )
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @instrumented("generate_content")
    async def generate_content(
        self, prompt: Prompt, cancel_event: asyncio.Event | None = None
    ) -> str:
        set_span_attribute(GenAiAttributes.SYSTEM, self.name)
        set_span_attribute(GenAiAttributes.REQUEST_MODEL, self.model)

        payload = {
            "model": self.model,
            "messages": [
                {"role": "assistant" if m.role == "model" else m.role, "content": m.text}
                for m in to_messages(prompt)
            ],
            "stream": True,
            "options": {"temperature": TEMPERATURE, "num_predict": MAX_OUTPUT_TOKENS},
        }

        text = await ChunkCollector(cancel_event=cancel_event).collect(self._stream(payload))
        if not text:
            raise EmptyResponseError("No text generated", provider=self.name, model=self.model)
        return text

    async def _stream(self, payload: dict[str, Any]) -> AsyncIterator[str]:
        url = f"{self.base_url}/api/chat"
        try:
            async with self._client.stream("POST", url, json=payload) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise TransportError(
                        f"Ollama returned HTTP {response.status_code}: {body[:200]}",
                        provider=self.name,
                        status_code=response.status_code,
                    )
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        event = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise TransportError(
                            f"Invalid stream line from Ollama: {line[:100]}", provider=self.name
                        ) from e
                    if event.get("error"):
                        raise TransportError(
                            f"Ollama error: {event['error']}", provider=self.name
                        )
                    content = (event.get("message") or {}).get("content", "")
                    if content:
                        yield content
                    if event.get("done"):
                        break
        except httpx.HTTPError as e:
            raise TransportError(
                f"Failed to reach Ollama at {self.base_url}: {e}", provider=self.name
            ) from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
