"""Gemini provider backed by the google-genai SDK (Gemini API or Vertex AI)."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..common import instrumented, set_span_attribute
from ..common.telemetry import GenAiAttributes
from ..exceptions import (
    BlockedPromptError,
    BlockedResponseError,
    EmptyResponseError,
    MissingCredentialError,
    TransportError,
)
from .base import (
    MAX_OUTPUT_TOKENS,
    ROLE_MODEL,
    ROLE_SYSTEM,
    TEMPERATURE,
    Prompt,
    to_messages,
)
from .streaming import ChunkCollector

logger = logging.getLogger(__name__)

SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def generation_config(system_instruction: str | None = None) -> types.GenerateContentConfig:
    """Fixed sampling parameters with safety blocking disabled."""
    return types.GenerateContentConfig(
        temperature=TEMPERATURE,
        max_output_tokens=MAX_OUTPUT_TOKENS,
        safety_settings=[
            types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
            for category in SAFETY_CATEGORIES
        ],
        system_instruction=system_instruction,
    )


def check_blocked(chunk: types.GenerateContentResponse) -> None:
    """Raises when the prompt or the sole candidate was blocked."""
    feedback = chunk.prompt_feedback
    if feedback is not None and feedback.block_reason:
        raise BlockedPromptError(
            f"Prompt was blocked: {feedback.block_reason}",
            block_reason=str(feedback.block_reason),
        )
    if chunk.candidates:
        finish_reason = chunk.candidates[0].finish_reason
        if finish_reason == types.FinishReason.SAFETY:
            raise BlockedResponseError(
                "Response was blocked for safety reasons", finish_reason=str(finish_reason)
            )


class GoogleGenAIProvider:
    """Streams completions from Gemini through ``google-genai``.

    Use :meth:`for_gemini` (API key) or :meth:`for_vertex_ai` (project and
    location, Application Default Credentials) rather than the constructor.
    """

    def __init__(self, client: genai.Client, model: str, name: str = "gemini") -> None:
        self._client = client
        self.model = model
        self.name = name

    @classmethod
    def for_gemini(cls, api_key: str, model: str) -> "GoogleGenAIProvider":
        if not api_key:
            raise MissingCredentialError(
                "Gemini API key is required", parameter="api_key", provider="gemini"
            )
        if not model:
            raise MissingCredentialError(
                "Gemini model name is required", parameter="model_name", provider="gemini"
            )
        return cls(genai.Client(api_key=api_key), model, name="gemini")

    @classmethod
    def for_vertex_ai(cls, project: str, location: str, model: str) -> "GoogleGenAIProvider":
        if not project:
            raise MissingCredentialError(
                "Vertex AI project ID is required", parameter="project_id", provider="vertexai"
            )
        if not model:
            raise MissingCredentialError(
                "Vertex AI model name is required", parameter="model_name", provider="vertexai"
            )
        client = genai.Client(vertexai=True, project=project, location=location)
        return cls(client, model, name="vertexai")

    @instrumented("generate_content")
    async def generate_content(
        self, prompt: Prompt, cancel_event: asyncio.Event | None = None
    ) -> str:
        set_span_attribute(GenAiAttributes.SYSTEM, self.name)
        set_span_attribute(GenAiAttributes.REQUEST_MODEL, self.model)
        set_span_attribute(GenAiAttributes.REQUEST_TEMPERATURE, TEMPERATURE)
        set_span_attribute(GenAiAttributes.REQUEST_MAX_TOKENS, MAX_OUTPUT_TOKENS)

        system_parts: list[str] = []
        contents: list[types.Content] = []
        for message in to_messages(prompt):
            if message.role == ROLE_SYSTEM:
                system_parts.append(message.text)
                continue
            role = ROLE_MODEL if message.role in (ROLE_MODEL, "assistant") else "user"
            contents.append(types.Content(role=role, parts=[types.Part(text=message.text)]))

        config = generation_config("\n\n".join(system_parts) or None)
        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self.model, contents=contents, config=config
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise TransportError(
                f"Failed to start generation: {e}", provider=self.name, model=self.model
            ) from e

        text = await ChunkCollector(cancel_event=cancel_event).collect(self._texts(stream))
        if not text:
            raise EmptyResponseError(
                "No text generated", provider=self.name, model=self.model
            )
        return text

    async def _texts(self, stream: AsyncIterator[types.GenerateContentResponse]) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                check_blocked(chunk)
                if chunk.candidates and chunk.candidates[0].finish_reason:
                    set_span_attribute(
                        GenAiAttributes.RESPONSE_FINISH_REASONS,
                        [str(chunk.candidates[0].finish_reason)],
                    )
                if chunk.text:
                    yield chunk.text
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise TransportError(
                f"Generation stream failed: {e}", provider=self.name, model=self.model
            ) from e

    async def close(self) -> None:
        aio: Any = self._client.aio
        aclose = getattr(aio, "aclose", None)
        if aclose is not None:
            await aclose()
