"""Deterministic provider returning a canned response."""

import logging

from .base import Prompt, to_messages

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE = "Mock analysis response"


class StaticProvider:
    """Returns ``response`` for every prompt without any network activity.

    Received prompts are kept in ``prompts`` for inspection in tests.
    """

    name = "mock"

    def __init__(self, response: str = DEFAULT_RESPONSE, model: str = "static") -> None:
        self.response = response
        self.model = model
        self.prompts: list[str] = []

    async def generate_content(self, prompt: Prompt) -> str:
        text = "\n\n".join(m.text for m in to_messages(prompt))
        self.prompts.append(text)
        logger.debug(f"Static provider received a {len(text)}-character prompt")
        return self.response

    async def close(self) -> None:
        return None
