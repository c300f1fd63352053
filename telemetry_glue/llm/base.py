"""Generation provider contract and shared generation parameters."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

# Fixed for every provider
TEMPERATURE = 0.2
MAX_OUTPUT_TOKENS = 2048

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_MODEL = "model"


@dataclass(frozen=True)
class Message:
    """One conversation turn handed to a provider."""

    role: str
    text: str


Prompt = str | Sequence[Message]


def to_messages(prompt: Prompt) -> list[Message]:
    """Normalizes a bare prompt string into a single user message."""
    if isinstance(prompt, str):
        return [Message(role=ROLE_USER, text=prompt)]
    return list(prompt)


@runtime_checkable
class GenerationProvider(Protocol):
    """Anything that turns a prompt into one complete text.

    Implementations: StaticProvider, GoogleGenAIProvider, OllamaProvider.
    """

    name: str
    model: str

    async def generate_content(self, prompt: Prompt) -> str: ...

    async def close(self) -> None: ...
