"""Generation providers and the streaming primitive they share."""

from .base import MAX_OUTPUT_TOKENS, TEMPERATURE, GenerationProvider, Message
from .factory import create_provider
from .google_genai import GoogleGenAIProvider
from .ollama import OllamaProvider
from .static import StaticProvider
from .streaming import ChunkCollector

__all__ = [
    "ChunkCollector",
    "GenerationProvider",
    "GoogleGenAIProvider",
    "MAX_OUTPUT_TOKENS",
    "Message",
    "OllamaProvider",
    "StaticProvider",
    "TEMPERATURE",
    "create_provider",
]
