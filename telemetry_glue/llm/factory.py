"""Selects the generation provider named by AnalyzerConfig."""

import logging

from ..config import AnalyzerConfig
from ..exceptions import MissingCredentialError, UnsupportedBackendError
from .base import GenerationProvider
from .google_genai import GoogleGenAIProvider
from .ollama import OllamaProvider
from .static import StaticProvider

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "mock", "ollama", "vertexai")


def _missing_section(provider: str) -> MissingCredentialError:
    return MissingCredentialError(
        f"Configuration for provider '{provider}' is missing",
        parameter=provider,
        provider=provider,
    )


def create_provider(config: AnalyzerConfig) -> GenerationProvider:
    """Builds the provider selected by ``config.provider``.

    Raises:
        UnsupportedBackendError: Unknown provider name.
        MissingCredentialError: The provider's config section is absent or incomplete.
    """
    name = config.provider.lower()
    logger.debug(f"Creating generation provider '{name}'")

    if name == "mock":
        return StaticProvider(config.mock_response)

    if name == "gemini":
        if config.gemini is None:
            raise _missing_section(name)
        return GoogleGenAIProvider.for_gemini(config.gemini.api_key, config.gemini.model_name)

    if name == "vertexai":
        if config.vertex_ai is None:
            raise _missing_section(name)
        return GoogleGenAIProvider.for_vertex_ai(
            config.vertex_ai.project_id, config.vertex_ai.location, config.vertex_ai.model_name
        )

    if name == "ollama":
        if config.ollama is None:
            raise _missing_section(name)
        return OllamaProvider(config.ollama.model_name, config.ollama.base_url)

    raise UnsupportedBackendError(
        f"Unsupported provider '{config.provider}'. Supported: {', '.join(PROVIDERS)}",
        parameter="provider",
        value=config.provider,
    )
