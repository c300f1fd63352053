"""Configuration objects for backends and generation providers.

Credentials are resolved by the caller and injected into adapter and provider
constructors. The ``from_env`` helpers read the conventional environment
variables for callers that want that behaviour; nothing inside the adapters
reads the environment.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_LANGUAGE = "en"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_VERTEX_AI_LOCATION = "us-central1"


def _env(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


@dataclass(frozen=True)
class NewRelicConfig:
    """New Relic NerdGraph credentials."""

    api_key: str = ""
    account_id: int | str = ""
    region: str = "US"  # US or EU
    timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "NewRelicConfig":
        env = _env(environ)
        return cls(
            api_key=env.get("NEW_RELIC_API_KEY", ""),
            account_id=env.get("NEW_RELIC_ACCOUNT_ID", ""),
            region=env.get("NEW_RELIC_REGION", "US"),
        )


@dataclass(frozen=True)
class GcpConfig:
    """Google Cloud project hosting Cloud Trace and Cloud Logging data."""

    project_id: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GcpConfig":
        env = _env(environ)
        project_id = env.get("TRACE_PROJECT_ID") or env.get("GOOGLE_CLOUD_PROJECT", "")
        # Some env loaders duplicate the value ("proj,proj")
        if "," in project_id:
            project_id = project_id.split(",")[0].strip()
        return cls(project_id=project_id)


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str = ""
    model_name: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GeminiConfig":
        env = _env(environ)
        return cls(
            api_key=env.get("GEMINI_API_KEY", ""),
            model_name=env.get("GEMINI_MODEL_NAME", ""),
        )


@dataclass(frozen=True)
class VertexAIConfig:
    project_id: str = ""
    location: str = DEFAULT_VERTEX_AI_LOCATION
    model_name: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "VertexAIConfig":
        env = _env(environ)
        return cls(
            project_id=env.get("VERTEX_AI_PROJECT_ID", ""),
            location=env.get("VERTEX_AI_LOCATION", DEFAULT_VERTEX_AI_LOCATION),
            model_name=env.get("VERTEX_AI_MODEL_NAME", ""),
        )


@dataclass(frozen=True)
class OllamaConfig:
    model_name: str = ""
    base_url: str = DEFAULT_OLLAMA_BASE_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "OllamaConfig":
        env = _env(environ)
        return cls(
            model_name=env.get("OLLAMA_MODEL_NAME", ""),
            base_url=env.get("OLLAMA_BASE_URL", DEFAULT_OLLAMA_BASE_URL),
        )


@dataclass(frozen=True)
class AnalyzerConfig:
    """Selects and configures the generation provider.

    ``provider`` is one of ``mock``, ``gemini``, ``vertexai`` or ``ollama``.
    """

    provider: str = "mock"
    language: str = DEFAULT_LANGUAGE
    gemini: GeminiConfig | None = None
    vertex_ai: VertexAIConfig | None = None
    ollama: OllamaConfig | None = None
    mock_response: str = "Mock analysis response"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AnalyzerConfig":
        env = _env(environ)
        provider = env.get("ANALYZER_PROVIDER", "mock").lower()
        return cls(
            provider=provider,
            language=env.get("LANGUAGE", DEFAULT_LANGUAGE),
            gemini=GeminiConfig.from_env(env) if provider == "gemini" else None,
            vertex_ai=VertexAIConfig.from_env(env) if provider == "vertexai" else None,
            ollama=OllamaConfig.from_env(env) if provider == "ollama" else None,
        )
