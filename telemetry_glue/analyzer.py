"""Analyzer: prompt generation followed by exactly one provider call."""

import logging

from .config import AnalyzerConfig
from .exceptions import TelemetryGlueError
from .llm.base import GenerationProvider
from .llm.factory import create_provider
from .prompts import DEFAULT_LANGUAGE, PromptGenerator
from .schema import AnalysisResult, AnalysisType, CombinedData

logger = logging.getLogger(__name__)


class Analyzer:
    """Turns CombinedData into a natural-language report.

    Failures keep their type; ``operation``, ``analysis_type`` and ``provider``
    are added to the error context. There are no retries.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        prompt_generator: PromptGenerator | None = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self.provider = provider
        self.prompt_generator = prompt_generator or PromptGenerator()
        self.language = language

    @classmethod
    def from_config(cls, config: AnalyzerConfig) -> "Analyzer":
        """Builds the configured provider; ``config.language`` becomes the default language."""
        return cls(create_provider(config), language=config.language)

    async def analyze(
        self,
        kind: AnalysisType | str,
        data: CombinedData,
        language: str | None = None,
    ) -> AnalysisResult:
        kind_name = getattr(kind, "value", kind)
        language = language or self.language
        try:
            prompt = self.prompt_generator.generate(kind, data, language)
            logger.info(
                f"🧠 Analyzing {data.summary()} | type={kind_name} | "
                f"provider={self.provider.name} | model={self.provider.model}"
            )
            content = await self.provider.generate_content(prompt)
        except TelemetryGlueError as e:
            e.add_context(
                operation="analyze", analysis_type=kind_name, provider=self.provider.name
            )
            raise

        logger.info(f"✅ Analysis complete | {len(content)} characters")
        return AnalysisResult(
            analysis_type=AnalysisType(kind),
            summary=data.summary(),
            content=content,
            provider=self.provider.name,
            model=self.provider.model,
        )

    async def close(self) -> None:
        await self.provider.close()
