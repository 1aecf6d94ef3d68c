"""Text-completion providers: prompt to text."""

from abc import ABC, abstractmethod
from typing import Optional

import openai
import structlog

from ..common.config import SearchConfig
from ..common.errors import CompletionProviderError

logger = structlog.get_logger("providers.completion")


class CompletionProvider(ABC):
    """Abstract completion provider."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's text reply to ``prompt`` (possibly empty).

        Raises ``CompletionProviderError`` when the provider call fails.
        """
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None


class OpenAICompletionProvider(CompletionProvider):
    """Single-turn chat completion against the OpenAI API."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.model = model
        self.client = client or openai.AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def complete(self, prompt: str) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.OpenAIError as e:
            logger.warning("Completion request failed", model=self.model, error=str(e))
            raise CompletionProviderError(f"OpenAI completion failed: {e}") from e

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def close(self) -> None:
        await self.client.close()


def create_completion_provider(config: SearchConfig) -> CompletionProvider:
    """Create the completion provider used by the AI search steps."""
    return OpenAICompletionProvider(
        model=config.search_completion_model,
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout=config.search_provider_timeout,
    )
