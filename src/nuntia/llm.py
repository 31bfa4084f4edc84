"""OpenAI LLM client wrapper for drafting release notes.

This module encapsulates all interaction with the OpenAI API:
- Client initialization and configuration
- Chat completion requests
- Token usage reporting
- Retry logic for transient failures

Design notes:
- All LLM calls go through this module so we can swap providers later
- Retries (tenacity) live here, not in the context builder
- An empty completion counts as a failure and is retried like one
"""

from __future__ import annotations

from openai import AsyncOpenAI
from pydantic import BaseModel
from tenacity import retry, stop_after_attempt, wait_exponential

from nuntia.logging_config import get_logger

logger = get_logger(__name__)


class LLMConfig(BaseModel):
    """Configuration for the LLM client.

    Attributes:
        model: OpenAI model identifier (e.g., "gpt-4o", "gpt-4o-mini")
        temperature: Sampling temperature (0.0 = deterministic, 2.0 = very loose)
        max_tokens: Maximum tokens in the response
        api_key: OpenAI API key (the SDK reads OPENAI_API_KEY if not provided)
    """

    model: str = "gpt-4o"
    temperature: float = 1.0
    max_tokens: int = 4096
    api_key: str | None = None


class GenerationResult(BaseModel):
    """Generated text plus token usage."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMClient:
    """Async wrapper around the OpenAI chat completions API.

    Usage:
        client = LLMClient(config=LLMConfig(model="gpt-4o-mini"))
        result = await client.generate_release_notes(system_prompt, user_prompt)
    """

    def __init__(self, config: LLMConfig | None = None) -> None:
        """Initialize the LLM client.

        Args:
            config: LLM configuration. Uses defaults if not provided.
        """
        self.config = config or LLMConfig()
        self._client: AsyncOpenAI | None = None

    @property
    def client(self) -> AsyncOpenAI:
        # Created lazily so building a context never needs an API key.
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.config.api_key)
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def generate_release_notes(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> GenerationResult:
        """Ask the LLM to draft release notes.

        Args:
            system_prompt: Base prompt plus input guidance
            user_prompt: The release context JSON

        Returns:
            The generated text with token counts

        Raises:
            ValueError: If the model responds with empty text after retries
            openai.APIError: If the OpenAI API call fails after retries
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

        content = response.choices[0].message.content if response.choices else None
        text = (content or "").strip()
        if not text:
            logger.warning("llm_empty_response", model=self.config.model)
            raise ValueError(f"{self.config.model} responded with empty text")

        usage = response.usage
        return GenerationResult(
            text=text,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )
