"""
OpenAI LLM
==========

Chat-completions backend for any OpenAI-compatible endpoint.
"""

import structlog
from openai import OpenAI

from db_agent.llm.base import LLMInterface
from db_agent.models import LLMResponse

logger = structlog.get_logger(__name__)


class OpenAILLM(LLMInterface):
    """Plan generation through the OpenAI chat completions API."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.2,
        client: OpenAI | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            model: Model name sent with every request
            api_key: API key (falls back to OPENAI_API_KEY inside the SDK)
            base_url: Alternative OpenAI-compatible endpoint
            temperature: Sampling temperature
            client: Pre-built client, mainly for tests
        """
        self.model = model
        self.temperature = temperature
        self._client = client or OpenAI(api_key=api_key or None, base_url=base_url)

    def generate(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
        )
        usage = response.usage
        tokens = usage.total_tokens if usage else 0
        logger.info("llm_completion", model=self.model, tokens_used=tokens)

        return LLMResponse(
            content=(response.choices[0].message.content or "").strip(),
            model=response.model or self.model,
            tokens_used=tokens,
        )
