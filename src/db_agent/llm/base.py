"""
Base LLM Interface
==================

Abstract interface for LLM providers used by the planner.
"""

from abc import ABC, abstractmethod

from db_agent.models import LLMResponse


class LLMInterface(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def generate(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        """
        Generate a response from the LLM.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt for context

        Returns:
            LLMResponse with generated content
        """
        pass
