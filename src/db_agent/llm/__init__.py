"""
LLM Module
==========

Pluggable LLM interfaces for plan generation.
"""

from db_agent.llm.base import LLMInterface
from db_agent.llm.mock import MockLLM
from db_agent.llm.openai_llm import OpenAILLM

__all__ = [
    "LLMInterface",
    "MockLLM",
    "OpenAILLM",
]
