"""
Mock LLM
========

Mock LLM implementation for testing and offline demonstration.
"""

import json

from db_agent.llm.base import LLMInterface
from db_agent.models import LLMResponse

# Returned when no configured key matches: a plan that only re-reads the project
FALLBACK_PLAN = json.dumps(
    {
        "description": "No canned plan matched the request; analyze the project only",
        "steps": [
            {
                "kind": "analyze_project",
                "description": "Inspect the current project structure",
                "details": {},
            }
        ],
    },
    indent=2,
)


class MockLLM(LLMInterface):
    """
    Mock LLM for demonstration and testing purposes.

    Configure with a real provider (``DB_AGENT_LLM_PROVIDER=openai``) in
    production.
    """

    def __init__(self, responses: dict[str, list[str]] | None = None) -> None:
        """
        Initialize with canned responses.

        Args:
            responses: Dict mapping prompt substrings to a list of raw
                       responses. Each is returned in sequence on repeated
                       matches; the last one repeats once exhausted.
        """
        self.responses = responses or {}
        self.call_counts: dict[str, int] = {}
        self.prompts: list[str] = []

    def generate(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        """Return the next canned response whose key occurs in the prompt."""
        self.prompts.append(prompt)

        for key, attempts in self.responses.items():
            if key.lower() in prompt.lower():
                count = self.call_counts.get(key, 0)
                self.call_counts[key] = count + 1

                attempt_idx = min(count, len(attempts) - 1)
                return LLMResponse(
                    content=attempts[attempt_idx],
                    model="mock-llm-v1",
                )

        return LLMResponse(content=FALLBACK_PLAN, model="mock-llm-v1")

    def reset(self) -> None:
        """Reset call counts for fresh test runs."""
        self.call_counts = {}
        self.prompts = []
