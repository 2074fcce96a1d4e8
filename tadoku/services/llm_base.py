"""
Tadoku Backend — Abstract Story Generator Interface
====================================================

What:  Contract for the external text generator that writes reading passages.
How:   Concrete implementations inherit from StoryGenerator and implement
       generate_story(). Provider-specific errors are translated to
       LLMServiceError / CircuitBreakerOpenError inside the implementation.
Who:   Called by StoryService after the quota gate has admitted the request.
"""

from abc import ABC, abstractmethod


class StoryGenerator(ABC):
    """
    Abstract interface for AI-written reading passages.

    Implementations:
        - GeminiService: Google Gemini (default)
    """

    @abstractmethod
    async def generate_story(self, prompt: str) -> str:
        """
        Write a reading passage for the learner's prompt.

        Args:
            prompt: The learner's request (topic, level, vocabulary, ...).

        Returns:
            str: The generated passage, stripped. Never empty.

        Raises:
            LLMServiceError: The provider failed after all retries or
                returned no text.
            CircuitBreakerOpenError: Too many recent consecutive failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable; must not consume generation quota."""
        ...
