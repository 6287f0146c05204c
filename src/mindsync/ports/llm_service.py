"""Coach backend interface."""

from typing import Iterator, Protocol


class LLMService(Protocol):
    """
    Interface for the coach's text generation backend.

    ``system_prompt`` carries the coach persona and reply contract; when None
    the backend sends the user prompt alone.
    """

    def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Generate a complete reply."""
        ...

    def stream(self, prompt: str, system_prompt: str | None = None) -> Iterator[str]:
        """Yield reply chunks as the backend produces them."""
        ...
