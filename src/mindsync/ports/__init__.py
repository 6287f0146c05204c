"""Ports - interfaces/protocols for external dependencies."""

from .llm_service import LLMService
from .state_store import StateStore

__all__ = [
    "LLMService",
    "StateStore",
]
