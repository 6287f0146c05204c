"""Adapters - I/O implementations of ports."""

from .groq_api import GroqChatService, BackendError, ConfigurationError
from .file_state import FileStateStore, StateFileError

__all__ = [
    "GroqChatService",
    "BackendError",
    "ConfigurationError",
    "FileStateStore",
    "StateFileError",
]
