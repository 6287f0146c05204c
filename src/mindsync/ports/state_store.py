"""Application state interface."""

from typing import Protocol

from mindsync.core.tasks import AppState


class StateStore(Protocol):
    """Interface for reading the tasks, goals, history and preferences the coach sees."""

    def load(self) -> AppState:
        """Load the current state. Returns an empty state if none exists."""
        ...

    def exists(self) -> bool:
        """Check if any state has been saved."""
        ...

    def add_task(self, task: dict) -> None:
        """Append one task in the app's camelCase export form."""
        ...
