"""File-based application state adapter."""

import json
import logging
from pathlib import Path

from mindsync.core.tasks import AppState

logger = logging.getLogger(__name__)


class StateFileError(RuntimeError):
    """Raised when the state file exists but cannot be read."""

    pass


class FileStateStore:
    """
    JSON file state storage.

    Implements StateStore protocol. The file holds the app's camelCase export:
    ``{"tasks": [...], "goals": [...], "history": [...], "preferences": {...}}``.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def read_raw(self) -> dict:
        """Read the decoded JSON object. Returns {} if the file is missing."""
        if not self.path.exists():
            logger.info(f"No state file at {self.path}; starting empty")
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            raise StateFileError(f"State file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StateFileError(f"State file {self.path} must hold a JSON object")
        return data

    def load(self) -> AppState:
        """Load the current state. Returns an empty state if none exists."""
        try:
            return AppState.from_dict(self.read_raw())
        except (KeyError, TypeError, ValueError) as e:
            raise StateFileError(f"State file {self.path} has malformed entries: {e}") from e

    def add_task(self, task: dict) -> None:
        """Append one task (camelCase dict) to the file, creating it if needed."""
        data = self.read_raw()
        data.setdefault("tasks", []).append(task)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))
