"""Atomic JSON snapshot file backing the collection store."""

import json
import logging
import os
from pathlib import Path

from api_workbench.errors import PersistenceError

logger = logging.getLogger(__name__)


class StateFile:
    """A whole-document key/value region persisted as one JSON file.

    ``write`` replaces the file atomically: either the new snapshot is on disk
    or the previous one still is.
    """

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected content in {self.path}")
        return data

    def write(self, data: dict) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {self.path}: {e}")
            tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
