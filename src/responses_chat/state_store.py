from __future__ import annotations

import json
import os
from pathlib import Path

from loguru import logger


class StateStore:
    """Persists the exported conversation state as a single JSON file."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict | None:
        if not self._path.exists():
            return None
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as ex:
            logger.warning(f"Could not read saved state from {self._path}: {ex}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring saved state in {self._path}: top level is not an object")
            return None
        return data

    def save(self, state: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(state, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self._path)
        logger.debug(f"Saved state to {self._path} ({len(state.get('history', []))} messages)")
