"""
Persistence of saved grids and the working grid.

Storage is a plain key-value store holding JSON-safe values. The history
repository keeps saved grids unique by id and ordered newest first.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from .grid import Grid


class MemoryStore:
    """Key-value store held in a dictionary."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        # Hand out copies so callers never alias stored values
        if key not in self._data:
            return default
        return json.loads(json.dumps(self._data[key]))

    def set(self, key: str, value: Any):
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str):
        self._data.pop(key, None)


class JsonFileStore:
    """Key-value store writing one JSON file per key into a directory."""

    _SAFE_KEY = re.compile(r'^[A-Za-z0-9_.-]+$')

    def __init__(self, data_dir: str):
        """
        Initialize the store.

        Args:
            data_dir: Directory for the JSON files, created on first write
        """
        self.data_dir = Path(data_dir).expanduser()

    def _path(self, key: str) -> Path:
        if not self._SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def set(self, key: str, value: Any):
        path = self._path(key)
        os.makedirs(self.data_dir, exist_ok=True)

        # Write then rename so a crash never leaves a half-written file
        tmp_path = path.with_suffix('.json.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(value, f)
        os.replace(tmp_path, path)

    def delete(self, key: str):
        path = self._path(key)
        if path.exists():
            path.unlink()


class HistoryRepository:
    """Saved grids plus the working grid, backed by a key-value store."""

    def __init__(self, store, history_key: str = "history",
                 current_key: str = "current_grid"):
        """
        Initialize the repository.

        Args:
            store: Object with get(key, default), set(key, value) and delete(key)
            history_key: Key holding the list of saved grids
            current_key: Key holding the working grid
        """
        self.store = store
        self.history_key = history_key
        self.current_key = current_key

    def list(self) -> List[Grid]:
        """Saved grids, most recently updated first."""
        entries = [Grid.from_dict(item) for item in self.store.get(self.history_key, []) or []]
        return sorted(entries, key=lambda g: g.updated_at, reverse=True)

    def load(self, grid_id: str) -> Grid:
        """
        Fetch a saved grid by id.

        Raises:
            KeyError: If no saved grid has this id
        """
        for grid in self.list():
            if grid.id == grid_id:
                return grid
        raise KeyError(f"No saved grid with id {grid_id}")

    def save(self, grid: Grid) -> bool:
        """
        Upsert a grid into history.

        An entry with the same id is replaced only when the incoming grid was
        updated strictly later.

        Returns:
            True if the history changed
        """
        entries = self.list()
        existing = next((g for g in entries if g.id == grid.id), None)

        if existing is not None:
            if not existing.updated_at < grid.updated_at:
                return False
            entries = [g for g in entries if g.id != grid.id]

        entries.append(grid)
        self._write(entries)
        return True

    def delete(self, grid_id: str):
        """
        Remove a saved grid.

        Raises:
            KeyError: If no saved grid has this id
        """
        entries = self.list()
        remaining = [g for g in entries if g.id != grid_id]
        if len(remaining) == len(entries):
            raise KeyError(f"No saved grid with id {grid_id}")
        self._write(remaining)

    def find(self, id_or_prefix: str) -> Grid:
        """Fetch a saved grid by full id or unique id prefix."""
        if not id_or_prefix:
            raise KeyError("No grid id given")
        matches = [g for g in self.list() if g.id.startswith(id_or_prefix)]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise KeyError(f"No saved grid with id {id_or_prefix}")
        raise KeyError(f"Id prefix {id_or_prefix} is ambiguous ({len(matches)} matches)")

    def load_current(self) -> Optional[Grid]:
        """The persisted working grid, if any."""
        data = self.store.get(self.current_key)
        return Grid.from_dict(data) if data else None

    def store_current(self, grid: Grid):
        """Persist the working grid."""
        self.store.set(self.current_key, grid.to_dict())

    def _write(self, entries: List[Grid]):
        entries = sorted(entries, key=lambda g: g.updated_at, reverse=True)
        self.store.set(self.history_key, [g.to_dict() for g in entries])

    def __len__(self) -> int:
        return len(self.store.get(self.history_key, []) or [])
