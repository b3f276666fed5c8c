"""
Durable key-value storage for planner state.

Each key is stored as one JSON file under the storage directory. Reads and
writes are synchronous and there are no transactions: the last write to a
key wins.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class LocalStorage:
    """String-keyed JSON storage scoped to one directory."""

    def __init__(self, storage_dir: str = ".planner_data"):
        """
        Initialize the storage.

        Args:
            storage_dir: Directory holding one JSON file per key
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not key or not re.fullmatch(r'[A-Za-z0-9_.-]+', key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.storage_dir / f"{key}.json"

    def has_item(self, key: str) -> bool:
        return self._path_for(key).exists()

    def get_item(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Read and decode the value stored under key.

        Missing keys and unreadable JSON both return default.
        """
        path = self._path_for(key)
        if not path.exists():
            return default

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading '{key}' from storage: {str(e)}")
            return default

    def set_item(self, key: str, value: Any):
        """Encode value as JSON and store it under key."""
        path = self._path_for(key)
        tmp_path = path.with_suffix('.json.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(value, f, indent=2)
        tmp_path.replace(path)

    def remove_item(self, key: str):
        path = self._path_for(key)
        if path.exists():
            path.unlink()
            logger.info(f"Removed '{key}' from storage")

    def clear(self):
        """Remove every stored key."""
        for path in self.storage_dir.glob("*.json"):
            path.unlink()
        logger.info("Storage cleared")
