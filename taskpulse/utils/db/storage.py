# taskpulse/utils/db/storage.py
'''
Key-value persistence: one JSON document per key under the data directory.
'''
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from taskpulse.utils.error_handler import StorageError

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
PREFERENCES_KEY = "preferences"
COUNTERS_KEY = "counters"
NOTES_KEY = "notes"


class JsonStorage:
    """
    load(key) -> parsed JSON or None; save(key, data) writes <data_dir>/<key>.json.
    Missing or unreadable documents load as None (no prior state).
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}", exc_info=True)
            return None
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt JSON in {path}, starting empty: {e}")
            return None

    def save(self, key: str, data: Any) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save {key} to {path}: {e}", exc_info=True)
            raise StorageError(f"Could not save {key}: {e}") from e
        logger.debug(f"Saved {key} to {path}")

    def __repr__(self):
        return f"JsonStorage({str(self.data_dir)!r})"
