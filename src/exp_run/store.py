"""
Persisted key-value store for exp-run settings.

One JSON file per key under the app data directory. Reads tolerate missing
or unreadable files (treated as absent); write failures raise
TransientIOError. Nothing is retried.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import quote, unquote

from .errors import TransientIOError

logger = logging.getLogger(__name__)

KEY_CURRENT_SERVER = "current-server"
KEY_CURRENT_BEACON = "current-beacon"
KEY_SERVER_REDIRECT = "server-redirect"
KEY_BEACON_REDIRECT = "beacon-redirect"
KEY_CURRENT_USER = "current-user"
KEY_RANGE = "range"
KEY_SAVE_DIR = "save-dir"
KEY_EXP_INDEX = "exp-index"

_SUFFIX = ".json"


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


class AppDataStore:
    """get/set-by-key storage rooted at ``directory``."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{_SUFFIX}"

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read stored value {key!r} from {path}: {e}")
            return default

    def set(self, key: str, value: Any) -> None:
        """Store value; None removes the key."""
        if value is None:
            self.remove(key)
            return
        path = self._path(key)
        try:
            _ensure_dir(path.parent)
            tmp = path.with_suffix(path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(value, f)
            tmp.replace(path)
        except (OSError, TypeError) as e:
            logger.error(f"Could not store value {key!r} to {path}: {e}")
            raise TransientIOError(f"Could not save {key}: {e}") from e
        logger.debug(f"Stored {key!r} -> {value!r}")

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not remove stored value {key!r}: {e}")
            raise TransientIOError(f"Could not remove {key}: {e}") from e

    def keys(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(unquote(p.name[: -len(_SUFFIX)]) for p in self.directory.glob(f"*{_SUFFIX}"))
