"""
Runtime configuration for exp-run.

Values come from module defaults, then environment variables, then CLI
overrides passed to load_config().
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

APP_NAME = "exp-run"
PROMPT = f"{APP_NAME}$ "

DEFAULT_HTTP_TIMEOUT = 5.0  # seconds
DEFAULT_LOG_LEVEL = "WARNING"
HISTORY_FILE = "history"

ENV_DATA_DIR = "EXP_RUN_DATA_DIR"
ENV_HTTP_TIMEOUT = "EXP_RUN_HTTP_TIMEOUT"
ENV_LOG_LEVEL = "EXP_RUN_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def history_path(self) -> Path:
        return self.data_dir / HISTORY_FILE


def default_data_dir(app_name: str = APP_NAME) -> Path:
    """Per-user app data folder: %APPDATA%, ~/Library/Preferences or ~/.local/share."""
    appdata = os.environ.get("APPDATA")
    if appdata:
        root = Path(appdata)
    elif sys.platform == "darwin":
        root = Path.home() / "Library" / "Preferences"
    else:
        root = Path.home() / ".local" / "share"
    return root / app_name


def load_config(
    data_dir: Optional[str] = None,
    http_timeout: Optional[float] = None,
    log_level: Optional[str] = None,
) -> AppConfig:
    env_dir = os.environ.get(ENV_DATA_DIR)
    resolved_dir = Path(data_dir or env_dir).expanduser() if (data_dir or env_dir) else default_data_dir()

    if http_timeout is None:
        raw = os.environ.get(ENV_HTTP_TIMEOUT)
        try:
            http_timeout = float(raw) if raw else DEFAULT_HTTP_TIMEOUT
        except ValueError:
            logging.getLogger(__name__).warning(f"Ignoring invalid {ENV_HTTP_TIMEOUT}={raw!r}")
            http_timeout = DEFAULT_HTTP_TIMEOUT

    level = (log_level or os.environ.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()

    return AppConfig(data_dir=resolved_dir, http_timeout=http_timeout, log_level=level)


def setup_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)
