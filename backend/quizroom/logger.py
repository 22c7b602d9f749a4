"""
quizroom logging
================
Console plus rotating file logs. Log files produced under ``LOG_DIR``:

  - quizroom.log         General backend log (all levels)
  - game_events.jsonl    One JSON object per game event (joins, answers, scoring)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from .config import Settings, settings as default_settings

GAME_EVENT_LOGGER = "quizroom.game_events"

_VERBOSE_FMT = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_CONSOLE_FMT = logging.Formatter(
    fmt="%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

_CONFIGURED = False


def _rotating_handler(
    path: Path,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
    level: int = logging.DEBUG,
) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_VERBOSE_FMT)
    return handler


def setup_logging(config: Settings = default_settings) -> None:
    """Initialise all loggers. Safe to call more than once."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(config.LOG_LEVEL.upper())
    console.setFormatter(_CONSOLE_FMT)
    root.addHandler(console)
    root.addHandler(_rotating_handler(log_dir / "quizroom.log"))

    # JSONL lines should be raw, no formatter prefix, and stay off the console
    game_logger = logging.getLogger(GAME_EVENT_LOGGER)
    game_logger.setLevel(logging.DEBUG)
    game_handler = _rotating_handler(log_dir / "game_events.jsonl", max_bytes=10 * 1024 * 1024, backup_count=10)
    game_handler.setFormatter(logging.Formatter("%(message)s"))
    game_logger.addHandler(game_handler)
    game_logger.propagate = False

    logging.getLogger(__name__).info("Logging initialised, log directory: %s", log_dir.resolve())


def get_game_event_logger() -> logging.Logger:
    return logging.getLogger(GAME_EVENT_LOGGER)


def log_game_event(
    event_type: str,
    *,
    session_code: str | None = None,
    player_id: str | None = None,
    data: dict[str, Any] | None = None,
) -> None:
    """Write a structured JSON line to game_events.jsonl."""
    record: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event_type,
    }
    if session_code:
        record["session"] = session_code
    if player_id:
        record["player_id"] = player_id
    if data:
        record.update(data)
    get_game_event_logger().info(json.dumps(record, default=str))
