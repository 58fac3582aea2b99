"""
Logging Middleware — logs change events to file and optionally console.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from sack.core.bus import MiddlewareNext
from sack.core.events import Event


def setup_logging(
    log_dir: Path | None = None,
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Setup Sack logging.

    Args:
        log_dir: Directory for log files (default: ~/.sack/logs)
        console_level: Minimum level for console output
        file_level: Minimum level for file output

    Returns:
        The configured logger
    """
    log_dir = (log_dir or (Path.home() / ".sack" / "logs")).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("sack")
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    log_file = log_dir / f"sack_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info(f"Logging initialized. File: {log_file}")

    return logger


class ChangeLogger:
    """
    Logs every change event passing through a driver's channel.

    Usage:
        change_logger = ChangeLogger(log_dir=Path("~/.sack/logs"))
        driver.use(change_logger.middleware)
    """

    def __init__(
        self,
        log_dir: Path | None = None,
        log_events: bool = True,
    ) -> None:
        self._log_events = log_events
        self._events_file: Path | None = None

        if log_events:
            log_dir = (log_dir or Path.home() / ".sack" / "logs").expanduser()
            log_dir.mkdir(parents=True, exist_ok=True)
            self._events_file = log_dir / f"changes_{datetime.now().strftime('%Y%m%d')}.jsonl"

        self._logger = logging.getLogger("sack.changes")

    @property
    def events_file(self) -> Path | None:
        return self._events_file

    async def middleware(self, event: Event, next_handler: MiddlewareNext) -> Event:
        """Log events passing through."""
        self._logger.debug(
            f"[{event.type}] id={event.entry_id} source={event.source} origin={event.origin}"
        )

        if self._events_file is not None:
            self._write_event(event)

        return await next_handler(event)

    def _write_event(self, event: Event) -> None:
        """Write event to JSON lines file."""
        try:
            record = {
                "timestamp": datetime.now().isoformat(),
                "id": event.id,
                "type": event.type,
                "source": event.source,
                "origin": event.origin,
                "entry_id": event.entry_id,
                "entry": self._safe_serialize(event.entry),
                "parent_id": event.parent_id,
            }

            with open(self._events_file, "a", encoding="utf-8") as f:  # type: ignore[arg-type]
                f.write(json.dumps(record) + "\n")

        except OSError as e:
            self._logger.warning(f"Failed to write change log: {e}")

    @staticmethod
    def _safe_serialize(entry: Any) -> Any:
        """Domain objects are logged by their string form."""
        try:
            json.dumps(entry)
            return entry
        except (TypeError, ValueError):
            return str(entry)
