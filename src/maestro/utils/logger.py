"""
Structured logging with gesture and control event logging.
"""

import os
import time
import logging
import logging.handlers
from collections import deque


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure structured logging for the application."""
    # Clean console format, compact and readable
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class ControlEventLogger:
    """Records gesture status changes and control actions for diagnostics."""

    def __init__(self, max_history: int = 500):
        self.logger = logging.getLogger("maestro.events")
        self._history = deque(maxlen=max_history)

    def log_gesture(self, status: str):
        """Log a change of the gesture status line."""
        self._history.append({
            "timestamp": time.time(),
            "kind": "gesture",
            "status": status,
        })
        self.logger.debug("Gesture: %s", status)

    def log_action(self, action_name: str, success: bool = True, detail: str = ""):
        """Log a control action (play, pause, fade, stop, load)."""
        self._history.append({
            "timestamp": time.time(),
            "kind": "action",
            "action": action_name,
            "success": success,
            "detail": detail,
        })
        self.logger.info(
            "Action: %-6s | Success: %s | %s",
            action_name,
            success,
            detail,
        )

    def get_history(self, last_n=None, kind=None):
        """Get recent entries, optionally filtered by kind ("gesture"/"action")."""
        entries = [e for e in self._history if kind is None or e["kind"] == kind]
        if last_n:
            return entries[-last_n:]
        return entries

    @property
    def total_actions(self):
        return sum(1 for e in self._history if e["kind"] == "action")
