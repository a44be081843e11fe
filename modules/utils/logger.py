"""
Logging setup plus the status sink for human-readable demo events.
"""

import os
import logging
import logging.handlers
import time
from collections import deque
from functools import wraps

from core.events import EventBus, Events


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console (and optional rotating file) logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-28s | %(message)s"
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


class StatusLogger:
    """Status sink: logs every bus event's message and remembers the latest.

    Per-frame chatter (finger distances) goes to DEBUG, failures to
    WARNING/ERROR, everything else to INFO.
    """

    _LEVELS = {
        Events.FINGER_DISTANCE: logging.DEBUG,
        Events.EFFECT_REFUSED: logging.WARNING,
        Events.CAMERA_ERROR: logging.ERROR,
        Events.DETECTOR_ERROR: logging.ERROR,
    }

    def __init__(self, event_bus: EventBus = None, history_size: int = 200):
        self.logger = logging.getLogger("snap_status")
        self._history = deque(maxlen=history_size)
        self._latest = None
        if event_bus is not None:
            self.attach(event_bus)

    def attach(self, event_bus: EventBus):
        event_bus.subscribe(EventBus.ALL, self.on_event)

    def on_event(self, event_name, message=None, **kwargs):
        if message is None:
            return
        self._latest = message
        self._history.append({
            "timestamp": time.time(),
            "event": event_name,
            "message": message,
        })
        self.logger.log(self._LEVELS.get(event_name, logging.INFO), "%s", message)

    @property
    def latest(self):
        return self._latest

    def get_history(self, last_n=None, event=None):
        """Recent status entries, optionally filtered by event name."""
        entries = [e for e in self._history if event is None or e["event"] == event]
        if last_n:
            return entries[-last_n:]
        return entries

    def messages(self):
        return [e["message"] for e in self._history]


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
