"""
Logging system for Janitarr.
Supports file output, console, and in-memory buffer for the web API.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Optional
from collections import deque
import threading


LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class MemoryHandler(logging.Handler):
    """Handler that stores log records in memory for web API access."""

    def __init__(self, capacity: int = 1000):
        super().__init__()
        self.capacity = capacity
        self.buffer = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def emit(self, record: logging.LogRecord):
        with self._lock:
            self.buffer.append({
                'timestamp': datetime.fromtimestamp(record.created).isoformat(),
                'level': record.levelname,
                'logger': record.name,
                'message': self.format(record),
            })

    def get_logs(self, level: Optional[str] = None, limit: int = 100) -> List[Dict]:
        """Get recent log entries, optionally filtered by level."""
        with self._lock:
            logs = list(self.buffer)

        if level:
            logs = [entry for entry in logs if entry['level'] == level.upper()]

        return logs[-limit:]

    def clear(self):
        """Clear the log buffer."""
        with self._lock:
            self.buffer.clear()


class ColorFormatter(logging.Formatter):
    """Colored formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so the file and memory handlers keep plain level names
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname:8}{self.RESET}"
        return super().format(record)


class Logger:
    """
    Centralized logging manager.

    Handlers are attached to the "janitarr" logger once per process; later
    instances share them.
    """

    _memory_handler: Optional[MemoryHandler] = None
    _configured = False
    _setup_lock = threading.Lock()

    def __init__(self, log_dir: Optional[str] = "/config/logs", debug: bool = False):
        self.debug = debug
        self.log_dir = Path(log_dir) if log_dir else None

        with Logger._setup_lock:
            if Logger._configured:
                return
            Logger._configured = True
            self._configure()

    def _configure(self):
        level = logging.DEBUG if self.debug else logging.INFO
        root = logging.getLogger('janitarr')
        root.setLevel(logging.DEBUG)

        # Console handler with colors
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(console)

        # File handler
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_dir / "janitarr.log")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            root.addHandler(file_handler)

        # Memory handler
        Logger._memory_handler = MemoryHandler(capacity=2000)
        Logger._memory_handler.setFormatter(logging.Formatter('%(message)s'))
        Logger._memory_handler.setLevel(level)
        root.addHandler(Logger._memory_handler)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a named logger."""
        return logging.getLogger(f"janitarr.{name}")

    @classmethod
    def get_logs(cls, level: Optional[str] = None, limit: int = 100) -> List[Dict]:
        """Get logs from memory buffer."""
        if cls._memory_handler:
            return cls._memory_handler.get_logs(level, limit)
        return []

    @classmethod
    def clear_logs(cls):
        """Clear the log buffer."""
        if cls._memory_handler:
            cls._memory_handler.clear()
