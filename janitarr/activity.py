"""
Activity log for Janitarr.
Records automation events (cycles, detections, searches, errors) for the
web API and CLI, and mirrors each one to the application log.
"""

import csv
import io
import json
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Any, List, Optional


CYCLE_START = 'cycle_start'
CYCLE_END = 'cycle_end'
DETECTION = 'detection'
SEARCH = 'search'
ERROR = 'error'

CSV_HEADER = ['ID', 'Timestamp', 'Type', 'ServerName', 'ServerType', 'Category',
              'Count', 'Message', 'IsManual']


@dataclass
class LogEntry:
    """One activity log entry."""
    type: str
    message: str
    server_name: str = ""
    server_type: str = ""
    category: str = ""
    count: int = 0
    is_manual: bool = False
    # Set on per-item search entries; batch entries leave it empty
    title: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'type': self.type,
            'server_name': self.server_name,
            'server_type': self.server_type,
            'category': self.category,
            'count': self.count,
            'message': self.message,
            'is_manual': self.is_manual,
            'title': self.title,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogEntry':
        data = dict(data)
        data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return cls(**data)

    def to_csv_row(self) -> List[Any]:
        return [self.id, self.timestamp.isoformat(), self.type, self.server_name,
                self.server_type, self.category, self.count, self.message, self.is_manual]

    @property
    def is_batch_search(self) -> bool:
        return self.type == SEARCH and not self.title


class ActivityLog:
    """
    Bounded activity log.

    With a path, entries are loaded at startup and written back at the end
    of each cycle and after prune/clear, so the CLI and web server see the
    same history.
    """

    def __init__(self, logger, capacity: int = 5000, path: Optional[str] = None):
        self.log = logger.get_logger('activity')
        self.capacity = capacity
        self.path = Path(path) if path else None
        self._entries = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._load()

    def _load(self):
        if self.path is None or not self.path.exists():
            return
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            entries = [LogEntry.from_dict(raw) for raw in data.get('entries', [])]
        except (OSError, ValueError, TypeError, KeyError) as e:
            self.log.warning(f"Could not load activity log: {e}")
            return
        with self._lock:
            self._entries.extend(entries)
        self.log.debug(f"Loaded {len(entries)} activity entries")

    def save(self):
        """Write entries to disk; a no-op for an in-memory log."""
        if self.path is None:
            return
        with self._lock:
            data = {'entries': [e.to_dict() for e in self._entries]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump(data, f)
        except OSError as e:
            self.log.warning(f"Could not save activity log: {e}")

    def _add(self, entry: LogEntry) -> LogEntry:
        with self._lock:
            self._entries.append(entry)
        return entry

    # ==================== Cycle events ====================

    def log_cycle_start(self, is_manual: bool) -> LogEntry:
        self.log.info(f"Automation cycle started (manual={is_manual})")
        return self._add(LogEntry(CYCLE_START, "Automation cycle started.", is_manual=is_manual))

    def log_cycle_end(self, total_searches: int, failures: int, is_manual: bool) -> LogEntry:
        self.log.info(f"Automation cycle finished: searches={total_searches} "
                      f"failures={failures} manual={is_manual}")
        entry = self._add(LogEntry(CYCLE_END, "Automation cycle finished.",
                                   count=total_searches, is_manual=is_manual))
        self.save()
        return entry

    def log_detection_complete(self, server_name: str, server_type: str,
                               missing: int, cutoff_unmet: int) -> LogEntry:
        self.log.info(f"Detection complete: server={server_name} type={server_type} "
                      f"missing={missing} cutoff_unmet={cutoff_unmet}")
        return self._add(LogEntry(DETECTION, "Detection complete.", server_name=server_name,
                                  server_type=server_type, count=missing + cutoff_unmet))

    # ==================== Searches ====================

    def log_searches(self, server_name: str, server_type: str, category: str,
                     count: int, is_manual: bool) -> LogEntry:
        self.log.info(f"Triggered searches: server={server_name} type={server_type} "
                      f"category={category} count={count}")
        return self._add(LogEntry(SEARCH, "Triggered searches.", server_name=server_name,
                                  server_type=server_type, category=category,
                                  count=count, is_manual=is_manual))

    def log_movie_search(self, server_name: str, server_type: str, title: str,
                         year: Optional[int], quality_profile: str, category: str) -> LogEntry:
        label = f"{title} ({year})" if year else title
        self.log.info(f"Search triggered: {label} quality={quality_profile or '-'} "
                      f"server={server_name} category={category}")
        return self._add(LogEntry(SEARCH, f"Search triggered: {label}", server_name=server_name,
                                  server_type=server_type, category=category, count=1,
                                  title=label))

    def log_episode_search(self, server_name: str, server_type: str, series_title: str,
                           episode_title: str, season: int, episode: int,
                           quality_profile: str, category: str) -> LogEntry:
        label = f"{series_title} S{season:02d}E{episode:02d}"
        if episode_title:
            label = f"{label} - {episode_title}"
        self.log.info(f"Search triggered: {label} quality={quality_profile or '-'} "
                      f"server={server_name} category={category}")
        return self._add(LogEntry(SEARCH, f"Search triggered: {label}", server_name=server_name,
                                  server_type=server_type, category=category, count=1,
                                  title=label))

    # ==================== Errors ====================

    def log_server_error(self, server_name: str, server_type: str, reason: str) -> LogEntry:
        self.log.error(f"Server error: server={server_name} type={server_type} reason={reason}")
        return self._add(LogEntry(ERROR, reason, server_name=server_name, server_type=server_type))

    def log_search_error(self, server_name: str, server_type: str, category: str,
                         reason: str) -> LogEntry:
        self.log.error(f"Search error: server={server_name} type={server_type} "
                       f"category={category} reason={reason}")
        return self._add(LogEntry(ERROR, reason, server_name=server_name,
                                  server_type=server_type, category=category))

    # ==================== Queries ====================

    def get_entries(self, entry_type: Optional[str] = None, server: Optional[str] = None,
                    limit: int = 100) -> List[LogEntry]:
        """Newest-first entries, optionally filtered by type and server name."""
        with self._lock:
            entries = list(self._entries)
        entries.reverse()
        if entry_type:
            entries = [e for e in entries if e.type == entry_type]
        if server:
            entries = [e for e in entries if e.server_name.lower() == server.lower()]
        return entries[:limit]

    def prune(self, retention_days: int) -> int:
        """Drop entries older than the retention window; returns how many."""
        cutoff = datetime.now() - timedelta(days=retention_days)
        with self._lock:
            kept = [e for e in self._entries if e.timestamp >= cutoff]
            removed = len(self._entries) - len(kept)
            self._entries.clear()
            self._entries.extend(kept)
        if removed:
            self.save()
            self.log.info(f"Pruned {removed} activity entries older than {retention_days} days")
        return removed

    def clear(self) -> int:
        """Remove every entry; returns how many were dropped."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        self.save()
        self.log.info(f"Cleared {removed} activity entries")
        return removed

    # ==================== Stats and export ====================

    def summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Searches and errors over the last 24 hours, plus the last cycle end."""
        since = (now or datetime.now()) - timedelta(hours=24)
        with self._lock:
            entries = list(self._entries)
        recent = [e for e in entries if e.timestamp >= since]
        cycle_ends = [e.timestamp for e in entries if e.type == CYCLE_END]
        return {
            'searches_last_24h': sum(e.count for e in recent if e.is_batch_search),
            'errors_last_24h': sum(1 for e in recent if e.type == ERROR),
            'last_cycle_time': max(cycle_ends).isoformat() if cycle_ends else None,
        }

    def server_summary(self, server_name: str) -> Dict[str, Any]:
        """Lifetime search and error counts for one server."""
        with self._lock:
            entries = [e for e in self._entries
                       if e.server_name.lower() == server_name.lower()]
        return {
            'total_searches': sum(e.count for e in entries if e.is_batch_search),
            'error_count': sum(1 for e in entries if e.type == ERROR),
            'last_check_time': (max(e.timestamp for e in entries).isoformat()
                                if entries else None),
        }

    def export_csv(self) -> str:
        """All entries, newest first, as CSV text."""
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADER)
        for entry in self.get_entries(limit=self.capacity):
            writer.writerow(entry.to_csv_row())
        return buffer.getvalue()
