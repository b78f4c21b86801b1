"""
Configuration management for Janitarr.
Supports JSON file and environment variable configuration.
"""

import os
import json
import uuid
import copy
import threading
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional

from .clients.base import normalize_url


SERVER_TYPES = ('radarr', 'sonarr')

# CLI setting name -> (section, field, parser name)
SETTING_KEYS = {
    'schedule.interval': ('schedule', 'interval_hours', 'int'),
    'schedule.enabled': ('schedule', 'enabled', 'bool'),
    'limits.missing.movies': ('search_limits', 'missing_movies', 'int'),
    'limits.missing.episodes': ('search_limits', 'missing_episodes', 'int'),
    'limits.cutoff.movies': ('search_limits', 'cutoff_movies', 'int'),
    'limits.cutoff.episodes': ('search_limits', 'cutoff_episodes', 'int'),
    'logs.retention_days': ('logs', 'retention_days', 'int'),
    'dry_run': (None, 'dry_run', 'bool'),
}


class ConfigError(ValueError):
    """Raised for invalid configuration values."""


class ServerNotFoundError(ConfigError):
    """Raised when a server ID or name does not match any configured server."""


@dataclass
class ServerConfig:
    """A configured Radarr or Sonarr server."""
    name: str = ""
    url: str = ""
    api_key: str = ""
    type: str = "radarr"
    enabled: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def is_valid(self) -> bool:
        return bool(self.url and self.api_key and self.enabled)

    def to_public_dict(self) -> Dict[str, Any]:
        """Server info without the API key."""
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'type': self.type,
            'enabled': self.enabled,
        }


@dataclass
class ScheduleConfig:
    """How often automation cycles run."""
    interval_hours: int = 6
    enabled: bool = True


@dataclass
class SearchLimits:
    """
    Maximum searches triggered per cycle.

    Missing and cutoff limits are pooled per category (movies + episodes) and
    shared between servers proportionally. A limit of 0 turns that kind of
    search off for its server family.
    """
    missing_movies: int = 10
    missing_episodes: int = 10
    cutoff_movies: int = 5
    cutoff_episodes: int = 5

    def for_category(self, category: str) -> int:
        if category == 'missing':
            return self.missing_movies + self.missing_episodes
        return self.cutoff_movies + self.cutoff_episodes

    def for_server_type(self, category: str, server_type: str) -> int:
        if server_type == 'sonarr':
            return self.missing_episodes if category == 'missing' else self.cutoff_episodes
        return self.missing_movies if category == 'missing' else self.cutoff_movies


@dataclass
class LogsConfig:
    """Activity log retention."""
    retention_days: int = 30


class Config:
    """Main configuration class."""

    def __init__(self, config_path: str = "/config/config.json"):
        self.config_path = Path(config_path)
        self._lock = threading.RLock()

        self.servers: List[ServerConfig] = []
        self.schedule = ScheduleConfig()
        self.search_limits = SearchLimits()
        self.logs = LogsConfig()

        # App settings
        self.dry_run = False
        self.debug_mode = False

        # Load existing config or keep defaults
        self._load()
        self._apply_env_vars()

    @property
    def data_dir(self) -> Path:
        return self.config_path.parent

    def _load(self):
        """Load configuration from file."""
        if not self.config_path.exists():
            return
        with open(self.config_path, 'r') as f:
            data = json.load(f)
        self._apply_dict(data)

    def _apply_dict(self, data: Dict[str, Any]):
        """Validate and apply a dictionary to the configuration."""
        servers = self.servers
        if 'servers' in data:
            servers = []
            for raw in data['servers']:
                server = ServerConfig(**raw)
                self._validate_server(server, servers)
                server.url = normalize_url(server.url)
                servers.append(server)

        schedule = ScheduleConfig(**data['schedule']) if 'schedule' in data else self.schedule
        limits = SearchLimits(**data['search_limits']) if 'search_limits' in data else self.search_limits
        logs = LogsConfig(**data['logs']) if 'logs' in data else self.logs

        if schedule.interval_hours < 1:
            raise ConfigError("interval_hours must be at least 1")
        for key, value in asdict(limits).items():
            if value < 0:
                raise ConfigError(f"search limit {key} must not be negative")
        if logs.retention_days < 1:
            raise ConfigError("retention_days must be at least 1")

        self.servers = servers
        self.schedule = schedule
        self.search_limits = limits
        self.logs = logs
        self.dry_run = bool(data.get('dry_run', self.dry_run))
        self.debug_mode = bool(data.get('debug_mode', self.debug_mode))

    @staticmethod
    def _validate_server(server: ServerConfig, existing: List[ServerConfig]):
        if server.type not in SERVER_TYPES:
            raise ConfigError(f"unknown server type: {server.type}")
        if not server.name:
            raise ConfigError("server name is required")
        if not server.url or not server.api_key:
            raise ConfigError("server URL and API key are required")
        url = normalize_url(server.url)
        for other in existing:
            if other.id == server.id:
                continue
            if other.type == server.type and other.url == url:
                raise ConfigError(f"a {server.type} server with this URL already exists")
            if other.name.lower() == server.name.lower():
                raise ConfigError(f"a server named '{server.name}' already exists")

    def _apply_env_vars(self):
        """Apply environment variable overrides."""
        interval = os.environ.get('JANITARR_INTERVAL_HOURS')
        if interval:
            try:
                hours = int(interval)
            except ValueError:
                raise ConfigError(f"JANITARR_INTERVAL_HOURS is not a number: {interval}")
            if hours < 1:
                raise ConfigError("JANITARR_INTERVAL_HOURS must be at least 1")
            self.schedule.interval_hours = hours

        dry_run = os.environ.get('JANITARR_DRY_RUN')
        if dry_run:
            self.dry_run = dry_run.lower() in ('1', 'true', 'yes')

        # Single instance per family via env vars
        for server_type in SERVER_TYPES:
            prefix = server_type.upper()
            url = os.environ.get(f'{prefix}_URL')
            key = os.environ.get(f'{prefix}_API_KEY')
            if url and key and not any(s.type == server_type for s in self.servers):
                self.servers.append(ServerConfig(
                    name=server_type.capitalize(),
                    url=normalize_url(url),
                    api_key=key,
                    type=server_type,
                ))

    def save(self):
        """Save configuration to file."""
        with self._lock:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w') as f:
                json.dump(self._to_storage_dict(), f, indent=2)

    def _to_storage_dict(self) -> Dict[str, Any]:
        return {
            'servers': [asdict(s) for s in self.servers],
            'schedule': asdict(self.schedule),
            'search_limits': asdict(self.search_limits),
            'logs': asdict(self.logs),
            'dry_run': self.dry_run,
            'debug_mode': self.debug_mode,
        }

    def update(self, data: Dict[str, Any]):
        """Update settings from a dictionary (servers are managed separately)."""
        data = {k: v for k, v in data.items() if k != 'servers'}
        with self._lock:
            merged = self._to_storage_dict()
            for key, value in data.items():
                if isinstance(value, dict) and isinstance(merged.get(key), dict):
                    merged[key].update(value)
                else:
                    merged[key] = value
            merged.pop('servers')
            self._apply_dict(merged)
        self.save()

    def set_value(self, key: str, value: str):
        """Set one setting from its dotted CLI name, e.g. ``limits.missing.movies``."""
        if key not in SETTING_KEYS:
            raise ConfigError(f"Unknown configuration key: {key}")
        section, name, kind = SETTING_KEYS[key]
        parsed = _parse_bool(key, value) if kind == 'bool' else _parse_int(key, value)
        self.update({section: {name: parsed}} if section else {name: parsed})

    # ==================== Servers ====================

    def validate_server(self, server: ServerConfig) -> ServerConfig:
        """Check a new or edited server against the current list without saving it."""
        with self._lock:
            self._validate_server(server, self.servers)
        checked = copy.copy(server)
        checked.url = normalize_url(checked.url)
        return checked

    def add_server(self, name: str, url: str, api_key: str, server_type: str,
                   enabled: bool = True) -> ServerConfig:
        """Add a server and persist the configuration."""
        server = ServerConfig(name=name, url=url, api_key=api_key,
                              type=server_type, enabled=enabled)
        with self._lock:
            self._validate_server(server, self.servers)
            server.url = normalize_url(server.url)
            self.servers.append(server)
        self.save()
        return copy.copy(server)

    def update_server(self, server_id: str, **changes) -> ServerConfig:
        """Update name/url/api_key/enabled of an existing server."""
        with self._lock:
            current = self._find_server(server_id)
            if current is None:
                raise ServerNotFoundError(f"server not found: {server_id}")
            updated = copy.copy(current)
            for key in ('name', 'url', 'api_key', 'enabled'):
                if changes.get(key) is not None:
                    setattr(updated, key, changes[key])
            self._validate_server(updated, self.servers)
            updated.url = normalize_url(updated.url)
            self.servers[self.servers.index(current)] = updated
        self.save()
        return copy.copy(updated)

    def remove_server(self, server_id: str) -> None:
        with self._lock:
            server = self._find_server(server_id)
            if server is None:
                raise ServerNotFoundError(f"server not found: {server_id}")
            self.servers.remove(server)
        self.save()

    def _find_server(self, id_or_name: str) -> Optional[ServerConfig]:
        for server in self.servers:
            if server.id == id_or_name:
                return server
        for server in self.servers:
            if server.name.lower() == (id_or_name or '').lower():
                return server
        return None

    def get_server(self, id_or_name: str) -> Optional[ServerConfig]:
        """Look a server up by ID, then by name."""
        with self._lock:
            server = self._find_server(id_or_name)
            return copy.copy(server) if server else None

    def get_enabled_servers(self, server_type: Optional[str] = None) -> List[ServerConfig]:
        """Snapshot of enabled servers, optionally of one family."""
        with self._lock:
            return [copy.copy(s) for s in self.servers
                    if s.is_valid() and (server_type is None or s.type == server_type)]

    def get_search_limits(self) -> SearchLimits:
        with self._lock:
            return copy.copy(self.search_limits)

    def get_interval_hours(self) -> int:
        with self._lock:
            return self.schedule.interval_hours

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (for API)."""
        with self._lock:
            return {
                'servers': [s.to_public_dict() for s in self.servers],
                'schedule': asdict(self.schedule),
                'search_limits': asdict(self.search_limits),
                'logs': asdict(self.logs),
                'dry_run': self.dry_run,
                'debug_mode': self.debug_mode,
            }


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off'):
        return False
    raise ConfigError(f"{key} must be true or false, got '{value}'")


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{key} must be a whole number, got '{value}'")
