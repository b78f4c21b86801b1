"""
Core application for Janitarr.
Coordinates all components and provides API methods.
"""

import threading
import time
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Callable

from .config import Config, ConfigError, ServerConfig, ServerNotFoundError, SERVER_TYPES
from .logger import Logger
from .activity import ActivityLog
from .clients import create_client, normalize_url, APIError, SystemStatus
from .automation import (Automation, CycleResult, DetectionResults, Detector,
                         Scheduler, SchedulerError, SearchTrigger)


class JanitarrCore:
    """
    Core application coordinator.

    ARCHITECTURE:
        JanitarrCore
        ├── activity    - Activity log (cycles, detections, searches, errors)
        ├── detector    - Parallel missing/cutoff detection across servers
        ├── trigger     - Proportional search allocation and triggering
        ├── automation  - One detect -> trigger -> log cycle
        └── scheduler   - Interval runs and manual cycle guarding

    One instance is created by the entry point and handed to the CLI and
    web server; nothing here is global.
    """

    def __init__(self, config: Config, logger: Logger,
                 client_factory: Callable = create_client,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.logger = logger
        self.log = logger.get_logger('core')
        self.client_factory = client_factory

        self.activity = ActivityLog(logger, path=str(config.data_dir / 'activity.json'))
        self.detector = Detector(config, logger, client_factory=client_factory)
        self.trigger = SearchTrigger(config, self.activity, logger,
                                     client_factory=client_factory, sleep=sleep)
        self.automation = Automation(config, self.detector, self.trigger, self.activity, logger)
        self.scheduler = Scheduler(
            self._run_cycle,
            lambda: timedelta(hours=self.config.get_interval_hours()),
            logger,
            daily_task=self._prune_activity,
        )

        self._last_result: Optional[CycleResult] = None
        self._result_lock = threading.Lock()

    # ============ Scheduler ============

    def start_scheduler(self):
        """Start interval cycles if scheduling is enabled."""
        if not self.config.schedule.enabled:
            self.log.info("Scheduling disabled in configuration")
            return
        self.scheduler.start()

    def stop_scheduler(self):
        self.scheduler.stop()

    def _run_cycle(self, is_manual: bool, stop_event: Optional[threading.Event] = None,
                   dry_run: Optional[bool] = None) -> CycleResult:
        """Scheduler callback; stop_event is the scheduler's per-cycle cancel signal."""
        if dry_run is None:
            dry_run = self.config.dry_run
        result = self.automation.run_cycle(is_manual=is_manual, dry_run=dry_run,
                                           stop_event=stop_event)
        with self._result_lock:
            self._last_result = result
        return result

    def _prune_activity(self):
        self.activity.prune(self.config.logs.retention_days)

    def run_cycle(self, dry_run: Optional[bool] = None) -> CycleResult:
        """Run a manual cycle; raises SchedulerError if one is already active."""
        return self.scheduler.trigger_manual(dry_run=dry_run)

    def cancel_cycle(self) -> bool:
        """Abort the in-flight cycle's remaining requests."""
        return self.scheduler.cancel_cycle()

    def scan(self) -> DetectionResults:
        """Detection only, no searches."""
        return self.detector.detect_all()

    # ============ API Methods ============

    def get_status(self) -> Dict[str, Any]:
        """Get overall system status."""
        with self._result_lock:
            last = self._last_result
        return {
            'servers': [s.to_public_dict() for s in self.config.servers],
            'scheduler': self.scheduler.get_status().to_dict(),
            'dry_run': self.config.dry_run,
            'last_cycle': last.to_dict() if last else None,
        }

    def test_server(self, id_or_name: str) -> Dict[str, Any]:
        """Test connection to a configured server."""
        server = self.config.get_server(id_or_name)
        if server is None:
            return {'success': False, 'message': f'server not found: {id_or_name}'}
        return self.test_connection(server)

    def test_connection(self, server) -> Dict[str, Any]:
        try:
            status = self.client_factory(server).test_connection()
        except APIError as e:
            return {'success': False, 'message': str(e)}
        return {'success': True, 'message': 'Connected', **status.to_dict()}

    def test_new_server(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Test connection details that have not been saved yet."""
        url = data.get('url') or ''
        server = ServerConfig(name=data.get('name') or 'new server',
                              url=normalize_url(url) if url else '',
                              api_key=data.get('api_key', ''), type=data.get('type', ''))
        try:
            status = self._verify_connection(server, "connection failed")
        except ConfigError as e:
            return {'success': False, 'message': str(e)}
        return {'success': True, 'message': 'Connected', **status.to_dict()}

    def _verify_connection(self, server: ServerConfig, prefix: str) -> SystemStatus:
        """Raise ConfigError unless the server answers and is the declared family."""
        if server.type not in SERVER_TYPES:
            raise ConfigError(f"unknown server type: {server.type}")
        if not server.url or not server.api_key:
            raise ConfigError("server URL and API key are required")
        try:
            status = self.client_factory(server).test_connection()
        except APIError as e:
            raise ConfigError(f"{prefix}: {e}")
        if status.app_name.lower() != server.type:
            raise ConfigError(f"server is {status.app_name or 'unknown'}, "
                              f"but {server.type.capitalize()} was specified")
        return status

    def get_server(self, id_or_name: str) -> Dict[str, Any]:
        server = self.config.get_server(id_or_name)
        if server is None:
            raise ServerNotFoundError(f"server not found: {id_or_name}")
        return server.to_public_dict()

    def add_server(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate, test the connection, then save a new server."""
        server = self.config.validate_server(ServerConfig(
            name=data.get('name', ''),
            url=data.get('url', ''),
            api_key=data.get('api_key', ''),
            type=data.get('type', ''),
            enabled=data.get('enabled', True),
        ))
        self._verify_connection(server, "connection failed")

        server = self.config.add_server(name=server.name, url=server.url, api_key=server.api_key,
                                        server_type=server.type, enabled=server.enabled)
        self.log.info(f"Added {server.type} server: {server.name}")
        return server.to_public_dict()

    def update_server(self, id_or_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply edits; a changed URL or API key is re-tested before saving."""
        current = self.config.get_server(id_or_name)
        if current is None:
            raise ServerNotFoundError(f"server not found: {id_or_name}")

        changes = {k: data[k] for k in ('name', 'url', 'api_key', 'enabled')
                   if data.get(k) is not None}
        candidate = self.config.validate_server(replace(current, **changes))
        if candidate.url != current.url or candidate.api_key != current.api_key:
            self._verify_connection(candidate, "connection failed with new settings")

        server = self.config.update_server(current.id, name=candidate.name, url=candidate.url,
                                           api_key=candidate.api_key, enabled=candidate.enabled)
        self.log.info(f"Updated {server.type} server: {server.name}")
        return server.to_public_dict()

    def remove_server(self, id_or_name: str):
        server = self.config.get_server(id_or_name)
        if server is None:
            raise ServerNotFoundError(f"server not found: {id_or_name}")
        self.config.remove_server(server.id)
        self.log.info(f"Removed server: {server.name}")

    def get_logs(self, entry_type: Optional[str] = None, server: Optional[str] = None,
                 limit: int = 100) -> List[Dict[str, Any]]:
        """Get activity log entries, newest first."""
        return [e.to_dict() for e in self.activity.get_entries(entry_type, server, limit)]

    def clear_logs(self) -> int:
        return self.activity.clear()

    def export_logs(self, fmt: str = 'json'):
        """Full activity log as a JSON-ready list or CSV text."""
        if fmt == 'csv':
            return self.activity.export_csv()
        if fmt != 'json':
            raise ValueError(f"unsupported export format: {fmt}")
        return [e.to_dict() for e in self.activity.get_entries(limit=self.activity.capacity)]

    # ============ Stats ============

    def get_summary_stats(self) -> Dict[str, Any]:
        """System-wide numbers derived from the activity log."""
        return {
            'total_servers': len(self.config.get_enabled_servers()),
            **self.activity.summary(),
        }

    def get_server_stats(self, id_or_name: str) -> Dict[str, Any]:
        server = self.config.get_server(id_or_name)
        if server is None:
            raise ServerNotFoundError(f"server not found: {id_or_name}")
        return {'server_id': server.id, 'server_name': server.name,
                **self.activity.server_summary(server.name)}

    def get_app_logs(self, level: Optional[str], limit: int) -> Dict[str, Any]:
        """Get application logs."""
        return {'logs': Logger.get_logs(level, limit)}

    def health(self) -> Dict[str, Any]:
        return {
            'status': 'ok',
            'timestamp': datetime.now().isoformat(),
            'scheduler_running': self.scheduler.is_running(),
        }

    def shutdown(self):
        self.scheduler.stop()
        self.cancel_cycle()
        self.activity.save()


__all__ = ['JanitarrCore', 'SchedulerError']
