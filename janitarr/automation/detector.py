"""
Detector for Janitarr.
Finds missing and cutoff-unmet content on every enabled server in parallel.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional

from ..clients import create_client
from ..config import ServerConfig
from .results import DetectionResult, DetectionResults


class Detector:
    """
    Runs detection across servers.

    One worker thread per enabled server; a server's missing and cutoff
    lookups run one after the other. A failure in either lookup marks the
    whole server as failed and drops anything it had already returned.
    """

    def __init__(self, config, logger, client_factory: Callable = create_client):
        self.config = config
        self.log = logger.get_logger('detector')
        self.client_factory = client_factory

    def detect_all(self, stop_event: Optional[threading.Event] = None) -> DetectionResults:
        """Run detection on all enabled servers."""
        return self._detect_many(self.config.get_enabled_servers(), stop_event)

    def detect_by_type(self, server_type: str,
                       stop_event: Optional[threading.Event] = None) -> DetectionResults:
        """Run detection on enabled servers of one family."""
        return self._detect_many(self.config.get_enabled_servers(server_type), stop_event)

    def detect_server(self, server_id: str,
                      stop_event: Optional[threading.Event] = None) -> DetectionResult:
        """Run detection on a single server by ID or name."""
        server = self.config.get_server(server_id)
        if server is None:
            raise LookupError(f"server not found: {server_id}")
        return self._detect_one(server, stop_event)

    def _detect_many(self, servers: List[ServerConfig],
                     stop_event: Optional[threading.Event]) -> DetectionResults:
        results = DetectionResults()
        if not servers:
            self.log.debug("No enabled servers, skipping detection")
            return results

        with ThreadPoolExecutor(max_workers=len(servers),
                                thread_name_prefix='detect') as executor:
            futures = [executor.submit(self._detect_one, server, stop_event)
                       for server in servers]
            # Aggregate in completion order
            for future in as_completed(futures):
                results.add(future.result())

        self.log.debug(f"Detection finished: {results.success_count} ok, "
                       f"{results.failure_count} failed, {results.total_missing} missing, "
                       f"{results.total_cutoff} cutoff unmet")
        return results

    def _detect_one(self, server: ServerConfig,
                    stop_event: Optional[threading.Event]) -> DetectionResult:
        result = DetectionResult(
            server_id=server.id,
            server_name=server.name,
            server_type=server.type,
        )

        try:
            client = self.client_factory(server, stop_event=stop_event)
            missing = client.fetch_all_missing()
        except Exception as e:
            return self._failed(result, f"missing detection failed: {e}")

        try:
            cutoff = client.fetch_all_cutoff_unmet()
        except Exception as e:
            return self._failed(result, f"cutoff detection failed: {e}")

        for item in missing:
            result.missing.append(item.id)
            result.missing_items[item.id] = item
        for item in cutoff:
            result.cutoff.append(item.id)
            result.cutoff_items[item.id] = item

        self.log.debug(f"{server.name}: {len(result.missing)} missing, "
                       f"{len(result.cutoff)} cutoff unmet")
        return result

    def _failed(self, result: DetectionResult, message: str) -> DetectionResult:
        self.log.warning(f"{result.server_name}: {message}")
        result.error = message
        return result
