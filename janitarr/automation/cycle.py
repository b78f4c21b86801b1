"""
Automation cycle for Janitarr.
Detect -> allocate and trigger searches -> log, collected into one CycleResult.
"""

import threading
import time
from datetime import timedelta
from typing import Optional

from .results import CycleResult, DetectionResults, TriggerResults


class Automation:
    """
    Orchestrates one automation cycle.

    Detector, trigger and activity log are injected so tests can swap them
    for fakes. Search limits are read from the config at the start of each
    cycle.
    """

    def __init__(self, config, detector, trigger, activity, logger):
        self.config = config
        self.detector = detector
        self.trigger = trigger
        self.activity = activity
        self.log = logger.get_logger('automation')

    def run_cycle(self, is_manual: bool = False, dry_run: bool = False,
                  stop_event: Optional[threading.Event] = None) -> CycleResult:
        """
        Run detection and searches once.

        Always returns the full result; when either phase failed anywhere,
        ``result.success`` is False and ``result.error`` holds the aggregate
        CycleError.
        """
        started = time.monotonic()
        self._record(self.activity.log_cycle_start, is_manual)

        result = CycleResult(is_manual=is_manual, dry_run=dry_run)
        limits = self.config.get_search_limits()

        # 1. Detection
        try:
            result.detection_results = self.detector.detect_all(stop_event=stop_event)
        except Exception as e:
            result.detection_results = DetectionResults()
            result.total_failures += 1
            result.errors.append(f"detection failed: {e}")

        for res in result.detection_results.results:
            if res.error:
                if not dry_run:
                    self._record(self.activity.log_server_error, res.server_name, res.server_type,
                                 f"detection error: {res.error}")
                result.total_failures += 1
                result.errors.append(f"server {res.server_name} detection failed: {res.error}")
            else:
                self._record(self.activity.log_detection_complete, res.server_name,
                             res.server_type, len(res.missing), len(res.cutoff))

        # 2. Searches
        try:
            result.search_results = self.trigger.trigger_searches(
                result.detection_results, limits, dry_run=dry_run, stop_event=stop_event)
        except Exception as e:
            result.search_results = TriggerResults()
            result.total_failures += 1
            result.errors.append(f"triggering searches failed: {e}")

        search = result.search_results
        result.total_searches = search.missing_triggered + search.cutoff_triggered
        result.total_failures += search.failure_count

        # 3. Per-batch logging
        for res in search.results:
            if res.success:
                if res.item_ids and not dry_run:
                    self._record(self.activity.log_searches, res.server_name, res.server_type,
                                 res.category, len(res.item_ids), is_manual)
            else:
                self._record(self.activity.log_search_error, res.server_name, res.server_type,
                             res.category, res.error or "unknown error")
                result.errors.append(f"server {res.server_name} search failed for "
                                     f"{res.category} ({res.server_type}): {res.error}")

        result.success = not result.errors
        result.duration = timedelta(seconds=time.monotonic() - started)
        self._record(self.activity.log_cycle_end, result.total_searches,
                     result.total_failures, is_manual)

        if result.errors:
            self.log.warning(f"Cycle finished with {len(result.errors)} errors")
        return result

    def _record(self, method, *args):
        # Activity logging is fire-and-forget
        try:
            method(*args)
        except Exception as e:
            self.log.warning(f"Could not write activity entry: {e}")
