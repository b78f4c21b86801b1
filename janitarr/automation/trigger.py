"""
Search trigger for Janitarr.
Allocates the per-cycle search budget across servers and sends the search
commands with pacing and rate-limit backoff.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..clients import create_client, RateLimitError, MediaType
from ..config import SearchLimits, ServerConfig
from .allocator import allocate_proportional, take_first
from .results import (CATEGORIES, DetectionResult, DetectionResults,
                      TriggerResult, TriggerResults)


RATE_LIMIT_STRIKES = 3
BATCH_DELAY_SECONDS = 0.1
# None sends each category's allocation as a single trigger call
DEFAULT_BATCH_SIZE = None


@dataclass
class ServerAllocation:
    """Items chosen for one server in this cycle."""
    detection: DetectionResult
    server: ServerConfig
    ids: Dict[str, List[int]] = field(default_factory=lambda: {c: [] for c in CATEGORIES})

    @property
    def server_id(self) -> str:
        return self.detection.server_id

    @property
    def total(self) -> int:
        return sum(len(v) for v in self.ids.values())


class SearchTrigger:
    """Turns detection results into a bounded set of search commands."""

    def __init__(self, config, activity, logger,
                 client_factory: Callable = create_client,
                 sleep: Callable[[float], None] = time.sleep,
                 batch_size: Optional[int] = DEFAULT_BATCH_SIZE):
        self.config = config
        self.activity = activity
        self.log = logger.get_logger('trigger')
        self.client_factory = client_factory
        self.sleep = sleep
        self.batch_size = max(int(batch_size), 1) if batch_size else None

    # ==================== Allocation ====================

    def allocate(self, detection_results: DetectionResults,
                 limits: SearchLimits) -> List[ServerAllocation]:
        """
        Share each category's limit across servers in proportion to their backlog.

        Servers removed or disabled since detection take no part, so dry-run
        and live cycles allocate the same totals.
        """
        allocations = []
        for detection in detection_results.results:
            if not detection.ok:
                continue
            server = self.config.get_server(detection.server_id)
            if server is None or not server.enabled:
                self.log.warning(f"{detection.server_name}: server no longer configured, skipping")
                continue
            allocations.append(ServerAllocation(detection, server))

        for category in CATEGORIES:
            limit = limits.for_category(category)
            if limit <= 0:
                continue

            participants = [
                a for a in allocations
                if a.detection.ids(category)
                and limits.for_server_type(category, a.detection.server_type) > 0
            ]
            if not participants:
                continue

            counts = [len(a.detection.ids(category)) for a in participants]
            shares = allocate_proportional(counts, limit)
            for alloc, share in zip(participants, shares):
                alloc.ids[category] = take_first(alloc.detection.ids(category), share)

        return [a for a in allocations if a.total > 0]

    # ==================== Execution ====================

    def trigger_searches(self, detection_results: DetectionResults, limits: SearchLimits,
                         dry_run: bool = False,
                         stop_event: Optional[threading.Event] = None) -> TriggerResults:
        """Allocate and trigger searches; in dry-run nothing is sent."""
        results = TriggerResults()
        first_call = True

        for alloc in self.allocate(detection_results, limits):
            detection = alloc.detection
            client = None
            if not dry_run:
                client = self.client_factory(alloc.server, stop_event=stop_event)

            strikes = 0
            for category in CATEGORIES:
                for batch in self._batches(alloc.ids[category]):
                    if strikes >= RATE_LIMIT_STRIKES:
                        break
                    if not first_call and not dry_run:
                        self.sleep(BATCH_DELAY_SECONDS)
                    first_call = False

                    result = self._trigger_batch(client, detection, category, batch, dry_run)
                    results.add(result)

                    if result.success:
                        strikes = 0
                    elif result.rate_limited:
                        strikes += 1
                        if strikes >= RATE_LIMIT_STRIKES:
                            self.log.warning(f"{detection.server_name}: rate limited "
                                             f"{strikes} times in a row, skipping for this cycle")
                    elif stop_event is not None and stop_event.is_set():
                        self.log.info("Search triggering cancelled")
                        return results

        return results

    def _batches(self, ids: List[int]):
        if self.batch_size is None:
            if ids:
                yield list(ids)
            return
        for start in range(0, len(ids), self.batch_size):
            yield ids[start:start + self.batch_size]

    def _trigger_batch(self, client, detection: DetectionResult, category: str,
                       item_ids: List[int], dry_run: bool) -> TriggerResult:
        result = TriggerResult(
            server_id=detection.server_id,
            server_name=detection.server_name,
            server_type=detection.server_type,
            category=category,
            item_ids=list(item_ids),
        )

        if dry_run:
            self.log.info(f"[dry-run] would search {len(item_ids)} {category} items "
                          f"on {detection.server_name}")
            return result

        self._log_items(detection, category, item_ids)

        try:
            client.trigger_search(item_ids)
        except RateLimitError as e:
            result.success = False
            result.rate_limited = True
            result.error = f"rate_limit: retry after {e.retry_after}s"
        except Exception as e:
            result.success = False
            result.error = str(e)

        return result

    def _log_items(self, detection: DetectionResult, category: str, item_ids: List[int]):
        """Record each item before the batch that contains it is sent."""
        metadata = detection.items(category)
        for item_id in item_ids:
            item = metadata.get(item_id)
            if item is None:
                continue
            if item.type is MediaType.MOVIE:
                self.activity.log_movie_search(
                    detection.server_name, detection.server_type, item.title,
                    item.year, item.quality_profile, category)
            elif item.type is MediaType.EPISODE:
                self.activity.log_episode_search(
                    detection.server_name, detection.server_type, item.series_title or '',
                    item.episode_title or '', item.season_number or 0,
                    item.episode_number or 0, item.quality_profile, category)
            else:
                raise ValueError(f"unsupported media type: {item.type}")
