"""
Result types produced by one automation cycle.
"""

from datetime import timedelta
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

from ..clients.media import MediaItem


MISSING = 'missing'
CUTOFF = 'cutoff'
CATEGORIES = (MISSING, CUTOFF)


@dataclass
class DetectionResult:
    """Detection outcome for one server. An errored result carries no items."""
    server_id: str
    server_name: str
    server_type: str
    missing: List[int] = field(default_factory=list)
    cutoff: List[int] = field(default_factory=list)
    missing_items: Dict[int, MediaItem] = field(default_factory=dict)
    cutoff_items: Dict[int, MediaItem] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.error

    def ids(self, category: str) -> List[int]:
        return self.missing if category == MISSING else self.cutoff

    def items(self, category: str) -> Dict[int, MediaItem]:
        return self.missing_items if category == MISSING else self.cutoff_items

    def to_dict(self) -> Dict[str, Any]:
        return {
            'server_id': self.server_id,
            'server_name': self.server_name,
            'server_type': self.server_type,
            'missing': list(self.missing),
            'cutoff': list(self.cutoff),
            'error': self.error,
        }


@dataclass
class DetectionResults:
    """Aggregated detection outcome across all enabled servers."""
    results: List[DetectionResult] = field(default_factory=list)
    total_missing: int = 0
    total_cutoff: int = 0
    success_count: int = 0
    failure_count: int = 0

    def add(self, result: DetectionResult):
        self.results.append(result)
        if result.error:
            self.failure_count += 1
        else:
            self.success_count += 1
            self.total_missing += len(result.missing)
            self.total_cutoff += len(result.cutoff)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [r.to_dict() for r in self.results],
            'total_missing': self.total_missing,
            'total_cutoff': self.total_cutoff,
            'success_count': self.success_count,
            'failure_count': self.failure_count,
        }


@dataclass
class TriggerResult:
    """Outcome of one batched search command."""
    server_id: str
    server_name: str
    server_type: str
    category: str
    item_ids: List[int] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None
    rate_limited: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'server_id': self.server_id,
            'server_name': self.server_name,
            'server_type': self.server_type,
            'category': self.category,
            'item_ids': list(self.item_ids),
            'success': self.success,
            'error': self.error,
        }


@dataclass
class TriggerResults:
    """Aggregated search trigger outcome."""
    results: List[TriggerResult] = field(default_factory=list)
    missing_triggered: int = 0
    cutoff_triggered: int = 0
    success_count: int = 0
    failure_count: int = 0

    def add(self, result: TriggerResult):
        self.results.append(result)
        if result.success:
            self.success_count += 1
            if result.category == MISSING:
                self.missing_triggered += len(result.item_ids)
            else:
                self.cutoff_triggered += len(result.item_ids)
        else:
            self.failure_count += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [r.to_dict() for r in self.results],
            'missing_triggered': self.missing_triggered,
            'cutoff_triggered': self.cutoff_triggered,
            'success_count': self.success_count,
            'failure_count': self.failure_count,
        }


class CycleError(Exception):
    """Aggregate error for a cycle that recorded failures."""
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"automation cycle completed with {len(self.errors)} errors")


@dataclass
class CycleResult:
    """Everything one automation cycle produced."""
    detection_results: DetectionResults = field(default_factory=DetectionResults)
    search_results: TriggerResults = field(default_factory=TriggerResults)
    success: bool = True
    total_searches: int = 0
    total_failures: int = 0
    errors: List[str] = field(default_factory=list)
    duration: timedelta = field(default_factory=timedelta)
    is_manual: bool = False
    dry_run: bool = False

    @property
    def error(self) -> Optional[CycleError]:
        """Aggregate error when any phase failed, else None."""
        if self.errors:
            return CycleError(self.errors)
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'detection_results': self.detection_results.to_dict(),
            'search_results': self.search_results.to_dict(),
            'total_searches': self.total_searches,
            'total_failures': self.total_failures,
            'errors': list(self.errors),
            'duration_seconds': round(self.duration.total_seconds(), 3),
            'is_manual': self.is_manual,
            'dry_run': self.dry_run,
        }
