"""
Automation module - handles detection, search allocation and scheduling.

This module contains the core automation logic:
- Detector: Finds missing and cutoff-unmet items on every enabled server
- SearchTrigger: Shares the search budget across servers and sends searches
- Automation: Runs one detect -> trigger -> log cycle
- Scheduler: Runs cycles on an interval and guards against overlap
"""

from .results import (DetectionResult, DetectionResults, TriggerResult, TriggerResults,
                      CycleResult, CycleError, MISSING, CUTOFF)
from .allocator import allocate_proportional
from .detector import Detector
from .trigger import SearchTrigger
from .cycle import Automation
from .scheduler import Scheduler, SchedulerError, SchedulerStatus

__all__ = ['DetectionResult', 'DetectionResults', 'TriggerResult', 'TriggerResults',
           'CycleResult', 'CycleError', 'MISSING', 'CUTOFF', 'allocate_proportional',
           'Detector', 'SearchTrigger', 'Automation', 'Scheduler', 'SchedulerError',
           'SchedulerStatus']
