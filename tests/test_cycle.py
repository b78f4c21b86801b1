"""Tests for the detect -> trigger -> log cycle."""

import pytest

from janitarr.activity import CYCLE_START, CYCLE_END, DETECTION, SEARCH, ERROR
from janitarr.automation import Automation, CycleError, Detector, SearchTrigger

from conftest import add_server, movies, episodes, server_error


@pytest.fixture
def automation(config, activity, logger, factory, sleeper):
    detector = Detector(config, logger, client_factory=factory)
    trigger = SearchTrigger(config, activity, logger, client_factory=factory, sleep=sleeper)
    return Automation(config, detector, trigger, activity, logger)


def entry_types(activity):
    return [e.type for e in reversed(activity.get_entries(limit=1000))]


def test_successful_cycle(config, automation, factory, activity):
    add_server(config, "Radarr", "radarr")
    factory.register("Radarr", missing=movies(3))

    result = automation.run_cycle(is_manual=True)

    assert result.success
    assert result.error is None
    assert result.total_searches == 3
    assert result.total_failures == 0
    assert result.is_manual
    assert factory.calls("Radarr") == [[1, 2, 3]]
    types = entry_types(activity)
    assert types[0] == CYCLE_START
    assert types[-1] == CYCLE_END
    assert DETECTION in types
    assert types.count(SEARCH) == 4


def test_partial_failure_returns_result_and_error(config, automation, factory, activity):
    add_server(config, "Good", "radarr")
    add_server(config, "Bad", "sonarr")
    factory.register("Good", missing=movies(2))
    factory.register("Bad", missing_error=server_error())

    result = automation.run_cycle()

    assert not result.success
    assert result.total_searches == 2
    assert result.total_failures == 1
    assert result.errors == [
        "server Bad detection failed: missing detection failed: server error: status 500"]
    error = result.error
    assert isinstance(error, CycleError)
    assert str(error) == "automation cycle completed with 1 errors"
    assert len(activity.get_entries(ERROR)) == 1


def test_search_failure_is_reported(config, automation, factory, activity):
    add_server(config, "Radarr", "radarr")
    factory.register("Radarr", missing=movies(2), trigger_errors=[server_error()])

    result = automation.run_cycle()

    assert not result.success
    assert result.total_searches == 0
    assert result.total_failures == 1
    assert result.errors == [
        "server Radarr search failed for missing (radarr): server error: status 500"]
    assert activity.get_entries(ERROR)[0].category == "missing"


def test_dry_run_cycle(config, automation, factory, activity):
    add_server(config, "Radarr", "radarr")
    add_server(config, "Bad", "sonarr")
    factory.register("Radarr", missing=movies(4), cutoff=movies(1, start=10))
    factory.register("Bad", missing_error=server_error())

    result = automation.run_cycle(dry_run=True)

    assert result.dry_run
    assert result.total_searches == 5
    assert factory.calls("Radarr") == []
    # Detection failures are still reported, just not written to the activity log
    assert not result.success
    assert activity.get_entries(ERROR) == []
    assert activity.get_entries(SEARCH) == []


def test_detector_crash_is_captured(config, activity, logger, factory, sleeper):
    class BrokenDetector:
        def detect_all(self, stop_event=None):
            raise RuntimeError("exploded")

    trigger = SearchTrigger(config, activity, logger, client_factory=factory, sleep=sleeper)
    automation = Automation(config, BrokenDetector(), trigger, activity, logger)

    result = automation.run_cycle()

    assert result.errors == ["detection failed: exploded"]
    assert result.total_failures == 1
    assert not result.success
    assert str(result.error) == "automation cycle completed with 1 errors"
    assert result.detection_results.results == []
    assert result.search_results.results == []


def test_trigger_crash_is_counted(config, activity, logger, factory):
    class BrokenTrigger:
        def trigger_searches(self, detection_results, limits, dry_run=False, stop_event=None):
            raise RuntimeError("allocator bug")

    add_server(config, "Radarr", "radarr")
    factory.register("Radarr", missing=movies(2))
    detector = Detector(config, logger, client_factory=factory)
    automation = Automation(config, detector, BrokenTrigger(), activity, logger)

    result = automation.run_cycle()

    assert result.errors == ["triggering searches failed: allocator bug"]
    assert result.total_failures == 1
    assert result.total_searches == 0
    assert activity.get_entries(CYCLE_END)[0].count == 0


def test_result_serializes(config, automation, factory):
    add_server(config, "Sonarr", "sonarr")
    factory.register("Sonarr", missing=episodes(1))

    data = automation.run_cycle().to_dict()

    assert data['success'] is True
    assert data['total_searches'] == 1
    assert data['detection_results']['total_missing'] == 1
    assert data['search_results']['missing_triggered'] == 1
    assert 'duration_seconds' in data


def test_activity_failures_do_not_abort_cycle(config, logger, factory, sleeper, activity):
    class BrokenActivity:
        def __getattr__(self, name):
            def fail(*args):
                raise OSError("disk full")
            return fail

    add_server(config, "Radarr", "radarr")
    factory.register("Radarr", missing=movies(2))
    detector = Detector(config, logger, client_factory=factory)
    trigger = SearchTrigger(config, activity, logger, client_factory=factory, sleep=sleeper)
    automation = Automation(config, detector, trigger, BrokenActivity(), logger)

    result = automation.run_cycle()

    assert result.success
    assert result.total_searches == 2
