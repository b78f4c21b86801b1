"""Tests for parallel detection across servers."""

import threading

import pytest

from janitarr.automation import Detector

from conftest import add_server, movies, episodes, server_error


@pytest.fixture
def detector(config, logger, factory):
    return Detector(config, logger, client_factory=factory)


def test_no_servers(detector):
    results = detector.detect_all()

    assert results.results == []
    assert results.success_count == 0
    assert results.failure_count == 0


def test_aggregates_all_servers(config, detector, factory):
    add_server(config, "Radarr", "radarr")
    add_server(config, "Sonarr", "sonarr")
    factory.register("Radarr", missing=movies(3), cutoff=movies(2, start=100))
    factory.register("Sonarr", missing=episodes(5))

    results = detector.detect_all()

    assert results.success_count == 2
    assert results.failure_count == 0
    assert results.total_missing == 8
    assert results.total_cutoff == 2
    by_name = {r.server_name: r for r in results.results}
    assert by_name["Radarr"].missing == [1, 2, 3]
    assert by_name["Radarr"].cutoff == [100, 101]
    assert by_name["Radarr"].missing_items[1].title == "Movie 1"


def test_failed_server_contributes_nothing(config, detector, factory):
    add_server(config, "Good", "radarr")
    add_server(config, "Bad", "sonarr")
    factory.register("Good", missing=movies(4))
    factory.register("Bad", missing_error=server_error())

    results = detector.detect_all()

    assert results.success_count + results.failure_count == 2
    assert results.failure_count == 1
    assert results.total_missing == 4
    bad = next(r for r in results.results if r.server_name == "Bad")
    assert bad.error == "missing detection failed: server error: status 500"
    assert bad.missing == [] and bad.cutoff == []


def test_cutoff_failure_drops_missing_results(config, detector, factory):
    add_server(config, "Radarr", "radarr")
    factory.register("Radarr", missing=movies(4), cutoff_error=server_error("boom"))

    results = detector.detect_all()

    result = results.results[0]
    assert result.error == "cutoff detection failed: boom"
    assert result.missing == []
    assert results.total_missing == 0


def test_disabled_servers_are_skipped(config, detector, factory):
    add_server(config, "Radarr", "radarr")
    server = add_server(config, "Old", "radarr")
    config.update_server(server.id, enabled=False)

    results = detector.detect_all()

    assert [r.server_name for r in results.results] == ["Radarr"]


def test_detect_by_type(config, detector, factory):
    add_server(config, "Radarr", "radarr")
    add_server(config, "Sonarr", "sonarr")
    factory.register("Sonarr", missing=episodes(2))

    results = detector.detect_by_type("sonarr")

    assert [r.server_name for r in results.results] == ["Sonarr"]
    assert results.total_missing == 2


def test_detect_server(config, detector, factory):
    server = add_server(config, "Radarr", "radarr")
    factory.register("Radarr", cutoff=movies(1))

    result = detector.detect_server(server.id)

    assert result.ok
    assert result.cutoff == [1]
    with pytest.raises(LookupError):
        detector.detect_server("missing-id")


def test_servers_are_detected_concurrently(config, detector, factory):
    # Each fetch blocks until all three are in flight; serial detection would time out
    barrier = threading.Barrier(3)
    for name, server_type in (("Radarr", "radarr"), ("Sonarr", "sonarr"), ("Movies4K", "radarr")):
        add_server(config, name, server_type)
        factory.register(name, missing=movies(1), barrier=barrier)

    results = detector.detect_all()

    assert results.failure_count == 0
    assert results.success_count == 3
    assert not barrier.broken
