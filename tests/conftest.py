"""Shared fixtures: quiet logger, throwaway config and fake *arr clients."""

import threading

import pytest

from janitarr.activity import ActivityLog
from janitarr.clients import MediaItem, RateLimitError, APIError, SystemStatus
from janitarr.config import Config
from janitarr.logger import Logger


ENV_VARS = ('JANITARR_INTERVAL_HOURS', 'JANITARR_DRY_RUN', 'JANITARR_CONFIG',
            'RADARR_URL', 'RADARR_API_KEY', 'SONARR_URL', 'SONARR_API_KEY')


class FakeClient:
    """In-memory stand-in for RadarrClient/SonarrClient."""

    def __init__(self, server, missing=None, cutoff=None, missing_error=None,
                 cutoff_error=None, trigger_errors=None, status_error=None, app_name=None,
                 barrier=None):
        self.server = server
        self.missing = missing or []
        self.cutoff = cutoff or []
        self.missing_error = missing_error
        self.cutoff_error = cutoff_error
        # Consumed one per trigger_search call; None means success
        self.trigger_errors = list(trigger_errors or [])
        self.status_error = status_error
        self.app_name = app_name or server.type.capitalize()
        # Shared with the other servers' clients to prove detection runs concurrently
        self.barrier = barrier
        self.triggered = []
        self.stop_event = None
        self._lock = threading.Lock()

    def test_connection(self):
        if self.status_error:
            raise self.status_error
        return SystemStatus(app_name=self.app_name, version='1.2.3')

    def fetch_all_missing(self):
        if self.barrier is not None:
            self.barrier.wait(5)
        if self.missing_error:
            raise self.missing_error
        return list(self.missing)

    def fetch_all_cutoff_unmet(self):
        if self.cutoff_error:
            raise self.cutoff_error
        return list(self.cutoff)

    def trigger_search(self, ids):
        with self._lock:
            self.triggered.append(list(ids))
            error = self.trigger_errors.pop(0) if self.trigger_errors else None
        if error:
            raise error


class FakeClientFactory:
    """client_factory that hands out one FakeClient per server name."""

    def __init__(self):
        self.clients = {}
        self.options = {}

    def register(self, name, **options):
        self.options[name] = options

    def __call__(self, server, stop_event=None):
        client = self.clients.get(server.name)
        if client is None:
            client = FakeClient(server, **self.options.get(server.name, {}))
            self.clients[server.name] = client
        client.stop_event = stop_event
        return client

    def calls(self, name):
        client = self.clients.get(name)
        return client.triggered if client else []


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def movies(count, start=1):
    return [MediaItem.movie(start + i, f"Movie {start + i}", 2020, "HD-1080p")
            for i in range(count)]


def episodes(count, start=1, series="Test Series"):
    return [MediaItem.episode(start + i, series, 1, i + 1, f"Episode {i + 1}", "WEB-720p")
            for i in range(count)]


def rate_limited(times):
    return [RateLimitError(30) for _ in range(times)]


def server_error(message="server error: status 500"):
    return APIError(message, 500)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def logger():
    return Logger(log_dir=None)


@pytest.fixture
def config(tmp_path):
    return Config(str(tmp_path / "config.json"))


@pytest.fixture
def activity(logger):
    return ActivityLog(logger)


@pytest.fixture
def factory():
    return FakeClientFactory()


@pytest.fixture
def sleeper():
    return SleepRecorder()


def add_server(config, name, server_type):
    return config.add_server(name=name, url=f"http://{name.lower()}:7878",
                             api_key="key", server_type=server_type)
