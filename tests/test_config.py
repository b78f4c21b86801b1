"""Tests for configuration loading, validation and persistence."""

import json

import pytest

from janitarr.config import Config, ConfigError, SearchLimits, ServerConfig, ServerNotFoundError


def write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return str(path)


def test_defaults(config):
    assert config.servers == []
    assert config.schedule.interval_hours == 6
    assert config.schedule.enabled
    assert config.search_limits == SearchLimits(10, 10, 5, 5)
    assert config.logs.retention_days == 30
    assert not config.dry_run


def test_load_from_file(tmp_path):
    path = write_config(tmp_path, {
        'servers': [{'name': 'Movies', 'type': 'radarr', 'url': 'radarr:7878/',
                     'api_key': 'abc', 'id': 'r1'}],
        'schedule': {'interval_hours': 12, 'enabled': False},
        'search_limits': {'missing_movies': 3, 'missing_episodes': 4,
                          'cutoff_movies': 0, 'cutoff_episodes': 1},
        'dry_run': True,
    })

    config = Config(path)

    server = config.get_server('r1')
    assert server.url == 'http://radarr:7878'
    assert config.get_interval_hours() == 12
    assert not config.schedule.enabled
    assert config.get_search_limits().for_category('missing') == 7
    assert config.get_search_limits().for_server_type('cutoff', 'radarr') == 0
    assert config.dry_run


@pytest.mark.parametrize("data, message", [
    ({'schedule': {'interval_hours': 0}}, "interval_hours"),
    ({'search_limits': {'missing_movies': -1}}, "must not be negative"),
    ({'logs': {'retention_days': 0}}, "retention_days"),
    ({'servers': [{'name': 'X', 'type': 'lidarr', 'url': 'u', 'api_key': 'k'}]},
     "unknown server type"),
    ({'servers': [{'name': 'X', 'type': 'radarr', 'url': '', 'api_key': 'k'}]},
     "URL and API key"),
])
def test_invalid_file(tmp_path, data, message):
    with pytest.raises(ConfigError, match=message):
        Config(write_config(tmp_path, data))


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv('JANITARR_INTERVAL_HOURS', '3')
    monkeypatch.setenv('JANITARR_DRY_RUN', 'true')
    monkeypatch.setenv('SONARR_URL', 'http://sonarr:8989/')
    monkeypatch.setenv('SONARR_API_KEY', 'secret')

    config = Config(str(tmp_path / "config.json"))

    assert config.get_interval_hours() == 3
    assert config.dry_run
    [server] = config.get_enabled_servers()
    assert server.type == 'sonarr'
    assert server.url == 'http://sonarr:8989'


def test_bad_interval_env(tmp_path, monkeypatch):
    monkeypatch.setenv('JANITARR_INTERVAL_HOURS', 'often')
    with pytest.raises(ConfigError):
        Config(str(tmp_path / "config.json"))


def test_add_server_persists(config):
    server = config.add_server('Radarr', 'localhost:7878', 'key', 'radarr')

    reloaded = Config(str(config.config_path))
    stored = reloaded.get_server(server.id)
    assert stored.name == 'Radarr'
    assert stored.url == 'http://localhost:7878'
    assert stored.api_key == 'key'


def test_duplicate_server_name(config):
    config.add_server('Radarr', 'localhost:7878', 'key', 'radarr')
    with pytest.raises(ConfigError, match="already exists"):
        config.add_server('radarr', 'other:7878', 'key', 'radarr')


def test_duplicate_url_per_family(config):
    config.add_server('Radarr', 'localhost:7878', 'key', 'radarr')

    with pytest.raises(ConfigError, match="a radarr server with this URL already exists"):
        config.add_server('Radarr 2', 'http://localhost:7878/', 'key', 'radarr')
    config.add_server('Sonarr', 'localhost:7878', 'key', 'sonarr')

    assert len(config.servers) == 2


def test_validate_server_does_not_save(config):
    checked = config.validate_server(ServerConfig(name='New', url='new:7878', api_key='k'))

    assert checked.url == 'http://new:7878'
    assert config.servers == []


def test_lookup_by_name_and_removal(config):
    server = config.add_server('Main', 'localhost:8989', 'key', 'sonarr')

    assert config.get_server('main').id == server.id
    config.remove_server(server.id)
    assert config.get_server(server.id) is None
    with pytest.raises(ServerNotFoundError):
        config.remove_server(server.id)


def test_get_server_returns_copy(config):
    server = config.add_server('Main', 'localhost:8989', 'key', 'sonarr')

    copy = config.get_server(server.id)
    copy.name = 'Changed'

    assert config.get_server(server.id).name == 'Main'


def test_update_server(config):
    server = config.add_server('Main', 'localhost:8989', 'key', 'sonarr')

    config.update_server(server.id, enabled=False, url='other:8989')

    assert config.get_enabled_servers() == []
    assert config.get_server(server.id).url == 'http://other:8989'


def test_update_merges_sections(config):
    config.update({'search_limits': {'cutoff_movies': 0}, 'dry_run': True})

    limits = config.get_search_limits()
    assert limits.cutoff_movies == 0
    assert limits.missing_movies == 10
    assert config.dry_run


def test_update_rejects_invalid_values(config):
    with pytest.raises(ConfigError):
        config.update({'schedule': {'interval_hours': 0}})
    assert config.get_interval_hours() == 6


def test_public_dict_hides_api_keys(config):
    config.add_server('Main', 'localhost:8989', 'secret', 'sonarr')

    data = config.to_dict()

    assert 'api_key' not in data['servers'][0]
    assert 'secret' not in json.dumps(data)


@pytest.mark.parametrize("key, value, section, field, expected", [
    ('schedule.interval', '3', 'schedule', 'interval_hours', 3),
    ('schedule.enabled', 'off', 'schedule', 'enabled', False),
    ('limits.missing.episodes', '0', 'search_limits', 'missing_episodes', 0),
    ('limits.cutoff.episodes', '25', 'search_limits', 'cutoff_episodes', 25),
    ('logs.retention_days', '7', 'logs', 'retention_days', 7),
])
def test_set_value(config, key, value, section, field, expected):
    config.set_value(key, value)

    assert getattr(getattr(config, section), field) == expected
    assert getattr(getattr(Config(str(config.config_path)), section), field) == expected


@pytest.mark.parametrize("key, value, message", [
    ('schedule.interval', 'often', "must be a whole number"),
    ('schedule.interval', '0', "interval_hours must be at least 1"),
    ('limits.missing.movies', '-2', "must not be negative"),
    ('schedule.enabled', 'sometimes', "must be true or false"),
    ('web.port', '80', "Unknown configuration key: web.port"),
])
def test_set_value_rejects(config, key, value, message):
    with pytest.raises(ConfigError, match=message):
        config.set_value(key, value)
