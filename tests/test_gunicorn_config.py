import importlib

from CarMeet import gunicorn_config


def _reload(monkeypatch, **env):
    for name in ('PORT', 'WEB_CONCURRENCY', 'GUNICORN_WORKERS', 'GUNICORN_WORKER_CLASS', 'GUNICORN_PRELOAD'):
        monkeypatch.delenv(name, raising=False)
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return importlib.reload(gunicorn_config)


def test_defaults_use_threaded_workers(monkeypatch):
    config = _reload(monkeypatch)

    assert config.bind == '0.0.0.0:5000'
    assert config.worker_class == 'gthread'
    assert config.workers == 2
    assert config.preload_app is False
    assert not hasattr(config, 'when_ready')


def test_settings_follow_environment(monkeypatch):
    config = _reload(monkeypatch, PORT='8080', WEB_CONCURRENCY='5', GUNICORN_PRELOAD='true')

    assert config.bind == '0.0.0.0:8080'
    assert config.workers == 5
    assert config.preload_app is True
