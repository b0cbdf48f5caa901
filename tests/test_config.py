"""
Tests for configuration defaults, the SHOTSEARCH_CONFIG override and logging setup.
"""

import logging

import pytest

from shotsearch import MdsSignal, configure_logging
from shotsearch.config import (
    CONFIG_ENV_VAR, LOG_FORMAT, _read_config, clear_config_cache, get_default, load_config,
)


@pytest.fixture
def override_file(tmp_path, monkeypatch):
    """Write an override YAML and point SHOTSEARCH_CONFIG at it."""
    path = tmp_path / "shotsearch.yaml"
    path.write_text("mds_server: atlas.gat.com\nfetch_timeout: 30\nmax_retries: 5\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    return path


@pytest.fixture(autouse=True)
def fresh_config():
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def restore_package_logger():
    package_logger = logging.getLogger('shotsearch')
    handlers, level = package_logger.handlers[:], package_logger.level
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)


def test_packaged_defaults(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    config = load_config()
    assert config['mds_server'] == 'd3d'
    assert config['default_backend'] == 'sequential'
    assert config['fetch_timeout'] is None


def test_override_merged_over_defaults(override_file):
    config = load_config()
    assert config['mds_server'] == 'atlas.gat.com'
    assert config['max_retries'] == 5
    # untouched keys keep their packaged value
    assert config['chunksize'] == 1


def test_missing_override_file(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "nope.yaml"))
    with pytest.raises(FileNotFoundError):
        load_config()


def test_get_default_fallback_for_null(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert get_default('fetch_timeout', 10.0) == 10.0
    assert get_default('no_such_key', 'x') == 'x'


def test_config_parsed_once_per_override(override_file):
    load_config()
    get_default('mds_server')
    get_default('max_retries')

    info = _read_config.cache_info()
    assert info.misses == 1
    assert info.hits == 2


def test_switching_override_file_is_picked_up(tmp_path, monkeypatch):
    first = tmp_path / "first.yaml"
    second = tmp_path / "second.yaml"
    first.write_text("mds_server: first.example\n")
    second.write_text("mds_server: second.example\n")

    monkeypatch.setenv(CONFIG_ENV_VAR, str(first))
    assert get_default('mds_server') == 'first.example'
    monkeypatch.setenv(CONFIG_ENV_VAR, str(second))
    assert get_default('mds_server') == 'second.example'


def test_loaded_config_is_a_copy(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    load_config()['mds_server'] = 'mutated'
    assert get_default('mds_server') == 'd3d'


def test_signals_pick_up_overrides(override_file):
    signal = MdsSignal(r'\ipmhd', 'efit01')
    assert signal.server == 'atlas.gat.com'
    assert signal.timeout == 30


def test_explicit_arguments_win(override_file):
    signal = MdsSignal(r'\ipmhd', 'efit01', server='localhost', timeout=1.5)
    assert signal.server == 'localhost'
    assert signal.timeout == 1.5


def test_configure_logging_replaces_handler(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    configure_logging('debug')
    package_logger = configure_logging('warning')

    assert package_logger.name == 'shotsearch'
    assert package_logger.level == logging.WARNING
    assert len(package_logger.handlers) == 1
    assert package_logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_backend_run_logs_summary(caplog, pipeline_factory, sequential):
    from tests.helpers import RampSignal

    pipe = pipeline_factory([1, 2])
    pipe.add_fetch('a', RampSignal(fail_shots=[2]))

    with caplog.at_level(logging.INFO, logger='shotsearch'):
        pipe.compute(sequential)

    messages = [r.getMessage() for r in caplog.records]
    assert any('completed=1 failed=1 dropped=0' in m for m in messages)
    assert any(r.levelno == logging.WARNING and 'Shot 2 failed' in r.getMessage()
               for r in caplog.records)
